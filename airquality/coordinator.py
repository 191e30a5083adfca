"""Coordinateur d'accès aux données : service distant ou cache local."""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Iterator, List, Optional

from .connectivity import probe_connection
from .exceptions import CacheError, NoDataAvailableError, RemoteError
from .fetchers.gios import GiosFetcher
from .models import (
    AirQualityIndex,
    Station,
    filter_measurements_by_date,
    filter_stations_by_city,
)
from .storage import CacheStore

logger = logging.getLogger(__name__)


class DataSource(str, Enum):
    REMOTE = "remote"
    CACHE = "cache"


@dataclass(frozen=True)
class FetchResult:
    """Résultat d'une requête : éléments, source, et incidents non bloquants."""
    items: list
    source: DataSource
    went_offline: bool = False
    persist_error: Optional[str] = None

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator:
        return iter(self.items)

    @property
    def from_cache(self) -> bool:
        return self.source == DataSource.CACHE


class FallbackCoordinator:
    """
    Point d'entrée unique pour obtenir stations, capteurs et mesures.

    En ligne, les données viennent du service distant et sont persistées dans
    le cache. Au premier échec distant, le coordinateur passe hors ligne pour
    le reste de la session et sert la même requête depuis le cache. Seul
    `reprobe()`, appelé explicitement, peut le remettre en ligne.
    """

    def __init__(
        self,
        fetcher: GiosFetcher,
        store: CacheStore,
        offline: Optional[bool] = None,
        on_mode_change: Optional[Callable[[bool, str], None]] = None,
        probe: Callable[[], bool] = probe_connection,
    ):
        self.fetcher = fetcher
        self.store = store
        self.on_mode_change = on_mode_change
        self._probe = probe
        self._mode_lock = threading.Lock()

        if offline is None:
            offline = not self._probe()
        self._offline = offline
        logger.info(f"Démarrage en mode {'hors ligne' if offline else 'en ligne'}")

    # --- Mode ---
    @property
    def offline_mode(self) -> bool:
        with self._mode_lock:
            return self._offline

    def go_offline(self, reason: str) -> bool:
        """Passe hors ligne. Retourne True si le mode a effectivement changé."""
        with self._mode_lock:
            if self._offline:
                return False
            self._offline = True

        logger.warning(f"⚠️ Passage en mode hors ligne : {reason}")
        if self.on_mode_change:
            self.on_mode_change(True, reason)
        return True

    def reprobe(self) -> bool:
        """Sonde à nouveau le service ; en cas de succès, repasse en ligne."""
        available = self._probe()
        with self._mode_lock:
            changed = available and self._offline
            if changed:
                self._offline = False

        if changed:
            logger.info("🌐 Service de nouveau joignable, retour en mode en ligne")
            if self.on_mode_change:
                self.on_mode_change(False, "service joignable")
        return available

    # --- Politique commune ---
    def _serve(
        self,
        label: str,
        fetch_remote: Callable[[], list],
        persist: Callable[[list], object],
        load_cached: Callable[[], list],
        select: Callable[[list], list],
    ) -> FetchResult:
        went_offline = False

        if not self.offline_mode:
            try:
                items = fetch_remote()
            except RemoteError as e:
                went_offline = self.go_offline(f"{label}: {e}")
            else:
                persist_error = self._persist(label, persist, items)
                return FetchResult(select(items), DataSource.REMOTE, persist_error=persist_error)

        cached = load_cached()
        if not cached:
            raise NoDataAvailableError(f"Aucune donnée hors ligne pour {label}")

        logger.info(f"📂 {label}: {len(cached)} éléments chargés depuis le cache local")
        return FetchResult(select(cached), DataSource.CACHE, went_offline=went_offline)

    @staticmethod
    def _persist(label: str, persist: Callable[[list], object], items: list) -> Optional[str]:
        try:
            persist(items)
        except CacheError as e:
            logger.error(f"Persistance impossible pour {label}: {e}")
            return str(e)
        return None

    # --- Stations ---
    def get_stations(self, city: Optional[str] = None) -> FetchResult:
        """Stations, éventuellement filtrées par ville (même filtre quelle que soit la source)."""
        return self._serve(
            "stations",
            fetch_remote=self.fetcher.fetch_stations,
            persist=self.store.save_stations,
            load_cached=self.store.load_stations,
            select=lambda stations: filter_stations_by_city(stations, city),
        )

    # --- Capteurs ---
    def get_sensors(self, station_id: int) -> FetchResult:
        """
        Capteurs d'une station.

        Hors ligne, un cache de capteurs non vide sans capteur pour cette
        station donne un résultat vide, pas une absence de données.
        """
        return self._serve(
            f"capteurs de la station {station_id}",
            fetch_remote=lambda: self.fetcher.fetch_sensors(station_id),
            persist=lambda sensors: self.store.merge_sensors(station_id, sensors),
            load_cached=self.store.load_sensors,
            select=lambda sensors: [s for s in sensors if s.station_id == station_id],
        )

    # --- Mesures ---
    def get_measurements(
        self,
        sensor_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> FetchResult:
        """Mesures d'un capteur sur [start, end] (bornes incluses, absentes = non bornées)."""
        return self._serve(
            f"mesures du capteur {sensor_id}",
            fetch_remote=lambda: self.fetcher.fetch_measurements(sensor_id),
            persist=lambda measurements: self.store.save_measurements(measurements, sensor_id),
            load_cached=lambda: self.store.load_measurements(sensor_id),
            select=lambda measurements: filter_measurements_by_date(measurements, start, end),
        )

    # --- Indice de qualité (non mis en cache) ---
    def get_air_quality_index(self, station_id: int) -> AirQualityIndex:
        """Indice de qualité d'une station, disponible uniquement en ligne."""
        if not self.offline_mode:
            try:
                return self.fetcher.fetch_air_quality_index(station_id)
            except RemoteError as e:
                self.go_offline(f"indice de la station {station_id}: {e}")

        raise NoDataAvailableError(f"Indice de la station {station_id} indisponible hors ligne")

    # --- Préchargement ---
    def sync_cache(self, verbose: bool = True) -> dict:
        """Télécharge toutes les stations et tous leurs capteurs dans le cache local."""
        stats = {"start_time": datetime.now(), "stations": 0, "sensors": 0}

        if self.offline_mode:
            stats["status"] = "offline"
            return stats

        try:
            stations: List[Station] = self.fetcher.fetch_stations()
            sensors = list(self.fetcher.fetch_all([s.id for s in stations], verbose))
        except RemoteError as e:
            self.go_offline(f"synchronisation: {e}")
            stats["status"] = "offline"
            return stats

        self.store.save_stations(stations)
        self.store.save_sensors(sensors)

        stats.update({
            "status": "ok",
            "stations": len(stations),
            "sensors": len(sensors),
            "end_time": datetime.now(),
            "fetcher": self.fetcher.get_stats(),
        })
        logger.info(f"✅ Cache synchronisé : {len(stations)} stations, {len(sensors)} capteurs")
        return stats
