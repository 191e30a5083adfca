"""Module de stockage : cache local JSON, un fichier par collection."""
import json
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Type
import logging

from pydantic import ValidationError

from .config import CACHE_DIR, STATIONS_FILE, SENSORS_FILE, MEASUREMENTS_FILE_PREFIX
from .exceptions import CacheIOError, MalformedCacheError
from .models import Measurement, Record, Sensor, Station, filter_measurements_by_date

logger = logging.getLogger(__name__)


class CacheStore:
    """
    Persiste stations, capteurs et mesures (par capteur) en fichiers JSON.

    Chaque sauvegarde remplace entièrement la collection de sa clé, via un
    fichier temporaire renommé atomiquement. Lectures et écritures d'une même
    clé sont sérialisées par un verrou propre à cette clé.
    """

    def __init__(self, cache_dir: str | Path = CACHE_DIR):
        self.cache_dir = Path(cache_dir)
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    # --- Accès bas niveau ---
    def _lock_for(self, key: str) -> threading.RLock:
        # Réentrant : merge_sensors garde le verrou entre lecture et écriture
        with self._locks_guard:
            return self._locks.setdefault(key, threading.RLock())

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"

    @staticmethod
    def _measurements_key(sensor_id: int) -> str:
        return f"{MEASUREMENTS_FILE_PREFIX}{sensor_id}"

    def _write_records(self, key: str, records: List[Record]) -> Path:
        filepath = self._path(key)
        payload = [record.to_record() for record in records]

        with self._lock_for(key):
            tmp_path = filepath.with_name(f"{filepath.name}.{os.getpid()}.tmp")
            try:
                self.cache_dir.mkdir(parents=True, exist_ok=True)
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump(payload, f, ensure_ascii=False, indent=2)
                os.replace(tmp_path, filepath)
            except OSError as e:
                if tmp_path.exists():
                    tmp_path.unlink()
                raise CacheIOError(f"Écriture impossible dans {filepath}: {e}") from e

        logger.debug(f"💾 Cache: {filepath.name} ({len(payload)} enregistrements)")
        return filepath

    def _read_records(self, key: str, model: Type[Record]) -> list:
        filepath = self._path(key)

        with self._lock_for(key):
            if not filepath.exists():
                return []
            try:
                with open(filepath, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except json.JSONDecodeError as e:
                raise MalformedCacheError(f"JSON invalide dans {filepath}: {e}") from e
            except OSError as e:
                raise CacheIOError(f"Lecture impossible de {filepath}: {e}") from e

        if not isinstance(data, list):
            raise MalformedCacheError(f"Format de cache invalide dans {filepath}: liste attendue")

        try:
            return [model.model_validate(item) for item in data if isinstance(item, dict)]
        except ValidationError as e:
            raise MalformedCacheError(f"Enregistrement invalide dans {filepath}: {e}") from e

    # --- Stations ---
    def save_stations(self, stations: List[Station]) -> Path:
        """Remplace les stations en cache."""
        return self._write_records(STATIONS_FILE, stations)

    def load_stations(self) -> List[Station]:
        """Charge les stations (liste vide si le cache n'existe pas encore)."""
        return self._read_records(STATIONS_FILE, Station)

    # --- Capteurs ---
    def save_sensors(self, sensors: List[Sensor]) -> Path:
        """Remplace les capteurs en cache."""
        return self._write_records(SENSORS_FILE, sensors)

    def load_sensors(self) -> List[Sensor]:
        return self._read_records(SENSORS_FILE, Sensor)

    def load_sensors_for_station(self, station_id: int) -> List[Sensor]:
        """Capteurs en cache d'une station donnée."""
        return [sensor for sensor in self.load_sensors() if sensor.station_id == station_id]

    def merge_sensors(self, station_id: int, sensors: List[Sensor]) -> Path:
        """
        Remplace les capteurs en cache d'une station, en gardant ceux des autres.

        Lecture et écriture se font sous le même verrou : deux fusions
        concurrentes pour des stations différentes ne se perdent pas.
        Un cache corrompu est entièrement réécrit.
        """
        with self._lock_for(SENSORS_FILE):
            try:
                existing = self.load_sensors()
            except MalformedCacheError as e:
                logger.warning(f"Cache de capteurs corrompu, réécriture complète : {e}")
                existing = []

            merged = [s for s in existing if s.station_id != station_id] + list(sensors)
            return self.save_sensors(merged)

    # --- Mesures ---
    def save_measurements(self, measurements: List[Measurement], sensor_id: int) -> Path:
        """Remplace les mesures en cache d'un capteur."""
        return self._write_records(self._measurements_key(sensor_id), measurements)

    def load_measurements(
        self,
        sensor_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Measurement]:
        """Mesures en cache d'un capteur, filtrées sur [start, end] (bornes incluses)."""
        measurements = self._read_records(self._measurements_key(sensor_id), Measurement)
        return filter_measurements_by_date(measurements, start, end)

    def has_measurements(self, sensor_id: int) -> bool:
        return self._path(self._measurements_key(sensor_id)).exists()

    def clear(self) -> int:
        """Supprime tous les fichiers du cache. Retourne le nombre de fichiers supprimés."""
        if not self.cache_dir.exists():
            return 0

        removed = 0
        for filepath in self.cache_dir.glob("*.json"):
            with self._lock_for(filepath.stem):
                try:
                    filepath.unlink()
                except OSError as e:
                    raise CacheIOError(f"Suppression impossible de {filepath}: {e}") from e
            removed += 1

        logger.info(f"🗑️ Cache vidé ({removed} fichiers)")
        return removed
