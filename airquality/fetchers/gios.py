"""Fetcher pour l'API GIOŚ (qualité de l'air en Pologne)."""
import logging
from datetime import datetime
from typing import Generator, Iterable, List

from tqdm import tqdm

from .base import BaseFetcher
from ..config import (
    GIOS_CONFIG,
    STATIONS_ENDPOINT,
    SENSORS_ENDPOINT,
    MEASUREMENTS_ENDPOINT,
    AIR_QUALITY_INDEX_ENDPOINT,
)
from ..exceptions import MalformedResponseError
from ..models import AirQualityIndex, Measurement, Sensor, Station, filter_stations_by_city

logger = logging.getLogger(__name__)


def _parse_date(raw, context: str) -> datetime:
    try:
        return datetime.fromisoformat(str(raw))
    except ValueError as e:
        raise MalformedResponseError(f"Date invalide dans {context}: {raw!r}") from e


class GiosFetcher(BaseFetcher):
    """Client du service distant : stations, capteurs, mesures et indice de qualité."""

    def __init__(self, config=GIOS_CONFIG):
        super().__init__(config)

    # --- Stations ---
    def fetch_stations(self) -> List[Station]:
        """Récupère toutes les stations."""
        data = self._make_request(STATIONS_ENDPOINT)
        if not isinstance(data, list):
            raise MalformedResponseError("Liste JSON attendue pour les stations")

        stations = [self._parse_station(item) for item in data if isinstance(item, dict)]
        self.stats["items_fetched"] += len(stations)
        return stations

    def fetch_stations_by_city(self, city: str) -> List[Station]:
        """Récupère toutes les stations puis filtre côté client sur la ville."""
        return filter_stations_by_city(self.fetch_stations(), city)

    @staticmethod
    def _parse_station(item: dict) -> Station:
        city = item.get("city") or {}
        commune = city.get("commune") or {}
        try:
            return Station(
                id=item["id"],
                name=item.get("stationName") or "",
                latitude=float(item.get("gegrLat") or 0.0),
                longitude=float(item.get("gegrLon") or 0.0),
                city=city.get("name") or "",
                address=item.get("addressStreet") or "",
                commune=commune.get("communeName") or "",
                district=commune.get("districtName") or "",
                province=commune.get("provinceName") or "",
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError(f"Station invalide: {item}") from e

    # --- Capteurs ---
    def fetch_sensors(self, station_id: int) -> List[Sensor]:
        """Récupère les capteurs d'une station."""
        data = self._make_request(f"{SENSORS_ENDPOINT}/{station_id}")
        if not isinstance(data, list):
            raise MalformedResponseError(f"Liste JSON attendue pour les capteurs de la station {station_id}")

        sensors = [self._parse_sensor(item) for item in data if isinstance(item, dict)]
        self.stats["items_fetched"] += len(sensors)
        return sensors

    @staticmethod
    def _parse_sensor(item: dict) -> Sensor:
        param = item.get("param") or {}
        try:
            return Sensor(
                id=item["id"],
                station_id=item["stationId"],
                param_name=param.get("paramName") or "",
                param_formula=param.get("paramFormula") or "",
                param_code=param.get("paramCode") or "",
                param_id=param.get("idParam") or 0,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError(f"Capteur invalide: {item}") from e

    # --- Mesures ---
    def fetch_measurements(self, sensor_id: int) -> List[Measurement]:
        """
        Récupère les mesures d'un capteur.

        Le capteur associé vient de la requête, pas du contenu de la réponse.
        Une valeur nulle donne une mesure invalide (valeur stockée 0.0).
        """
        data = self._make_request(f"{MEASUREMENTS_ENDPOINT}/{sensor_id}")
        if not isinstance(data, dict) or not isinstance(data.get("values"), list):
            raise MalformedResponseError(f"Objet JSON avec 'values' attendu pour le capteur {sensor_id}")

        key = data.get("key") or ""
        measurements = []
        for item in data["values"]:
            if not isinstance(item, dict):
                continue
            date = _parse_date(item.get("date"), f"mesures du capteur {sensor_id}")
            value = item.get("value")
            try:
                measurements.append(Measurement(
                    sensor_id=sensor_id,
                    param_code=key,
                    date=date,
                    value=0.0 if value is None else float(value),
                    valid=value is not None,
                ))
            except (TypeError, ValueError) as e:
                raise MalformedResponseError(f"Valeur invalide pour le capteur {sensor_id}: {value!r}") from e

        self.stats["items_fetched"] += len(measurements)
        return measurements

    # --- Indice de qualité de l'air ---
    def fetch_air_quality_index(self, station_id: int) -> AirQualityIndex:
        """Récupère l'indice de qualité de l'air calculé pour une station."""
        data = self._make_request(f"{AIR_QUALITY_INDEX_ENDPOINT}/{station_id}")
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Objet JSON attendu pour l'indice de la station {station_id}")

        level = data.get("stIndexLevel") or {}
        calc_date = data.get("stCalcDate")
        return AirQualityIndex(
            station_id=data.get("id") or station_id,
            index_level_id=level.get("id"),
            index_level_name=level.get("indexLevelName"),
            calculation_date=_parse_date(calc_date, f"indice de la station {station_id}") if calc_date else None,
        )

    def fetch_all(
        self,
        station_ids: Iterable[int],
        verbose: bool = True
    ) -> Generator[Sensor, None, None]:
        """
        Récupère les capteurs de plusieurs stations (préchargement du cache).

        Une réponse mal formée pour une station est ignorée ; les erreurs
        réseau et les délais dépassés sont propagés.
        """
        self.stats["start_time"] = datetime.now()
        station_ids = list(station_ids)

        pbar = tqdm(station_ids, desc="GIOS Capteurs", disable=not verbose)
        try:
            for station_id in pbar:
                try:
                    sensors = self.fetch_sensors(station_id)
                except MalformedResponseError as e:
                    logger.warning(f"Capteurs ignorés pour la station {station_id}: {e}")
                    continue

                yield from sensors
        finally:
            pbar.close()
            self.stats["end_time"] = datetime.now()

        if verbose:
            duration = (self.stats["end_time"] - self.stats["start_time"]).seconds
            logger.info(f"✅ Capteurs de {len(station_ids)} stations récupérés en {duration}s")
