"""Modèles de données avec validation."""
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Iterable, List, Optional
from datetime import datetime


class Record(BaseModel):
    """Enregistrement immuable, sérialisable tel quel dans le cache JSON."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_record(self) -> dict:
        """Représentation JSON (clés camelCase du cache)."""
        return self.model_dump(mode="json", by_alias=True)


# --- Modèle Station (site de mesure fixe) ---
class Station(Record):
    """Station de mesure."""
    id: int
    name: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    city: str = ""
    address: str = ""
    commune: str = ""
    district: str = ""
    province: str = ""

    def matches_city(self, city: str) -> bool:
        """Correspondance partielle, insensible à la casse, sur le nom de ville."""
        return city.strip().casefold() in self.city.casefold()


# --- Modèle Sensor (un paramètre mesuré sur une station) ---
class Sensor(Record):
    """Capteur d'une station. La station référencée peut être absente du cache."""
    id: int
    station_id: int = Field(alias="stationId")
    param_name: str = Field("", alias="paramName")
    param_formula: str = Field("", alias="paramFormula")
    param_code: str = Field("", alias="paramCode")
    param_id: int = Field(0, alias="idParam")


# --- Modèle Measurement (une lecture horodatée) ---
class Measurement(Record):
    """Mesure d'un capteur. Si `valid` est faux, `value` n'a aucune signification."""
    sensor_id: int = Field(alias="sensorId")
    param_code: str = Field("", alias="paramCode")
    date: datetime
    value: float = 0.0
    valid: bool = True

    @property
    def reading(self) -> Optional[float]:
        return self.value if self.valid else None


class TrendType(str, Enum):
    """Classification qualitative de l'évolution d'une série."""
    INCREASING = "Increasing"
    DECREASING = "Decreasing"
    STABLE = "Stable"
    FLUCTUATING = "Fluctuating"
    UNKNOWN = "Unknown"

    @property
    def description(self) -> str:
        return TREND_DESCRIPTIONS[self]


TREND_DESCRIPTIONS = {
    TrendType.INCREASING: "Croissante",
    TrendType.DECREASING: "Décroissante",
    TrendType.STABLE: "Stable",
    TrendType.FLUCTUATING: "Fluctuante",
    TrendType.UNKNOWN: "Inconnue",
}


# --- Modèle AnalysisResult ---
class AnalysisResult(BaseModel):
    """Statistiques d'une série de mesures. Valeur par défaut : tout à zéro, tendance inconnue."""

    model_config = ConfigDict(frozen=True)

    min_value: float = 0.0
    min_date: Optional[datetime] = None
    max_value: float = 0.0
    max_date: Optional[datetime] = None
    avg_value: float = 0.0
    trend: TrendType = TrendType.UNKNOWN

    @property
    def is_empty(self) -> bool:
        # Toute mesure valide a une date
        return self.min_date is None


# --- Modèle AirQualityIndex (indice calculé par le service) ---
class AirQualityIndex(BaseModel):
    """Indice de qualité de l'air d'une station."""

    model_config = ConfigDict(frozen=True)

    station_id: int
    index_level_id: Optional[int] = None
    index_level_name: Optional[str] = None
    calculation_date: Optional[datetime] = None

    @property
    def is_available(self) -> bool:
        return self.index_level_id is not None


def filter_stations_by_city(stations: Iterable[Station], city: Optional[str]) -> List[Station]:
    """Filtre les stations par ville ; sans ville, retourne toutes les stations."""
    if not city:
        return list(stations)
    return [station for station in stations if station.matches_city(city)]


def filter_measurements_by_date(
    measurements: Iterable[Measurement],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Measurement]:
    """Garde les mesures telles que start <= date <= end (bornes absentes = non bornées)."""
    return [
        m for m in measurements
        if (start is None or m.date >= start) and (end is None or m.date <= end)
    ]
