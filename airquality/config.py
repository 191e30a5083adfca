"""Configuration centralisée du client qualité de l'air."""
import os
from pathlib import Path
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

# === Chemins ===
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = BASE_DIR / "data"
CACHE_DIR = Path(os.getenv("AIRQUALITY_CACHE_DIR", DATA_DIR / "cache"))
REPORTS_DIR = DATA_DIR / "reports"
LOG_FILE = BASE_DIR / "logs" / "airquality.log"


@dataclass
class APIConfig:
    """Configuration d'une API."""
    name: str
    base_url: str
    timeout: float
    rate_limit: float  # secondes entre requêtes
    headers: dict = None

    def __post_init__(self):
        self.headers = self.headers or {}


# === API GIOŚ (Inspection générale de la protection de l'environnement) ===
GIOS_CONFIG = APIConfig(
    name="GIOS",
    base_url=os.getenv("AIRQUALITY_API_URL", "https://api.gios.gov.pl/pjp-api/rest"),
    timeout=float(os.getenv("AIRQUALITY_TIMEOUT", 10)),  # 10 000 ms
    rate_limit=0.2,
    headers={"Accept": "application/json", "User-Agent": "airquality-client/1.0"},
)

STATIONS_ENDPOINT = "/station/findAll"
SENSORS_ENDPOINT = "/station/sensors"
MEASUREMENTS_ENDPOINT = "/data/getData"
AIR_QUALITY_INDEX_ENDPOINT = "/aqindex/getIndex"

# Sonde de connectivité (connexion TCP courte vers l'hôte du service)
PROBE_TIMEOUT = float(os.getenv("AIRQUALITY_PROBE_TIMEOUT", 3))

# === Fichiers du cache local ===
STATIONS_FILE = "stations"
SENSORS_FILE = "sensors"
MEASUREMENTS_FILE_PREFIX = "measurements_"

# === Seuils d'analyse ===
ANALYSIS_THRESHOLDS = {
    "stable_slope": 0.001,       # pente absolue (unité/heure) sous laquelle la série est stable
    "stable_drift_ratio": 0.01,  # dérive sur la période / moyenne sous laquelle la série est stable
    "fluctuation_ratio": 0.20,   # écart moyen à la tendance / moyenne au-delà duquel la série fluctue
}
