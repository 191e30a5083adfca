"""Client qualité de l'air : accès distant avec repli hors ligne et analyse des mesures."""
from .analysis import MeasurementAnalyzer, analyze
from .coordinator import DataSource, FallbackCoordinator, FetchResult
from .fetchers.gios import GiosFetcher
from .models import AirQualityIndex, AnalysisResult, Measurement, Sensor, Station, TrendType
from .storage import CacheStore

__version__ = "1.0.0"
