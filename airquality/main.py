#!/usr/bin/env python3
"""Point d'entrée en ligne de commande du client qualité de l'air."""
import argparse
import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .analysis import MeasurementAnalyzer
from .config import CACHE_DIR, LOG_FILE, REPORTS_DIR
from .coordinator import FallbackCoordinator, FetchResult
from .exceptions import AirQualityError
from .fetchers.gios import GiosFetcher
from .storage import CacheStore

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, log_file: Path = LOG_FILE):
    """Configure le logging : console + fichier tournant."""
    log_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s - %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(log_formatter)

    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=1024*1024*5, # 5MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setFormatter(log_formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Évite d'ajouter plusieurs fois les handlers
    if not root_logger.handlers:
        root_logger.addHandler(console_handler)
        root_logger.addHandler(file_handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _parse_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Date ISO-8601 attendue : {value!r}")


def _log_source(result: FetchResult):
    if result.went_offline:
        logger.warning("⚠️ Service indisponible : données servies depuis le cache local")
    if result.persist_error:
        logger.warning(f"⚠️ Données non mises en cache : {result.persist_error}")
    logger.info(f"   Source : {result.source.value} ({len(result)} éléments)")


def cmd_stations(coordinator: FallbackCoordinator, args) -> int:
    result = coordinator.get_stations(city=args.city)
    for station in result:
        logger.info(f"   [{station.id}] {station.name} - {station.city} ({station.address})")
    _log_source(result)
    return 0


def cmd_sensors(coordinator: FallbackCoordinator, args) -> int:
    result = coordinator.get_sensors(args.station_id)
    for sensor in result:
        logger.info(f"   [{sensor.id}] {sensor.param_name} ({sensor.param_code})")
    _log_source(result)
    return 0


def cmd_measurements(coordinator: FallbackCoordinator, args) -> int:
    result = coordinator.get_measurements(args.sensor_id, args.start, args.end)
    _log_source(result)

    analyzer = MeasurementAnalyzer(result.items)
    analysis = analyzer.analyze()

    logger.info(f"📊 Analyse du capteur {args.sensor_id}")
    if analysis.is_empty:
        logger.info("   Aucune mesure valide")
    else:
        logger.info(f"   Min: {analysis.min_value:.2f} ({analysis.min_date})")
        logger.info(f"   Max: {analysis.max_value:.2f} ({analysis.max_date})")
        logger.info(f"   Moyenne: {analysis.avg_value:.2f}")
    logger.info(f"   Tendance: {analysis.trend.description}")

    if args.report:
        analyzer.generate_report(f"sensor_{args.sensor_id}", REPORTS_DIR)
    return 0


def cmd_index(coordinator: FallbackCoordinator, args) -> int:
    index = coordinator.get_air_quality_index(args.station_id)
    if index.is_available:
        logger.info(f"   Station {index.station_id}: {index.index_level_name} ({index.calculation_date})")
    else:
        logger.info(f"   Station {index.station_id}: indice non calculé")
    return 0


def cmd_sync(coordinator: FallbackCoordinator, args) -> int:
    stats = coordinator.sync_cache(verbose=args.verbose)
    if stats["status"] != "ok":
        logger.error("❌ Synchronisation impossible : service indisponible")
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Client qualité de l'air GIOŚ avec cache hors ligne")
    parser.add_argument("--offline", action="store_true", help="Forcer le mode hors ligne")
    parser.add_argument("--cache-dir", type=Path, default=CACHE_DIR, help="Répertoire du cache local")
    parser.add_argument("--verbose", "-v", action="store_true")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("stations", help="Lister les stations")
    p.add_argument("--city", "-c", help="Filtrer par ville (sous-chaîne, insensible à la casse)")
    p.set_defaults(handler=cmd_stations)

    p = sub.add_parser("sensors", help="Lister les capteurs d'une station")
    p.add_argument("station_id", type=int)
    p.set_defaults(handler=cmd_sensors)

    p = sub.add_parser("measurements", help="Récupérer et analyser les mesures d'un capteur")
    p.add_argument("sensor_id", type=int)
    p.add_argument("--start", type=_parse_datetime, help="Date de début (incluse)")
    p.add_argument("--end", type=_parse_datetime, help="Date de fin (incluse)")
    p.add_argument("--report", "-r", action="store_true", help="Générer un rapport Markdown")
    p.set_defaults(handler=cmd_measurements)

    p = sub.add_parser("index", help="Indice de qualité de l'air d'une station")
    p.add_argument("station_id", type=int)
    p.set_defaults(handler=cmd_index)

    p = sub.add_parser("sync", help="Précharger stations et capteurs dans le cache")
    p.set_defaults(handler=cmd_sync)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose)

    fetcher = GiosFetcher()
    coordinator = FallbackCoordinator(
        fetcher,
        CacheStore(args.cache_dir),
        offline=True if args.offline else None,
    )

    try:
        return args.handler(coordinator, args)
    except AirQualityError as e:
        logger.error(f"❌ {e}")
        return 1
    finally:
        fetcher.close()


if __name__ == "__main__":
    sys.exit(main())
