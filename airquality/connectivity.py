"""Sonde de connectivité vers le service distant."""
import logging
import socket
from urllib.parse import urlparse

from .config import GIOS_CONFIG, PROBE_TIMEOUT

logger = logging.getLogger(__name__)


def service_address(base_url: str) -> tuple[str, int]:
    """Hôte et port TCP d'une URL de base."""
    parsed = urlparse(base_url)
    port = parsed.port or (443 if parsed.scheme == "https" else 80)
    return parsed.hostname or "", port


def probe_connection(base_url: str = GIOS_CONFIG.base_url, timeout: float = PROBE_TIMEOUT) -> bool:
    """Tente une connexion TCP courte vers l'hôte du service."""
    host, port = service_address(base_url)
    if not host:
        return False

    try:
        with socket.create_connection((host, port), timeout=timeout):
            pass
    except OSError as e:
        logger.info(f"Service {host}:{port} injoignable ({e})")
        return False
    return True
