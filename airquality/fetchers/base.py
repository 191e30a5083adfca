"""Classe de base des fetchers HTTP."""
import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Any, Generator, Optional

import requests

from ..config import APIConfig
from ..exceptions import MalformedResponseError, NetworkError, RequestTimeoutError

logger = logging.getLogger(__name__)


class BaseFetcher(ABC):
    """Fetcher générique : session HTTP, délai maximal, limitation de débit et annulation."""

    def __init__(self, config: APIConfig):
        self.config = config
        self.session = self._new_session()
        self.stats = {
            "requests_made": 0,
            "requests_failed": 0,
            "items_fetched": 0,
            "start_time": None,
            "end_time": None,
        }
        self._last_request = 0.0
        # Incrémenté à chaque annulation : une réponse d'une génération passée est ignorée
        self._generation = 0
        self._session_lock = threading.Lock()
        # Les échanges HTTP tournent ici pour que l'appelant attende au plus `timeout`
        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix=f"{config.name}-http")

    def _new_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(self.config.headers)
        return session

    def _rate_limit(self):
        """Attend le délai minimal entre deux requêtes."""
        elapsed = time.monotonic() - self._last_request
        if elapsed < self.config.rate_limit:
            time.sleep(self.config.rate_limit - elapsed)
        self._last_request = time.monotonic()

    def _fetch(self, session: requests.Session, url: str, params: Optional[dict]) -> requests.Response:
        # Exécuté dans un thread de travail ; sans `stream`, le corps est lu entièrement ici
        response = session.get(url, params=params, timeout=self.config.timeout)
        response.raise_for_status()
        return response

    def _make_request(self, endpoint: str, params: Optional[dict] = None) -> Any:
        """
        Effectue une requête GET et retourne le JSON décodé.

        Le délai `config.timeout` borne l'échange complet (connexion, en-têtes
        et corps), pas seulement chaque lecture sur la socket.

        Raises:
            RequestTimeoutError: délai dépassé (la requête est annulée)
            NetworkError: échec de transport ou statut HTTP d'erreur
            MalformedResponseError: corps non décodable en JSON
        """
        url = f"{self.config.base_url}{endpoint}"
        with self._session_lock:
            session = self.session
            generation = self._generation

        self._rate_limit()
        self.stats["requests_made"] += 1
        logger.debug(f"GET {url}")

        future = self._executor.submit(self._fetch, session, url, params)
        try:
            response = future.result(timeout=self.config.timeout)
        except (FutureTimeoutError, requests.exceptions.Timeout) as e:
            self.stats["requests_failed"] += 1
            self.cancel_requests()
            raise RequestTimeoutError(
                f"{self.config.name}: délai de {self.config.timeout}s dépassé pour {endpoint}"
            ) from e
        except requests.exceptions.RequestException as e:
            self.stats["requests_failed"] += 1
            raise NetworkError(f"{self.config.name}: échec de la requête {endpoint}: {e}") from e

        if generation != self._generation:
            self.stats["requests_failed"] += 1
            raise NetworkError(f"{self.config.name}: requête {endpoint} annulée")

        try:
            return response.json()
        except ValueError as e:
            self.stats["requests_failed"] += 1
            raise MalformedResponseError(f"{self.config.name}: JSON invalide pour {endpoint}") from e

    def cancel_requests(self):
        """Annule les requêtes en cours : ferme les connexions et ignore les réponses tardives."""
        with self._session_lock:
            self._generation += 1
            old_session = self.session
            self.session = self._new_session()
        old_session.close()
        logger.debug(f"{self.config.name}: requêtes en cours annulées")

    def close(self):
        # Sans attendre : un échange trop lent ne bloque pas la fermeture
        self._executor.shutdown(wait=False, cancel_futures=True)
        self.session.close()

    @abstractmethod
    def fetch_all(self, *args, **kwargs) -> Generator:
        """Récupère un ensemble d'éléments sur plusieurs requêtes."""
        pass

    def get_stats(self) -> dict:
        """Retourne les statistiques du fetcher."""
        return self.stats.copy()
