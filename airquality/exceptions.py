"""Erreurs du client qualité de l'air."""


class AirQualityError(Exception):
    """Erreur de base du package."""


# --- Erreurs distantes : récupérées par le coordinateur (passage hors ligne) ---
class RemoteError(AirQualityError):
    """Échec d'un appel au service distant."""


class NetworkError(RemoteError):
    """Échec de connexion ou de transport."""


class RequestTimeoutError(RemoteError, TimeoutError):
    """La requête a dépassé le délai imparti."""


class MalformedResponseError(RemoteError):
    """Réponse JSON dont la structure ne correspond pas à l'attendu."""


# --- Erreurs du cache : remontées telles quelles à l'appelant ---
class CacheError(AirQualityError):
    """Échec du cache local."""


class CacheIOError(CacheError):
    """Stockage illisible ou impossible à écrire."""


class MalformedCacheError(CacheError):
    """Contenu persisté qui n'a pas la forme attendue."""


class NoDataAvailableError(AirQualityError):
    """Aucune donnée hors ligne : le cache n'a jamais été alimenté pour cette requête."""
