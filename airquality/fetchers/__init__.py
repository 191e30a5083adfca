from .base import BaseFetcher
from .gios import GiosFetcher

__all__ = ["BaseFetcher", "GiosFetcher"]
