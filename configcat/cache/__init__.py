"""Config cache: immutable entries and the single-writer store."""

from configcat.cache.models import ConfigEntry
from configcat.cache.store import ConfigStore


__all__ = [
    "ConfigEntry",
    "ConfigStore",
]
