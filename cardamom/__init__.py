"""One-way CardDAV contact synchronization."""

from .cache import Cache, CacheEntry
from .config import Config
from .errors import (
    AuthError,
    CacheError,
    CacheParseError,
    CardamomError,
    ConfigError,
    LocalError,
    MalformedResponseError,
    TransportError,
)
from .internal import Client
from .model import LocalCard, RemoteCard, SkippedItem
from .sync import SyncReport

__version__ = "0.1.0"

__all__ = [
    "AuthError",
    "Cache",
    "CacheEntry",
    "CacheError",
    "CacheParseError",
    "CardamomError",
    "Client",
    "Config",
    "ConfigError",
    "LocalCard",
    "LocalError",
    "MalformedResponseError",
    "RemoteCard",
    "SkippedItem",
    "SyncReport",
    "TransportError",
]
