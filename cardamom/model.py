"""Contact records exchanged between the local store, the server and the cache."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class LocalCard:
    """A contact file found in the local sync directory."""

    name: str
    date: datetime


@dataclass(frozen=True)
class RemoteCard:
    """A contact fetched from the remote address book."""

    name: str
    etag: str
    date: datetime


@dataclass(frozen=True)
class SkippedItem:
    """An item dropped during a sync, with the reason it was dropped.

    ``ref`` is whatever identifies the item best: a resource reference for
    remote members, the raw line for cache entries.
    """

    ref: str
    reason: str
