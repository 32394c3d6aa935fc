"""Sync cache.

The cache records, for every card present both locally and remotely at the
end of a sync, the remote etag and the local and remote modification times.
It is rebuilt from scratch on every sync and written to ``<sync_dir>/.cache``.

File format (version 1)::

    cardamom-cache v1
    <change token, may be empty>
    <name>;<etag>;<local date>;<remote date>
    ...

Dates are ISO 8601 with a UTC offset, as produced by ``datetime.isoformat()``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from .errors import (
    CacheError,
    CacheItemEtagMissingError,
    CacheItemLocalDateMissingError,
    CacheItemNameMissingError,
    CacheItemRemoteDateMissingError,
    CacheParseError,
)
from .model import LocalCard, RemoteCard, SkippedItem

logger = logging.getLogger(__name__)

CACHE_FILE = ".cache"
FORMAT_MARKER = "cardamom-cache v1"
DELIMITER = ";"

_FORBIDDEN = (DELIMITER, "\n", "\r")


def format_date(date: datetime) -> str:
    """Render an aware datetime in the cache date format."""
    if date.tzinfo is None:
        raise ValueError(f"cache dates must be timezone-aware, got {date!r}")
    return date.astimezone(UTC).isoformat()


def parse_date(value: str) -> datetime:
    """Parse a cache date.

    Raises:
        ValueError: If the value is not an ISO 8601 date with an offset
    """
    date = datetime.fromisoformat(value.strip())
    if date.tzinfo is None:
        raise ValueError(f"missing UTC offset in {value!r}")
    return date.astimezone(UTC)


def is_representable(value: str) -> bool:
    """Check whether a name or etag can be stored in a cache line.

    Values with surrounding whitespace are rejected since it is trimmed on
    parse.
    """
    return value == value.strip() and not any(c in value for c in _FORBIDDEN)


@dataclass
class CacheEntry:
    """Sync state of one card."""

    name: str
    etag: str
    local_date: datetime
    remote_date: datetime

    def to_line(self) -> str:
        """Serialize to a cache line.

        Raises:
            ValueError: If the name or etag contains the delimiter or a line break,
                or has surrounding whitespace
        """
        for value in (self.name, self.etag):
            if not is_representable(value):
                raise ValueError(f"cannot store {value!r} in the cache")
        return DELIMITER.join(
            (self.name, self.etag, format_date(self.local_date), format_date(self.remote_date))
        )

    @staticmethod
    def from_line(line: str) -> CacheEntry:
        """Parse a cache line.

        Raises:
            CacheItemFieldMissingError: One subclass per missing field
            CacheParseError: If a date is invalid or the line has extra fields
        """
        tokens = [token.strip() for token in line.rstrip("\r\n").split(DELIMITER)]

        if not tokens[0]:
            raise CacheItemNameMissingError(line)
        if len(tokens) < 2:
            raise CacheItemEtagMissingError(line)
        if len(tokens) < 3 or not tokens[2]:
            raise CacheItemLocalDateMissingError(line)
        if len(tokens) < 4 or not tokens[3]:
            raise CacheItemRemoteDateMissingError(line)
        if len(tokens) > 4:
            raise CacheParseError(f"Unexpected fields in cache item {tokens[0]}")

        try:
            local_date = parse_date(tokens[2])
        except ValueError as e:
            raise CacheParseError("Could not parse cache item local date") from e

        try:
            remote_date = parse_date(tokens[3])
        except ValueError as e:
            raise CacheParseError("Could not parse cache item remote date") from e

        return CacheEntry(
            name=tokens[0], etag=tokens[1], local_date=local_date, remote_date=remote_date
        )


@dataclass
class Cache:
    """Change token of the address book and sync state of its cards."""

    ctag: str = ""
    entries: dict[str, CacheEntry] = field(default_factory=dict)
    skipped: list[SkippedItem] = field(default_factory=list, compare=False)

    @staticmethod
    def build(
        ctag: str,
        local_cards: Mapping[str, LocalCard],
        remote_cards: Mapping[str, RemoteCard],
    ) -> Cache:
        """Pair local and remote cards by name.

        Only cards present on both sides get an entry. Nothing is carried
        over from a previous cache.

        Args:
            ctag: Change token of the address book
            local_cards: Cards of the sync directory
            remote_cards: Cards of the address book

        Returns:
            The new cache
        """
        if "\n" in ctag or "\r" in ctag:
            logger.warning("Change token %r cannot be stored in the cache, dropping it", ctag)
            ctag = ""

        cache = Cache(ctag=ctag)

        for name, local in local_cards.items():
            remote = remote_cards.get(name)
            if remote is None:
                continue
            if not (is_representable(name) and is_representable(remote.etag)):
                logger.warning("Card %r cannot be stored in the cache", name)
                cache.skipped.append(SkippedItem(ref=name, reason="name or etag not representable"))
                continue
            cache.entries[name] = CacheEntry(
                name=name,
                etag=remote.etag,
                local_date=local.date,
                remote_date=remote.date,
            )
        return cache

    def serialize(self) -> str:
        """Serialize to the cache file format."""
        lines = [FORMAT_MARKER, self.ctag]
        lines.extend(self.entries[name].to_line() for name in sorted(self.entries))
        return "\n".join(lines) + "\n"

    @staticmethod
    def parse(text: str) -> Cache:
        """Parse the cache file format.

        Lines that cannot be parsed are skipped and recorded in
        ``Cache.skipped``.

        Raises:
            CacheParseError: If the text does not start with the format marker
        """
        lines = [line.rstrip("\r") for line in text.split("\n")]
        if not lines or lines[0].strip() != FORMAT_MARKER:
            raise CacheParseError("Unsupported cache format")

        cache = Cache(ctag=lines[1] if len(lines) > 1 else "")
        for line in lines[2:]:
            if not line.strip():
                continue
            try:
                entry = CacheEntry.from_line(line)
            except CacheParseError as e:
                logger.warning("Skipping cache line %r: %s", line, e)
                cache.skipped.append(SkippedItem(ref=line, reason=str(e)))
                continue
            cache.entries[entry.name] = entry
        return cache

    def write(self, path: Path) -> None:
        """Write the cache file.

        Raises:
            CacheError: If the file cannot be written
        """
        try:
            Path(path).write_text(self.serialize(), encoding="utf-8")
        except OSError as e:
            raise CacheError("Could not write cache") from e

    @staticmethod
    def read(path: Path) -> Cache:
        """Read a cache file.

        Raises:
            CacheError: If the file cannot be read
            CacheParseError: If the file is not in the cache format
        """
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise CacheError("Could not open cache file") from e
        return Cache.parse(text)
