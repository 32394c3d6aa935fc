"""Fetching address book members and writing them to the sync directory."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from urllib.parse import unquote

from ..internal import Client, Depth
from ..model import RemoteCard, SkippedItem
from .queries import (
    AddressDataEntry,
    addressbook_query,
    ctag_propfind,
    decode_address_data,
    decode_ctag,
)

logger = logging.getLogger(__name__)

CARD_SUFFIX = ".vcf"


@dataclass
class FetchResult:
    """Cards fetched from the address book, keyed by name."""

    cards: dict[str, RemoteCard] = field(default_factory=dict)
    skipped: list[SkippedItem] = field(default_factory=list)


def card_name(href: str) -> str | None:
    """Derive a card name from the last segment of a resource reference.

    Returns:
        The segment without its extension, or None if it is not usable
    """
    segment = unquote(PurePosixPath(href).name)
    if "/" in segment or "\x00" in segment:
        return None
    name = PurePosixPath(segment).stem
    if not name or name in (".", ".."):
        return None
    return name


def strip_carriage_returns(data: str) -> str:
    """Strip the carriage returns ending each line of a card."""
    return "\n".join(line.rstrip("\r") for line in data.split("\n"))


def write_card(sync_dir: Path, name: str, data: str) -> Path:
    """Write a card payload to ``<sync_dir>/<name>.vcf``.

    Raises:
        OSError: If the file cannot be written
    """
    path = sync_dir / f"{name}{CARD_SUFFIX}"
    path.write_text(strip_carriage_returns(data), encoding="utf-8")
    return path


def store_card(entry: AddressDataEntry, sync_dir: Path) -> RemoteCard:
    """Write one fetched member to disk and build its record.

    Raises:
        ValueError: If the member lacks a usable name or a property
        OSError: If the payload cannot be written
    """
    name = card_name(entry.href)
    if name is None:
        raise ValueError("no usable card name")
    if entry.etag is None:
        raise ValueError("missing etag")
    if entry.last_modified is None:
        raise ValueError("missing last modified date")
    if entry.address_data is None:
        raise ValueError("missing address data")

    write_card(sync_dir, name, entry.address_data)
    return RemoteCard(name=name, etag=entry.etag, date=entry.last_modified)


async def fetch_and_write_cards(client: Client, path: str, sync_dir: Path) -> FetchResult:
    """Fetch every card of an address book and write it to the sync directory.

    A member that cannot be named or written is skipped; the rest of the
    address book is still synchronized.

    Args:
        client: Authenticated WebDAV client
        path: Address book path
        sync_dir: Directory the cards are written to

    Returns:
        Fetched cards keyed by name, and the skipped members

    Raises:
        TransportError: If the request fails
        MalformedResponseError: If the reply cannot be decoded
    """
    ms = await client.report(path, Depth.ONE, addressbook_query())
    entries = decode_address_data(ms)

    result = FetchResult()
    for entry in entries:
        try:
            card = store_card(entry, sync_dir)
        except (ValueError, OSError) as e:
            logger.warning("Skipping card %s: %s", entry.href, e)
            result.skipped.append(SkippedItem(ref=entry.href, reason=str(e)))
            continue
        result.cards[card.name] = card

    logger.info("Fetched %d cards, skipped %d", len(result.cards), len(result.skipped))
    return result


async def fetch_ctag(client: Client, path: str) -> str:
    """Fetch the change token of an address book.

    Returns:
        The change token, or ``""`` if the server does not report one
    """
    ms = await client.propfind(path, Depth.ZERO, ctag_propfind())
    return decode_ctag(ms)
