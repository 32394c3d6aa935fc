"""One-way synchronization of a remote address book into the sync directory."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from .cache import Cache
from .carddav import FetchResult, addressbook_path, fetch_and_write_cards, fetch_ctag
from .config import Config
from .errors import LocalError
from .internal import Client
from .local import read_cards
from .model import SkippedItem

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """Outcome of a sync."""

    path: str
    cache: Cache
    skipped: list[SkippedItem] = field(default_factory=list)


def ensure_sync_dir(config: Config) -> None:
    """Create the sync directory if needed.

    Raises:
        LocalError: If the directory cannot be created
    """
    try:
        config.sync_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise LocalError(f"Could not create sync dir {config.sync_dir}") from e


def build_client(config: Config, http_client: httpx.AsyncClient | None = None) -> Client:
    """Create an authenticated client for the configured server.

    The password is retrieved before anything is sent.

    Raises:
        AuthError: If the password cannot be retrieved
    """
    auth = httpx.BasicAuth(config.login, config.passwd())
    if http_client is None:
        http_client = httpx.AsyncClient(timeout=config.timeout)
    return Client(http_client, config.base_url, auth=auth)


async def init(config: Config, http_client: httpx.AsyncClient | None = None) -> str:
    """Create the sync directory and discover the address book.

    Returns:
        The address book path
    """
    ensure_sync_dir(config)

    client = build_client(config, http_client)
    try:
        return await addressbook_path(client)
    finally:
        await client.close()


async def fetch_remote(client: Client, path: str, sync_dir: Path) -> tuple[FetchResult, str]:
    """Fetch the cards and the change token of an address book concurrently.

    When either request fails the other one is cancelled and the first
    failure is raised.
    """
    try:
        async with asyncio.TaskGroup() as tg:
            cards = tg.create_task(fetch_and_write_cards(client, path, sync_dir))
            ctag = tg.create_task(fetch_ctag(client, path))
    except ExceptionGroup as eg:
        error = eg.exceptions[0]
        for other in eg.exceptions[1:]:
            logger.debug("Also failed: %s", other)
    else:
        return cards.result(), ctag.result()
    raise error


async def sync(config: Config, http_client: httpx.AsyncClient | None = None) -> SyncReport:
    """Fetch every card of the address book and rebuild the cache.

    The cards and the change token are retrieved concurrently once the
    address book is found. The sync directory is listed after every card is
    written. The cache is only written when all of these succeed.

    Args:
        config: Configuration
        http_client: HTTP client to use (creates default if None)

    Returns:
        Report of the sync

    Raises:
        AuthError: If the password cannot be retrieved
        TransportError: If a request fails
        MalformedResponseError: If a reply cannot be decoded
        LocalError: If the sync directory cannot be listed
        CacheError: If the cache cannot be written
    """
    ensure_sync_dir(config)
    client = build_client(config, http_client)
    try:
        path = await addressbook_path(client)
        fetched, ctag = await fetch_remote(client, path, config.sync_dir)
    finally:
        await client.close()

    local_cards = await asyncio.to_thread(read_cards, config.sync_dir)

    cache = Cache.build(ctag, local_cards, fetched.cards)
    cache.write(config.cache_path)
    logger.info("Cache written with %d entries", len(cache.entries))

    return SyncReport(path=path, cache=cache, skipped=fetched.skipped + cache.skipped)
