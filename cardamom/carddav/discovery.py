"""Address book discovery.

The address book path is found in three steps, each narrowing the path
resolved by the previous one:

1. the current user principal of the server root,
2. the address book home set of that principal,
3. the first address book among the members of the home set.

A step that yields nothing keeps the previous path, so servers that answer
a step directly at the root still resolve to a usable path.
"""

from __future__ import annotations

import logging

from ..internal import Client, Depth
from .queries import (
    addressbook_home_set_propfind,
    current_user_principal_propfind,
    decode_addressbook_home_set,
    decode_current_user_principal,
    decode_resourcetype,
    resourcetype_propfind,
)

logger = logging.getLogger(__name__)

ROOT_PATH = "/"


async def resolve_principal(client: Client, path: str) -> str:
    """Resolve the current user principal path."""
    ms = await client.propfind(path, Depth.ZERO, current_user_principal_propfind())
    entries = decode_current_user_principal(ms)
    if not entries:
        logger.debug("No current user principal found at %s", path)
        return path
    return entries[0].principal


async def resolve_home_set(client: Client, path: str) -> str:
    """Resolve the address book home set path of a principal."""
    ms = await client.propfind(path, Depth.ZERO, addressbook_home_set_propfind())
    entries = decode_addressbook_home_set(ms)
    if not entries:
        logger.debug("No address book home set found at %s", path)
        return path
    return entries[0].home_set


async def resolve_collection(client: Client, path: str) -> str:
    """Resolve the path of the first address book of a home set."""
    ms = await client.propfind(path, Depth.ONE, resourcetype_propfind())
    for entry in decode_resourcetype(ms):
        if entry.is_addressbook_collection():
            return entry.href
    logger.debug("No address book found under %s", path)
    return path


async def addressbook_path(client: Client, path: str = ROOT_PATH) -> str:
    """Discover the path of the user's address book.

    Args:
        client: Authenticated WebDAV client
        path: Path the discovery starts from

    Returns:
        Path of the address book collection

    Raises:
        TransportError: If one of the requests fails
        MalformedResponseError: If one of the replies cannot be decoded
    """
    path = await resolve_principal(client, path)
    logger.debug("Current user principal: %s", path)

    path = await resolve_home_set(client, path)
    logger.debug("Address book home set: %s", path)

    path = await resolve_collection(client, path)
    logger.info("Address book: %s", path)

    return path
