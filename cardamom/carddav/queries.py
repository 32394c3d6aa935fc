"""CardDAV request bodies and typed decoders for their multistatus replies.

Each query has its own request builder, result dataclass and decoder. The
decoders only look at successful propstats, so a property reported with a
``404 Not Found`` propstat is treated as absent.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

from lxml import etree

from ..errors import MalformedResponseError
from ..internal.elements import (
    ADDRESS_DATA,
    ADDRESSBOOK,
    ADDRESSBOOK_HOME_SET,
    ADDRESSBOOK_QUERY,
    CURRENT_USER_PRINCIPAL,
    GET_CTAG,
    GET_ETAG,
    GET_LAST_MODIFIED,
    NSMAP,
    RESOURCE_TYPE,
    SYNC_TOKEN,
    MultiStatus,
    Prop,
    PropFind,
    ResourceType,
    Status,
    href_child,
)


# Request bodies


def current_user_principal_propfind() -> PropFind:
    """PROPFIND body asking for ``D:current-user-principal``."""
    return PropFind(prop=Prop.named(CURRENT_USER_PRINCIPAL))


def addressbook_home_set_propfind() -> PropFind:
    """PROPFIND body asking for ``C:addressbook-home-set``."""
    return PropFind(prop=Prop.named(ADDRESSBOOK_HOME_SET))


def resourcetype_propfind() -> PropFind:
    """PROPFIND body asking for ``D:resourcetype``."""
    return PropFind(prop=Prop.named(RESOURCE_TYPE))


def ctag_propfind() -> PropFind:
    """PROPFIND body asking for the collection change token."""
    return PropFind(prop=Prop.named(GET_CTAG, SYNC_TOKEN))


def addressbook_query() -> etree._Element:
    """``C:addressbook-query`` REPORT body fetching every member card."""
    query = etree.Element(ADDRESSBOOK_QUERY, nsmap=NSMAP)
    query.append(Prop.named(GET_ETAG, GET_LAST_MODIFIED, ADDRESS_DATA).to_xml())
    return query


# Decoded shapes


@dataclass
class PrincipalEntry:
    """A response carrying ``D:current-user-principal``."""

    href: str
    principal: str


@dataclass
class HomeSetEntry:
    """A response carrying ``C:addressbook-home-set``."""

    href: str
    home_set: str


@dataclass
class ResourceTypeEntry:
    """A member of a collection with its resource type."""

    href: str
    status: Status | None = None
    is_addressbook: bool = False

    def is_addressbook_collection(self) -> bool:
        """Check whether this member is an address book that was found."""
        return self.status is not None and self.status.is_ok() and self.is_addressbook


@dataclass
class AddressDataEntry:
    """A member of an address book with its card payload.

    Fields the server did not report are ``None``.
    """

    href: str
    etag: str | None = None
    last_modified: datetime | None = None
    address_data: str | None = None


def parse_http_date(value: str) -> datetime:
    """Parse an RFC 2822 date into an aware UTC datetime.

    Raises:
        MalformedResponseError: If the value is not an RFC 2822 date
    """
    try:
        date = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError) as e:
        raise MalformedResponseError(f"Could not parse last modified date {value!r}") from e

    if date.tzinfo is None:
        date = date.replace(tzinfo=UTC)
    return date.astimezone(UTC)


# Decoders


def decode_current_user_principal(ms: MultiStatus) -> list[PrincipalEntry]:
    """Decode the reply to :func:`current_user_principal_propfind`."""
    entries = []
    for resp in ms.responses:
        elem = resp.find_prop(CURRENT_USER_PRINCIPAL)
        if elem is None:
            continue
        href = href_child(elem)
        if href is None:
            continue
        entries.append(PrincipalEntry(href=resp.href.path, principal=href.path))
    return entries


def decode_addressbook_home_set(ms: MultiStatus) -> list[HomeSetEntry]:
    """Decode the reply to :func:`addressbook_home_set_propfind`."""
    entries = []
    for resp in ms.responses:
        elem = resp.find_prop(ADDRESSBOOK_HOME_SET)
        if elem is None:
            continue
        href = href_child(elem)
        if href is None:
            continue
        entries.append(HomeSetEntry(href=resp.href.path, home_set=href.path))
    return entries


def decode_resourcetype(ms: MultiStatus) -> list[ResourceTypeEntry]:
    """Decode the reply to :func:`resourcetype_propfind`."""
    entries = []
    for resp in ms.responses:
        elem = resp.find_prop(RESOURCE_TYPE)
        is_addressbook = elem is not None and ResourceType.from_xml(elem).is_type(ADDRESSBOOK)
        entries.append(
            ResourceTypeEntry(
                href=resp.href.path,
                status=resp.first_status(),
                is_addressbook=is_addressbook,
            )
        )
    return entries


def decode_address_data(ms: MultiStatus) -> list[AddressDataEntry]:
    """Decode the reply to :func:`addressbook_query`.

    Raises:
        MalformedResponseError: If a member has an unparsable last modified date
    """
    entries = []
    for resp in ms.responses:
        entry = AddressDataEntry(href=resp.href.path)

        etag_el = resp.find_prop(GET_ETAG)
        if etag_el is not None and etag_el.text:
            entry.etag = etag_el.text.strip()

        mod_el = resp.find_prop(GET_LAST_MODIFIED)
        if mod_el is not None and mod_el.text:
            entry.last_modified = parse_http_date(mod_el.text)

        data_el = resp.find_prop(ADDRESS_DATA)
        if data_el is not None and data_el.text is not None:
            entry.address_data = data_el.text

        entries.append(entry)
    return entries


def decode_ctag(ms: MultiStatus) -> str:
    """Decode the reply to :func:`ctag_propfind`.

    Returns:
        The ``CS:getctag`` value, else the ``D:sync-token`` value, else ``""``
    """
    for tag in (GET_CTAG, SYNC_TOKEN):
        for resp in ms.responses:
            elem = resp.find_prop(tag)
            if elem is not None and elem.text and elem.text.strip():
                return elem.text.strip()
    return ms.sync_token
