"""Shared fixtures and multistatus builders."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from cardamom.config import Config
from cardamom.internal import Client

XML_HEADERS = {"Content-Type": "application/xml; charset=utf-8"}


def multistatus(*responses: str) -> bytes:
    """Wrap response elements in a multistatus document."""
    body = "\n".join(responses)
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<d:multistatus xmlns:d="DAV:" xmlns:card="urn:ietf:params:xml:ns:carddav" '
        'xmlns:cs="http://calendarserver.org/ns/">\n'
        f"{body}\n"
        "</d:multistatus>"
    ).encode("utf-8")


def response(href: str, prop: str, status: str = "HTTP/1.1 200 OK") -> str:
    """Build a response element with a single propstat."""
    return (
        "<d:response>"
        f"<d:href>{href}</d:href>"
        f"<d:propstat><d:prop>{prop}</d:prop><d:status>{status}</d:status></d:propstat>"
        "</d:response>"
    )


def principal_response(href: str, principal: str) -> str:
    return response(
        href, f"<d:current-user-principal><d:href>{principal}</d:href></d:current-user-principal>"
    )


def home_set_response(href: str, home_set: str) -> str:
    return response(
        href, f"<card:addressbook-home-set><d:href>{home_set}</d:href></card:addressbook-home-set>"
    )


def collection_response(href: str, addressbook: bool = True, status: str = "HTTP/1.1 200 OK") -> str:
    marker = "<card:addressbook/>" if addressbook else ""
    return response(href, f"<d:resourcetype><d:collection/>{marker}</d:resourcetype>", status)


def card_response(
    href: str,
    etag: str = '"etag"',
    last_modified: str = "Mon, 01 Jan 2024 10:00:00 GMT",
    data: str = "BEGIN:VCARD\r\nVERSION:3.0\r\nFN:Someone\r\nEND:VCARD\r\n",
) -> str:
    return response(
        href,
        f"<d:getetag>{etag}</d:getetag>"
        f"<d:getlastmodified>{last_modified}</d:getlastmodified>"
        f"<card:address-data>{data}</card:address-data>",
    )


def xml_response(content: bytes, status_code: int = 207) -> httpx.Response:
    return httpx.Response(status_code, content=content, headers=XML_HEADERS)


@pytest.fixture
def make_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], Client]:
    """Build a cardamom client answering through a request handler."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> Client:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return Client(http_client, "https://dav.example.com", auth=("user", "secret"))

    return factory


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Configuration syncing into a temporary directory."""
    return Config(
        host="dav.example.com",
        port=443,
        login="user",
        passwd_cmd="echo secret",
        sync_dir=tmp_path / "contacts",
    )
