"""End-to-end sync against an in-process CardDAV server."""

import base64
from datetime import UTC, datetime
from email.utils import format_datetime

import httpx
import pytest
from lxml import etree
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from cardamom.cache import Cache
from cardamom.errors import TransportError
from cardamom.sync import init, sync

D = "DAV:"
C = "urn:ietf:params:xml:ns:carddav"
CS = "http://calendarserver.org/ns/"
NSMAP = {"d": D, "card": C, "cs": CS}

PRINCIPAL = "/principals/alice/"
HOME_SET = "/addressbooks/alice/"
ADDRESSBOOK = "/addressbooks/alice/contacts/"

CONTACTS = {
    "alice": ('"1-alice"', datetime(2024, 1, 1, 10, 0, tzinfo=UTC), "FN:Alice"),
    "bob": ('"1-bob"', datetime(2024, 1, 2, 10, 0, tzinfo=UTC), "FN:Bob"),
}


def vcard(fn: str) -> str:
    return f"BEGIN:VCARD\r\nVERSION:3.0\r\n{fn}\r\nEND:VCARD\r\n"


def add_response(root, href: str, props: list, status: str = "HTTP/1.1 200 OK") -> None:
    resp = etree.SubElement(root, f"{{{D}}}response")
    etree.SubElement(resp, f"{{{D}}}href").text = href
    propstat = etree.SubElement(resp, f"{{{D}}}propstat")
    prop = etree.SubElement(propstat, f"{{{D}}}prop")
    for elem in props:
        prop.append(elem)
    etree.SubElement(propstat, f"{{{D}}}status").text = status


def element(tag: str, text: str | None = None, children: list | None = None):
    elem = etree.Element(tag)
    elem.text = text
    for child in children or []:
        elem.append(child)
    return elem


def multistatus_response(root) -> Response:
    return Response(
        etree.tostring(root, xml_declaration=True, encoding="utf-8"),
        status_code=207,
        media_type="application/xml",
    )


def create_app(login: str, password: str) -> Starlette:
    expected_auth = "Basic " + base64.b64encode(f"{login}:{password}".encode()).decode()

    async def handler(request: Request) -> Response:
        if request.headers.get("authorization") != expected_auth:
            return Response("Unauthorized", status_code=401)

        query = etree.fromstring(await request.body())
        requested = {child.tag for child in query.iter()}
        path = request.url.path
        root = etree.Element(f"{{{D}}}multistatus", nsmap=NSMAP)

        if request.method == "REPORT" and path == ADDRESSBOOK:
            for name, (etag, date, fn) in CONTACTS.items():
                add_response(
                    root,
                    f"{ADDRESSBOOK}{name}.vcf",
                    [
                        element(f"{{{D}}}getetag", etag),
                        element(f"{{{D}}}getlastmodified", format_datetime(date, usegmt=True)),
                        element(f"{{{C}}}address-data", vcard(fn)),
                    ],
                )
        elif f"{{{D}}}current-user-principal" in requested:
            add_response(
                root,
                path,
                [
                    element(
                        f"{{{D}}}current-user-principal",
                        children=[element(f"{{{D}}}href", PRINCIPAL)],
                    )
                ],
            )
        elif f"{{{C}}}addressbook-home-set" in requested and path == PRINCIPAL:
            add_response(
                root,
                path,
                [element(f"{{{C}}}addressbook-home-set", children=[element(f"{{{D}}}href", HOME_SET)])],
            )
        elif f"{{{D}}}resourcetype" in requested and path == HOME_SET:
            add_response(root, HOME_SET, [element(f"{{{D}}}resourcetype", children=[element(f"{{{D}}}collection")])])
            add_response(
                root,
                ADDRESSBOOK,
                [
                    element(
                        f"{{{D}}}resourcetype",
                        children=[element(f"{{{D}}}collection"), element(f"{{{C}}}addressbook")],
                    )
                ],
            )
        elif f"{{{CS}}}getctag" in requested and path == ADDRESSBOOK:
            add_response(root, path, [element(f"{{{CS}}}getctag", "ctag-3")])

        return multistatus_response(root)

    return Starlette(routes=[Route("/{path:path}", handler, methods=["PROPFIND", "REPORT"])])


def asgi_client(app: Starlette) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app))


@pytest.mark.asyncio
@pytest.mark.integration
async def test_init_then_sync(config):
    """Test discovering, fetching and caching against the fake server."""
    app = create_app("user", "secret")

    path = await init(config, asgi_client(app))
    assert path == ADDRESSBOOK

    report = await sync(config, asgi_client(app))
    assert (config.sync_dir / "alice.vcf").read_text() == vcard("FN:Alice").replace("\r", "")

    assert report.path == ADDRESSBOOK
    assert report.skipped == []

    cache = Cache.read(config.cache_path)
    assert cache.ctag == "ctag-3"
    assert set(cache.entries) == {"alice", "bob"}
    assert cache.entries["bob"].etag == '"1-bob"'
    assert cache.entries["bob"].remote_date == CONTACTS["bob"][1]
    bob_mtime = (config.sync_dir / "bob.vcf").stat().st_mtime
    assert cache.entries["bob"].local_date == datetime.fromtimestamp(bob_mtime, tz=UTC)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_sync_wrong_password(config):
    """Test that a rejected login aborts the sync without writing a cache."""
    app = create_app("user", "other")

    with pytest.raises(TransportError, match="rejected"):
        await sync(config, asgi_client(app))

    assert not config.cache_path.exists()
