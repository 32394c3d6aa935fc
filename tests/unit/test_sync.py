"""Tests for sync orchestration."""

import asyncio
import os
from datetime import UTC, datetime

import httpx
import pytest
from conftest import (
    card_response,
    collection_response,
    home_set_response,
    multistatus,
    principal_response,
    response,
    xml_response,
)

from cardamom.cache import Cache
from cardamom.errors import AuthError, MalformedResponseError
from cardamom.sync import init, sync

LOCAL_DATE = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)


class FakeServer:
    """Minimal CardDAV server answering from canned multistatus bodies."""

    def __init__(self, cards: bytes):
        self.cards = cards
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = request.content
        if request.method == "REPORT":
            return xml_response(self.cards)
        if b"current-user-principal" in body:
            return xml_response(multistatus(principal_response("/", "/p/alice/")))
        if b"addressbook-home-set" in body:
            return xml_response(multistatus(home_set_response("/p/alice/", "/ab/alice/")))
        if b"resourcetype" in body:
            return xml_response(multistatus(collection_response("/ab/alice/default/")))
        if b"getctag" in body:
            return xml_response(
                multistatus(response("/ab/alice/default/", "<cs:getctag>ctag-9</cs:getctag>"))
            )
        return httpx.Response(400)


def mock_http_client(server: FakeServer) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(server))


def write_local_card(directory, name: str) -> None:
    path = directory / f"{name}.vcf"
    path.write_text("BEGIN:VCARD\nEND:VCARD\n")
    os.utime(path, (LOCAL_DATE.timestamp(), LOCAL_DATE.timestamp()))


@pytest.mark.asyncio
async def test_init_discovers_address_book(config):
    server = FakeServer(multistatus())

    path = await init(config, mock_http_client(server))

    assert path == "/ab/alice/default/"
    assert config.sync_dir.is_dir()


@pytest.mark.asyncio
async def test_sync_writes_cards_and_cache(config):
    """Test a sync where the local store already holds some cards."""
    config.sync_dir.mkdir()
    write_local_card(config.sync_dir, "alice")
    write_local_card(config.sync_dir, "dave")

    server = FakeServer(
        multistatus(
            card_response("/ab/alice/default/alice.vcf", etag='"e1"'),
            card_response("/ab/alice/default/carol.vcf", etag='"e2"'),
            card_response("/"),
        )
    )

    report = await sync(config, mock_http_client(server))

    assert report.path == "/ab/alice/default/"
    assert (config.sync_dir / "carol.vcf").exists()
    assert [item.ref for item in report.skipped] == ["/"]

    cache = Cache.read(config.cache_path)
    assert cache == report.cache
    assert cache.ctag == "ctag-9"
    assert set(cache.entries) == {"alice", "carol"}
    assert cache.entries["alice"].etag == '"e1"'
    assert cache.entries["alice"].remote_date == datetime(2024, 1, 1, 10, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_sync_does_not_write_cache_on_failure(config):
    """Test that a failing fetch leaves no cache behind."""
    server = FakeServer(multistatus(card_response("/ab/a.vcf", last_modified="not-a-date")))

    with pytest.raises(MalformedResponseError):
        await sync(config, mock_http_client(server))

    assert not config.cache_path.exists()


@pytest.mark.asyncio
async def test_sync_auth_failure_sends_nothing(config):
    """Test that a failing password command aborts before any request."""
    config.passwd_cmd = "exit 1"
    server = FakeServer(multistatus())

    with pytest.raises(AuthError):
        await sync(config, mock_http_client(server))

    assert server.requests == []


def file_mtime(path) -> datetime:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)


@pytest.mark.asyncio
async def test_first_sync_caches_every_card(config):
    """Test that cards written by a sync are listed with their final mtime."""
    server = FakeServer(
        multistatus(
            card_response("/ab/alice/default/alice.vcf", etag='"e1"'),
            card_response("/ab/alice/default/bob.vcf", etag='"e2"'),
        )
    )

    report = await sync(config, mock_http_client(server))

    assert set(report.cache.entries) == {"alice", "bob"}
    for name, entry in report.cache.entries.items():
        assert entry.local_date == file_mtime(config.sync_dir / f"{name}.vcf")
    assert Cache.read(config.cache_path) == report.cache


class SlowCtagServer(FakeServer):
    """Fake server that answers the change token query after a delay."""

    def __init__(self, cards: bytes, delay: float):
        super().__init__(cards)
        self.delay = delay
        self.ctag_answered = False

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "PROPFIND" and b"getctag" in request.content:
            await asyncio.sleep(self.delay)
            self.ctag_answered = True
        return super().__call__(request)


@pytest.mark.asyncio
async def test_sync_failure_cancels_pending_requests(config):
    """Test that a failing fetch leaves no request running after sync returns."""
    server = SlowCtagServer(
        multistatus(card_response("/ab/a.vcf", last_modified="not-a-date")), delay=0.2
    )

    with pytest.raises(MalformedResponseError):
        await sync(config, mock_http_client(server))

    assert [t for t in asyncio.all_tasks() if t is not asyncio.current_task()] == []
    await asyncio.sleep(0.3)
    assert not server.ctag_answered
    assert not config.cache_path.exists()
