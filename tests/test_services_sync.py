"""Tests for the HTTP sync service and app service wiring."""

from __future__ import annotations

import json
from datetime import date

import httpx
import pytest

from scrbl.services import list_remote_dates, note_url, pull_note, push_note
from scrbl.services.interfaces import (
    AppServices,
    HttpSyncService,
    SyncService,
    build_default_app_services,
)

SERVER = "https://notes.example"
DAY = date(2025, 1, 2)


def _client(handler, seen: list[httpx.Request] | None = None) -> httpx.AsyncClient:
    def _record(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return handler(request)

    return httpx.AsyncClient(transport=httpx.MockTransport(_record))


def test_note_url_strips_trailing_slash():
    assert note_url(SERVER + "/", DAY) == "https://notes.example/api/notes/2025-01-02"


class TestPushNote:
    async def test_puts_json_with_bearer_token(self):
        seen: list[httpx.Request] = []
        async with _client(lambda request: httpx.Response(204), seen) as client:
            await push_note(
                client=client, server_url=SERVER, api_key="k3y", day=DAY, content="# hi\n"
            )

        (request,) = seen
        assert request.method == "PUT"
        assert str(request.url) == "https://notes.example/api/notes/2025-01-02"
        assert request.headers["Authorization"] == "Bearer k3y"
        assert json.loads(request.content) == {"date": "2025-01-02", "content": "# hi\n"}

    async def test_no_auth_header_without_key(self):
        seen: list[httpx.Request] = []
        async with _client(lambda request: httpx.Response(200), seen) as client:
            await push_note(client=client, server_url=SERVER, api_key="", day=DAY, content="")
        assert "Authorization" not in seen[0].headers

    async def test_server_error_raises(self):
        async with _client(lambda request: httpx.Response(500)) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await push_note(
                    client=client, server_url=SERVER, api_key="", day=DAY, content="x"
                )


class TestPullNote:
    async def test_returns_content(self):
        async with _client(lambda request: httpx.Response(200, json={"content": "body\n"})) as c:
            assert await pull_note(client=c, server_url=SERVER, api_key="", day=DAY) == "body\n"

    async def test_unknown_day_is_empty(self):
        async with _client(lambda request: httpx.Response(404)) as c:
            assert await pull_note(client=c, server_url=SERVER, api_key="", day=DAY) == ""

    @pytest.mark.parametrize("payload", [["not", "a", "dict"], {"content": 5}, {}])
    async def test_unexpected_payload_is_empty(self, payload):
        async with _client(lambda request: httpx.Response(200, json=payload)) as c:
            assert await pull_note(client=c, server_url=SERVER, api_key="", day=DAY) == ""

    async def test_auth_failure_raises(self):
        async with _client(lambda request: httpx.Response(401)) as c:
            with pytest.raises(httpx.HTTPStatusError):
                await pull_note(client=c, server_url=SERVER, api_key="bad", day=DAY)


async def test_list_remote_dates_sorted_strings_only():
    payload = ["2025-01-02", "2024-12-31", 7, None]
    seen: list[httpx.Request] = []
    async with _client(lambda request: httpx.Response(200, json=payload), seen) as client:
        dates = await list_remote_dates(client=client, server_url=SERVER + "/", api_key="")
    assert dates == ["2024-12-31", "2025-01-02"]
    assert str(seen[0].url) == "https://notes.example/api/notes"


class TestHttpSyncService:
    def test_satisfies_protocol(self):
        assert isinstance(HttpSyncService(SERVER, "k"), SyncService)

    async def test_delegates_to_http_calls(self):
        seen: list[httpx.Request] = []

        def _handler(request: httpx.Request) -> httpx.Response:
            if request.method == "PUT":
                return httpx.Response(200)
            if request.url.path.endswith("/api/notes"):
                return httpx.Response(200, json=["2025-01-02"])
            return httpx.Response(200, json={"content": "pulled"})

        service = HttpSyncService(SERVER, "k")
        async with _client(_handler, seen) as client:
            await service.push(client=client, day=DAY, content="x")
            assert await service.pull(client=client, day=DAY) == "pulled"
            assert await service.list_dates(client=client) == ["2025-01-02"]
        assert [request.method for request in seen] == ["PUT", "GET", "GET"]


class TestBuildDefaultAppServices:
    def test_sync_off_without_server(self, make_config):
        assert build_default_app_services(make_config()) == AppServices()

    def test_sync_on_with_server(self, make_config):
        services = build_default_app_services(make_config(server_url=SERVER, api_key="k"))
        assert isinstance(services.sync, HttpSyncService)
        assert services.sync.server_url == SERVER
