"""HTTP sync client for pushing and pulling day notes."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any, TypeVar

import httpx

from scrbl.models import DAY_FILE_DATE_FORMAT

T = TypeVar("T")

SYNC_TIMEOUT_SECONDS = 10
NOTES_ENDPOINT = "/api/notes"


def note_url(server_url: str, day: date) -> str:
    """Return the endpoint for one day's note."""
    return f"{server_url.rstrip('/')}{NOTES_ENDPOINT}/{day.strftime(DAY_FILE_DATE_FORMAT)}"


def _headers(api_key: str) -> dict[str, str]:
    headers = {"Accept": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


async def _with_client(
    client: httpx.AsyncClient | None,
    request: Callable[[httpx.AsyncClient], Awaitable[T]],
) -> T:
    if client is not None:
        return await request(client)
    async with httpx.AsyncClient() as tmp_client:
        return await request(tmp_client)


async def push_note(
    *,
    client: httpx.AsyncClient | None,
    server_url: str,
    api_key: str,
    day: date,
    content: str,
    timeout_seconds: float = SYNC_TIMEOUT_SECONDS,
) -> None:
    """Upload one day's note. Raises ``httpx.HTTPError`` on failure."""
    payload = {"date": day.strftime(DAY_FILE_DATE_FORMAT), "content": content}

    async def _request(active_client: httpx.AsyncClient) -> None:
        response = await active_client.put(
            note_url(server_url, day),
            json=payload,
            headers=_headers(api_key),
            timeout=timeout_seconds,
        )
        response.raise_for_status()

    await _with_client(client, _request)


async def pull_note(
    *,
    client: httpx.AsyncClient | None,
    server_url: str,
    api_key: str,
    day: date,
    timeout_seconds: float = SYNC_TIMEOUT_SECONDS,
) -> str:
    """Download one day's note; a day unknown to the server reads as ``""``."""

    async def _request(active_client: httpx.AsyncClient) -> str:
        response = await active_client.get(
            note_url(server_url, day),
            headers=_headers(api_key),
            timeout=timeout_seconds,
        )
        if response.status_code == 404:
            return ""
        response.raise_for_status()
        data: Any = response.json()
        if not isinstance(data, dict):
            return ""
        content = data.get("content", "")
        return content if isinstance(content, str) else ""

    return await _with_client(client, _request)


async def list_remote_dates(
    *,
    client: httpx.AsyncClient | None,
    server_url: str,
    api_key: str,
    timeout_seconds: float = SYNC_TIMEOUT_SECONDS,
) -> list[str]:
    """Return the ``YYYY-MM-DD`` dates the server holds notes for."""

    async def _request(active_client: httpx.AsyncClient) -> list[str]:
        response = await active_client.get(
            f"{server_url.rstrip('/')}{NOTES_ENDPOINT}",
            headers=_headers(api_key),
            timeout=timeout_seconds,
        )
        response.raise_for_status()
        data: Any = response.json()
        if not isinstance(data, list):
            return []
        return sorted(item for item in data if isinstance(item, str))

    return await _with_client(client, _request)


__all__ = [
    "NOTES_ENDPOINT",
    "SYNC_TIMEOUT_SECONDS",
    "list_remote_dates",
    "note_url",
    "pull_note",
    "push_note",
]
