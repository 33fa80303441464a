"""Service interfaces + default adapters for app-level dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Protocol, runtime_checkable

import httpx

from scrbl.models import UserConfig
from scrbl.services import sync_service as _sync


@runtime_checkable
class SyncService(Protocol):
    """Interface for remote note sync operations."""

    async def push(self, *, client: httpx.AsyncClient | None, day: date, content: str) -> None:
        """Upload one day's note."""
        ...

    async def pull(self, *, client: httpx.AsyncClient | None, day: date) -> str:
        """Download one day's note ("" when the server has none)."""
        ...

    async def list_dates(self, *, client: httpx.AsyncClient | None) -> list[str]:
        """List the dates the server holds notes for."""
        ...


class HttpSyncService:
    """Default sync adapter backed by the HTTP notes API."""

    def __init__(self, server_url: str, api_key: str = "") -> None:
        self.server_url = server_url
        self.api_key = api_key

    async def push(self, *, client: httpx.AsyncClient | None, day: date, content: str) -> None:
        await _sync.push_note(
            client=client,
            server_url=self.server_url,
            api_key=self.api_key,
            day=day,
            content=content,
        )

    async def pull(self, *, client: httpx.AsyncClient | None, day: date) -> str:
        return await _sync.pull_note(
            client=client,
            server_url=self.server_url,
            api_key=self.api_key,
            day=day,
        )

    async def list_dates(self, *, client: httpx.AsyncClient | None) -> list[str]:
        return await _sync.list_remote_dates(
            client=client,
            server_url=self.server_url,
            api_key=self.api_key,
        )


@dataclass(slots=True)
class AppServices:
    """Container for injectable app services."""

    sync: SyncService | None = None


def build_default_app_services(config: UserConfig) -> AppServices:
    """Build services for a config; sync stays off without a server URL."""
    if not config.sync_enabled:
        return AppServices()
    return AppServices(sync=HttpSyncService(config.server_url, config.api_key))


__all__ = [
    "AppServices",
    "HttpSyncService",
    "SyncService",
    "build_default_app_services",
]
