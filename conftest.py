"""Shared test fixtures for scrbl tests."""

from __future__ import annotations

import asyncio
import queue
from collections.abc import Callable
from datetime import date, timedelta
from types import SimpleNamespace
from typing import Any

import pytest

from scrbl.composer import split_content
from scrbl.dayfiles import DayStore
from scrbl.keys import key_to_nvim
from scrbl.models import ComposeSnapshot, DayDocument, PendingRequests, UserConfig
from scrbl.themes import DEFAULT_THEME, THEME_COLORS

# ── Module-level dict isolation ──────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _reset_theme_colors():
    """Restore THEME_COLORS after each test.

    ScrblApp.__init__ overwrites it with the configured palette.
    """
    yield
    THEME_COLORS.clear()
    THEME_COLORS.update(DEFAULT_THEME)


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path, monkeypatch):
    """Point SCRBL_CONFIG at a temp file so tests never touch the real config."""
    monkeypatch.setenv("SCRBL_CONFIG", str(tmp_path / "config" / "config.json"))


# ── Factories ────────────────────────────────────────────────────────────────


@pytest.fixture
def make_day():
    """Factory fixture for DayDocument instances."""

    def _make(day: date | str = date(2025, 1, 1), content: str | None = None) -> DayDocument:
        if isinstance(day, str):
            day = date.fromisoformat(day)
        if content is None:
            content = f"# {day:%Y.%m.%d}\n\nnotes for {day.isoformat()}\n"
        return DayDocument(day=day, content=content)

    return _make


@pytest.fixture
def make_days(make_day):
    """Factory fixture for consecutive days, oldest first."""

    def _make(count: int, start: date = date(2025, 1, 1)) -> list[DayDocument]:
        return [make_day(start + timedelta(days=offset)) for offset in range(count)]

    return _make


@pytest.fixture
def make_config(tmp_path):
    """Factory fixture for creating UserConfig with optional overrides."""

    def _make(**kwargs: Any) -> UserConfig:
        kwargs.setdefault("notes_dir", str(tmp_path / "notes"))
        return UserConfig(**kwargs)

    return _make


@pytest.fixture
def store(tmp_path) -> DayStore:
    """Day store in a temp directory whose "today" is 2025-01-03."""
    return DayStore(tmp_path / "notes", today=lambda: date(2025, 1, 3))


@pytest.fixture
def plain_render():
    """Markdown renderer stand-in: one output line per input line, no styling."""

    def _render(text: str, width: int) -> str:
        return text

    return _render


# ── Fake neovim (pynvim Nvim stand-in) ───────────────────────────────────────

_STOP = object()


class FakeBuffer:
    def __init__(self) -> None:
        self.lines: list[str] = [""]

    def __getitem__(self, key: Any) -> Any:
        return self.lines[key]

    def __setitem__(self, key: Any, value: Any) -> None:
        self.lines[key] = list(value)


class FakeNvim:
    """Single-threaded stand-in for ``pynvim.Nvim`` with a queue-driven loop."""

    def __init__(self) -> None:
        self.argv: list[str] | None = None
        self.attach_calls = 0
        self.session_type: str | None = None
        self.channel_id = 7
        self.commands: list[str] = []
        self.inputs: list[str] = []
        self.mode = "n"
        self.cmdline = ""
        self.fail_commands: set[str] = set()
        self.input_error: Exception | None = None
        self.closed = False
        self.current = SimpleNamespace(buffer=FakeBuffer(), window=SimpleNamespace(cursor=(1, 0)))
        self.api = SimpleNamespace(get_mode=lambda: {"mode": self.mode, "blocking": False})
        self._queue: queue.Queue[Any] = queue.Queue()
        self._notification_cb: Callable[[str, list[Any]], None] | None = None

    # pynvim.attach replacement
    def attach(self, session_type: str, argv: list[str] | None = None, **kwargs: Any) -> FakeNvim:
        self.attach_calls += 1
        self.session_type = session_type
        self.argv = argv
        return self

    def command(self, cmd: str) -> None:
        if cmd in self.fail_commands:
            raise RuntimeError(f"E492: Not an editor command: {cmd}")
        self.commands.append(cmd)
        if cmd == "startinsert":
            self.mode = "i"
        elif cmd == "stopinsert":
            self.mode = "n"
        elif cmd == "qall!":
            self._queue.put(_STOP)

    def input(self, keys: str) -> int:
        if self.input_error is not None:
            raise self.input_error
        self.inputs.append(keys)
        return len(keys)

    def call(self, name: str, *args: Any) -> Any:
        if name == "getcmdline":
            return self.cmdline
        return None

    def run_loop(self, request_cb, notification_cb, setup_cb=None, err_cb=None) -> None:
        self._notification_cb = notification_cb
        if setup_cb is not None:
            setup_cb()
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            item()

    def async_call(self, fn: Callable[..., Any], *args: Any) -> None:
        self._queue.put(lambda: fn(*args))

    def stop_loop(self) -> None:
        self._queue.put(_STOP)

    def close(self) -> None:
        self.closed = True

    # ── Test helpers ──

    def notify(self, name: str) -> None:
        """Simulate an editor-side ``rpcnotify``."""
        self._queue.put(lambda: self._notification_cb(name, []))

    def crash(self) -> None:
        """Simulate the process exiting between calls."""
        self._queue.put(_STOP)


@pytest.fixture
def fake_nvim() -> FakeNvim:
    return FakeNvim()


# ── Fake composer for app tests ──────────────────────────────────────────────


class FakeComposer:
    """In-process Composer double: no threads, no subprocess."""

    def __init__(self, editor: str = "nvim") -> None:
        self.editor = editor
        self.running = False
        self.text = ""
        self.mode = ""
        self.start_calls = 0
        self.close_calls = 0
        self.inputs: list[str] = []
        self.content_calls: list[tuple[str, bool]] = []
        self.start_error: Exception | None = None
        self.input_error: Exception | None = None
        self.requests = PendingRequests()

    async def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.running = True
        self.start_calls += 1
        self.mode = "i"

    async def set_content(self, text: str, *, insert_mode: bool) -> None:
        self.content_calls.append((text, insert_mode))
        self.text = "\n".join(split_content(text))
        self.mode = "i" if insert_mode else "n"

    async def clear(self) -> None:
        await self.set_content("", insert_mode=True)

    async def input(self, key: str, character: str | None = None) -> None:
        if self.input_error is not None:
            raise self.input_error
        keys = key_to_nvim(key, character)
        if not keys:
            return
        self.inputs.append(keys)
        if keys == "<Esc>":
            self.mode = "n"
        elif self.mode == "i" and character and character.isprintable() and len(keys) == 1:
            self.text += character

    async def snapshot(self) -> ComposeSnapshot:
        if not self.running:
            return ComposeSnapshot()
        return ComposeSnapshot(text=self.text, mode=self.mode)

    def consume_requests(self):
        return self.requests.take()

    async def close(self) -> None:
        self.running = False
        self.close_calls += 1


@pytest.fixture
def fake_composer() -> FakeComposer:
    return FakeComposer()


@pytest.fixture
def wait_until():
    """Return an async helper that pauses the pilot until ``predicate()`` holds."""

    async def _wait(pilot: Any, predicate: Callable[[], bool], timeout: float = 3.0) -> None:
        loop = asyncio.get_running_loop()
        end = loop.time() + timeout
        while not predicate() and loop.time() < end:
            await pilot.pause(0.02)
        assert predicate(), "condition not reached before timeout"

    return _wait
