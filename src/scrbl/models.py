"""Data models and constants for scrbl."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import NamedTuple

CONFIG_APP_NAME = "scrbl"
DEFAULT_EDITOR = "nvim"

# Day files
DAY_FILE_SUFFIX = ".md"
DAY_FILE_DATE_FORMAT = "%Y-%m-%d"  # 2025-01-31.md, also the sync wire format
DAY_LABEL_FORMAT = "%Y.%m.%d"  # banner and header label

# Pagination
INITIAL_LOAD_DAYS = 60
LOAD_MORE_STEP_DAYS = 60

# Stream layout
MIN_RENDER_WIDTH = 24
STREAM_GUTTER = 8
EMPTY_DAY_PLACEHOLDER = "_No notes for this day yet._"

# Compose panel
COMPOSER_POLL_INTERVAL = 0.06
COMPOSE_ROWS = 12
COMPOSE_ROWS_SMALL = 8
SMALL_TERMINAL_ROWS = 24

# neovim mode codes -> status labels
MODE_LABELS: dict[str, str] = {
    "n": "NORMAL",
    "i": "INSERT",
    "v": "VISUAL",
    "V": "V-LINE",
    "\x16": "V-BLOCK",
    "s": "SELECT",
    "c": "COMMAND",
    "R": "REPLACE",
    "t": "TERMINAL",
}


class Mode(Enum):
    """Top-level screen mode."""

    STREAM = "stream"
    COMPOSE = "compose"


class ComposeKind(Enum):
    """What a compose session writes to when saved."""

    NEW = "new"
    EDIT = "edit"


@dataclass(slots=True, frozen=True)
class DayDocument:
    """Markdown content for one calendar day."""

    day: date
    content: str = ""


@dataclass(slots=True, frozen=True)
class StreamView:
    """Flattened, rendered line stream for a list of days.

    ``line_to_day[n]`` is the index of the day that owns ``lines[n]``;
    ``day_start_line[i]`` is the line where day ``i``'s banner sits.
    """

    lines: tuple[str, ...] = ()
    line_to_day: tuple[int, ...] = ()
    day_start_line: tuple[int, ...] = ()

    def __len__(self) -> int:
        return len(self.lines)


@dataclass(slots=True)
class LoadState:
    """Pagination bookkeeping for the stream."""

    limit: int = INITIAL_LOAD_DAYS
    has_more: bool = False
    loading: bool = False


@dataclass(slots=True, frozen=True)
class ComposeTarget:
    """Destination of the text being composed."""

    kind: ComposeKind
    day: date


@dataclass(slots=True, frozen=True)
class ComposeSnapshot:
    """Point-in-time copy of the embedded editor's buffer state."""

    text: str = ""
    mode: str = ""
    cursor_row: int = 1
    cursor_col: int = 0
    command_line: str = ""

    @property
    def mode_label(self) -> str:
        if not self.mode:
            return ""
        # neovim reports sub-modes as suffixes ("no", "ic", "Rv")
        return MODE_LABELS.get(self.mode[0], self.mode.upper())

    @property
    def is_empty(self) -> bool:
        return self == ComposeSnapshot()


class ComposerRequests(NamedTuple):
    """Save/quit requests raised by the editor since the last poll."""

    save: bool = False
    quit: bool = False
    quit_after_save: bool = False

    def any(self) -> bool:
        return self.save or self.quit or self.quit_after_save


@dataclass(slots=True)
class PendingRequests:
    """Pending editor requests shared between the RPC thread and the UI loop.

    Writers are the editor notification callbacks; the only reader is
    :meth:`take`, which reads and clears all three flags under the lock.
    """

    _save: bool = False
    _quit: bool = False
    _quit_after_save: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def mark_save(self, *, quit_after: bool = False) -> None:
        with self._lock:
            self._save = True
            if quit_after:
                self._quit_after_save = True

    def mark_quit(self) -> None:
        with self._lock:
            self._quit = True

    def take(self) -> ComposerRequests:
        with self._lock:
            requests = ComposerRequests(self._save, self._quit, self._quit_after_save)
            self._save = False
            self._quit = False
            self._quit_after_save = False
        return requests

    def clear(self) -> None:
        self.take()


@dataclass(slots=True)
class UserConfig:
    """User configuration that persists across sessions."""

    notes_dir: str = ""
    server_url: str = ""
    api_key: str = ""
    editor: str = DEFAULT_EDITOR
    theme_name: str = "scrbl"
    version: int = 1
    # Runtime only, never serialized
    config_defaulted: bool = False

    @property
    def sync_enabled(self) -> bool:
        return bool(self.server_url)


__all__ = [
    "COMPOSER_POLL_INTERVAL",
    "COMPOSE_ROWS",
    "COMPOSE_ROWS_SMALL",
    "CONFIG_APP_NAME",
    "DAY_FILE_DATE_FORMAT",
    "DAY_FILE_SUFFIX",
    "DAY_LABEL_FORMAT",
    "DEFAULT_EDITOR",
    "EMPTY_DAY_PLACEHOLDER",
    "INITIAL_LOAD_DAYS",
    "LOAD_MORE_STEP_DAYS",
    "MIN_RENDER_WIDTH",
    "MODE_LABELS",
    "SMALL_TERMINAL_ROWS",
    "STREAM_GUTTER",
    "ComposeKind",
    "ComposeSnapshot",
    "ComposeTarget",
    "ComposerRequests",
    "DayDocument",
    "LoadState",
    "Mode",
    "PendingRequests",
    "StreamView",
    "UserConfig",
]
