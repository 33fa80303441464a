"""Day-file storage: one markdown file per calendar date."""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable
from datetime import date, datetime
from pathlib import Path

from scrbl.models import (
    DAY_FILE_DATE_FORMAT,
    DAY_FILE_SUFFIX,
    ComposeKind,
    ComposeTarget,
    DayDocument,
)
from scrbl.render import day_template

logger = logging.getLogger(__name__)


def day_file_name(day: date) -> str:
    """Return the file name for a day, e.g. ``2025-01-31.md``."""
    return f"{day.strftime(DAY_FILE_DATE_FORMAT)}{DAY_FILE_SUFFIX}"


def parse_day_file_name(name: str) -> date | None:
    """Return the date encoded in a day file name, or None if it is not one."""
    if not name.endswith(DAY_FILE_SUFFIX):
        return None
    stem = name[: -len(DAY_FILE_SUFFIX)]
    try:
        return datetime.strptime(stem, DAY_FILE_DATE_FORMAT).date()
    except ValueError:
        return None


def parse_day(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string; raises ValueError on bad input."""
    return datetime.strptime(value.strip(), DAY_FILE_DATE_FORMAT).date()


class DayStore:
    """Read and write day files under a notes directory.

    A missing day file reads as empty text; only real I/O failures raise
    ``OSError``.
    """

    def __init__(self, notes_dir: Path | str, *, today: Callable[[], date] = date.today) -> None:
        self.notes_dir = Path(notes_dir)
        self._today = today

    def today(self) -> date:
        return self._today()

    def path_for(self, day: date) -> Path:
        return self.notes_dir / day_file_name(day)

    def read_day(self, day: date) -> str:
        try:
            return self.path_for(day).read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return ""

    def write_day(self, day: date, text: str) -> None:
        """Write a day file atomically (temp file + ``os.replace``)."""
        path = self.path_for(day)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as tmp_file:
                tmp_file.write(text)
            os.replace(tmp_path, path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.debug("Wrote %s (%d chars)", path, len(text))

    def append_entry(self, day: date, entry: str) -> str:
        """Append ``entry`` to a day, separated from earlier text by a blank line.

        A day without content starts from its template. Returns the new text.
        """
        existing = self.read_day(day)
        if existing.strip():
            base = existing.replace("\r\n", "\n").rstrip("\n") + "\n\n"
        else:
            base = day_template(day)
        text = base + entry.strip("\n") + "\n"
        self.write_day(day, text)
        return text

    def list_dates(self) -> list[date]:
        """Return the dates with a day file, oldest first."""
        if not self.notes_dir.is_dir():
            return []
        dates = []
        for entry in self.notes_dir.iterdir():
            if not entry.is_file():
                continue
            day = parse_day_file_name(entry.name)
            if day is not None:
                dates.append(day)
        return sorted(dates)

    def load_recent(self, limit: int) -> tuple[list[DayDocument], bool]:
        """Load the newest ``limit`` days (oldest first) plus today.

        Returns ``(days, has_more)`` where ``has_more`` says older stored days
        exist beyond the window.
        """
        stored = self.list_dates()
        limit = max(1, limit)
        window = stored[-limit:]
        has_more = len(stored) > len(window)
        today = self.today()
        if today not in window:
            window.append(today)
            window.sort()
        days = [DayDocument(day=day, content=self.read_day(day)) for day in window]
        return days, has_more


def save_compose_text(store: DayStore, target: ComposeTarget, text: str) -> bool:
    """Persist composed text for a target; returns False when nothing was written.

    Edits overwrite the whole day (an emptied day falls back to its template).
    New entries are appended to the day and skipped when blank.
    """
    if target.kind is ComposeKind.EDIT:
        content = text.replace("\r\n", "\n")
        if not content.strip():
            content = day_template(target.day)
        if not content.endswith("\n"):
            content += "\n"
        store.write_day(target.day, content)
        return True

    entry = text.replace("\r\n", "\n").strip()
    if not entry:
        return False
    store.append_entry(target.day, entry)
    return True


__all__ = [
    "DayStore",
    "day_file_name",
    "parse_day",
    "parse_day_file_name",
    "save_compose_text",
]
