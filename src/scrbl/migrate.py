"""Day-file format migration.

Older notes carried free-form ``# ...`` headers and per-entry timestamp
headings (``## 9:41 am``). ``normalize_day_content`` rewrites a day into the
current layout: the canonical ``# YYYY.MM.DD`` header, one blank line, then
the body with timestamp headings dropped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date

from scrbl.dayfiles import DayStore
from scrbl.render import format_day_label

LEGACY_TIMESTAMP_HEADER = re.compile(r"^##\s+\d{1,2}:\d{2}\s*(am|pm)\s*$", re.IGNORECASE)


def normalize_day_content(day: date, content: str) -> tuple[str, bool]:
    """Return ``(migrated, changed)`` for one day file.

    >>> normalize_day_content(date(2025, 1, 2), "# Thursday\\n## 9:41 am\\nhi\\n")
    ('# 2025.01.02\\n\\nhi\\n', True)
    """
    normalized = content.replace("\r\n", "\n")
    lines = normalized.split("\n")

    header = f"# {format_day_label(day)}"
    out = [header, ""]
    changed = False

    i = 0
    while i < len(lines) and not lines[i].strip():
        i += 1

    if i < len(lines) and lines[i].strip().startswith("# "):
        if lines[i].strip() != header:
            changed = True
        i += 1
    else:
        changed = True

    seen_body = False
    for line in lines[i:]:
        stripped = line.strip()
        if LEGACY_TIMESTAMP_HEADER.match(stripped):
            changed = True
            continue
        if not seen_body and not stripped:
            continue
        if stripped:
            seen_body = True
        out.append(line)

    migrated = "\n".join(out)
    if not migrated.endswith("\n"):
        migrated += "\n"
    original = normalized if normalized.endswith("\n") else normalized + "\n"
    return migrated, changed or migrated != original


@dataclass(slots=True)
class MigrationReport:
    checked: int = 0
    changed: list[date] = field(default_factory=list)


def migrate_store(store: DayStore, *, dry_run: bool = False) -> MigrationReport:
    """Normalize every day file in ``store``; with ``dry_run`` nothing is written."""
    report = MigrationReport()
    for day in store.list_dates():
        report.checked += 1
        updated, changed = normalize_day_content(day, store.read_day(day))
        if not changed:
            continue
        if not dry_run:
            store.write_day(day, updated)
        report.changed.append(day)
    return report


__all__ = [
    "LEGACY_TIMESTAMP_HEADER",
    "MigrationReport",
    "migrate_store",
    "normalize_day_content",
]
