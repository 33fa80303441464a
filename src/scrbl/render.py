"""Markdown-to-terminal rendering and day banner helpers."""

from __future__ import annotations

import io
from datetime import date

from rich.console import Console
from rich.markdown import Markdown

from scrbl.models import DAY_LABEL_FORMAT

MIN_BANNER_DASHES = 2


def format_day_label(day: date) -> str:
    """Return the display label for a day, e.g. ``2025.01.31``."""
    return day.strftime(DAY_LABEL_FORMAT)


def day_template(day: date) -> str:
    """Return the initial content of a fresh day file (header + blank line)."""
    return f"# {format_day_label(day)}\n\n"


def strip_day_header(content: str) -> str:
    """Drop leading blank lines and the ``# ...`` day header from a day body.

    >>> strip_day_header("\\n# 2025.01.02\\n\\nhello\\n")
    'hello'
    """
    lines = content.replace("\r\n", "\n").split("\n")
    start = 0
    while start < len(lines) and not lines[start].strip():
        start += 1
    if start < len(lines) and lines[start].lstrip().startswith("# "):
        start += 1
    return "\n".join(lines[start:]).strip()


def centered_date_banner(day: date, width: int) -> str:
    """Return ``---- YYYY.MM.DD ----`` centered in ``width`` columns.

    Narrow widths fall back to the bare label.
    """
    label = format_day_label(day)
    if width <= len(label) + 2:
        return label
    dashes = width - len(label) - 2
    left = max(MIN_BANNER_DASHES, dashes // 2)
    right = max(MIN_BANNER_DASHES, dashes - dashes // 2)
    return f"{'-' * left} {label} {'-' * right}"


def render_markdown(text: str, width: int) -> str:
    """Render markdown to ANSI-styled text wrapped at ``width`` columns.

    The console writes to an in-memory buffer with a fixed width and color
    system, so the output only depends on ``text`` and ``width``.
    """
    buffer = io.StringIO()
    console = Console(
        file=buffer,
        width=max(1, width),
        force_terminal=True,
        color_system="truecolor",
        highlight=False,
        emoji=False,
        legacy_windows=False,
    )
    console.print(Markdown(text), end="")
    return buffer.getvalue().rstrip("\n")


__all__ = [
    "MIN_BANNER_DASHES",
    "centered_date_banner",
    "day_template",
    "format_day_label",
    "render_markdown",
    "strip_day_header",
]
