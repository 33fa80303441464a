"""Scrollable day stream with a guide line."""

from __future__ import annotations

from collections.abc import Sequence

from rich.text import Text
from textual import events
from textual.message import Message
from textual.widgets import Static

from scrbl.themes import THEME_COLORS

GUIDE_MARKER = "▸ "
RAIL_MARKER = "│ "


def build_stream_text(
    lines: Sequence[str],
    *,
    offset: int,
    guide: int,
    banner_lines: frozenset[int] | set[int] = frozenset(),
    empty_message: str = "No notes yet.",
) -> Text:
    """Render the visible slice of the stream.

    ``lines`` is the visible window starting at stream line ``offset``; the
    guide and banner positions are absolute stream line numbers.
    """
    if not lines:
        return Text(empty_message, style=THEME_COLORS["muted"])

    rows: list[Text] = []
    for index, raw in enumerate(lines):
        line_no = offset + index
        is_guide = line_no == guide
        body = Text.from_ansi(raw) if raw else Text()
        if line_no in banner_lines:
            body.stylize(f"bold {THEME_COLORS['banner']}")
        row = Text(
            GUIDE_MARKER if is_guide else RAIL_MARKER,
            style=f"bold {THEME_COLORS['accent']}" if is_guide else THEME_COLORS["muted"],
        )
        row.append_text(body)
        if is_guide:
            row.stylize(f"on {THEME_COLORS['guide']}")
        rows.append(row)
    return Text("\n").join(rows)


class StreamPane(Static, can_focus=True):
    """Shows the navigator's viewport; reports its size for layout."""

    class Resized(Message):
        """The pane's content area changed size."""

        def __init__(self, width: int, height: int) -> None:
            super().__init__()
            self.width = width
            self.height = height

    def on_resize(self, event: events.Resize) -> None:
        self.post_message(self.Resized(event.size.width, event.size.height))

    def show(
        self,
        lines: Sequence[str],
        *,
        offset: int,
        guide: int,
        banner_lines: frozenset[int] | set[int] = frozenset(),
    ) -> None:
        self.update(build_stream_text(lines, offset=offset, guide=guide, banner_lines=banner_lines))


__all__ = ["GUIDE_MARKER", "RAIL_MARKER", "StreamPane", "build_stream_text"]
