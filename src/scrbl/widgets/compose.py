"""Compose panel: a read-only view of the embedded editor's buffer."""

from __future__ import annotations

from rich.text import Text
from textual import events
from textual.message import Message
from textual.widgets import Static

from scrbl.models import ComposeSnapshot
from scrbl.themes import THEME_COLORS

CURSOR_STYLE = "reverse"


def byte_col_to_char_col(line: str, byte_col: int) -> int:
    """Convert neovim's byte column to a character offset in ``line``."""
    if byte_col <= 0:
        return 0
    return len(line.encode("utf-8")[:byte_col].decode("utf-8", errors="ignore"))


def _cursor_line(line: str, col: int, hscroll: int) -> Text:
    visible = line[hscroll:]
    col -= hscroll
    text = Text(visible)
    if col < len(visible):
        text.stylize(CURSOR_STYLE, col, col + 1)
    else:
        text.append(" " * (col - len(visible)))
        text.append(" ", style=CURSOR_STYLE)
    return text


def build_compose_text(snapshot: ComposeSnapshot, *, width: int, height: int) -> Text:
    """Render a window of the buffer centered on the cursor row.

    While the editor is on its ``:`` command line the last row shows that
    line with the cursor at its end.
    """
    width = max(1, width)
    height = max(1, height)
    command_mode = snapshot.mode.startswith("c")
    body_rows = height - 1 if command_mode and height > 1 else height

    lines = snapshot.text.split("\n")
    row = min(max(snapshot.cursor_row - 1, 0), len(lines) - 1)
    start = max(0, row - body_rows // 2)
    end = min(len(lines), start + body_rows)
    start = max(0, end - body_rows)

    col = byte_col_to_char_col(lines[row], snapshot.cursor_col)
    hscroll = max(0, col - width + 1)

    rows: list[Text] = []
    for index in range(start, end):
        if index == row and not command_mode:
            rows.append(_cursor_line(lines[index], col, hscroll))
        else:
            rows.append(Text(lines[index][hscroll:]))
    if command_mode:
        command = Text(f":{snapshot.command_line}", style=THEME_COLORS["yellow"])
        command.append(" ", style=CURSOR_STYLE)
        rows.append(command)
    return Text("\n").join(rows)


class ComposePane(Static, can_focus=True):
    """Shows editor snapshots and hands every key press to the app."""

    class EditorKey(Message):
        """A key pressed while the compose pane has focus."""

        def __init__(self, key: str, character: str | None) -> None:
            super().__init__()
            self.key = key
            self.character = character

    def on_key(self, event: events.Key) -> None:
        # Keep stream and focus bindings from seeing editor input
        event.prevent_default()
        event.stop()
        self.post_message(self.EditorKey(event.key, event.character))

    def show_snapshot(
        self, snapshot: ComposeSnapshot, *, title: str, width: int, height: int
    ) -> None:
        self.border_title = title
        self.border_subtitle = snapshot.mode_label
        self.update(build_compose_text(snapshot, width=width, height=height))


__all__ = ["ComposePane", "build_compose_text", "byte_col_to_char_col"]
