"""Internal UI constants for the scrbl app."""

from __future__ import annotations

from textual.binding import Binding, BindingType

APP_CSS = """
Screen {
    background: $th-background;
    layout: vertical;
}

#header {
    height: 1;
    padding: 0 1;
    background: $th-background;
    color: $th-title;
    text-style: bold;
}

#error-banner {
    display: none;
    height: auto;
    max-height: 4;
    padding: 0 1;
    background: $th-panel;
    color: $th-red;
}

#error-banner.visible {
    display: block;
}

#stream {
    height: 1fr;
    background: $th-background;
}

#compose {
    display: none;
    border: round $th-muted;
    background: $th-background;
    padding: 0 1;
}

#compose.visible {
    display: block;
}

#compose:focus {
    border: round $th-accent;
}

#status-bar {
    height: 1;
    width: 100%;
    padding: 0 1;
    background: $th-panel;
    color: $th-accent-alt;
}
"""

# Stream-mode bindings. Compose mode routes keys to the editor instead.
APP_BINDINGS: list[BindingType] = [
    Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
    Binding("q", "quit", "Quit", show=False),
    Binding("i", "compose_new", "New", show=False),
    Binding("e,enter", "compose_edit", "Edit", show=False),
    Binding("r", "reload", "Reload", show=False),
    Binding("j,down", "guide_down", "Down", show=False),
    Binding("k,up", "guide_up", "Up", show=False),
    Binding("ctrl+d,pagedown", "page_down", "Page Down", show=False),
    Binding("ctrl+u,pageup", "page_up", "Page Up", show=False),
    Binding("g,home", "guide_top", "Top", show=False),
    Binding("G,end", "guide_bottom", "Bottom", show=False),
    Binding("left_square_bracket", "prev_day", "Previous Day", show=False),
    Binding("right_square_bracket", "next_day", "Next Day", show=False),
]

# Actions that only make sense while the stream is showing
STREAM_ACTIONS = frozenset(
    {
        "compose_new",
        "compose_edit",
        "reload",
        "guide_down",
        "guide_up",
        "page_down",
        "page_up",
        "guide_top",
        "guide_bottom",
        "prev_day",
        "next_day",
    }
)

STREAM_FOOTER_HINTS: list[tuple[str, str]] = [
    ("j/k", "move"),
    ("[/]", "day"),
    ("e", "edit"),
    ("i", "new"),
    ("r", "reload"),
    ("q", "quit"),
]

COMPOSE_FOOTER_HINTS: list[tuple[str, str]] = [
    (":w", "save"),
    (":q", "back"),
    (":wq/:x", "save+back"),
    ("^S", "save"),
    ("^G", "back"),
    ("^C", "quit"),
]

__all__ = [
    "APP_BINDINGS",
    "APP_CSS",
    "COMPOSE_FOOTER_HINTS",
    "STREAM_ACTIONS",
    "STREAM_FOOTER_HINTS",
]
