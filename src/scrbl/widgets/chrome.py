"""Widget chrome for the header, status bar and footer hints."""

from __future__ import annotations

from datetime import date

from rich.markup import escape
from textual.widgets import Static

from scrbl.models import ComposeSnapshot, Mode
from scrbl.render import format_day_label
from scrbl.themes import THEME_COLORS

APP_TITLE = "scrbl"


def build_header_text(focused: date | None) -> str:
    """Header markup: app title plus the focused day."""
    title = f"[bold]_{APP_TITLE}[/]"
    if focused is None:
        return title
    return f"{title}  [{THEME_COLORS['banner']}]{format_day_label(focused)}[/]"


def build_mode_label(mode: Mode, snapshot: ComposeSnapshot | None = None) -> str:
    """Return ``STREAM`` or ``COMPOSE(<editor mode>)``."""
    if mode is Mode.STREAM:
        return "STREAM"
    label = snapshot.mode_label if snapshot is not None else ""
    return f"COMPOSE({label})" if label else "COMPOSE"


def build_status_line(
    mode: Mode,
    *,
    status: str = "",
    focused: date | None = None,
    snapshot: ComposeSnapshot | None = None,
    loading: bool = False,
) -> str:
    """Plain status text: mode, then status message, then focused day."""
    parts = [build_mode_label(mode, snapshot)]
    if loading:
        parts.append("loading...")
    if status:
        parts.append(status)
    if focused is not None:
        parts.append(format_day_label(focused))
    return " · ".join(parts)


class ContextFooter(Static):
    """Context-sensitive footer showing relevant keybindings."""

    DEFAULT_CSS = """
    ContextFooter {
        dock: bottom;
        height: 1;
        background: $th-background;
        color: $th-muted;
        padding: 0 1;
    }
    """

    def render_bindings(self, bindings: list[tuple[str, str]]) -> None:
        """Update the footer with a list of (key, label) binding hints."""
        accent = THEME_COLORS["accent"]
        muted = THEME_COLORS["muted"]
        parts = [f"[bold {accent}]{escape(key)}[/] [{muted}]{label}[/]" for key, label in bindings]
        self.update("  ".join(parts))


__all__ = [
    "APP_TITLE",
    "ContextFooter",
    "build_header_text",
    "build_mode_label",
    "build_status_line",
]
