"""Internal runtime helpers for TUI widget refs."""

from __future__ import annotations

from dataclasses import dataclass

from textual.widgets import Label, Static

from scrbl.widgets import ComposePane, ContextFooter, StreamPane


@dataclass(slots=True)
class UiRefs:
    """Cached widget references for hot UI paths.

    These refs are internal-only and must not be treated as a public API.
    """

    header: Static | None = None
    error_banner: Static | None = None
    stream_pane: StreamPane | None = None
    compose_pane: ComposePane | None = None
    status_bar: Label | None = None
    footer: ContextFooter | None = None

    def reset(self) -> None:
        """Clear all cached refs (for unmount/teardown)."""
        self.header = None
        self.error_banner = None
        self.stream_pane = None
        self.compose_pane = None
        self.status_bar = None
        self.footer = None


__all__ = ["UiRefs"]
