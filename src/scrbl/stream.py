"""Stream paginator and guide-line navigation for the day stream."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import date

from scrbl.models import (
    EMPTY_DAY_PLACEHOLDER,
    LOAD_MORE_STEP_DAYS,
    MIN_RENDER_WIDTH,
    STREAM_GUTTER,
    DayDocument,
    LoadState,
    StreamView,
)
from scrbl.render import centered_date_banner, render_markdown, strip_day_header

logger = logging.getLogger(__name__)

Renderer = Callable[[str, int], str]


def stream_render_width(width: int) -> int:
    """Return the markdown render width for a pane ``width`` columns wide."""
    return max(MIN_RENDER_WIDTH, width - STREAM_GUTTER)


def build_stream_view(
    days: Sequence[DayDocument],
    width: int,
    render: Renderer = render_markdown,
) -> StreamView:
    """Flatten ``days`` (oldest first) into a rendered line stream.

    Each day contributes its date banner, its rendered body and, except for
    the last day, one blank separator line.
    """
    render_width = stream_render_width(width)
    lines: list[str] = []
    line_to_day: list[int] = []
    day_start_line: list[int] = []

    for index, doc in enumerate(days):
        day_start_line.append(len(lines))
        day_lines = [centered_date_banner(doc.day, render_width)]
        body = strip_day_header(doc.content) or EMPTY_DAY_PLACEHOLDER
        day_lines.extend(render(body, render_width).split("\n"))
        if index < len(days) - 1:
            day_lines.append("")
        lines.extend(day_lines)
        line_to_day.extend([index] * len(day_lines))

    return StreamView(
        lines=tuple(lines),
        line_to_day=tuple(line_to_day),
        day_start_line=tuple(day_start_line),
    )


class StreamNavigator:
    """Guide line, viewport and pagination state for the day stream.

    The navigator owns the loaded day list and the view built from it. All
    positions are re-derived from the current view; after a reload focus is
    located again through an anchor date rather than a stale line index.
    """

    def __init__(
        self,
        *,
        width: int = 80,
        height: int = 20,
        render: Renderer = render_markdown,
        load_state: LoadState | None = None,
    ) -> None:
        self._render = render
        self.width = max(1, width)
        self.height = max(1, height)
        self.days: list[DayDocument] = []
        self.view = StreamView()
        self.guide = 0
        self.offset = 0
        self.focused_day = -1
        self.load = load_state or LoadState()
        self.error: str | None = None
        # Sequence number of the newest page request; older results are dropped
        self._request_seq = 0

    # ── Derived state ──────────────────────────────────────────────────────

    @property
    def page_size(self) -> int:
        return max(1, self.height // 2)

    @property
    def focused_date(self) -> date | None:
        if 0 <= self.focused_day < len(self.days):
            return self.days[self.focused_day].day
        return None

    @property
    def focused_document(self) -> DayDocument | None:
        if 0 <= self.focused_day < len(self.days):
            return self.days[self.focused_day]
        return None

    def visible_lines(self) -> tuple[str, ...]:
        """Return the lines inside the viewport."""
        return self.view.lines[self.offset : self.offset + self.height]

    # ── Layout ─────────────────────────────────────────────────────────────

    def resize(self, width: int, height: int) -> None:
        """Apply a new pane size, rebuilding the view when the width changed."""
        width = max(1, width)
        height = max(1, height)
        width_changed = width != self.width
        self.width = width
        self.height = height
        if width_changed:
            self.rebuild(jump_to_focused=False)
        else:
            self.ensure_visible()

    def rebuild(self, *, jump_to_focused: bool) -> None:
        """Rebuild the view from the current days and re-derive positions."""
        if not self.days:
            self.view = StreamView()
            self.guide = 0
            self.offset = 0
            self.focused_day = -1
            return

        self.view = build_stream_view(self.days, self.width, self._render)
        self.focused_day = min(max(self.focused_day, 0), len(self.days) - 1)
        last_line = len(self.view) - 1
        if jump_to_focused:
            self.guide = self.view.day_start_line[self.focused_day]
        else:
            self.guide = min(max(self.guide, 0), last_line)
            self.offset = min(max(self.offset, 0), last_line)
        self.ensure_visible()
        self.focused_day = self.view.line_to_day[self.guide]

    def ensure_visible(self) -> None:
        """Scroll the minimum amount needed to keep the guide on screen."""
        if self.guide < self.offset:
            self.offset = self.guide
        elif self.guide >= self.offset + self.height:
            self.offset = self.guide - self.height + 1
        max_offset = max(0, len(self.view) - self.height)
        self.offset = min(max(self.offset, 0), max_offset)

    # ── Movement ───────────────────────────────────────────────────────────

    def set_guide(self, line: int) -> None:
        """Move the guide to ``line`` (clamped) and refresh focus."""
        if not self.view.lines:
            self.guide = 0
            self.offset = 0
            self.focused_day = -1
            return
        self.guide = min(max(line, 0), len(self.view) - 1)
        self.ensure_visible()
        self.focused_day = self.view.line_to_day[self.guide]

    def move_guide(self, delta: int) -> None:
        self.set_guide(self.guide + delta)

    def top(self) -> None:
        self.set_guide(0)

    def bottom(self) -> None:
        self.set_guide(len(self.view) - 1)

    def jump_to_day(self, index: int) -> None:
        """Put the guide on the banner of day ``index``."""
        if not self.view.day_start_line:
            return
        index = min(max(index, 0), len(self.view.day_start_line) - 1)
        self.set_guide(self.view.day_start_line[index])

    def prev_day(self) -> None:
        """Jump to the previous day, or to this day's banner if inside it."""
        if self.focused_day < 0:
            return
        start = self.view.day_start_line[self.focused_day]
        if self.guide > start:
            self.set_guide(start)
        else:
            self.jump_to_day(self.focused_day - 1)

    def next_day(self) -> None:
        if self.focused_day < 0:
            return
        self.jump_to_day(self.focused_day + 1)

    # ── Pagination ─────────────────────────────────────────────────────────

    @property
    def request_seq(self) -> int:
        return self._request_seq

    def begin_reload(self) -> int:
        """Mark a full reload as in flight and return its sequence number."""
        self._request_seq += 1
        self.load.loading = True
        self.error = None
        return self._request_seq

    def request_more(self) -> date | None:
        """Start a pagination request if the guide sits at the top.

        Returns the anchor date (the focused day) when a request was issued,
        or ``None`` when there is nothing to load or a load is in flight.
        """
        if self.guide != 0 or not self.load.has_more or self.load.loading:
            return None
        anchor = self.focused_date
        if anchor is None:
            return None
        self.load.limit += LOAD_MORE_STEP_DAYS
        self.begin_reload()
        logger.debug("Requesting %d days, anchor=%s", self.load.limit, anchor)
        return anchor

    def apply_page(
        self,
        days: Sequence[DayDocument],
        *,
        has_more: bool,
        anchor: date | None = None,
        seq: int | None = None,
    ) -> bool:
        """Replace the day list with a loaded page and restore focus.

        Returns False when the result belongs to a superseded request.
        """
        if seq is not None and seq != self._request_seq:
            logger.debug("Dropping stale page result seq=%d (latest=%d)", seq, self._request_seq)
            return False
        self.load.loading = False
        self.load.has_more = has_more
        self.error = None
        self.days = list(days)

        anchor_index = None
        if anchor is not None:
            anchor_index = next(
                (i for i, doc in enumerate(self.days) if doc.day == anchor),
                None,
            )
        if anchor_index is not None:
            self.focused_day = anchor_index
        elif not 0 <= self.focused_day < len(self.days):
            self.focused_day = len(self.days) - 1

        self.rebuild(jump_to_focused=True)
        return True

    def fail_page(self, error: str, *, seq: int | None = None) -> bool:
        """Record a failed page load without touching the loaded days."""
        if seq is not None and seq != self._request_seq:
            return False
        self.load.loading = False
        self.error = error
        return True


__all__ = [
    "Renderer",
    "StreamNavigator",
    "build_stream_view",
    "stream_render_width",
]
