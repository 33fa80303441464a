"""scrbl TUI - a day-by-day note stream with an embedded neovim composer.

Key bindings (stream):
    j/k, up/down      - Move the guide line
    ctrl+d/ctrl+u     - Half page down/up
    g/G               - Top (loads older days) / bottom
    [ / ]             - Previous / next day
    e, enter          - Edit the focused day
    i                 - New entry for today
    r                 - Reload
    q, ctrl+c         - Quit

Compose mode forwards keys to neovim. :w saves, :q goes back, :wq/:x do both.
Ctrl+S saves, Ctrl+G goes back without saving, Ctrl+C quits.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import date
from typing import Any

import httpx
from textual import events
from rich.markup import escape
from textual.app import App, ComposeResult
from textual.css.query import NoMatches
from textual.message import Message
from textual.timer import Timer
from textual.widgets import Label, Static

from scrbl.action_messages import (
    build_actionable_error,
    build_editor_error,
    build_editor_start_error,
    build_load_error,
    build_save_error,
    build_saved_status,
    build_sync_status,
)
from scrbl.cli import main
from scrbl.composer import Composer, ComposerError, is_session_closed_error
from scrbl.dayfiles import DayStore, save_compose_text
from scrbl.models import (
    COMPOSE_ROWS,
    COMPOSE_ROWS_SMALL,
    COMPOSER_POLL_INTERVAL,
    SMALL_TERMINAL_ROWS,
    ComposeKind,
    ComposerRequests,
    ComposeSnapshot,
    ComposeTarget,
    DayDocument,
    Mode,
    UserConfig,
)
from scrbl.render import day_template, format_day_label
from scrbl.services.interfaces import AppServices, build_default_app_services
from scrbl.stream import StreamNavigator
from scrbl.themes import TEXTUAL_THEMES, THEME_COLORS, THEMES, resolve_theme_name
from scrbl.ui_constants import (
    APP_BINDINGS,
    APP_CSS,
    COMPOSE_FOOTER_HINTS,
    STREAM_ACTIONS,
    STREAM_FOOTER_HINTS,
)
from scrbl.ui_runtime import UiRefs
from scrbl.widgets import (
    ComposePane,
    ContextFooter,
    StreamPane,
    build_header_text,
    build_status_line,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Messages delivered back to the UI loop by background tasks
# ============================================================================


class StreamLoaded(Message):
    """A page of days finished loading (or failed)."""

    def __init__(
        self,
        seq: int,
        days: list[DayDocument],
        *,
        has_more: bool,
        anchor: date | None,
        error: BaseException | None = None,
    ) -> None:
        super().__init__()
        self.seq = seq
        self.days = days
        self.has_more = has_more
        self.anchor = anchor
        self.error = error


class ComposerReady(Message):
    """The editor started and holds the content for ``target``."""

    def __init__(self, target: ComposeTarget, snapshot: ComposeSnapshot) -> None:
        super().__init__()
        self.target = target
        self.snapshot = snapshot


class ComposerFailed(Message):
    """An editor call failed; ``starting`` marks a failed mode switch."""

    def __init__(self, error: BaseException, *, starting: bool = False) -> None:
        super().__init__()
        self.error = error
        self.starting = starting


class SnapshotUpdated(Message):
    def __init__(self, snapshot: ComposeSnapshot) -> None:
        super().__init__()
        self.snapshot = snapshot


class ComposeSaved(Message):
    """A save triggered by the editor (or Ctrl+S) finished."""

    def __init__(
        self,
        target: ComposeTarget,
        *,
        saved: bool,
        quit_after: bool,
        snapshot: ComposeSnapshot | None = None,
        error: BaseException | None = None,
    ) -> None:
        super().__init__()
        self.target = target
        self.saved = saved
        self.quit_after = quit_after
        self.snapshot = snapshot
        self.error = error


class SyncFinished(Message):
    def __init__(self, day: date, error: BaseException | None = None) -> None:
        super().__init__()
        self.day = day
        self.error = error


# ============================================================================
# App
# ============================================================================


class ScrblApp(App):
    """Stream/compose mode controller."""

    TITLE = "scrbl"
    CSS = APP_CSS
    BINDINGS = APP_BINDINGS
    ENABLE_COMMAND_PALETTE = False

    def __init__(
        self,
        config: UserConfig | None = None,
        *,
        store: DayStore | None = None,
        composer: Composer | None = None,
        services: AppServices | None = None,
        poll_interval: float = COMPOSER_POLL_INTERVAL,
    ) -> None:
        super().__init__()
        # Register all Textual themes so $th-* CSS variables resolve before compose()
        for textual_theme in TEXTUAL_THEMES.values():
            self.register_theme(textual_theme)
        self._config = config or UserConfig()
        self._apply_theme_overrides()

        # Collaborators
        self._store = store or DayStore(self._config.notes_dir)
        self._composer = composer or Composer(self._config.editor)
        self._services: AppServices = services or build_default_app_services(self._config)
        self._http_client: httpx.AsyncClient | None = None

        # Stream state
        self._navigator = StreamNavigator()

        # Compose state
        self._mode = Mode.STREAM
        self._compose_target: ComposeTarget | None = None
        self._snapshot = ComposeSnapshot()
        self._compose_starting = False
        self._saving = False
        self._poll_interval = poll_interval
        self._poll_timer: Timer | None = None
        self._compose_rows = COMPOSE_ROWS

        # Status line and error banner
        self._status = ""
        self._error: str | None = None

        # Keep strong refs to background tasks
        self._background_tasks: set[asyncio.Task[None]] = set()
        self._ui_refs = UiRefs()

    def compose(self) -> ComposeResult:
        yield Static("", id="header")
        yield Static("", id="error-banner")
        yield StreamPane("", id="stream")
        yield ComposePane("", id="compose")
        yield Label("", id="status-bar")
        yield ContextFooter()

    def on_mount(self) -> None:
        """Create shared clients, size the compose panel and load the stream."""
        # Create shared HTTP client for connection pooling
        self._http_client = httpx.AsyncClient()

        if self._config.config_defaulted:
            self.notify(
                "Config file was corrupt and has been backed up. Using defaults.",
                severity="warning",
                timeout=8,
            )

        self._apply_compose_rows(self.size.height)
        self._get_stream_pane().focus()
        self._reload_stream()
        self._update_chrome()
        logger.debug(
            "App mounted: notes_dir=%s, editor=%s, sync=%s",
            self._store.notes_dir,
            self._composer.editor,
            self._services.sync is not None,
        )

    async def on_unmount(self) -> None:
        """Stop the poll timer, cancel background work, close the editor and HTTP client.

        Uses atomic swap pattern to avoid race conditions with timer callbacks.
        """
        self._stop_poll_timer()

        # Cancel tracked background tasks to avoid leaks during teardown.
        pending = [task for task in self._background_tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            _, still_pending = await asyncio.wait(pending, timeout=0.5)
            for task in still_pending:
                logger.debug("Background task still pending at shutdown: %s", task)

        try:
            await self._composer.close()
        except Exception as e:
            logger.warning("Error closing editor during unmount: %s", e, exc_info=True)

        client = self._http_client
        self._http_client = None
        if client is not None:
            try:
                await client.aclose()
            except Exception as e:
                logger.warning("Error closing HTTP client during unmount: %s", e, exc_info=True)

        self._ui_refs.reset()

    # ── Properties used by the UI and tests ───────────────────────────────

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def navigator(self) -> StreamNavigator:
        return self._navigator

    @property
    def compose_target(self) -> ComposeTarget | None:
        return self._compose_target

    @property
    def snapshot(self) -> ComposeSnapshot:
        return self._snapshot

    @property
    def status(self) -> str:
        return self._status

    @property
    def error(self) -> str | None:
        return self._error

    # ── Widget refs ───────────────────────────────────────────────────────

    @staticmethod
    def _is_live_widget(widget: Any) -> bool:
        """Return True for mounted/attached widgets safe to reuse."""
        return bool(widget is not None and getattr(widget, "is_attached", False))

    def _get_cached_widget(self, ref_name: str, resolver: Callable[[], Any]) -> Any:
        """Resolve and cache a widget reference by UiRefs attribute name."""
        widget = getattr(self._ui_refs, ref_name)
        if self._is_live_widget(widget):
            return widget
        widget = resolver()
        setattr(self._ui_refs, ref_name, widget)
        return widget

    def _get_stream_pane(self) -> StreamPane:
        return self._get_cached_widget("stream_pane", lambda: self.query_one("#stream", StreamPane))

    def _get_compose_pane(self) -> ComposePane:
        return self._get_cached_widget(
            "compose_pane", lambda: self.query_one("#compose", ComposePane)
        )

    def _get_header(self) -> Static:
        return self._get_cached_widget("header", lambda: self.query_one("#header", Static))

    def _get_error_banner(self) -> Static:
        return self._get_cached_widget(
            "error_banner", lambda: self.query_one("#error-banner", Static)
        )

    def _get_status_bar(self) -> Label:
        return self._get_cached_widget("status_bar", lambda: self.query_one("#status-bar", Label))

    def _get_footer(self) -> ContextFooter:
        return self._get_cached_widget("footer", lambda: self.query_one(ContextFooter))

    # ── Background tasks ──────────────────────────────────────────────────

    def _track_task(self, coro: Any) -> asyncio.Task[None]:
        """Create an asyncio task and track it to prevent garbage collection."""
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        task.add_done_callback(self._on_task_done)
        return task

    @staticmethod
    def _on_task_done(task: asyncio.Task[None]) -> None:
        """Log unhandled exceptions from background tasks."""
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Unhandled exception in background task: %s", exc, exc_info=exc)

    # ── Theme and layout ──────────────────────────────────────────────────

    def _apply_theme_overrides(self) -> None:
        name = resolve_theme_name(self._config.theme_name)
        THEME_COLORS.clear()
        THEME_COLORS.update(THEMES[name])
        try:
            self.theme = name
        except Exception as e:
            logger.debug("Skipping theme activation in current context: %s", e, exc_info=True)

    def _apply_compose_rows(self, terminal_height: int) -> None:
        rows = COMPOSE_ROWS_SMALL if terminal_height < SMALL_TERMINAL_ROWS else COMPOSE_ROWS
        self._compose_rows = rows
        # +2 for the panel border
        self._get_compose_pane().styles.height = rows + 2

    def on_resize(self, event: events.Resize) -> None:
        try:
            self._apply_compose_rows(event.size.height)
        except NoMatches:
            # Resize can arrive before the widgets are composed
            pass

    def on_stream_pane_resized(self, message: StreamPane.Resized) -> None:
        self._navigator.resize(message.width, message.height)
        self._refresh_stream()

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        """Disable stream bindings while the composer owns the keyboard."""
        if action in STREAM_ACTIONS and self._mode is not Mode.STREAM:
            return False
        return True

    # ── Rendering ─────────────────────────────────────────────────────────

    def _refresh_stream(self) -> None:
        nav = self._navigator
        try:
            stream_pane = self._get_stream_pane()
        except NoMatches:
            # Late messages can land after the screen is torn down
            return
        stream_pane.show(
            nav.visible_lines(),
            offset=nav.offset,
            guide=nav.guide,
            banner_lines=frozenset(nav.view.day_start_line),
        )
        self._update_chrome()

    def _refresh_compose(self) -> None:
        target = self._compose_target
        if target is None:
            return
        kind = "new entry" if target.kind is ComposeKind.NEW else "edit"
        try:
            compose_pane = self._get_compose_pane()
        except NoMatches:
            return
        compose_pane.show_snapshot(
            self._snapshot,
            title=f"{kind} · {format_day_label(target.day)}",
            width=max(1, self.size.width - 4),
            height=self._compose_rows,
        )
        self._update_chrome()

    def _focused_header_date(self) -> date | None:
        if self._mode is Mode.COMPOSE and self._compose_target is not None:
            return self._compose_target.day
        return self._navigator.focused_date

    def _update_chrome(self) -> None:
        focused = self._focused_header_date()
        status_line = build_status_line(
            self._mode,
            status=self._status,
            focused=focused,
            snapshot=self._snapshot if self._mode is Mode.COMPOSE else None,
            loading=self._navigator.load.loading,
        )
        hints = COMPOSE_FOOTER_HINTS if self._mode is Mode.COMPOSE else STREAM_FOOTER_HINTS
        try:
            self._get_header().update(build_header_text(focused))
            self._get_status_bar().update(escape(status_line))
            self._get_footer().render_bindings(hints)
        except NoMatches:
            return

    def _show_error(self, message: str) -> None:
        self._error = message
        try:
            banner = self._get_error_banner()
        except NoMatches:
            return
        banner.update(escape(message))
        banner.add_class("visible")

    def _dismiss_error(self) -> None:
        if self._error is None:
            return
        self._error = None
        try:
            banner = self._get_error_banner()
        except NoMatches:
            return
        banner.update("")
        banner.remove_class("visible")

    def _set_status(self, status: str) -> None:
        self._status = status
        self._update_chrome()

    # ── Stream loading ────────────────────────────────────────────────────

    def _reload_stream(self, anchor: date | None = None) -> None:
        seq = self._navigator.begin_reload()
        self._track_task(self._load_stream(seq, self._navigator.load.limit, anchor))

    def _maybe_load_more(self) -> None:
        anchor = self._navigator.request_more()
        if anchor is None:
            return
        self._status = "loading older notes"
        self._track_task(
            self._load_stream(self._navigator.request_seq, self._navigator.load.limit, anchor)
        )

    async def _load_stream(self, seq: int, limit: int, anchor: date | None) -> None:
        try:
            days, has_more = await asyncio.to_thread(self._store.load_recent, limit)
        except (OSError, ValueError) as exc:
            logger.warning("Loading notes failed: %s", exc, exc_info=True)
            self.post_message(StreamLoaded(seq, [], has_more=False, anchor=anchor, error=exc))
            return
        self.post_message(StreamLoaded(seq, days, has_more=has_more, anchor=anchor))

    def on_stream_loaded(self, message: StreamLoaded) -> None:
        if message.error is not None:
            if self._navigator.fail_page(str(message.error), seq=message.seq):
                self._show_error(build_load_error(message.error))
                self._refresh_stream()
            return
        if not self._navigator.apply_page(
            message.days,
            has_more=message.has_more,
            anchor=message.anchor,
            seq=message.seq,
        ):
            return
        if self._status == "loading older notes":
            self._status = ""
        logger.debug(
            "Stream loaded: %d days, has_more=%s, focus=%s",
            len(message.days),
            message.has_more,
            self._navigator.focused_date,
        )
        self._refresh_stream()

    # ── Stream actions ────────────────────────────────────────────────────

    def _after_move(self, *, upward: bool = False) -> None:
        if upward:
            self._maybe_load_more()
        self._refresh_stream()

    def action_guide_down(self) -> None:
        self._dismiss_error()
        self._navigator.move_guide(1)
        self._after_move()

    def action_guide_up(self) -> None:
        self._dismiss_error()
        self._navigator.move_guide(-1)
        self._after_move(upward=True)

    def action_page_down(self) -> None:
        self._dismiss_error()
        self._navigator.move_guide(self._navigator.page_size)
        self._after_move()

    def action_page_up(self) -> None:
        self._dismiss_error()
        self._navigator.move_guide(-self._navigator.page_size)
        self._after_move(upward=True)

    def action_guide_top(self) -> None:
        self._dismiss_error()
        self._navigator.top()
        self._after_move(upward=True)

    def action_guide_bottom(self) -> None:
        self._dismiss_error()
        self._navigator.bottom()
        self._after_move()

    def action_prev_day(self) -> None:
        self._dismiss_error()
        self._navigator.prev_day()
        self._after_move(upward=True)

    def action_next_day(self) -> None:
        self._dismiss_error()
        self._navigator.next_day()
        self._after_move()

    def action_reload(self) -> None:
        self._dismiss_error()
        self._status = ""
        self._reload_stream(anchor=self._navigator.focused_date)
        self._update_chrome()

    # ── Entering compose mode ─────────────────────────────────────────────

    def action_compose_new(self) -> None:
        self._begin_compose(ComposeTarget(ComposeKind.NEW, self._store.today()))

    def action_compose_edit(self) -> None:
        focused = self._navigator.focused_date
        if focused is None:
            self._set_status("no notes")
            return
        self._begin_compose(ComposeTarget(ComposeKind.EDIT, focused))

    def _begin_compose(self, target: ComposeTarget) -> None:
        if self._compose_starting or self._mode is not Mode.STREAM:
            return
        self._dismiss_error()
        self._compose_starting = True
        self._set_status("starting editor...")
        self._track_task(self._start_compose(target))

    async def _start_compose(self, target: ComposeTarget) -> None:
        try:
            raw = ""
            if target.kind is ComposeKind.EDIT:
                raw = await asyncio.to_thread(self._store.read_day, target.day)
                if not raw.strip():
                    raw = day_template(target.day)
            await self._composer.start()
            if target.kind is ComposeKind.EDIT:
                await self._composer.set_content(raw, insert_mode=False)
            else:
                await self._composer.clear()
            snapshot = await self._composer.snapshot()
        except (ComposerError, OSError, ValueError) as exc:
            logger.warning("Entering compose mode failed: %s", exc, exc_info=True)
            await self._composer.close()
            self.post_message(ComposerFailed(exc, starting=True))
            return
        self.post_message(ComposerReady(target, snapshot))

    def on_composer_ready(self, message: ComposerReady) -> None:
        self._compose_starting = False
        self._mode = Mode.COMPOSE
        self._compose_target = message.target
        self._snapshot = message.snapshot
        self._status = ""
        try:
            stream_pane = self._get_stream_pane()
            compose_pane = self._get_compose_pane()
        except NoMatches:
            return
        stream_pane.can_focus = False
        compose_pane.add_class("visible")
        compose_pane.focus()
        self._refresh_compose()
        self._arm_poll_timer()
        logger.debug("Compose mode: %s %s", message.target.kind.value, message.target.day)

    def on_composer_failed(self, message: ComposerFailed) -> None:
        if message.starting:
            self._compose_starting = False
            if isinstance(message.error, (OSError, ValueError)):
                self._show_error(
                    build_actionable_error(
                        "open the day for editing",
                        why=str(message.error),
                        next_step="check the notes directory and try again",
                    )
                )
            else:
                self._show_error(build_editor_start_error(self._composer.editor, message.error))
            self._set_status("")
            return
        if self._mode is not Mode.COMPOSE:
            return
        if is_session_closed_error(message.error):
            logger.debug("Editor session closed; leaving compose mode without saving")
            self._leave_compose()
            return
        self._show_error(build_editor_error(message.error))

    # ── Compose mode: keys, polling, saving ──────────────────────────────

    def on_compose_pane_editor_key(self, message: ComposePane.EditorKey) -> None:
        if self._mode is not Mode.COMPOSE:
            return
        if message.key == "ctrl+s":
            self._handle_requests(ComposerRequests(save=True))
            return
        if message.key == "ctrl+g":
            self._handle_requests(ComposerRequests(quit=True))
            return
        self._track_task(self._forward_key(message.key, message.character))

    async def _forward_key(self, key: str, character: str | None) -> None:
        try:
            await self._composer.input(key, character)
            snapshot = await self._composer.snapshot()
        except ComposerError as exc:
            self.post_message(ComposerFailed(exc))
            return
        self.post_message(SnapshotUpdated(snapshot))

    def on_snapshot_updated(self, message: SnapshotUpdated) -> None:
        if self._mode is not Mode.COMPOSE or message.snapshot.is_empty:
            return
        self._snapshot = message.snapshot
        self._dismiss_error()
        self._refresh_compose()

    def _arm_poll_timer(self) -> None:
        self._stop_poll_timer()
        self._poll_timer = self.set_timer(self._poll_interval, self._poll_composer)

    def _stop_poll_timer(self) -> None:
        timer = self._poll_timer
        self._poll_timer = None
        if timer is not None:
            timer.stop()

    def _poll_composer(self) -> None:
        self._poll_timer = None
        if self._mode is not Mode.COMPOSE:
            return
        requests = self._composer.consume_requests()
        if not requests.any():
            self._arm_poll_timer()
            return
        logger.debug("Editor requests: %s", requests)
        self._handle_requests(requests)

    def _handle_requests(self, requests: ComposerRequests) -> None:
        target = self._compose_target
        if target is None:
            return
        leave = requests.quit or requests.quit_after_save
        if not requests.save:
            self._leave_compose()
            return
        if self._saving:
            return
        self._saving = True
        self._stop_poll_timer()
        self._track_task(self._save_compose(target, quit_after=leave))

    async def _save_compose(self, target: ComposeTarget, *, quit_after: bool) -> None:
        snapshot: ComposeSnapshot | None = None
        try:
            snapshot = await self._composer.snapshot()
            saved = await asyncio.to_thread(save_compose_text, self._store, target, snapshot.text)
            if saved and target.kind is ComposeKind.NEW and not quit_after:
                await self._composer.clear()
                snapshot = await self._composer.snapshot()
        except (ComposerError, OSError) as exc:
            logger.warning("Saving %s failed: %s", target.day, exc, exc_info=True)
            self.post_message(
                ComposeSaved(target, saved=False, quit_after=quit_after, error=exc)
            )
            return
        self.post_message(
            ComposeSaved(target, saved=saved, quit_after=quit_after, snapshot=snapshot)
        )

    def on_compose_saved(self, message: ComposeSaved) -> None:
        self._saving = False
        if message.error is not None:
            if is_session_closed_error(message.error):
                self._leave_compose()
                return
            self._show_error(build_save_error(message.target.day, message.error))
            if self._mode is Mode.COMPOSE:
                self._arm_poll_timer()
            return

        if message.saved:
            self._status = build_saved_status(
                message.target.day, syncing=self._services.sync is not None
            )
            self._reload_stream(anchor=message.target.day)
            self._push_day(message.target.day)
        else:
            self._status = "empty note"

        if message.quit_after:
            self._leave_compose()
            return
        if self._mode is Mode.COMPOSE:
            if message.snapshot is not None:
                self._snapshot = message.snapshot
            self._refresh_compose()
            self._arm_poll_timer()

    def _leave_compose(self) -> None:
        """Return to the stream; the editor process is always torn down."""
        self._stop_poll_timer()
        self._saving = False
        was_composing = self._mode is Mode.COMPOSE
        self._mode = Mode.STREAM
        self._compose_target = None
        self._snapshot = ComposeSnapshot()
        self._track_task(self._composer.close())
        if not was_composing:
            return
        try:
            compose_pane = self._get_compose_pane()
            stream_pane = self._get_stream_pane()
        except NoMatches:
            return
        compose_pane.remove_class("visible")
        compose_pane.update("")
        stream_pane.can_focus = True
        stream_pane.focus()
        self._navigator.rebuild(jump_to_focused=False)
        self._refresh_stream()

    # ── Sync ──────────────────────────────────────────────────────────────

    def _push_day(self, day: date) -> None:
        if self._services.sync is None:
            return
        self._track_task(self._push_note(day))

    async def _push_note(self, day: date) -> None:
        sync = self._services.sync
        if sync is None:
            return
        error: BaseException | None = None
        try:
            content = await asyncio.to_thread(self._store.read_day, day)
            await sync.push(client=self._http_client, day=day, content=content)
        except (httpx.HTTPError, OSError) as exc:
            logger.warning("Sync push for %s failed: %s", day, exc)
            error = exc
        self.post_message(SyncFinished(day, error))

    def on_sync_finished(self, message: SyncFinished) -> None:
        self._set_status(build_sync_status(message.day, message.error))


__all__ = [
    "ComposeSaved",
    "ComposerFailed",
    "ComposerReady",
    "ScrblApp",
    "SnapshotUpdated",
    "StreamLoaded",
    "SyncFinished",
    "main",
]
