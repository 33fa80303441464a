"""Embedded neovim editor bridge.

The editor runs headless as a child process and is driven over msgpack-RPC
with pynvim. Its own save/quit commands are rewritten on the editor side into
RPC notifications, so the editor never writes files: the host consumes those
notifications through :class:`PendingRequests` and decides what to persist.

Threading model: the pynvim event loop runs on a dedicated bridge thread.
Host coroutines schedule work onto it with ``Nvim.async_call`` and await the
resulting :class:`concurrent.futures.Future`. Notification callbacks run on
the bridge thread and only touch the lock-guarded request flags.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future, InvalidStateError
from typing import Any, TypeVar

import pynvim
from pynvim.api import Nvim

from scrbl.keys import key_to_nvim
from scrbl.models import (
    DEFAULT_EDITOR,
    ComposerRequests,
    ComposeSnapshot,
    PendingRequests,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# No user config, no shada, no swap: every session starts from the same state
NVIM_EMBED_ARGS: tuple[str, ...] = ("--embed", "--headless", "-u", "NONE", "-n", "-i", "NONE")

START_TIMEOUT_SECONDS = 10.0
CLOSE_TIMEOUT_SECONDS = 2.0

NOTIFY_WRITE = "scrbl_write"
NOTIFY_WRITE_QUIT = "scrbl_write_quit"
NOTIFY_QUIT = "scrbl_quit"

# Editor-side user command -> notification it raises
HOST_COMMANDS: dict[str, str] = {
    "ScrblWrite": NOTIFY_WRITE,
    "ScrblWriteQuit": NOTIFY_WRITE_QUIT,
    "ScrblQuit": NOTIFY_QUIT,
}

# Native ex commands rewritten to the host commands above
COMMAND_OVERRIDES: dict[str, str] = {
    "w": "ScrblWrite",
    "write": "ScrblWrite",
    "wq": "ScrblWriteQuit",
    "x": "ScrblWriteQuit",
    "xit": "ScrblWriteQuit",
    "q": "ScrblQuit",
    "q!": "ScrblQuit",
    "quit": "ScrblQuit",
    "quit!": "ScrblQuit",
    "qa": "ScrblQuit",
    "qa!": "ScrblQuit",
    "qall": "ScrblQuit",
}

BUFFER_SETUP_COMMANDS: tuple[str, ...] = (
    "enew",
    "setlocal buftype=nofile bufhidden=wipe noswapfile",
    "setlocal filetype=markdown",
    "setlocal nowrap",
    "set noshowmode noruler noshowcmd",
)

_SESSION_CLOSED_MARKERS = ("session closed", "broken pipe")


class ComposerError(RuntimeError):
    """Recoverable failure talking to the embedded editor."""


class ComposerStartError(ComposerError):
    """The editor could not be spawned or configured."""


class SessionClosedError(ComposerError):
    """The editor process is gone; pending and future calls cannot complete."""


def is_session_closed_error(exc: BaseException) -> bool:
    """Return True when ``exc`` means the editor process has exited."""
    if isinstance(exc, (SessionClosedError, EOFError, BrokenPipeError, ConnectionError)):
        return True
    if isinstance(exc, ComposerStartError):
        return False
    message = str(exc).lower()
    return any(marker in message for marker in _SESSION_CLOSED_MARKERS)


def _resolve(future: Future[Any], *, result: Any = None, exc: BaseException | None = None) -> None:
    """Complete ``future`` unless it was already completed or cancelled."""
    try:
        if exc is not None:
            future.set_exception(exc)
        else:
            future.set_result(result)
    except InvalidStateError:
        pass


# ============================================================================
# Editor-side setup and queries (run on the bridge thread)
# ============================================================================


def override_commands(channel_id: int) -> list[str]:
    """Return the ex commands that route save/quit to ``channel_id``."""
    commands = [
        f"command! {name} call rpcnotify({channel_id}, '{event}')"
        for name, event in HOST_COMMANDS.items()
    ]
    for abbrev, target in COMMAND_OVERRIDES.items():
        # Only expand when the whole ":" command line is exactly the abbreviation
        commands.append(
            f"cnoreabbrev <expr> {abbrev} "
            f"(getcmdtype() ==# ':' && getcmdline() ==# '{abbrev}') ? '{target}' : '{abbrev}'"
        )
    return commands


def install_overrides(nvim: Nvim) -> None:
    """Prepare a scratch markdown buffer and hook the save/quit commands."""
    for command in BUFFER_SETUP_COMMANDS:
        nvim.command(command)
    for command in override_commands(nvim.channel_id):
        nvim.command(command)
    nvim.command("startinsert")


def read_snapshot(nvim: Nvim) -> ComposeSnapshot:
    lines = nvim.current.buffer[:]
    mode = nvim.api.get_mode()["mode"]
    row, col = nvim.current.window.cursor
    command_line = nvim.call("getcmdline") if mode.startswith("c") else ""
    return ComposeSnapshot(
        text="\n".join(lines),
        mode=mode,
        cursor_row=row,
        cursor_col=col,
        command_line=command_line,
    )


def split_content(text: str) -> list[str]:
    """Split text into buffer lines; a single trailing newline is implied.

    >>> split_content("# 2025.01.02\\n\\n")
    ['# 2025.01.02', '']
    """
    normalized = text.replace("\r\n", "\n")
    if normalized.endswith("\n"):
        normalized = normalized[:-1]
    return normalized.split("\n")


def _replace_buffer(nvim: Nvim, lines: Sequence[str], insert_mode: bool) -> None:
    nvim.current.buffer[:] = list(lines)
    nvim.current.window.cursor = (1, 0)
    nvim.command("startinsert" if insert_mode else "stopinsert")


def _query_mode(nvim: Nvim) -> str:
    return nvim.api.get_mode()["mode"]


def _quit_editor(nvim: Nvim) -> None:
    nvim.command("qall!")


# ============================================================================
# RPC session (one editor process + its bridge thread)
# ============================================================================


class _RpcSession:
    """One embedded editor process and the thread running its RPC loop."""

    def __init__(
        self,
        argv: Sequence[str],
        *,
        attach: Callable[..., Nvim],
        on_notification: Callable[[str, list[Any]], None],
    ) -> None:
        self.argv = list(argv)
        self._attach = attach
        self._on_notification = on_notification
        self._lock = threading.Lock()
        self._nvim: Nvim | None = None
        self._started = False
        self._closed = False
        self._inflight: set[Future[Any]] = set()
        self.ready: Future[None] = Future()
        self.thread = threading.Thread(target=self._serve, name="scrbl-editor-rpc", daemon=True)

    @property
    def alive(self) -> bool:
        with self._lock:
            return self._started and not self._closed

    def start(self) -> None:
        self.thread.start()

    def join(self, timeout: float) -> None:
        if self.thread.ident is not None:
            self.thread.join(timeout)

    def submit(self, fn: Callable[[Nvim], T]) -> Future[T]:
        """Schedule ``fn(nvim)`` on the bridge thread."""
        future: Future[T] = Future()
        with self._lock:
            nvim = self._nvim
            closed = self._closed or nvim is None
            if not closed:
                self._inflight.add(future)
        if closed:
            future.set_exception(SessionClosedError("session closed"))
            return future
        future.add_done_callback(self._forget)

        def call() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                result = fn(nvim)
            except Exception as exc:
                _resolve(future, exc=exc)
            else:
                _resolve(future, result=result)

        try:
            nvim.async_call(call)
        except RuntimeError as exc:
            # The loop already shut down underneath us
            _resolve(future, exc=SessionClosedError(f"session closed: {exc}"))
        return future

    def stop(self) -> None:
        """Ask the RPC loop to exit; the process is killed on teardown."""
        with self._lock:
            nvim = None if self._closed else self._nvim
        if nvim is None:
            return
        try:
            nvim.async_call(nvim.stop_loop)
        except RuntimeError as exc:
            logger.debug("Editor loop already stopped: %s", exc)

    def _forget(self, future: Future[Any]) -> None:
        with self._lock:
            self._inflight.discard(future)

    def _serve(self) -> None:
        try:
            nvim = self._attach("child", argv=self.argv)
        except Exception as exc:
            logger.debug("Spawning %s failed: %s", self.argv[0], exc, exc_info=True)
            self._finish(ComposerStartError(f"could not start {self.argv[0]}: {exc}"))
            return

        with self._lock:
            self._nvim = nvim
        try:
            nvim.run_loop(
                self._handle_request,
                self._on_notification,
                setup_cb=lambda: self._setup(nvim),
                err_cb=self._handle_loop_error,
            )
        except Exception as exc:
            logger.warning("Editor RPC loop failed: %s", exc, exc_info=True)
        finally:
            self._finish(SessionClosedError("session closed"))
            try:
                nvim.close()
            except Exception as exc:
                logger.debug("Error while closing editor session: %s", exc)
            logger.debug("Editor RPC loop exited")

    def _setup(self, nvim: Nvim) -> None:
        try:
            install_overrides(nvim)
        except Exception as exc:
            _resolve(
                self.ready,
                exc=ComposerStartError(f"could not install editor commands: {exc}"),
            )
            nvim.stop_loop()
            return
        with self._lock:
            self._started = True
        _resolve(self.ready)

    def _finish(self, exc: ComposerError) -> None:
        with self._lock:
            self._closed = True
            pending = list(self._inflight)
            self._inflight.clear()
        _resolve(self.ready, exc=exc)
        for future in pending:
            _resolve(future, exc=SessionClosedError("session closed"))

    def _handle_request(self, name: str, args: list[Any]) -> None:
        logger.debug("Ignoring editor request %s", name)

    @staticmethod
    def _handle_loop_error(message: str) -> None:
        logger.warning("Editor RPC error: %s", message)


# ============================================================================
# Composer
# ============================================================================


class Composer:
    """Lifecycle and I/O for the embedded editor used in compose mode.

    Idle until :meth:`start`; :meth:`close` terminates the process and is
    safe to call at any time.
    """

    def __init__(
        self,
        editor: str = DEFAULT_EDITOR,
        *,
        attach: Callable[..., Nvim] = pynvim.attach,
        start_timeout: float = START_TIMEOUT_SECONDS,
        close_timeout: float = CLOSE_TIMEOUT_SECONDS,
    ) -> None:
        self.editor = editor or DEFAULT_EDITOR
        self._attach = attach
        self._start_timeout = start_timeout
        self._close_timeout = close_timeout
        self._requests = PendingRequests()
        self._session: _RpcSession | None = None

    @property
    def argv(self) -> list[str]:
        return [self.editor, *NVIM_EMBED_ARGS]

    @property
    def running(self) -> bool:
        return self._session is not None and self._session.alive

    async def start(self) -> None:
        """Spawn and configure the editor, reusing a live session."""
        if self._session is not None:
            if self._session.alive:
                try:
                    await self._call(_query_mode)
                    return
                except ComposerError as exc:
                    logger.debug("Discarding unresponsive editor session: %s", exc)
            await self.close()

        self._requests.clear()
        session = _RpcSession(
            self.argv,
            attach=self._attach,
            on_notification=lambda name, args: self._handle_notification(session, name, args),
        )
        self._session = session
        session.start()
        try:
            await asyncio.wait_for(asyncio.wrap_future(session.ready), self._start_timeout)
        except asyncio.TimeoutError:
            await self.close()
            raise ComposerStartError(
                f"{self.editor} did not start within {self._start_timeout:g}s"
            ) from None
        except ComposerStartError:
            await self.close()
            raise
        except ComposerError as exc:
            await self.close()
            raise ComposerStartError(f"{self.editor} exited during startup: {exc}") from exc
        logger.debug("Editor session started: %s", " ".join(self.argv))

    async def input(self, key: str, character: str | None = None) -> None:
        """Forward one key event to the editor.

        The call is queued on the bridge thread before this coroutine first
        suspends, so keys reach the editor in the order they were sent.
        """
        keys = key_to_nvim(key, character)
        if not keys:
            return
        await self._call(lambda nvim: nvim.input(keys))

    async def snapshot(self) -> ComposeSnapshot:
        """Pull buffer text, mode and cursor; zero value when idle."""
        if not self.running:
            return ComposeSnapshot()
        return await self._call(read_snapshot)

    async def set_content(self, text: str, *, insert_mode: bool) -> None:
        """Replace the whole buffer and put the cursor at the start."""
        lines = split_content(text)
        await self._call(lambda nvim: _replace_buffer(nvim, lines, insert_mode))

    async def clear(self) -> None:
        await self.set_content("", insert_mode=True)

    def consume_requests(self) -> ComposerRequests:
        """Atomically read and clear the pending save/quit requests."""
        return self._requests.take()

    async def close(self) -> None:
        """Terminate the editor process and drop session state."""
        session = self._session
        self._session = None
        self._requests.clear()
        if session is None:
            return

        if session.alive:
            try:
                await asyncio.wait_for(
                    asyncio.wrap_future(session.submit(_quit_editor)),
                    self._close_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("Editor did not acknowledge quit; stopping RPC loop")
            except Exception as exc:
                # qall! normally kills the channel before it can reply
                if not is_session_closed_error(exc):
                    logger.debug("Editor quit returned an error: %s", exc)

        await asyncio.to_thread(session.join, self._close_timeout)
        if session.thread.is_alive():
            session.stop()
            await asyncio.to_thread(session.join, self._close_timeout)
            if session.thread.is_alive():
                logger.warning("Editor RPC thread still running after close")
        logger.debug("Editor session closed")

    async def _call(self, fn: Callable[[Nvim], T]) -> T:
        session = self._session
        if session is None:
            raise SessionClosedError("session closed")
        future = session.submit(fn)
        try:
            return await asyncio.wrap_future(future)
        except ComposerError:
            raise
        except Exception as exc:
            if is_session_closed_error(exc):
                raise SessionClosedError(str(exc)) from exc
            raise ComposerError(str(exc)) from exc

    def _handle_notification(self, session: _RpcSession, name: str, args: list[Any]) -> None:
        if session is not self._session:
            logger.debug("Ignoring %s from a closed editor session", name)
            return
        logger.debug("Editor notification %s", name)
        if name == NOTIFY_WRITE:
            self._requests.mark_save()
        elif name == NOTIFY_WRITE_QUIT:
            self._requests.mark_save(quit_after=True)
        elif name == NOTIFY_QUIT:
            self._requests.mark_quit()


__all__ = [
    "BUFFER_SETUP_COMMANDS",
    "COMMAND_OVERRIDES",
    "HOST_COMMANDS",
    "NOTIFY_QUIT",
    "NOTIFY_WRITE",
    "NOTIFY_WRITE_QUIT",
    "NVIM_EMBED_ARGS",
    "Composer",
    "ComposerError",
    "ComposerStartError",
    "SessionClosedError",
    "install_overrides",
    "is_session_closed_error",
    "override_commands",
    "read_snapshot",
    "split_content",
]
