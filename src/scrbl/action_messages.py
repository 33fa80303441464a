"""UI-facing copy builders for status lines, errors and notifications."""

from __future__ import annotations

from datetime import date

import httpx

from scrbl.render import format_day_label


def _ensure_sentence(text: str) -> str:
    """Return text with terminal sentence punctuation."""
    cleaned = text.strip()
    if not cleaned:
        return ""
    if cleaned.endswith((".", "!", "?")):
        return cleaned
    return f"{cleaned}."


def build_next_step_hint(next_step: str) -> str:
    """Build a canonical next-step guidance line."""
    return f"Next step: {_ensure_sentence(next_step)}"


def build_actionable_error(
    action: str,
    *,
    next_step: str,
    why: str | None = None,
) -> str:
    """Build a 2-3 line actionable error message."""
    lines = [f"Could not {action.strip()}."]
    if why:
        lines.append(f"Why: {_ensure_sentence(why)}")
    lines.append(build_next_step_hint(next_step))
    return "\n".join(lines)


def describe_exception(exc: BaseException) -> str:
    """Return a short, user-readable reason for an exception."""
    if isinstance(exc, httpx.HTTPStatusError):
        return f"the server answered HTTP {exc.response.status_code}"
    if isinstance(exc, httpx.TimeoutException):
        return "the server did not answer in time"
    if isinstance(exc, httpx.HTTPError):
        return "the server could not be reached"
    text = str(exc).strip()
    return text or type(exc).__name__


def build_load_error(exc: BaseException) -> str:
    return build_actionable_error(
        "load notes",
        why=describe_exception(exc),
        next_step="check the notes directory and press r to reload",
    )


def build_save_error(day: date, exc: BaseException) -> str:
    return build_actionable_error(
        f"save notes for {format_day_label(day)}",
        why=describe_exception(exc),
        next_step="check the notes directory permissions and save again",
    )


def build_editor_start_error(editor: str, exc: BaseException) -> str:
    return build_actionable_error(
        "start the editor",
        why=describe_exception(exc),
        next_step=f"make sure {editor!r} is installed or pass --editor",
    )


def build_editor_error(exc: BaseException) -> str:
    return build_actionable_error(
        "talk to the editor",
        why=describe_exception(exc),
        next_step="keep typing or press Ctrl+G to go back",
    )


def build_sync_status(day: date, error: BaseException | None) -> str:
    """Status line after a background push."""
    label = format_day_label(day)
    if error is None:
        return f"synced {label}"
    return f"sync failed for {label}: {describe_exception(error)}"


def build_saved_status(day: date, *, syncing: bool) -> str:
    label = format_day_label(day)
    return f"syncing {label}..." if syncing else f"saved {label}"


__all__ = [
    "build_actionable_error",
    "build_editor_error",
    "build_editor_start_error",
    "build_load_error",
    "build_next_step_hint",
    "build_save_error",
    "build_saved_status",
    "build_sync_status",
    "describe_exception",
]
