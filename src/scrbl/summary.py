"""Export a day's ``## Summary`` section as Slack-flavoured markdown."""

from __future__ import annotations

import logging
import platform
import re
import shutil
import subprocess
from collections.abc import Callable

logger = logging.getLogger(__name__)

CLIPBOARD_TIMEOUT_SECONDS = 5

SUMMARY_HEADING = re.compile(r"^##\s+(summary|daily\s+summary)\s*:?[ \t#]*$", re.IGNORECASE)
HEADING_BOUNDARY = re.compile(r"^#{1,2}\s+")
MARKDOWN_HEADING = re.compile(r"^\s*#{1,6}\s+(.+?)\s*$")
TASK_DONE = re.compile(r"^(\s*)-\s+\[(x|X)\]\s+(.*)$")
TASK_TODO = re.compile(r"^(\s*)-\s+\[\s\]\s+(.*)$")
UNORDERED_ITEM = re.compile(r"^(\s*)[-*+]\s+(.*)$")
MARKDOWN_BOLD = re.compile(r"\*\*(.+?)\*\*")


class SummaryError(ValueError):
    """The day has no usable summary section."""


class ClipboardError(RuntimeError):
    """No clipboard tool accepted the text."""


def extract_summary_section(content: str) -> str:
    """Return the body under ``## Summary`` up to the next ``#``/``##`` heading.

    Fenced code blocks are copied as-is, headings inside them included.
    Raises SummaryError when the section is missing or blank.
    """
    found = False
    in_code = False
    collected: list[str] = []
    for line in content.replace("\r\n", "\n").split("\n"):
        stripped = line.strip()
        if not found:
            found = bool(SUMMARY_HEADING.match(stripped))
            continue
        if stripped.startswith("```"):
            in_code = not in_code
            collected.append(line)
            continue
        if not in_code and HEADING_BOUNDARY.match(stripped) and not SUMMARY_HEADING.match(stripped):
            break
        collected.append(line)

    if not found:
        raise SummaryError("## Summary section not found")
    section = "\n".join(collected).strip()
    if not section:
        raise SummaryError("## Summary section is empty")
    return section


def format_for_slack(markdown: str) -> str:
    """Rewrite headings, bullets and bold into Slack's mrkdwn dialect.

    >>> format_for_slack("### Wins\\n- shipped v2\\n- [x] done\\nall **good**")
    '*Wins*\\n• shipped v2\\n- [x] done\\nall *good*'
    """
    lines = markdown.replace("\r\n", "\n").split("\n")
    in_code = False
    for i, line in enumerate(lines):
        if line.strip().startswith("```"):
            in_code = not in_code
            continue
        if in_code:
            continue
        if m := MARKDOWN_HEADING.match(line):
            lines[i] = f"*{m.group(1).strip()}*"
        elif m := TASK_DONE.match(line):
            lines[i] = f"{m.group(1)}- [x] {m.group(3).strip()}"
        elif m := TASK_TODO.match(line):
            lines[i] = f"{m.group(1)}- [ ] {m.group(2).strip()}"
        elif m := UNORDERED_ITEM.match(line):
            lines[i] = f"{m.group(1)}• {m.group(2).strip()}"
        else:
            lines[i] = MARKDOWN_BOLD.sub(r"*\1*", line)
    return "\n".join(lines).strip()


def get_clipboard_command_plan(system: str) -> tuple[list[list[str]], str] | None:
    """Return clipboard command candidates and input encoding for a platform."""
    if system == "Darwin":
        return ([["pbcopy"]], "utf-8")
    if system == "Linux":
        return (
            [["wl-copy"], ["xclip", "-selection", "clipboard"], ["xsel", "--clipboard", "--input"]],
            "utf-8",
        )
    if system == "Windows":
        return ([["clip"]], "utf-16")
    return None


def copy_to_clipboard(
    text: str,
    *,
    system: str | None = None,
    which: Callable[[str], str | None] = shutil.which,
    run: Callable[..., object] = subprocess.run,
) -> None:
    """Pipe ``text`` into the first clipboard tool that accepts it."""
    if not text.strip():
        raise ClipboardError("nothing to copy")
    system = system or platform.system()
    plan = get_clipboard_command_plan(system)
    if plan is None:
        raise ClipboardError(f"unsupported platform {system}")
    commands, encoding = plan
    payload = text.encode(encoding)
    first_error: Exception | None = None
    for command in commands:
        if which(command[0]) is None:
            continue
        try:
            run(  # nosec B603
                command,
                input=payload,
                check=True,
                shell=False,
                capture_output=True,
                timeout=CLIPBOARD_TIMEOUT_SECONDS,
            )
            return
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as e:
            logger.warning("Clipboard command %s failed: %s", command[0], e)
            if first_error is None:
                first_error = e
    if first_error is not None:
        raise ClipboardError(f"copy to clipboard failed: {first_error}") from first_error
    raise ClipboardError("no clipboard utility found (install wl-copy, xclip, or xsel)")


__all__ = [
    "ClipboardError",
    "SummaryError",
    "copy_to_clipboard",
    "extract_summary_section",
    "format_for_slack",
    "get_clipboard_command_plan",
]
