"""CLI/bootstrap helpers for the scrbl application."""

from __future__ import annotations

import argparse
import asyncio
import logging
import logging.handlers
import os
import sys
from collections.abc import Callable
from datetime import date
from pathlib import Path
from typing import Any

import httpx
from platformdirs import user_config_dir

from scrbl.action_messages import build_actionable_error, describe_exception
from scrbl.config import get_config_path, load_config, mask_secret, save_config
from scrbl.dayfiles import DayStore, parse_day
from scrbl.migrate import migrate_store
from scrbl.models import CONFIG_APP_NAME, UserConfig
from scrbl.render import format_day_label
from scrbl.services.interfaces import HttpSyncService, SyncService
from scrbl.summary import (
    ClipboardError,
    SummaryError,
    copy_to_clipboard,
    extract_summary_section,
    format_for_slack,
)

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool) -> None:
    """Configure logging. When debug=True, logs to file at DEBUG level."""
    if not debug:
        # Default: suppress all logging (TUI captures stderr)
        logging.disable(logging.CRITICAL)
        return

    log_dir = Path(user_config_dir(CONFIG_APP_NAME))
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "debug.log"

    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(logging.DEBUG)


def _configure_color_mode(color_mode: str) -> None:
    """Configure environment hints for terminal color behavior."""
    if color_mode == "never":
        os.environ["NO_COLOR"] = "1"
        os.environ.pop("FORCE_COLOR", None)
        return
    if color_mode == "always":
        os.environ["FORCE_COLOR"] = "1"
        os.environ.pop("NO_COLOR", None)
        return
    # auto
    os.environ.pop("FORCE_COLOR", None)


def _validate_interactive_tty() -> bool:
    """Return True when stdin/stdout are interactive terminals."""
    return bool(sys.stdin.isatty() and sys.stdout.isatty())


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scrbl",
        description="Day-by-day markdown notes in the terminal, edited with neovim",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging to file (~/.config/scrbl/debug.log)",
    )
    parser.add_argument(
        "--color",
        choices=["auto", "always", "never"],
        default="auto",
        help="Color output mode for terminal UI (default: auto)",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable terminal colors (equivalent to --color never)",
    )
    subparsers = parser.add_subparsers(dest="command")

    tui = subparsers.add_parser("tui", help="Open the note stream (default)")
    _add_tui_arguments(tui)

    init = subparsers.add_parser("init", help="Write the config file")
    init.add_argument("--notes-dir", default=None, help="Directory holding day files")
    init.add_argument("--server", default=None, help="Sync server URL")
    init.add_argument("--api-key", default=None, help="Sync server API key")
    init.add_argument("--editor", default=None, help="neovim executable")

    config = subparsers.add_parser("config", help="Inspect configuration")
    config_sub = config.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Print the effective configuration")

    sync = subparsers.add_parser("sync", help="Push or pull notes")
    sync_sub = sync.add_subparsers(dest="sync_command")
    for name, help_text in (
        ("push", "Upload day notes to the server"),
        ("pull", "Download day notes from the server"),
    ):
        direction = sync_sub.add_parser(name, help=help_text)
        scope = direction.add_mutually_exclusive_group()
        scope.add_argument("--date", default=None, help="Day to sync (YYYY-MM-DD, default: today)")
        scope.add_argument("--all", action="store_true", help="Sync every day")

    summary = subparsers.add_parser("summary", help="Copy a day's ## Summary as Slack markdown")
    summary.add_argument("format", nargs="?", choices=["slack"], default="slack")
    summary.add_argument(
        "--date", default=None, help="Day to export (YYYY-MM-DD, default: most recent day)"
    )
    summary.add_argument(
        "--stdout", action="store_true", help="Also print the generated Slack markdown"
    )

    migrate = subparsers.add_parser("migrate", help="Rewrite day files into the current format")
    migrate.add_argument(
        "--dry-run", action="store_true", help="Show what would change without writing files"
    )
    migrate.add_argument(
        "--sync", action="store_true", help="Push every note to the server after migrating"
    )
    return parser


def _add_tui_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--editor", default=None, help="neovim executable (default: config/nvim)")
    parser.add_argument("--notes-dir", default=None, help="Directory holding day files")


# ============================================================================
# Subcommands
# ============================================================================


def _run_init(args: argparse.Namespace, config: UserConfig) -> int:
    if args.notes_dir is not None:
        config.notes_dir = str(Path(args.notes_dir).expanduser())
    if args.server is not None:
        config.server_url = args.server.strip().rstrip("/")
    if args.api_key is not None:
        config.api_key = args.api_key.strip()
    if args.editor is not None:
        config.editor = args.editor.strip() or config.editor
    if not save_config(config):
        print(
            build_actionable_error(
                "write the config file",
                why=f"{get_config_path()} is not writable",
                next_step="check permissions or set SCRBL_CONFIG to another path",
            ),
            file=sys.stderr,
        )
        return 1
    Path(config.notes_dir).mkdir(parents=True, exist_ok=True)
    print(f"Wrote {get_config_path()}")
    return 0


def _run_config_show(config: UserConfig) -> int:
    print(f"config:     {get_config_path()}")
    print(f"notes_dir:  {config.notes_dir}")
    print(f"server_url: {config.server_url or '(not set)'}")
    print(f"api_key:    {mask_secret(config.api_key) or '(not set)'}")
    print(f"editor:     {config.editor}")
    print(f"theme:      {config.theme_name}")
    return 0


def _resolve_sync_dates(
    args: argparse.Namespace, store: DayStore, remote_dates: list[str] | None
) -> list[date] | None:
    if args.date:
        try:
            return [parse_day(args.date)]
        except ValueError:
            print(f"Error: Invalid date format '{args.date}', expected YYYY-MM-DD", file=sys.stderr)
            return None
    if not args.all:
        return [store.today()]
    if remote_dates is None:
        return store.list_dates()
    days = []
    for value in remote_dates:
        try:
            days.append(parse_day(value))
        except ValueError:
            logger.warning("Skipping malformed remote date %r", value)
    return days


async def _sync_push(sync: SyncService, store: DayStore, days: list[date]) -> int:
    pushed = 0
    async with httpx.AsyncClient() as client:
        for day in days:
            content = store.read_day(day)
            if not content.strip():
                continue
            await sync.push(client=client, day=day, content=content)
            pushed += 1
    return pushed


async def _sync_pull(sync: SyncService, store: DayStore, days: list[date]) -> int:
    pulled = 0
    async with httpx.AsyncClient() as client:
        for day in days:
            content = await sync.pull(client=client, day=day)
            if not content:
                continue
            store.write_day(day, content if content.endswith("\n") else content + "\n")
            pulled += 1
    return pulled


async def _list_remote_dates(sync: SyncService) -> list[str]:
    async with httpx.AsyncClient() as client:
        return await sync.list_dates(client=client)


def _print_sync_not_configured() -> None:
    print(
        build_actionable_error(
            "sync notes",
            why="no server URL is configured",
            next_step="run scrbl init --server URL",
        ),
        file=sys.stderr,
    )


def _run_sync(
    args: argparse.Namespace,
    config: UserConfig,
    *,
    sync_factory: Callable[[UserConfig], SyncService],
) -> int:
    if args.sync_command not in ("push", "pull"):
        print("Error: choose 'sync push' or 'sync pull'", file=sys.stderr)
        return 1
    if not config.sync_enabled:
        _print_sync_not_configured()
        return 1

    store = DayStore(config.notes_dir)
    sync = sync_factory(config)
    try:
        remote_dates = None
        if args.sync_command == "pull" and args.all:
            remote_dates = asyncio.run(_list_remote_dates(sync))
        days = _resolve_sync_dates(args, store, remote_dates)
        if days is None:
            return 1
        if args.sync_command == "push":
            count = asyncio.run(_sync_push(sync, store, days))
            print(f"Pushed {count} day{'s' if count != 1 else ''}")
        else:
            count = asyncio.run(_sync_pull(sync, store, days))
            print(f"Pulled {count} day{'s' if count != 1 else ''}")
    except (httpx.HTTPError, OSError) as exc:
        print(
            build_actionable_error(
                f"sync {args.sync_command}",
                why=describe_exception(exc),
                next_step="check the server URL and API key, then retry",
            ),
            file=sys.stderr,
        )
        return 1
    return 0


def _resolve_summary_day(args: argparse.Namespace, store: DayStore) -> date:
    if args.date:
        return parse_day(args.date)
    dates = store.list_dates()
    if not dates:
        raise SummaryError("no local notes found")
    return dates[-1]


def _run_summary(
    args: argparse.Namespace,
    config: UserConfig,
    *,
    copy_fn: Callable[[str], None],
) -> int:
    store = DayStore(config.notes_dir)
    try:
        day = _resolve_summary_day(args, store)
    except SummaryError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except ValueError:
        print(f"Error: Invalid date format '{args.date}', expected YYYY-MM-DD", file=sys.stderr)
        return 1

    label = format_day_label(day)
    if not store.path_for(day).is_file():
        print(f"Error: local note not found for {label}", file=sys.stderr)
        return 1
    try:
        slack_markdown = format_for_slack(extract_summary_section(store.read_day(day)))
    except SummaryError as exc:
        print(f"Error: {label}: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error: could not read {store.path_for(day)}: {exc}", file=sys.stderr)
        return 1
    try:
        copy_fn(slack_markdown)
    except ClipboardError as exc:
        print(
            build_actionable_error(
                "copy the summary",
                why=str(exc),
                next_step="install wl-copy, xclip or xsel, or rerun with --stdout",
            ),
            file=sys.stderr,
        )
        if args.stdout:
            print(slack_markdown)
        return 1

    print(f"Copied summary for {label} to clipboard")
    if args.stdout:
        print()
        print(slack_markdown)
    return 0


def _run_migrate(
    args: argparse.Namespace,
    config: UserConfig,
    *,
    sync_factory: Callable[[UserConfig], SyncService],
) -> int:
    store = DayStore(config.notes_dir)
    try:
        store.notes_dir.mkdir(parents=True, exist_ok=True)
        report = migrate_store(store, dry_run=args.dry_run)
    except OSError as exc:
        print(
            build_actionable_error(
                "migrate notes",
                why=describe_exception(exc),
                next_step="check the notes directory permissions and retry",
            ),
            file=sys.stderr,
        )
        return 1

    if report.checked == 0:
        print("No local notes to migrate")
        return 0
    verb = "Would migrate" if args.dry_run else "Migrated"
    for day in report.changed:
        print(f"{verb} {format_day_label(day)}")
    if args.dry_run:
        print(f"Dry run complete: {report.checked} checked, {len(report.changed)} would change")
    else:
        print(f"Migration complete: {report.checked} checked, {len(report.changed)} changed")

    if not args.sync:
        return 0
    if args.dry_run:
        print("Dry run: skipping sync")
        return 0
    if not config.sync_enabled:
        _print_sync_not_configured()
        return 1
    try:
        count = asyncio.run(_sync_push(sync_factory(config), store, store.list_dates()))
    except (httpx.HTTPError, OSError) as exc:
        print(
            build_actionable_error(
                "sync push",
                why=describe_exception(exc),
                next_step="check the server URL and API key, then run scrbl sync push --all",
            ),
            file=sys.stderr,
        )
        return 1
    print(f"Pushed {count} day{'s' if count != 1 else ''}")
    return 0


def _default_sync_factory(config: UserConfig) -> SyncService:
    return HttpSyncService(config.server_url, config.api_key)


def main(
    argv: list[str] | None = None,
    *,
    load_config_fn: Callable[[], UserConfig] = load_config,
    configure_logging_fn: Callable[[bool], None] = _configure_logging,
    configure_color_mode_fn: Callable[[str], None] = _configure_color_mode,
    validate_interactive_tty_fn: Callable[[], bool] = _validate_interactive_tty,
    sync_factory: Callable[[UserConfig], SyncService] = _default_sync_factory,
    copy_to_clipboard_fn: Callable[[str], None] = copy_to_clipboard,
    app_factory: Callable[..., Any] | None = None,
) -> int:
    """Main entry point. Returns exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    color_mode = "never" if args.no_color else args.color
    configure_color_mode_fn(color_mode)
    configure_logging_fn(args.debug)
    logger.debug("scrbl starting, command=%s", args.command or "tui")

    config = load_config_fn()

    if args.command == "init":
        return _run_init(args, config)
    if args.command == "config":
        if args.config_command != "show":
            print("Error: choose 'config show'", file=sys.stderr)
            return 1
        return _run_config_show(config)
    if args.command == "sync":
        return _run_sync(args, config, sync_factory=sync_factory)
    if args.command == "summary":
        return _run_summary(args, config, copy_fn=copy_to_clipboard_fn)
    if args.command == "migrate":
        return _run_migrate(args, config, sync_factory=sync_factory)

    # tui (default)
    editor = getattr(args, "editor", None)
    if editor:
        config.editor = editor
    notes_dir = getattr(args, "notes_dir", None)
    if notes_dir:
        config.notes_dir = str(Path(notes_dir).expanduser())

    if not validate_interactive_tty_fn():
        print(
            "Error: scrbl requires an interactive TTY for the full UI.",
            file=sys.stderr,
        )
        print("Next steps:", file=sys.stderr)
        print("  - Run scrbl directly in a terminal session", file=sys.stderr)
        print("  - Use 'scrbl sync push' or 'scrbl config show' for scripts", file=sys.stderr)
        return 2

    if app_factory is None:
        from scrbl.app import ScrblApp as _ScrblApp

        app_factory = _ScrblApp

    app = app_factory(config)
    app.run()
    return 0


__all__ = [
    "_configure_color_mode",
    "_configure_logging",
    "_validate_interactive_tty",
    "main",
]
