"""Internal service layer for app orchestration extraction."""

from scrbl.services.sync_service import list_remote_dates, note_url, pull_note, push_note

__all__ = [
    "list_remote_dates",
    "note_url",
    "pull_note",
    "push_note",
]
