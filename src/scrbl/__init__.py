"""scrbl - day-by-day markdown notes with an embedded neovim composer."""

from scrbl.composer import (
    Composer,
    ComposerError,
    ComposerStartError,
    SessionClosedError,
    is_session_closed_error,
)
from scrbl.config import load_config, save_config
from scrbl.dayfiles import DayStore
from scrbl.keys import key_to_nvim
from scrbl.models import (
    ComposeKind,
    ComposerRequests,
    ComposeSnapshot,
    ComposeTarget,
    DayDocument,
    LoadState,
    Mode,
    PendingRequests,
    StreamView,
    UserConfig,
)
from scrbl.stream import StreamNavigator, build_stream_view

__version__ = "0.1.0"

__all__ = [
    "ComposeKind",
    "ComposeSnapshot",
    "ComposeTarget",
    "Composer",
    "ComposerError",
    "ComposerRequests",
    "ComposerStartError",
    "DayDocument",
    "DayStore",
    "LoadState",
    "Mode",
    "PendingRequests",
    "SessionClosedError",
    "StreamNavigator",
    "StreamView",
    "UserConfig",
    "__version__",
    "build_stream_view",
    "is_session_closed_error",
    "key_to_nvim",
    "load_config",
    "save_config",
]
