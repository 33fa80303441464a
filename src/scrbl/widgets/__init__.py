"""Widget classes extracted from app.py for modular UI composition."""

from scrbl.widgets.chrome import (
    ContextFooter,
    build_header_text,
    build_mode_label,
    build_status_line,
)
from scrbl.widgets.compose import ComposePane, build_compose_text
from scrbl.widgets.stream import StreamPane, build_stream_text

__all__ = [
    "ComposePane",
    "ContextFooter",
    "StreamPane",
    "build_compose_text",
    "build_header_text",
    "build_mode_label",
    "build_status_line",
    "build_stream_text",
]
