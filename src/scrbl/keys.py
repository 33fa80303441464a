"""Translate Textual key events into neovim input notation."""

from __future__ import annotations

# Textual key name -> nvim_input key notation
NAMED_KEYS: dict[str, str] = {
    "enter": "<CR>",
    "tab": "<Tab>",
    "shift+tab": "<S-Tab>",
    "backspace": "<BS>",
    "escape": "<Esc>",
    "space": "<Space>",
    "up": "<Up>",
    "down": "<Down>",
    "left": "<Left>",
    "right": "<Right>",
    "home": "<Home>",
    "end": "<End>",
    "pageup": "<PageUp>",
    "pagedown": "<PageDown>",
    "delete": "<Del>",
    "insert": "<Insert>",
}

MODIFIER_PREFIXES: dict[str, str] = {
    "ctrl": "C",
    "alt": "M",
}


def _escape_character(character: str) -> str:
    # nvim_input treats "<" as the start of a key code
    return "<lt>" if character == "<" else character


def key_to_nvim(key: str, character: str | None = None) -> str:
    """Return the nvim_input sequence for a key event, or ``""`` if unmappable.

    >>> key_to_nvim("enter")
    '<CR>'
    >>> key_to_nvim("ctrl+w")
    '<C-w>'
    >>> key_to_nvim("a", "a")
    'a'
    """
    named = NAMED_KEYS.get(key)
    if named is not None:
        return named

    modifier, sep, base = key.partition("+")
    if sep and modifier in MODIFIER_PREFIXES and len(base) == 1:
        return f"<{MODIFIER_PREFIXES[modifier]}-{_escape_character(base)}>"

    if character and len(character) == 1 and character.isprintable():
        return _escape_character(character)
    return ""


__all__ = ["MODIFIER_PREFIXES", "NAMED_KEYS", "key_to_nvim"]
