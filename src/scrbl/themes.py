"""Theme system — color palettes and Textual theme builders."""

from __future__ import annotations

from textual.theme import Theme as TextualTheme

# Muted Dracula variant
DEFAULT_THEME: dict[str, str] = {
    "background": "#2a212c",
    "panel": "#231b25",
    "panel_alt": "#544158",
    "text": "#f8f8f2",
    "muted": "#624c67",
    "cursor": "#9f70a9",
    "accent": "#9580ff",
    "accent_alt": "#aa99ff",
    "banner": "#ffff99",
    "title": "#ff99cc",
    "green": "#8aff80",
    "yellow": "#ffff80",
    "pink": "#ff80bf",
    "red": "#ff9580",
    "guide": "#544158",
}

MONOKAI_THEME: dict[str, str] = {
    "background": "#272822",
    "panel": "#1e1e1e",
    "panel_alt": "#3e3d32",
    "text": "#f8f8f2",
    "muted": "#75715e",
    "cursor": "#a8a8a2",
    "accent": "#66d9ef",
    "accent_alt": "#a6e22e",
    "banner": "#e6db74",
    "title": "#f92672",
    "green": "#a6e22e",
    "yellow": "#e6db74",
    "pink": "#f92672",
    "red": "#fd971f",
    "guide": "#49483e",
}

THEMES: dict[str, dict[str, str]] = {
    "scrbl": DEFAULT_THEME,
    "monokai": MONOKAI_THEME,
}
THEME_NAMES: list[str] = list(THEMES.keys())


def _build_textual_theme(name: str, colors: dict[str, str]) -> TextualTheme:
    """Convert an app color dict to a Textual Theme with custom CSS variables.

    Every palette key is exposed as a ``$th-*`` variable for the app TCSS.
    """
    variables = {f"th-{key.replace('_', '-')}": value for key, value in colors.items()}
    return TextualTheme(
        name=name,
        primary=colors["accent"],
        secondary=colors["accent_alt"],
        accent=colors["title"],
        foreground=colors["text"],
        background=colors["background"],
        surface=colors["panel"],
        panel=colors["panel_alt"],
        warning=colors["yellow"],
        error=colors["red"],
        success=colors["green"],
        dark=True,
        variables=variables,
    )


TEXTUAL_THEMES: dict[str, TextualTheme] = {
    name: _build_textual_theme(name, colors) for name, colors in THEMES.items()
}

THEME_COLORS = DEFAULT_THEME.copy()


def resolve_theme_name(name: str) -> str:
    """Return ``name`` when it is a known theme, else the default theme."""
    return name if name in THEMES else THEME_NAMES[0]


__all__ = [
    "DEFAULT_THEME",
    "MONOKAI_THEME",
    "TEXTUAL_THEMES",
    "THEMES",
    "THEME_COLORS",
    "THEME_NAMES",
    "resolve_theme_name",
]
