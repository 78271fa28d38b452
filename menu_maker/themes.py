"""Theme presets, saved themes and theme key resolution."""

from dataclasses import dataclass
from typing import Dict, List, Optional

from menu_maker.colors import FALLBACK_HEX, normalize_hex, sanitize_hex_color_input


CUSTOM_THEME_KEY = "custom"
SAVED_THEME_PREFIX = "saved:"
DEFAULT_THEME_KEY = "nord"
CUSTOM_THEME_LABEL = "Custom Theme"

# Used when a stored theme file is missing individual colors.
FALLBACK_COLORS = {
    "primary": "#5E81AC",
    "accent": "#D08770",
    "highlight": "#76B3C5",
    "background": "#3B4252",
    "surface": "#4C566A",
    "text": "#ECEFF4",
}

PALETTE_ROLES = ("primary", "accent", "highlight", "background", "surface", "text")


@dataclass(frozen=True)
class ThemeDefinition:
    name: str
    primary: str
    accent: str
    highlight: str
    background: str
    surface: str
    text: str


THEME_PRESETS: Dict[str, ThemeDefinition] = {
    "classic": ThemeDefinition(
        name="Midnight Classic",
        primary="#6FC6D4",
        accent="#0F1A2B",
        highlight="#9FE6EC",
        background="#314A63",
        surface="#416079",
        text="#F2F8FF",
    ),
    "nord": ThemeDefinition(
        name="Nord",
        primary="#5E81AC",
        accent="#D08770",
        highlight="#76B3C5",
        background="#3B4252",
        surface="#4C566A",
        text="#ECEFF4",
    ),
    "gruvbox": ThemeDefinition(
        name="Midnight Mist",
        primary="#66C3CF",
        accent="#0E1828",
        highlight="#96DFE8",
        background="#2C4156",
        surface="#3B5A72",
        text="#F4FBFF",
    ),
    "dracula": ThemeDefinition(
        name="Midnight Dusk",
        primary="#6BC6D7",
        accent="#142033",
        highlight="#A1E6EC",
        background="#2E475F",
        surface="#3E5D78",
        text="#F5FBFF",
    ),
    "monokai": ThemeDefinition(
        name="Midnight Deep",
        primary="#5FC0CD",
        accent="#0D1725",
        highlight="#92DDE7",
        background="#243A50",
        surface="#344F68",
        text="#F6FCFF",
    ),
}


def _drawable(value: str) -> str:
    """Normalize a palette color, replacing anything unparseable with white."""
    return sanitize_hex_color_input(normalize_hex(value)) or FALLBACK_HEX


def is_preset_theme_key(key: str) -> bool:
    return key in THEME_PRESETS


def saved_theme_key(index: int) -> str:
    return f"{SAVED_THEME_PREFIX}{index}"


def parse_saved_theme_key(key: Optional[str]) -> Optional[int]:
    """Return the index of a ``saved:<n>`` key, or None for any other key."""
    if not key or not key.startswith(SAVED_THEME_PREFIX):
        return None
    suffix = key[len(SAVED_THEME_PREFIX):]
    if not suffix.isdigit():
        return None
    return int(suffix)


@dataclass
class Theme:
    """A resolved palette. All colors are kept as normalized hex strings."""

    name: str
    primary: str
    accent: str
    highlight: str
    background: str
    surface: str
    text: str

    @classmethod
    def from_hexes(
        cls,
        name: str,
        primary: str,
        accent: str,
        highlight: str,
        background: str,
        surface: str,
        text: str,
    ) -> "Theme":
        return cls(
            name=name,
            primary=_drawable(primary),
            accent=_drawable(accent),
            highlight=_drawable(highlight),
            background=_drawable(background),
            surface=_drawable(surface),
            text=_drawable(text),
        )

    @classmethod
    def from_name(cls, key: str) -> Optional["Theme"]:
        """Build a preset theme. The preset key doubles as the theme name."""
        definition = THEME_PRESETS.get(key)
        if definition is None:
            return None
        return cls.from_hexes(
            key,
            definition.primary,
            definition.accent,
            definition.highlight,
            definition.background,
            definition.surface,
            definition.text,
        )

    @classmethod
    def from_colors(cls, name: str, colors: Dict[str, Optional[str]]) -> "Theme":
        """Build a theme from a partial color mapping, filling gaps with defaults."""
        highlight = colors.get("highlight") or colors.get("accent") or FALLBACK_COLORS["highlight"]
        return cls.from_hexes(
            name,
            colors.get("primary") or FALLBACK_COLORS["primary"],
            colors.get("accent") or FALLBACK_COLORS["accent"],
            highlight,
            colors.get("background") or FALLBACK_COLORS["background"],
            colors.get("surface") or FALLBACK_COLORS["surface"],
            colors.get("text") or FALLBACK_COLORS["text"],
        )

    @classmethod
    def from_saved(cls, saved: "SavedTheme") -> "Theme":
        return cls.from_hexes(
            saved.name,
            saved.primary,
            saved.accent,
            saved.highlight or saved.accent,
            saved.background,
            saved.surface,
            saved.text,
        )

    def colors(self) -> Dict[str, str]:
        return {role: getattr(self, role) for role in PALETTE_ROLES}


@dataclass
class SavedTheme:
    """A named, user-created palette persisted in the menu document."""

    name: str
    primary: str
    accent: str
    background: str
    surface: str
    text: str
    highlight: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict) -> "SavedTheme":
        return cls(
            name=str(data.get("name", "")),
            primary=str(data.get("primary", "")),
            accent=str(data.get("accent", "")),
            background=str(data.get("background", "")),
            surface=str(data.get("surface", "")),
            text=str(data.get("text", "")),
            highlight=data.get("highlight"),
        )

    @classmethod
    def from_theme(cls, theme: Theme) -> "SavedTheme":
        return cls(
            name=theme.name,
            primary=theme.primary,
            accent=theme.accent,
            background=theme.background,
            surface=theme.surface,
            text=theme.text,
            highlight=theme.highlight,
        )

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "name": self.name,
            "primary": self.primary,
            "accent": self.accent,
            "background": self.background,
            "surface": self.surface,
            "text": self.text,
            "highlight": self.highlight,
        }


@dataclass(frozen=True)
class ThemeOption:
    """One selectable row of the settings theme list."""

    key: str
    label: str
    primary: str
    accent: str
    highlight: str
    background: str
    surface: str
    text: str

    @classmethod
    def from_theme(cls, key: str, label: str, theme: Theme) -> "ThemeOption":
        return cls(
            key=key,
            label=label,
            primary=theme.primary,
            accent=theme.accent,
            highlight=theme.highlight,
            background=theme.background,
            surface=theme.surface,
            text=theme.text,
        )

    @property
    def is_saved(self) -> bool:
        return parse_saved_theme_key(self.key) is not None


def default_saved_theme() -> SavedTheme:
    """The ``default`` saved theme every menu document carries."""
    theme = Theme.from_name(DEFAULT_THEME_KEY) or Theme.from_colors("default", FALLBACK_COLORS)
    saved = SavedTheme.from_theme(theme)
    saved.name = "default"
    return saved


def resolve_theme_key(
    stored: Optional[str], theme: Theme, saved_themes: List[SavedTheme]
) -> str:
    """Validate a persisted theme key against the current saved theme list."""
    if stored:
        if stored == CUSTOM_THEME_KEY or is_preset_theme_key(stored):
            return stored
        index = parse_saved_theme_key(stored)
        if index is not None and index < len(saved_themes):
            return stored
    for index, saved in enumerate(saved_themes):
        if saved.name == theme.name:
            return saved_theme_key(index)
    if is_preset_theme_key(theme.name):
        return theme.name
    return CUSTOM_THEME_KEY


def materialize_theme(key: str, live_theme: Theme, saved_themes: List[SavedTheme]) -> Theme:
    """Turn a resolved key into a palette, falling back to the live custom theme."""
    if key == CUSTOM_THEME_KEY:
        return live_theme
    index = parse_saved_theme_key(key)
    if index is not None:
        if index < len(saved_themes):
            return Theme.from_saved(saved_themes[index])
        return live_theme
    return Theme.from_name(key) or live_theme


def theme_options(
    saved_themes: List[SavedTheme], active_key: str, live_theme: Theme
) -> List[ThemeOption]:
    """Presets, then saved themes, then the unsaved custom theme when it is active."""
    options = [
        ThemeOption(
            key=key,
            label=definition.name,
            primary=definition.primary,
            accent=definition.accent,
            highlight=definition.highlight,
            background=definition.background,
            surface=definition.surface,
            text=definition.text,
        )
        for key, definition in THEME_PRESETS.items()
    ]
    for index, saved in enumerate(saved_themes):
        options.append(
            ThemeOption.from_theme(saved_theme_key(index), saved.name, Theme.from_saved(saved))
        )
    if active_key == CUSTOM_THEME_KEY:
        options.append(ThemeOption.from_theme(CUSTOM_THEME_KEY, CUSTOM_THEME_LABEL, live_theme))
    return options


def upsert_saved_theme(saved_themes: List[SavedTheme], saved: SavedTheme) -> int:
    """Overwrite the saved theme with the same name, or append. Returns its index."""
    for index, existing in enumerate(saved_themes):
        if existing.name == saved.name:
            saved_themes[index] = saved
            return index
    saved_themes.append(saved)
    return len(saved_themes) - 1


def renumber_theme_key(key: str, deleted_index: int) -> Optional[str]:
    """Adjust a theme key after the saved theme at ``deleted_index`` was removed.

    Returns None when the key referenced the deleted theme itself.
    """
    index = parse_saved_theme_key(key)
    if index is None or index < deleted_index:
        return key
    if index == deleted_index:
        return None
    return saved_theme_key(index - 1)
