"""Hex color helpers and category color presets."""

import string
from dataclasses import dataclass
from typing import Dict, List, Optional

from menu_maker.errors import ValidationError


FALLBACK_HEX = "#ffffff"

DEFAULT_COLOR_PAIRS = [
    {"name": "Teal Glow", "background": "#034e68", "text": "#caf0f8"},
    {"name": "Amber Pop", "background": "#6f1d1b", "text": "#ffe5d9"},
    {"name": "Purple Mist", "background": "#240046", "text": "#f8f9fa"},
    {"name": "Forest Tones", "background": "#283618", "text": "#fefae0"},
    {"name": "Slate Shine", "background": "#2b2d42", "text": "#edf2f4"},
]

FALLBACK_PRESET = {"name": "Default", "background": "#034e68", "text": "#caf0f8"}


def normalize_hex(value: Optional[str]) -> str:
    """Force a leading '#', replacing anything not 7 characters long with white.

    Only used for internal defaults; user input goes through
    :func:`sanitize_hex_color_input` instead.
    """
    cleaned = (value or "").strip()
    if not cleaned.startswith("#"):
        cleaned = f"#{cleaned}"
    if len(cleaned) != 7:
        return FALLBACK_HEX
    return cleaned


def sanitize_hex_color_input(value: Optional[str]) -> Optional[str]:
    """Return ``#RRGGBB`` for valid input, or None."""
    if not value or not isinstance(value, str):
        return None
    color = value.strip()
    if not color.startswith("#"):
        color = f"#{color}"
    if len(color) != 7:
        return None
    if not all(ch in string.hexdigits for ch in color[1:]):
        return None
    return color


def hex_strings_equal(a: str, b: str) -> bool:
    """Compare two hex strings case-insensitively; invalid values never match."""
    left = sanitize_hex_color_input(a)
    right = sanitize_hex_color_input(b)
    if left is None or right is None:
        return False
    return left.lower() == right.lower()


def parse_color_field(value: str) -> Optional[str]:
    """Validate an optional color field. Blank means None."""
    trimmed = (value or "").strip()
    if not trimmed:
        return None
    color = sanitize_hex_color_input(trimmed)
    if color is None:
        raise ValidationError("Colors must use #RRGGBB format")
    return color


def require_color_field(value: str, label: str) -> str:
    """Validate a color field that must be present."""
    color = parse_color_field(value)
    if color is None:
        raise ValidationError(f"{label} color is required when creating a custom theme")
    return color


def sanitize_color_pair(color_pair: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
    """Validate a stored ``{background, text}`` dict, keeping whichever half is valid."""
    if not color_pair or not isinstance(color_pair, dict):
        return None
    background = sanitize_hex_color_input(color_pair.get("background"))
    text = sanitize_hex_color_input(color_pair.get("text"))
    if background is None and text is None:
        return None
    return {"background": background, "text": text}


@dataclass
class NamedColorPair:
    """A user-added category color pair as stored in ``custom_colors``."""

    name: Optional[str] = None
    background: Optional[str] = None
    text: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict) -> "NamedColorPair":
        return cls(
            name=data.get("name"),
            background=sanitize_hex_color_input(data.get("background")),
            text=sanitize_hex_color_input(data.get("text")),
        )

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"name": self.name, "background": self.background, "text": self.text}


@dataclass
class ColorPreset:
    """A selectable category palette entry.

    ``custom_index`` points back into the user's ``custom_colors`` list; it is
    None for the built-in presets, which cannot be deleted.
    """

    name: str
    background: str
    text: str
    custom_index: Optional[int] = None

    def matches(self, background: str, text: str) -> bool:
        return hex_strings_equal(self.background, background) and hex_strings_equal(
            self.text, text
        )


def available_color_presets(custom_colors: List[NamedColorPair]) -> List[ColorPreset]:
    """Built-in presets followed by every complete user color pair."""
    presets = [
        ColorPreset(pair["name"], normalize_hex(pair["background"]), normalize_hex(pair["text"]))
        for pair in DEFAULT_COLOR_PAIRS
    ]
    for idx, pair in enumerate(custom_colors):
        if not pair.background or not pair.text:
            continue
        presets.append(
            ColorPreset(
                pair.name or f"Custom Theme {idx + 1}",
                normalize_hex(pair.background),
                normalize_hex(pair.text),
                custom_index=idx,
            )
        )
    if not presets:
        presets.append(
            ColorPreset(
                FALLBACK_PRESET["name"],
                FALLBACK_PRESET["background"],
                FALLBACK_PRESET["text"],
            )
        )
    return presets
