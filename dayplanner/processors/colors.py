# File: dayplanner/processors/colors.py
"""
Block color helpers.

Colors are either a named palette key or a literal hex value. Hex values
skip the palette and get a foreground picked from their luminance. Bad
input never raises: these are cosmetic, so they fall back to safe values.
"""

import string
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

BLACK = "#000000"
WHITE = "#ffffff"

DEFAULT_PALETTE_KEY = "slate"

# Palette key -> (background, foreground)
BLOCK_COLORS: Dict[str, Tuple[str, str]] = {
    "red": ("#ef4444", "#fef2f2"),
    "lime": ("#84cc16", "#1a2e05"),
    "teal": ("#14b8a6", "#f0fdfa"),
    "fuchsia": ("#d946ef", "#fdf4ff"),
    "orange": ("#f97316", "#fff7ed"),
    "violet": ("#8b5cf6", "#f5f3ff"),
    "slate": ("#64748b", "#f8fafc"),
    "blue": ("#3b82f6", "#eff6ff"),
}


@dataclass(frozen=True)
class BlockColors:
    background: str
    foreground: str


def _parse_hex(value: Optional[str]) -> Optional[Tuple[int, int, int]]:
    """Parse '#RRGGBB' or '#RGB' into an RGB tuple, None when malformed."""
    if not isinstance(value, str) or not value.startswith('#'):
        return None
    digits = value[1:]
    if len(digits) == 3:
        digits = ''.join(ch * 2 for ch in digits)
    if len(digits) != 6 or not all(ch in string.hexdigits for ch in digits):
        return None
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def is_hex_color(value: Optional[str]) -> bool:
    return _parse_hex(value) is not None


def get_contrasting_text_color(hex_color: Optional[str]) -> str:
    """
    Pick black or white text for a hex background.

    Uses ITU BT.601 luminance (0.299R + 0.587G + 0.114B); 128 and above gets
    black text. Malformed input returns black.
    """
    rgb = _parse_hex(hex_color)
    if rgb is None:
        return BLACK
    r, g, b = rgb
    luminance = (r * 299 + g * 587 + b * 114) / 1000
    return BLACK if luminance >= 128 else WHITE


def hex_to_rgba(hex_color: str, alpha: float) -> str:
    """Convert a hex color to a css rgba() string; malformed input is returned as-is."""
    rgb = _parse_hex(hex_color)
    if rgb is None:
        return hex_color
    r, g, b = rgb
    return f"rgba({r}, {g}, {b}, {alpha})"


def resolve_block_colors(color: Optional[str]) -> BlockColors:
    """Background/foreground pair for a palette key or hex value."""
    if is_hex_color(color):
        return BlockColors(background=color, foreground=get_contrasting_text_color(color))
    key = (color or "").strip().lower()
    background, foreground = BLOCK_COLORS.get(key, BLOCK_COLORS[DEFAULT_PALETTE_KEY])
    return BlockColors(background=background, foreground=foreground)
