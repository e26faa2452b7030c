"""Colour conversions for exported palettes."""

from __future__ import annotations

import colorsys
import re

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$")


def hex_to_rgb(value: str) -> tuple[int, int, int]:
    """Parse ``#rrggbb``. Anything unparseable is black."""
    match = _HEX_RE.match(value.strip()) if value else None
    if match is None:
        return 0, 0, 0
    return tuple(int(part, 16) for part in match.groups())


def rgb_to_hsl(r: int, g: int, b: int) -> tuple[int, int, int]:
    """Degrees, percent saturation, percent lightness."""
    h, l, s = colorsys.rgb_to_hls(r / 255, g / 255, b / 255)
    return round(h * 360), round(s * 100), round(l * 100)
