"""Brand asset export.

Turns stored brand data into the asset bundle returned by the
``get_brand_assets`` tool, in the formats the caller asked for.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any
from urllib.parse import quote_plus

from colater_mcp.models.brand import Brand, LogoGeneration
from colater_mcp.services.brand_context import DEFAULT_FONT, FONT_WEIGHTS, first_palette
from colater_mcp.utils.colors import hex_to_rgb, rgb_to_hsl

LOGO_DIMENSIONS = {"width": 512, "height": 512}
FONT_FALLBACKS = ["system-ui", "sans-serif"]
DEFAULT_PALETTE = ["#000000"]


def _token_name(index: int) -> str:
    return "brand-primary" if index == 0 else f"brand-accent-{index}"


def palette_hexes(logos: Sequence[LogoGeneration]) -> list[str]:
    """Hex colours of the newest logo's first colour version, or black."""
    return first_palette(logos) or list(DEFAULT_PALETTE)


def build_logos(brand: Brand, logos: Sequence[LogoGeneration]) -> dict[str, Any]:
    primary_url = brand.logo_url or (logos[0].logo_url if logos else "")
    return {
        "primary": {"url": primary_url, "dimensions": dict(LOGO_DIMENSIONS)},
        "variations": [
            {
                "id": logo.id,
                "type": "color" if index == 0 else "bw",
                "url": logo.logo_url or "",
            }
            for index, logo in enumerate(logos)
        ],
    }


def build_colors(palette: Sequence[str], color_format: str = "hex") -> dict[str, Any]:
    """Palette in one export format, plus usage labels for every colour."""
    colors: dict[str, Any] = {
        "usage": [
            {
                "color": hex_value,
                "name": f"Color {index + 1}",
                "usage": "Primary brand color" if index == 0 else "Accent color",
            }
            for index, hex_value in enumerate(palette)
        ]
    }

    if color_format == "rgb":
        colors["rgb"] = [dict(zip("rgb", hex_to_rgb(h))) for h in palette]
    elif color_format == "hsl":
        colors["hsl"] = [list(rgb_to_hsl(*hex_to_rgb(h))) for h in palette]
    elif color_format == "tailwind":
        colors["tailwind"] = {_token_name(i): h for i, h in enumerate(palette)}
    elif color_format == "css":
        lines = "\n".join(f"  --{_token_name(i)}: {h};" for i, h in enumerate(palette))
        colors["css"] = f":root {{\n{lines}\n}}"
    elif color_format == "figma":
        colors["figma"] = {}
        for i, h in enumerate(palette):
            r, g, b = hex_to_rgb(h)
            colors["figma"][_token_name(i)] = {"r": r / 255, "g": g / 255, "b": b / 255, "a": 1}
    else:
        colors["hex"] = list(palette)
    return colors


def google_fonts_url(font: str, weights: Iterable[int] = FONT_WEIGHTS) -> str:
    wght = ";".join(str(w) for w in weights)
    return f"https://fonts.googleapis.com/css2?family={quote_plus(font)}:wght@{wght}&display=swap"


def build_fonts(brand: Brand, font_format: str = "names") -> dict[str, Any]:
    font = brand.font or DEFAULT_FONT
    primary: dict[str, Any] = {"name": font, "weights": list(FONT_WEIGHTS)}
    if font_format == "google_fonts_url":
        primary["googleFontsUrl"] = google_fonts_url(font)
    elif font_format == "css_imports":
        primary["cssImport"] = f"@import url('{google_fonts_url(font)}');"
    return {"primary": primary, "fallbacks": list(FONT_FALLBACKS)}


def build_brand_assets(
    brand: Brand,
    logos: Sequence[LogoGeneration],
    asset_types: Iterable[str],
    formats: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Assemble the requested asset groups.

    Args:
        brand: Brand record
        logos: Logo generations, newest first
        asset_types: Any of logo/colors/fonts/mockups
        formats: Per-group format choice, e.g. ``{"colors": "css"}``

    Returns:
        Dict with one key per requested group (``logos``, ``colors``,
        ``fonts``, ``mockups``)
    """
    formats = formats or {}
    requested = set(asset_types)
    assets: dict[str, Any] = {}

    if "logo" in requested:
        assets["logos"] = build_logos(brand, logos)
    if "colors" in requested:
        assets["colors"] = build_colors(palette_hexes(logos), formats.get("colors") or "hex")
    if "fonts" in requested:
        assets["fonts"] = build_fonts(brand, formats.get("fonts") or "names")
    if "mockups" in requested:
        # No mockup storage behind this layer
        assets["mockups"] = []
    return assets
