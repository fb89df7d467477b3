"""
Cell color resolution and legend color matching.

Cell fills arrive as openpyxl `Color` objects that may be an explicit
ARGB, a theme palette index with tint, or a legacy indexed color. All of
them are resolved to an absolute "FFRRGGBB" string before matching.
"""

import math
import re

from openpyxl.styles import PatternFill
from openpyxl.styles.colors import COLOR_INDEX, Color

from core.config import (
    DEFAULT_OFFICE_THEME,
    MAX_COLOR_DISTANCE,
    MIN_CHROMA_FOR_APPROX,
    THEME_XML_ORDER_TO_INDEX,
)

THEME_BLOCK_RE = re.compile(
    r"<a:(dk1|lt1|dk2|lt2|accent[1-6]|hlink|folHlink)>(.*?)</a:\1>", re.DOTALL
)
SYS_COLOR_RE = re.compile(r'<a:sysClr[^>]*lastClr="([A-Fa-f0-9]{6})"')
SRGB_COLOR_RE = re.compile(r'<a:srgbClr val="([A-Fa-f0-9]{6})"')


def parse_theme_colors(theme_xml: str | bytes | None) -> dict[int, str]:
    """
    Parse the theme palette from a workbook's theme1.xml.

    Returns:
        Dict of theme index -> ARGB. Falls back to the default Office
        palette when the XML is missing or has no color blocks.
    """
    if not theme_xml:
        return dict(DEFAULT_OFFICE_THEME)
    if isinstance(theme_xml, bytes):
        theme_xml = theme_xml.decode("utf-8", errors="replace")

    colors = {}
    for xml_index, match in enumerate(THEME_BLOCK_RE.finditer(theme_xml)):
        if xml_index >= len(THEME_XML_ORDER_TO_INDEX):
            break
        block = match.group(2)
        hex_match = SYS_COLOR_RE.search(block) or SRGB_COLOR_RE.search(block)
        if hex_match:
            colors[THEME_XML_ORDER_TO_INDEX[xml_index]] = f"FF{hex_match.group(1).upper()}"

    return colors or dict(DEFAULT_OFFICE_THEME)


def split_rgb(argb: str) -> tuple[int, int, int]:
    """Split "AARRGGBB" or "RRGGBB" into integer channels."""
    hex_part = argb[-6:]
    return int(hex_part[0:2], 16), int(hex_part[2:4], 16), int(hex_part[4:6], 16)


def apply_tint(argb: str, tint: float) -> str:
    """Lighten (positive tint) or darken (negative tint) a color."""
    r, g, b = split_rgb(argb)

    if tint > 0:
        r, g, b = (round(c + (255 - c) * tint) for c in (r, g, b))
    else:
        r, g, b = (round(c * (1 + tint)) for c in (r, g, b))

    def clamp(v: int) -> int:
        return max(0, min(255, v))

    return f"FF{clamp(r):02X}{clamp(g):02X}{clamp(b):02X}"


def resolve_color_to_argb(
    color: Color | None,
    theme_colors: dict[int, str] | None = None,
) -> str | None:
    """
    Resolve an openpyxl color to an absolute "FFRRGGBB" string.

    The alpha byte is normalized to FF since openpyxl stores six-digit
    colors with a 00 alpha and Excel ignores fill alpha.
    """
    if color is None:
        return None
    theme_colors = theme_colors or DEFAULT_OFFICE_THEME

    if color.type == "rgb":
        rgb = color.rgb
        if not isinstance(rgb, str) or len(rgb) < 6:
            return None
        return f"FF{rgb[-6:].upper()}"

    if color.type == "theme":
        base = theme_colors.get(color.theme)
        if base is None:
            return None
        return apply_tint(base, color.tint) if color.tint else base

    if color.type == "indexed":
        if color.indexed is None or color.indexed >= len(COLOR_INDEX):
            return None
        return f"FF{COLOR_INDEX[color.indexed][-6:].upper()}"

    return None


def pattern_fill(cell) -> PatternFill | None:
    """The cell's pattern fill, or None for unfilled and gradient cells."""
    # Loaded cells wrap their fill in a StyleProxy, so check the tag, not the class
    fill = cell.fill
    if getattr(fill, "tagname", None) == PatternFill.tagname and fill.patternType:
        return fill
    return None


def color_distance(argb1: str, argb2: str) -> float:
    """Euclidean distance between two colors in RGB space."""
    r1, g1, b1 = split_rgb(argb1)
    r2, g2, b2 = split_rgb(argb2)
    return math.sqrt((r1 - r2) ** 2 + (g1 - g2) ** 2 + (b1 - b2) ** 2)


def find_closest_legend_color(cell_argb: str, legend: dict[str, str]) -> str | None:
    """
    Approximate-match a color against the legend.

    Low-chroma colors (greys, white, black) never match. Otherwise the
    nearest legend color strictly within MAX_COLOR_DISTANCE wins.

    Returns:
        The matched PTO type, or None
    """
    r, g, b = split_rgb(cell_argb)
    if max(r, g, b) - min(r, g, b) < MIN_CHROMA_FOR_APPROX:
        return None

    best_distance = MAX_COLOR_DISTANCE
    best_type = None
    for legend_argb, pto_type in legend.items():
        distance = color_distance(cell_argb, legend_argb)
        if distance < best_distance:
            best_distance = distance
            best_type = pto_type

    return best_type
