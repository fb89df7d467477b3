"""
Legend parsing: maps the legend's fill colors (column Z) to PTO types.
"""

from core.config import (
    LEGEND_COL,
    LEGEND_LABEL_TO_PTO_TYPE,
    LEGEND_MAX_ENTRIES,
    LEGEND_SCAN_MAX_ROW,
    PARTIAL_PTO_LABEL,
)
from services.colors import pattern_fill, resolve_color_to_argb


def cell_text(cell) -> str:
    """Stripped string value of a cell ("" when empty)."""
    return str(cell.value).strip() if cell.value is not None else ""


def find_legend_header_row(ws) -> int | None:
    """Find the row holding the "Legend" header in column Z."""
    for row in range(1, LEGEND_SCAN_MAX_ROW + 1):
        if cell_text(ws.cell(row=row, column=LEGEND_COL)).lower() == "legend":
            return row
    return None


def _legend_rows(ws):
    """Yield (label, cell) for each labelled row under the legend header."""
    header_row = find_legend_header_row(ws)
    if header_row is None:
        return
    for offset in range(1, LEGEND_MAX_ENTRIES + 1):
        cell = ws.cell(row=header_row + offset, column=LEGEND_COL)
        label = cell_text(cell)
        if not label:
            break
        yield label, cell


def _fill_argb(cell, theme_colors: dict[int, str] | None) -> str | None:
    fill = pattern_fill(cell)
    if fill is None:
        return None
    return resolve_color_to_argb(fill.fgColor, theme_colors)


def parse_legend(ws, theme_colors: dict[int, str] | None = None) -> dict[str, str]:
    """
    Build a color -> PTO type map from the legend section.

    Raises:
        ValueError: If the sheet has no legend header
    """
    if find_legend_header_row(ws) is None:
        raise ValueError(f'Legend header not found in column Z on sheet "{ws.title}"')

    legend = {}
    for label, cell in _legend_rows(ws):
        pto_type = LEGEND_LABEL_TO_PTO_TYPE.get(label)
        if not pto_type:
            continue
        argb = _fill_argb(cell, theme_colors)
        if argb:
            legend[argb] = pto_type
    return legend


def parse_partial_pto_colors(ws, theme_colors: dict[int, str] | None = None) -> set[str]:
    """Colors whose legend label is "Partial PTO"."""
    colors = set()
    for label, cell in _legend_rows(ws):
        if label != PARTIAL_PTO_LABEL:
            continue
        argb = _fill_argb(cell, theme_colors)
        if argb:
            colors.add(argb)
    return colors
