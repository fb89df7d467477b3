"""
Calendar grid parsing.

Walks the 12-month grid of an employee sheet and classifies every day
cell by its fill color and note:

- legend color (exact or approximate)  -> ImportedPtoEntry
- note saying "worked"                 -> WorkedCell
- other note                           -> UnmatchedNotedCell (+ UnmatchedColoredCell if filled)
- off-legend fill, weekend             -> WorkedCell (inferred, warned)
- off-legend fill, weekday             -> UnmatchedColoredCell
"""

import calendar
import re
from datetime import date

from core.config import (
    COL_STARTS,
    DAY1_SCAN_RANGE,
    DEFAULT_DAY_HOURS,
    NEUTRAL_FILLS,
    ROW_GROUP_STARTS,
)
from models.entries import (
    CalendarParseResult,
    EntrySource,
    ImportedPtoEntry,
    UnmatchedColoredCell,
    UnmatchedNotedCell,
    WorkedCell,
)
from services.colors import find_closest_legend_color, pattern_fill, resolve_color_to_argb
from services.notes import flatten_note, is_strict_hours_match, note_text, parse_hours_from_note
from services.pto_calc import cell_number

WORKED_RE = re.compile(r"worked", re.IGNORECASE)


def month_grid_origin(month: int) -> tuple[int, int]:
    """Return (start column, header row) of a month's block in the grid."""
    m0 = month - 1
    return COL_STARTS[m0 // 4], ROW_GROUP_STARTS[m0 % 4]


def sunday_first_weekday(d: date) -> int:
    """Day of week with Sunday = 0 ... Saturday = 6."""
    return (d.weekday() + 1) % 7


def match_legend_color(
    fill,
    legend: dict[str, str],
    theme_colors: dict[int, str] | None,
) -> tuple[str | None, str | None, bool]:
    """
    Match a pattern fill against the legend, foreground first.

    Returns:
        Tuple of (PTO type, matched ARGB, is_approximate)
    """
    for color in (fill.fgColor, fill.bgColor):
        argb = resolve_color_to_argb(color, theme_colors)
        if not argb:
            continue
        if argb in legend:
            return legend[argb], argb, False
        approx_type = find_closest_legend_color(argb, legend)
        if approx_type:
            return approx_type, argb, True
    return None, None, False


def off_legend_color(fill, theme_colors: dict[int, str] | None) -> str | None:
    """Non-neutral color of an unmatched fill, if any."""
    argb = resolve_color_to_argb(fill.fgColor, theme_colors) or resolve_color_to_argb(
        fill.bgColor, theme_colors
    )
    if argb and argb not in NEUTRAL_FILLS:
        return argb
    return None


def locate_day_one(ws, month: int, year: int, sheet_name: str, result: CalendarParseResult) -> int | None:
    """
    Find the row holding day 1 of a month, scanning nearby rows when the
    sheet layout has drifted.

    Returns:
        The row number, or None when day 1 cannot be found
    """
    start_col, header_row = month_grid_origin(month)
    expected_row = header_row + 2
    day1_col = start_col + sunday_first_weekday(date(year, month, 1))
    month_name = calendar.month_name[month]

    if cell_number(ws.cell(row=expected_row, column=day1_col).value) == 1:
        return expected_row

    result.warnings.append(
        f'Sheet "{sheet_name}" {month_name}: day 1 not found at expected row {expected_row}, '
        f"col {day1_col}. Scanning nearby rows..."
    )
    for scan_row in range(expected_row - DAY1_SCAN_RANGE, expected_row + DAY1_SCAN_RANGE + 1):
        if scan_row < 1 or scan_row == expected_row:
            continue
        if cell_number(ws.cell(row=scan_row, column=day1_col).value) == 1:
            offset = scan_row - expected_row
            direction = "below" if offset > 0 else "above"
            result.resolved.append(
                f'Sheet "{sheet_name}" {month_name}: resolved row anomaly, day 1 found '
                f"{abs(offset)} row(s) {direction} expected position (row {scan_row} "
                f"instead of {expected_row})."
            )
            return scan_row

    result.warnings.append(
        f'Sheet "{sheet_name}" {month_name}: could not locate day 1 within '
        f"±{DAY1_SCAN_RANGE} rows of expected position. Skipping month."
    )
    return None


def build_entry(
    date_str: str,
    pto_type: str,
    argb: str,
    is_approximate: bool,
    note: str,
    partial_pto_colors: set[str],
) -> ImportedPtoEntry:
    """Create a calendar entry for a legend-matched cell."""
    hours = DEFAULT_DAY_HOURS
    is_note_derived = False
    if note:
        note_hours = parse_hours_from_note(note)
        if note_hours is not None:
            hours = note_hours
            is_note_derived = is_strict_hours_match(note)

    audit = []
    if is_approximate:
        audit.append(f"Color matched via approximate (resolved={argb}).")
    if note:
        audit.append(f'Cell note: "{flatten_note(note)}"')

    return ImportedPtoEntry(
        date=date_str,
        type=pto_type,
        hours=hours,
        notes=" ".join(audit),
        is_partial_pto_color=argb in partial_pto_colors,
        is_note_derived=is_note_derived,
        source=EntrySource.COLOR_APPROX if is_approximate else EntrySource.COLOR_EXACT,
        cell_note=note,
        color=argb,
    )


def parse_calendar_grid(
    ws,
    year: int,
    legend: dict[str, str],
    theme_colors: dict[int, str] | None = None,
    partial_pto_colors: set[str] | None = None,
) -> CalendarParseResult:
    """Parse the 12-month calendar grid of an employee sheet."""
    partial_pto_colors = partial_pto_colors or set()
    sheet_name = ws.title
    result = CalendarParseResult()

    for month in range(1, 13):
        start_col, _ = month_grid_origin(month)
        row = locate_day_one(ws, month, year, sheet_name, result)
        if row is None:
            continue

        first = date(year, month, 1)
        col = start_col + sunday_first_weekday(first)
        _, days_in_month = calendar.monthrange(year, month)

        for day in range(1, days_in_month + 1):
            current = date(year, month, day)
            dow = sunday_first_weekday(current)
            date_str = current.isoformat()
            cell = ws.cell(row=row, column=col)
            note = note_text(cell)
            fill = pattern_fill(cell)

            pto_type, argb, is_approximate = (None, None, False)
            if fill is not None:
                pto_type, argb, is_approximate = match_legend_color(fill, legend, theme_colors)

            if pto_type:
                result.entries.append(
                    build_entry(date_str, pto_type, argb, is_approximate, note, partial_pto_colors)
                )
            elif note:
                if WORKED_RE.search(note):
                    result.worked_cells.append(WorkedCell(date=date_str, note=note))
                else:
                    result.unmatched_noted_cells.append(UnmatchedNotedCell(date=date_str, note=note))
                    color = off_legend_color(fill, theme_colors) if fill is not None else None
                    if color:
                        result.unmatched_colored_cells.append(
                            UnmatchedColoredCell(date=date_str, color=color, note=note)
                        )
            elif fill is not None:
                color = off_legend_color(fill, theme_colors)
                if color and dow in (0, 6):
                    result.worked_cells.append(
                        WorkedCell(
                            date=date_str,
                            note=f"(inferred weekend work from cell color {color})",
                        )
                    )
                    result.warnings.append(
                        f'Sheet "{sheet_name}" {calendar.month_name[month]}: non-legend colored '
                        f"weekend cell on {date_str} (color={color}). Treating as potential weekend work."
                    )
                elif color:
                    result.unmatched_colored_cells.append(
                        UnmatchedColoredCell(date=date_str, color=color)
                    )

            col += 1
            if dow == 6:
                row += 1
                col = start_col

    return result
