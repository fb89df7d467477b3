"""
PTO Calculation section parsing (declared monthly totals, carryover).
"""

from core.config import (
    PTO_CALC_CARRYOVER_COL,
    PTO_CALC_LABEL_COL,
    PTO_CALC_START_ROWS,
    PTO_CALC_USED_HOURS_COL,
)
from models.entries import PtoCalcRow


def cell_number(value) -> float | None:
    """Numeric value of a cell, accepting numeric strings."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def find_pto_calc_start_row(ws) -> int:
    """
    Find the January row of the PTO Calculation section.

    Raises:
        ValueError: If "January" is not in column B on any expected row
    """
    for row in PTO_CALC_START_ROWS:
        value = ws.cell(row=row, column=PTO_CALC_LABEL_COL).value
        if value is not None and str(value).strip().lower() == "january":
            return row

    cells = " or ".join(f"B{row}" for row in PTO_CALC_START_ROWS)
    raise ValueError(
        f'PTO Calc validation failed on sheet "{ws.title}": could not find "January" at {cells}.'
    )


def parse_pto_calc_used_hours(ws) -> list[PtoCalcRow]:
    """Read the twelve declared monthly totals from column S."""
    start_row = find_pto_calc_start_row(ws)
    rows = []
    for i in range(12):
        value = ws.cell(row=start_row + i, column=PTO_CALC_USED_HOURS_COL).value
        rows.append(PtoCalcRow(month=i + 1, used_hours=cell_number(value) or 0.0))
    return rows


def parse_carryover_hours(ws) -> float:
    """Carryover hours from column L of the January row."""
    start_row = find_pto_calc_start_row(ws)
    value = ws.cell(row=start_row, column=PTO_CALC_CARRYOVER_COL).value
    return cell_number(value) or 0.0
