"""
Employee sheet detection and header parsing.
"""

import re
from datetime import date, datetime

from core.config import (
    BUMP_MONTH,
    DEFAULT_PTO_RATE,
    HIRE_DATE_CELL,
    HIRE_DATE_FORMATS,
    HIRE_DATE_SCAN_COLS,
    PTO_CALC_RATE_COL,
    PTO_EARNING_SCHEDULE,
    PTO_RATE_TOLERANCE,
    YEAR_CELL,
)
from models.entries import EmployeeImportInfo
from services.pto_calc import cell_number, find_pto_calc_start_row, parse_carryover_hours

HIRE_DATE_RE = re.compile(r"hire\s*date:\s*(.+)", re.IGNORECASE)
PARENTHETICAL_SUFFIX_RE = re.compile(r"\s*\(.*\)\s*$")


def is_employee_sheet(ws) -> bool:
    """Employee sheets carry a "Hire Date" label on row 2."""
    for col in HIRE_DATE_SCAN_COLS:
        value = ws.cell(row=2, column=col).value
        if value is not None and "hire date" in str(value).lower():
            return True
    return False


def parse_date_string(value: str) -> str | None:
    """Parse a hire date in any of the accepted formats to YYYY-MM-DD."""
    for fmt in HIRE_DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date().isoformat()
        except ValueError:
            continue
    return None


def parse_hire_date(raw, sheet_name: str) -> tuple[str | None, list[str]]:
    """
    Parse the hire date cell.

    Returns:
        Tuple of (hire date or None, resolution messages)
    """
    if isinstance(raw, (datetime, date)):
        return raw.strftime("%Y-%m-%d"), []
    if raw is None:
        return None, []

    match = HIRE_DATE_RE.search(str(raw))
    if not match:
        return None, []

    date_part = match.group(1).strip()
    parsed = parse_date_string(date_part)
    if parsed:
        return parsed, []

    # Strip trailing markers like "(FT)" or "(PT)"
    stripped = PARENTHETICAL_SUFFIX_RE.sub("", date_part).strip()
    if stripped != date_part:
        parsed = parse_date_string(stripped)
        if parsed:
            return parsed, [
                f'Sheet "{sheet_name}": Hire date "{date_part}" contained parenthetical '
                f"suffix, parsed as {parsed}"
            ]
    return None, []


def parse_employee_info(ws) -> tuple[EmployeeImportInfo, list[str]]:
    """
    Parse employee metadata from the sheet header.

    Returns:
        Tuple of (employee info, resolution messages)

    Raises:
        ValueError: If the year in B2 is missing or not a number
    """
    name = ws.title.strip()
    year = cell_number(ws[YEAR_CELL].value)
    if not year:
        raise ValueError(f'Could not determine year from {YEAR_CELL} on sheet "{name}"')

    hire_date, resolved = parse_hire_date(ws[HIRE_DATE_CELL].value, name)
    info = EmployeeImportInfo(
        name=name,
        year=int(year),
        hire_date=hire_date,
        carryover_hours=parse_carryover_hours(ws),
        spreadsheet_pto_rate=parse_spreadsheet_pto_rate(ws),
    )
    return info, resolved


# =============================================================================
# PTO ACCRUAL RATE
# =============================================================================


def parse_spreadsheet_pto_rate(ws) -> float:
    """Daily PTO rate from column F of the December PTO Calc row (0 if absent)."""
    try:
        start_row = find_pto_calc_start_row(ws)
    except ValueError:
        return 0.0
    value = ws.cell(row=start_row + 11, column=PTO_CALC_RATE_COL).value
    return cell_number(value) or 0.0


def first_bump_year(hire: date) -> int:
    """
    Year of the first July 1 rate bump.

    Hires in January-June get their first bump the following July; hires
    from July 1 onward wait one more year.
    """
    if hire.month < BUMP_MONTH:
        return hire.year + 1
    return hire.year + 2


def effective_pto_tier(hire_date: str, as_of: str) -> dict:
    """Accrual tier in effect on `as_of` for an employee hired on `hire_date`."""
    hire = date.fromisoformat(hire_date)
    as_of_date = date.fromisoformat(as_of)

    last_bump_year = as_of_date.year
    if as_of_date < date(as_of_date.year, BUMP_MONTH, 1):
        last_bump_year -= 1

    bumps = max(0, last_bump_year - first_bump_year(hire) + 1)
    return PTO_EARNING_SCHEDULE[min(bumps, len(PTO_EARNING_SCHEDULE) - 1)]


def compute_pto_rate(info: EmployeeImportInfo) -> tuple[float, str | None]:
    """
    Daily PTO rate for the sheet year, computed from the hire date.

    Falls back to the spreadsheet rate (or the base rate) when the hire
    date is unknown. A spreadsheet rate that disagrees with the computed
    one is overridden and reported.

    Returns:
        Tuple of (rate, mismatch message or None)
    """
    if not info.hire_date or not info.year:
        return info.spreadsheet_pto_rate or DEFAULT_PTO_RATE, None

    computed = effective_pto_tier(info.hire_date, f"{info.year}-12-31")["daily_rate"]
    spreadsheet = info.spreadsheet_pto_rate
    if spreadsheet > 0 and abs(spreadsheet - computed) > PTO_RATE_TOLERANCE:
        return computed, (
            f'PTO rate mismatch for "{info.name}": spreadsheet={spreadsheet:g}, '
            f"computed={computed:g} (hired {info.hire_date}, year {info.year}). "
            f"Using computed value."
        )
    return computed, None
