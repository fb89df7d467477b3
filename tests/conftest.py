"""
Pytest configuration and shared fixtures.
"""

import calendar
import sys
from datetime import date, timedelta
from pathlib import Path

import pytest
from openpyxl import Workbook
from openpyxl.comments import Comment
from openpyxl.styles import PatternFill

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from models.entries import ImportedPtoEntry, PtoCalcRow  # noqa: E402
from services.calendar_grid import month_grid_origin, sunday_first_weekday  # noqa: E402

LEGEND_COLORS = {
    "Sick": "FFFF0000",
    "Full PTO": "FF00B050",
    "Partial PTO": "FFFFFF00",
    "Planned PTO": "FF00B0F0",
    "Bereavement": "FF7030A0",
    "Jury Duty": "FFFFC000",
}


class SheetBuilder:
    """Lays out an employee sheet the way the legacy workbooks do."""

    def __init__(
        self,
        ws,
        year: int = 2025,
        declared: dict[int, float] | None = None,
        hire_date: str | None = "Hire Date: 01/15/2020",
        legend: bool = True,
        row_shift: dict[int, int] | None = None,
        calc_start_row: int = 42,
    ):
        self.ws = ws
        self.year = year
        self.positions: dict[str, tuple[int, int]] = {}
        declared = declared or {}
        row_shift = row_shift or {}

        ws["B2"] = year
        if hire_date:
            ws["R2"] = hire_date

        if legend:
            ws.cell(row=3, column=26, value="Legend")
            for offset, (label, argb) in enumerate(LEGEND_COLORS.items(), start=1):
                cell = ws.cell(row=3 + offset, column=26, value=label)
                cell.fill = PatternFill(fill_type="solid", fgColor=argb)

        for month in range(1, 13):
            start_col, header_row = month_grid_origin(month)
            row = header_row + 2 + row_shift.get(month, 0)
            day = date(year, month, 1)
            col = start_col + sunday_first_weekday(day)
            for day_number in range(1, calendar.monthrange(year, month)[1] + 1):
                ws.cell(row=row, column=col, value=day_number)
                self.positions[day.isoformat()] = (row, col)
                if sunday_first_weekday(day) == 6:
                    row += 1
                    col = start_col
                else:
                    col += 1
                day += timedelta(days=1)

        for i in range(12):
            ws.cell(row=calc_start_row + i, column=2, value=calendar.month_name[i + 1])
            ws.cell(row=calc_start_row + i, column=19, value=declared.get(i + 1, 0))
        ws.cell(row=calc_start_row, column=12, value=16)  # Carryover

    def paint(self, date_str: str, argb: str | None = None, note: str | None = None):
        """Fill and/or annotate the day cell for a date."""
        row, col = self.positions[date_str]
        cell = self.ws.cell(row=row, column=col)
        if argb:
            cell.fill = PatternFill(fill_type="solid", fgColor=argb)
        if note:
            cell.comment = Comment(note, "HR")
        return cell


@pytest.fixture
def workbook():
    """Empty workbook (its default "Sheet" is not an employee sheet)."""
    return Workbook()


@pytest.fixture
def build_sheet(workbook):
    """Factory for employee sheets inside the shared workbook."""

    def _build(title: str = "Jane Doe", **kwargs) -> SheetBuilder:
        return SheetBuilder(workbook.create_sheet(title), **kwargs)

    return _build


@pytest.fixture
def make_entry():
    """Factory for ImportedPtoEntry with full-day PTO defaults."""

    def _make(entry_date: str, hours: float = 8.0, type: str = "PTO", **kwargs) -> ImportedPtoEntry:
        return ImportedPtoEntry(date=entry_date, type=type, hours=hours, **kwargs)

    return _make


@pytest.fixture
def calc_rows():
    """Factory for twelve PTO Calc rows from a {month: declared hours} dict."""

    def _rows(declared: dict[int, float] | None = None) -> list[PtoCalcRow]:
        declared = declared or {}
        return [PtoCalcRow(month=m, used_hours=declared.get(m, 0.0)) for m in range(1, 13)]

    return _rows
