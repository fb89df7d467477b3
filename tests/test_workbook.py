"""Tests for sheet parsing and workbook import."""

from io import BytesIO

import pytest

from models.entries import EmployeeImportInfo, EntrySource, UnmatchedNotedCell, WorkedCell
from services.calendar_grid import parse_calendar_grid
from services.employee import (
    compute_pto_rate,
    effective_pto_tier,
    is_employee_sheet,
    parse_employee_info,
    parse_spreadsheet_pto_rate,
)
from services.legend import parse_legend, parse_partial_pto_colors
from services.pto_calc import find_pto_calc_start_row, parse_pto_calc_used_hours
from services.sheets import import_workbook

GREEN = "FF00B050"
YELLOW = "FFFFFF00"
RED = "FFFF0000"
OLIVE = "FF808000"  # Not in the legend and not close to any legend color


def parse_grid(builder):
    legend = parse_legend(builder.ws)
    return parse_calendar_grid(
        builder.ws, builder.year, legend, None, parse_partial_pto_colors(builder.ws)
    )


def workbook_bytes(workbook) -> bytes:
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


# =============================================================================
# HEADER, LEGEND AND PTO CALC
# =============================================================================


class TestLegend:
    def test_parse_legend(self, build_sheet):
        sheet = build_sheet()

        assert parse_legend(sheet.ws) == {
            RED: "Sick",
            GREEN: "PTO",
            YELLOW: "PTO",
            "FF00B0F0": "PTO",
            "FF7030A0": "Bereavement",
            "FFFFC000": "Jury Duty",
        }

    def test_partial_pto_colors(self, build_sheet):
        assert parse_partial_pto_colors(build_sheet().ws) == {YELLOW}

    def test_missing_legend_raises(self, build_sheet):
        with pytest.raises(ValueError, match="Legend header not found"):
            parse_legend(build_sheet(legend=False).ws)


class TestEmployeeInfo:
    def test_parse_employee_info(self, build_sheet):
        info, resolved = parse_employee_info(build_sheet().ws)

        assert info.name == "Jane Doe"
        assert info.year == 2025
        assert info.hire_date == "2020-01-15"
        assert info.carryover_hours == 16.0
        assert resolved == []

    def test_hire_date_with_suffix(self, build_sheet):
        info, resolved = parse_employee_info(build_sheet(hire_date="Hire Date: 3/2/2019 (FT)").ws)

        assert info.hire_date == "2019-03-02"
        assert "parenthetical" in resolved[0]

    def test_missing_year_raises(self, build_sheet):
        sheet = build_sheet()
        sheet.ws["B2"] = None

        with pytest.raises(ValueError, match="Could not determine year"):
            parse_employee_info(sheet.ws)

    def test_employee_sheet_detection(self, build_sheet):
        assert is_employee_sheet(build_sheet().ws)
        assert not is_employee_sheet(build_sheet("Summary", hire_date=None).ws)


class TestPtoRate:
    def test_spreadsheet_rate_from_december_row(self, build_sheet):
        sheet = build_sheet()
        sheet.ws.cell(row=53, column=6, value=0.8)

        info, _ = parse_employee_info(sheet.ws)

        assert info.spreadsheet_pto_rate == 0.8

    def test_non_numeric_spreadsheet_rate(self, build_sheet):
        sheet = build_sheet()
        sheet.ws.cell(row=53, column=6, value="see HR")

        assert parse_spreadsheet_pto_rate(sheet.ws) == 0.0

    def test_missing_pto_calc_section(self, build_sheet):
        sheet = build_sheet()
        sheet.ws["B42"] = None

        assert parse_spreadsheet_pto_rate(sheet.ws) == 0.0

    @pytest.mark.parametrize(
        "hire_date, as_of, expected",
        [
            ("2024-03-01", "2024-12-31", 0.65),
            ("2024-03-01", "2025-06-30", 0.65),
            ("2024-03-01", "2025-07-01", 0.68),
            ("2024-07-01", "2025-12-31", 0.65),
            ("2024-07-01", "2026-07-01", 0.68),
            ("1990-01-01", "2025-12-31", 0.92),
        ],
    )
    def test_effective_tier(self, hire_date, as_of, expected):
        assert effective_pto_tier(hire_date, as_of)["daily_rate"] == expected

    def test_matching_rate(self):
        info = EmployeeImportInfo(
            name="Jane Doe", year=2026, hire_date="2023-02-13", spreadsheet_pto_rate=0.74
        )

        assert compute_pto_rate(info) == (0.74, None)

    def test_mismatched_rate_uses_computed(self):
        info = EmployeeImportInfo(
            name="Jane Doe", year=2018, hire_date="2001-08-05", spreadsheet_pto_rate=0.65
        )

        rate, message = compute_pto_rate(info)

        assert rate == 0.92
        assert message == (
            'PTO rate mismatch for "Jane Doe": spreadsheet=0.65, computed=0.92 '
            "(hired 2001-08-05, year 2018). Using computed value."
        )

    def test_no_hire_date_keeps_spreadsheet_rate(self):
        info = EmployeeImportInfo(name="Jane Doe", year=2025, spreadsheet_pto_rate=0.83)

        assert compute_pto_rate(info) == (0.83, None)

    def test_no_rate_at_all(self):
        assert compute_pto_rate(EmployeeImportInfo(name="Jane Doe", year=2025)) == (0.65, None)


class TestPtoCalc:
    def test_declared_hours(self, build_sheet):
        sheet = build_sheet(declared={1: 16, 3: 4.5})
        sheet.ws.cell(row=53, column=19, value="n/a")

        rows = parse_pto_calc_used_hours(sheet.ws)

        assert len(rows) == 12
        assert rows[0].used_hours == 16.0
        assert rows[2].used_hours == 4.5
        assert rows[11].used_hours == 0.0

    def test_shifted_section(self, build_sheet):
        assert find_pto_calc_start_row(build_sheet(calc_start_row=43).ws) == 43

    def test_missing_january_raises(self, build_sheet):
        sheet = build_sheet()
        sheet.ws["B42"] = "Jan"

        with pytest.raises(ValueError, match="PTO Calc validation failed"):
            find_pto_calc_start_row(sheet.ws)


# =============================================================================
# CALENDAR GRID
# =============================================================================


class TestCalendarGrid:
    def test_legend_colored_cells(self, build_sheet):
        sheet = build_sheet()
        sheet.paint("2025-01-06", GREEN)
        sheet.paint("2025-02-03", YELLOW)

        grid = parse_grid(sheet)

        assert [(e.date, e.type, e.hours) for e in grid.entries] == [
            ("2025-01-06", "PTO", 8.0),
            ("2025-02-03", "PTO", 8.0),
        ]
        assert not grid.entries[0].is_partial_pto_color
        assert grid.entries[1].is_partial_pto_color
        assert grid.entries[0].source is EntrySource.COLOR_EXACT
        assert grid.entries[0].color == GREEN

    def test_note_hours_pin_entry(self, build_sheet):
        sheet = build_sheet()
        sheet.paint("2025-02-04", YELLOW, note="2 hrs")
        sheet.paint("2025-02-05", YELLOW, note="left at 3")

        grid = parse_grid(sheet)

        pinned, loose = grid.entries
        assert (pinned.hours, pinned.is_note_derived) == (2.0, True)
        assert (loose.hours, loose.is_note_derived) == (3.0, False)

    def test_approximate_color(self, build_sheet):
        sheet = build_sheet()
        sheet.paint("2025-03-03", "FF10A060")

        (entry,) = parse_grid(sheet).entries

        assert entry.type == "PTO"
        assert entry.source is EntrySource.COLOR_APPROX
        assert "Color matched via approximate (resolved=FF10A060)" in entry.notes

    def test_notes_without_legend_color(self, build_sheet):
        sheet = build_sheet()
        sheet.paint("2025-03-04", note="dentist")
        sheet.paint("2025-01-11", note="worked 4 hours")

        grid = parse_grid(sheet)

        assert grid.entries == []
        assert grid.unmatched_noted_cells == [UnmatchedNotedCell(date="2025-03-04", note="dentist")]
        assert grid.worked_cells == [WorkedCell(date="2025-01-11", note="worked 4 hours")]

    def test_off_legend_colors(self, build_sheet):
        sheet = build_sheet()
        sheet.paint("2025-03-05", OLIVE)
        sheet.paint("2025-03-06", OLIVE, note="dentist")
        sheet.paint("2025-03-08", OLIVE)  # Saturday

        grid = parse_grid(sheet)

        assert [(c.date, c.note) for c in grid.unmatched_colored_cells] == [
            ("2025-03-05", ""),
            ("2025-03-06", "dentist"),
        ]
        assert [c.date for c in grid.unmatched_noted_cells] == ["2025-03-06"]
        assert [c.date for c in grid.worked_cells] == ["2025-03-08"]
        assert "non-legend colored weekend cell on 2025-03-08" in grid.warnings[0]

    def test_drifted_month_is_found(self, build_sheet):
        sheet = build_sheet(row_shift={1: 1})
        sheet.paint("2025-01-06", GREEN)

        grid = parse_grid(sheet)

        assert [e.date for e in grid.entries] == ["2025-01-06"]
        assert any("day 1 not found" in w for w in grid.warnings)
        assert any("1 row(s) below expected position" in r for r in grid.resolved)


# =============================================================================
# WORKBOOK IMPORT
# =============================================================================


@pytest.fixture
def legacy_workbook(workbook, build_sheet):
    sheet = build_sheet(declared={1: 16, 2: 6, 3: 12, 4: 8})
    sheet.paint("2025-01-06", GREEN)
    sheet.paint("2025-01-07", GREEN)
    sheet.paint("2025-02-03", YELLOW)
    sheet.paint("2025-02-04", YELLOW)
    sheet.paint("2025-03-03", GREEN)
    sheet.paint("2025-03-04", note="4 hrs")
    for day in ("01", "02", "03", "04"):
        sheet.paint(f"2025-04-{day}", RED)

    build_sheet("Broken", legend=False)
    build_sheet("Summary", hire_date=None)
    return workbook


class TestImportWorkbook:
    def test_import_from_bytes(self, legacy_workbook):
        result = import_workbook(workbook_bytes(legacy_workbook), silent=True)

        assert [s.employee.name for s in result.sheets] == ["Jane Doe"]
        sheet = result.sheets[0]
        hours = {e.date: (e.type, e.hours) for e in sheet.pto_entries}
        assert hours["2025-02-03"] == ("PTO", 3.0)
        assert hours["2025-02-04"] == ("PTO", 3.0)
        assert hours["2025-03-04"] == ("PTO", 4.0)
        assert hours["2025-04-03"] == ("Sick", 8.0)
        assert hours["2025-04-04"] == ("PTO", 8.0)
        assert len(sheet.pto_entries) == 10
        assert sheet.total_hours == 42.0
        assert len(sheet.warnings) == 1
        assert "Cannot back-calculate" in sheet.warnings[0]

    def test_failed_and_skipped_sheets(self, legacy_workbook):
        result = import_workbook(workbook_bytes(legacy_workbook), silent=True)

        assert result.failed_sheets == ["Broken"]
        assert result.skipped_sheets == ["Sheet", "Summary"]
        assert any(w.startswith('Sheet "Broken": import failed') for w in result.warnings)

    def test_import_from_path(self, legacy_workbook, tmp_path, capsys):
        path = tmp_path / "pto.xlsx"
        legacy_workbook.save(path)

        result = import_workbook(path)

        assert len(result.sheets) == 1
        assert "Imported 1 employee sheets (1 failed, 2 skipped)" in capsys.readouterr().out

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            import_workbook(tmp_path / "missing.xlsx")
