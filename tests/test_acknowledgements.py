"""Tests for monthly acknowledgements."""

from io import BytesIO

from models.entries import ImportedAcknowledgement
from services.acknowledgements import (
    generate_import_acknowledgements,
    merge_acknowledgements,
    parse_acknowledgements,
)
from services.sheets import import_workbook

GREEN = "FF00B050"


def ack(month, type, status=None, note=""):
    return ImportedAcknowledgement(month=month, type=type, status=status, note=note)


class TestParseAcknowledgements:
    def test_checkmarks(self, build_sheet):
        sheet = build_sheet()
        sheet.ws["X42"] = "✓"
        sheet.ws["Y42"] = " ✓ "
        sheet.ws["X44"] = "✓"
        sheet.ws["Y44"] = "x"

        assert parse_acknowledgements(sheet.ws, 2025) == [
            ack("2025-01", "employee"),
            ack("2025-01", "admin"),
            ack("2025-03", "employee"),
        ]

    def test_shifted_section(self, build_sheet):
        sheet = build_sheet(calc_start_row=43)
        sheet.ws["Y54"] = "✓"

        assert parse_acknowledgements(sheet.ws, 2025) == [ack("2025-12", "admin")]


class TestGenerateImportAcknowledgements:
    def test_matching_month_is_signed_off(self, make_entry, calc_rows):
        entries = [make_entry("2025-01-06"), make_entry("2025-01-07", 4.0)]

        acks = generate_import_acknowledgements(entries, calc_rows({1: 12.05}), 2025, "Jane Doe")

        assert len(acks) == 24
        assert acks[:2] == [ack("2025-01", "employee"), ack("2025-01", "admin")]

    def test_mismatched_month_needs_review(self, make_entry, calc_rows):
        entries = [make_entry("2025-02-03"), make_entry("2025-02-04", type="Sick")]

        acks = generate_import_acknowledgements(entries, calc_rows({2: 12}), 2025, "Jane Doe")

        february = [a for a in acks if a.month == "2025-02"]
        assert february == [
            ack(
                "2025-02",
                "employee",
                "warning",
                "Calendar shows 8h but column S declares 12h (Δ=-4h) for Jane Doe month 2. "
                "Requires manual review.",
            )
        ]

    def test_over_colored_month_shows_plus_sign(self, make_entry, calc_rows):
        entries = [make_entry("2025-03-03"), make_entry("2025-03-04")]

        acks = generate_import_acknowledgements(entries, calc_rows({3: 8}), 2025, "Jane Doe")

        (march,) = [a for a in acks if a.month == "2025-03"]
        assert "(Δ=+8h)" in march.note


class TestMergeAcknowledgements:
    def test_generated_records_win(self):
        generated = [ack("2025-01", "employee"), ack("2025-01", "admin")]
        from_sheet = [ack("2025-01", "admin"), ack("2024-12", "employee")]

        assert merge_acknowledgements(generated, from_sheet) == [
            ack("2025-01", "employee"),
            ack("2025-01", "admin"),
            ack("2024-12", "employee"),
        ]

    def test_admin_checkmark_dropped_for_warning_month(self):
        generated = [ack("2025-01", "employee", "warning", "Requires manual review.")]
        from_sheet = [ack("2025-01", "employee"), ack("2025-01", "admin")]

        assert merge_acknowledgements(generated, from_sheet) == generated


def test_import_reports_acknowledgements_and_rate(workbook, build_sheet):
    sheet = build_sheet(declared={1: 8})
    sheet.paint("2025-01-06", GREEN)
    sheet.paint("2025-01-07", GREEN)
    sheet.ws["X42"] = "✓"
    sheet.ws["Y42"] = "✓"
    sheet.ws.cell(row=53, column=6, value=0.65)

    buffer = BytesIO()
    workbook.save(buffer)
    result = import_workbook(buffer.getvalue(), silent=True)

    (imported,) = result.sheets
    january = [a for a in imported.acknowledgements if a.month == "2025-01"]
    assert [(a.type, a.status) for a in january] == [("employee", "warning")]
    assert len(imported.acknowledgements) == 23

    assert imported.employee.pto_rate == 0.8
    assert any(
        m.startswith('PTO rate mismatch for "Jane Doe": spreadsheet=0.65, computed=0.8 ')
        for m in imported.resolved
    )
