"""
Employee sheet import orchestration.

Parses each employee sheet of a workbook and runs the reconciliation
phases over it. A failure while importing one sheet is recorded as a
warning for that sheet and never stops the remaining sheets.
"""

from io import BytesIO
from pathlib import Path
from typing import BinaryIO

from openpyxl import load_workbook

from models.entries import (
    PhaseResult,
    ReconciliationResult,
    SheetImportResult,
    SheetInputs,
    WorkbookImportResult,
)
from services.acknowledgements import (
    generate_import_acknowledgements,
    merge_acknowledgements,
    parse_acknowledgements,
)
from services.calendar_grid import parse_calendar_grid
from services.colors import parse_theme_colors
from services.employee import compute_pto_rate, is_employee_sheet, parse_employee_info
from services.legend import parse_legend, parse_partial_pto_colors
from services.pto_calc import parse_pto_calc_used_hours
from services.reconciliation import (
    adjust_partial_days,
    detect_over_coloring,
    infer_weekend_partial_hours,
    override_type_from_note,
    process_worked_cells,
    reclassify_bereavement_by_column_s,
    reclassify_sick_as_pto,
    reclassify_sick_by_column_s,
    reconcile_partial_pto,
    reconcile_unmatched_colored_cells,
)


# =============================================================================
# RECONCILIATION
# =============================================================================


def reconcile_sheet(inputs: SheetInputs) -> ReconciliationResult:
    """
    Run every reconciliation phase over one sheet's parsed calendar data.

    Phase order matters: sick reclassification feeds the PTO totals the
    partial-day adjustment balances, and joint inference claims worked
    cells before the plain credit phase sees them.
    """
    name = inputs.sheet_name
    rows = inputs.pto_calc_rows
    warnings: list[str] = []
    resolved: list[str] = []

    def collect(phase: PhaseResult) -> PhaseResult:
        warnings.extend(phase.warnings)
        resolved.extend(phase.resolved)
        return phase

    overridden = collect(override_type_from_note(inputs.entries, name))
    worked_cells = [*inputs.worked_cells, *overridden.worked_cells]

    sick = collect(reclassify_sick_as_pto(overridden.entries, name))
    adjusted = collect(adjust_partial_days(sick.entries, rows, name))
    from_notes = collect(
        reconcile_partial_pto(adjusted.entries, inputs.unmatched_noted_cells, rows, name)
    )

    joint = collect(infer_weekend_partial_hours(from_notes.entries, worked_cells, rows, name))
    remaining_worked = [wc for wc in worked_cells if wc.date not in joint.handled_worked_dates]
    credited = collect(process_worked_cells(remaining_worked, joint.entries, rows, name))

    recovered = collect(
        reconcile_unmatched_colored_cells(
            credited.entries, inputs.unmatched_colored_cells, rows, name
        )
    )
    sick_by_s = collect(
        reclassify_sick_by_column_s(
            recovered.entries, rows, name,
            sick_allowance_exhausted=sick.sick_allowance_exhausted,
        )
    )
    bereavement = collect(reclassify_bereavement_by_column_s(sick_by_s.entries, rows, name))
    collect(detect_over_coloring(bereavement.entries, rows, name))

    entries = sorted(bereavement.entries, key=lambda e: e.date)
    return ReconciliationResult(entries=entries, warnings=warnings, resolved=resolved)


# =============================================================================
# SHEET PARSING
# =============================================================================


def parse_employee_sheet(ws, theme_colors: dict[int, str] | None = None) -> SheetImportResult:
    """
    Parse and reconcile one employee worksheet (no database interaction).

    Raises:
        ValueError: If the sheet is missing its legend, year or PTO Calc section
    """
    warnings: list[str] = []
    resolved: list[str] = []

    legend = parse_legend(ws, theme_colors)
    if not legend:
        warnings.append(f'No legend colors found on sheet "{ws.title}"')

    employee, employee_resolved = parse_employee_info(ws)
    resolved.extend(employee_resolved)
    if not employee.hire_date:
        warnings.append(f'Could not determine hire date from sheet "{ws.title}"')

    employee.pto_rate, rate_mismatch = compute_pto_rate(employee)
    if rate_mismatch:
        resolved.append(rate_mismatch)

    partial_pto_colors = parse_partial_pto_colors(ws, theme_colors)
    grid = parse_calendar_grid(ws, employee.year, legend, theme_colors, partial_pto_colors)
    warnings.extend(grid.warnings)
    resolved.extend(grid.resolved)

    pto_calc_rows = parse_pto_calc_used_hours(ws)
    reconciled = reconcile_sheet(
        SheetInputs(
            sheet_name=ws.title,
            entries=grid.entries,
            pto_calc_rows=pto_calc_rows,
            unmatched_noted_cells=grid.unmatched_noted_cells,
            unmatched_colored_cells=grid.unmatched_colored_cells,
            worked_cells=grid.worked_cells,
        )
    )
    warnings.extend(reconciled.warnings)
    resolved.extend(reconciled.resolved)

    acknowledgements = merge_acknowledgements(
        generate_import_acknowledgements(reconciled.entries, pto_calc_rows, employee.year, ws.title),
        parse_acknowledgements(ws, employee.year),
    )

    return SheetImportResult(
        employee=employee,
        pto_entries=reconciled.entries,
        pto_calc_rows=pto_calc_rows,
        acknowledgements=acknowledgements,
        warnings=warnings,
        resolved=resolved,
    )


# =============================================================================
# WORKBOOK IMPORT
# =============================================================================


def import_workbook(source: Path | BinaryIO | bytes, silent: bool = False) -> WorkbookImportResult:
    """
    Import every employee sheet in a workbook.

    Args:
        source: Path, file object or raw bytes of an .xlsx workbook
        silent: If True, suppress print statements (for API usage)

    Raises:
        FileNotFoundError: Input path doesn't exist
    """
    if isinstance(source, Path):
        if not source.exists():
            raise FileNotFoundError(f"Input file not found: {source}")
        if not silent:
            print(f"Reading workbook: {source}")
        workbook_source = str(source)
    elif isinstance(source, bytes):
        workbook_source = BytesIO(source)
    else:
        workbook_source = source

    wb = load_workbook(workbook_source, data_only=True)
    theme_colors = parse_theme_colors(wb.loaded_theme)
    result = WorkbookImportResult()

    for ws in wb.worksheets:
        if not is_employee_sheet(ws):
            result.skipped_sheets.append(ws.title)
            continue

        try:
            sheet = parse_employee_sheet(ws, theme_colors)
        except Exception as e:
            result.failed_sheets.append(ws.title)
            result.warnings.append(f'Sheet "{ws.title}": import failed: {e}')
            if not silent:
                print(f"  - {ws.title}: FAILED ({e})")
            continue

        result.sheets.append(sheet)
        result.warnings.extend(sheet.warnings)
        result.resolved.extend(sheet.resolved)
        if not silent:
            print(
                f"  - {ws.title}: {len(sheet.pto_entries)} entries, "
                f"{sheet.total_hours:.1f} PTO hours, {len(sheet.warnings)} warnings"
            )

    if not silent:
        print(
            f"Imported {len(result.sheets)} employee sheets "
            f"({len(result.failed_sheets)} failed, {len(result.skipped_sheets)} skipped)"
        )

    return result
