"""
Monthly acknowledgements: checkmarks on the sheet and sign-offs derived
from the reconciled calendar.
"""

from core.config import ACK_MARK, ACK_TOLERANCE, ADMIN_ACK_COL, EMP_ACK_COL
from models.entries import ImportedAcknowledgement, ImportedPtoEntry, PtoCalcRow
from services.pto_calc import find_pto_calc_start_row
from services.reconciliation import fmt, round2, tracked_total


def _is_checked(cell) -> bool:
    return cell.value is not None and str(cell.value).strip() == ACK_MARK


def parse_acknowledgements(ws, year: int) -> list[ImportedAcknowledgement]:
    """Read the employee (X) and admin (Y) checkmarks from the PTO Calc rows."""
    start_row = find_pto_calc_start_row(ws)
    acks = []
    for month in range(1, 13):
        row = start_row + month - 1
        if _is_checked(ws.cell(row=row, column=EMP_ACK_COL)):
            acks.append(ImportedAcknowledgement(month=f"{year}-{month:02d}", type="employee"))
        if _is_checked(ws.cell(row=row, column=ADMIN_ACK_COL)):
            acks.append(ImportedAcknowledgement(month=f"{year}-{month:02d}", type="admin"))
    return acks


def generate_import_acknowledgements(
    entries: list[ImportedPtoEntry],
    pto_calc_rows: list[PtoCalcRow],
    year: int,
    sheet_name: str,
) -> list[ImportedAcknowledgement]:
    """
    Sign off every month whose calendar total matches column S.

    A matching month gets both an employee and an admin acknowledgement.
    A mismatched month only gets an employee acknowledgement flagged as a
    warning, so it stays open for admin review.
    """
    acks = []
    for row in pto_calc_rows:
        month = f"{year}-{row.month:02d}"
        calendar_total = tracked_total(entries, row.month)
        delta = round2(calendar_total - row.used_hours)

        if abs(delta) <= ACK_TOLERANCE:
            acks.append(ImportedAcknowledgement(month=month, type="employee"))
            acks.append(ImportedAcknowledgement(month=month, type="admin"))
            continue

        sign = "+" if delta > 0 else ""
        acks.append(
            ImportedAcknowledgement(
                month=month,
                type="employee",
                status="warning",
                note=(
                    f"Calendar shows {fmt(calendar_total)}h but column S declares "
                    f"{fmt(row.used_hours)}h (Δ={sign}{fmt(delta)}h) for {sheet_name} "
                    f"month {row.month}. Requires manual review."
                ),
            )
        )
    return acks


def merge_acknowledgements(
    imported: list[ImportedAcknowledgement], from_sheet: list[ImportedAcknowledgement]
) -> list[ImportedAcknowledgement]:
    """
    Combine generated acknowledgements with the sheet's own checkmarks.

    Generated records win on the same (month, type). A sheet admin
    checkmark is dropped for a month flagged as a warning.
    """
    taken = {(a.month, a.type) for a in imported}
    warning_months = {a.month for a in imported if a.type == "employee" and a.status == "warning"}
    return [
        *imported,
        *(
            a
            for a in from_sheet
            if (a.month, a.type) not in taken
            and not (a.type == "admin" and a.month in warning_months)
        ),
    ]
