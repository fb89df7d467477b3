#!/usr/bin/env python3
"""
Import legacy PTO spreadsheets.

Reads every employee sheet of an .xlsx workbook, reconciles the color-coded
calendar against the declared PTO Calc totals (column S), and prints the
warnings and resolutions for each sheet. With --persist, the reconciled
entries are upserted into the SQLite database.

Usage:
    uv run python src/scripts/import_workbook.py <workbook.xlsx> [--persist]

Example:
    uv run python src/scripts/import_workbook.py data/legacy/pto_2025.xlsx --persist
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DB_PATH
from core.database import get_connection, init_database, persist_import
from services.sheets import import_workbook


def print_section(title: str, messages: list[str]):
    if not messages:
        return
    print(f"\n{title} ({len(messages)}):")
    for message in messages:
        print(f"  - {message}")


def main():
    parser = argparse.ArgumentParser(
        description="Import and reconcile legacy PTO spreadsheets"
    )
    parser.add_argument(
        "input_file",
        type=Path,
        help="Path to the .xlsx workbook",
    )
    parser.add_argument(
        "--persist",
        action="store_true",
        help=f"Upsert reconciled entries into the database ({DB_PATH})",
    )

    args = parser.parse_args()

    try:
        result = import_workbook(args.input_file)

        for sheet in result.sheets:
            print(f"\n{'=' * 80}\n{sheet.employee.name} ({sheet.employee.year})")
            print(
                f"  {len(sheet.pto_entries)} entries, {sheet.total_hours:.1f} PTO hours, "
                f"rate {sheet.employee.pto_rate:g}/day"
            )
            print_section("Warnings", sheet.warnings)
            print_section("Resolved", sheet.resolved)
            print_section(
                "Months needing review",
                [a.note for a in sheet.acknowledgements if a.status == "warning"],
            )

        sheet_warnings = {w for sheet in result.sheets for w in sheet.warnings}
        print_section("Failed sheets", [w for w in result.warnings if w not in sheet_warnings])

        if args.persist:
            conn = get_connection(init_database(DB_PATH))
            try:
                count = persist_import(conn, result, args.input_file.name)
            finally:
                conn.close()
            print(f"\nUpserted {count} PTO entries into {DB_PATH}")
    except Exception as e:
        print(f"\nError: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
