"""
SQLite database operations for imported PTO data.
"""

import sqlite3
from pathlib import Path

from core.config import DB_PATH
from core.validation import validate_entries
from models.entries import (
    EmployeeImportInfo,
    ImportedAcknowledgement,
    ImportedPtoEntry,
    WorkbookImportResult,
)

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS employees (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT UNIQUE NOT NULL,
        hire_date TEXT,
        year INTEGER,
        carryover_hours REAL DEFAULT 0,
        pto_rate REAL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pto_entries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        employee_id INTEGER NOT NULL,
        date TEXT NOT NULL,
        type TEXT NOT NULL CHECK(type IN ('PTO', 'Sick', 'Bereavement', 'Jury Duty')),
        hours REAL NOT NULL,
        notes TEXT,
        source TEXT,
        update_date TEXT DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(employee_id, date),
        FOREIGN KEY (employee_id) REFERENCES employees(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS acknowledgements (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        employee_id INTEGER NOT NULL,
        month TEXT NOT NULL,
        type TEXT NOT NULL CHECK(type IN ('employee', 'admin')),
        status TEXT CHECK(status IN ('warning')),
        note TEXT,
        UNIQUE(employee_id, month, type),
        FOREIGN KEY (employee_id) REFERENCES employees(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS import_runs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        file_name TEXT,
        sheets_imported INTEGER NOT NULL,
        sheets_failed INTEGER NOT NULL,
        entries_upserted INTEGER NOT NULL,
        create_date TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS import_run_messages (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        import_run_id INTEGER NOT NULL,
        message_type TEXT NOT NULL CHECK(message_type IN ('warning', 'resolved')),
        message TEXT NOT NULL,
        FOREIGN KEY (import_run_id) REFERENCES import_runs(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS api_requests (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        request_id TEXT UNIQUE NOT NULL,
        timestamp TEXT NOT NULL,
        endpoint TEXT NOT NULL,
        method TEXT NOT NULL,
        client_ip TEXT,
        file_size_bytes INTEGER,
        file_name TEXT,
        status_code INTEGER NOT NULL,
        error_code TEXT,
        error_message TEXT,
        processing_time_ms INTEGER NOT NULL,
        sheets_imported INTEGER,
        total_hours REAL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS api_request_details (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        request_id TEXT NOT NULL,
        detail_type TEXT NOT NULL CHECK(
            detail_type IN ('validation_error', 'sheet_processed', 'warning', 'resolved')
        ),
        message TEXT NOT NULL,
        FOREIGN KEY (request_id) REFERENCES api_requests(request_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_pto_entries_employee ON pto_entries(employee_id)",
    "CREATE INDEX IF NOT EXISTS idx_api_requests_timestamp ON api_requests(timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_api_request_details_request ON api_request_details(request_id)",
]


def get_connection(db_path: Path | str = DB_PATH) -> sqlite3.Connection:
    """Get a database connection."""
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def create_tables(conn: sqlite3.Connection):
    """Create all tables and indexes if they don't exist."""
    cursor = conn.cursor()
    for statement in SCHEMA:
        cursor.execute(statement)
    conn.commit()


def init_database(db_path: Path = DB_PATH) -> Path:
    """Create the database file (and its directory) with every table."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    try:
        create_tables(conn)
    finally:
        conn.close()
    return db_path


# Write helpers below never commit; persist_import owns the transaction.


def upsert_employee(conn: sqlite3.Connection, info: EmployeeImportInfo) -> int:
    """Insert or update an employee by name and return employee_id."""
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO employees (name, hire_date, year, carryover_hours, pto_rate)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(name) DO UPDATE SET
            hire_date = excluded.hire_date,
            year = excluded.year,
            carryover_hours = excluded.carryover_hours,
            pto_rate = excluded.pto_rate
        """,
        (info.name, info.hire_date, info.year, info.carryover_hours, info.pto_rate),
    )
    cursor.execute("SELECT id FROM employees WHERE name = ?", (info.name,))
    (employee_id,) = cursor.fetchone()
    return employee_id


def upsert_pto_entries(
    conn: sqlite3.Connection, employee_id: int, entries: list[ImportedPtoEntry]
) -> int:
    """
    Insert or update PTO entries keyed by (employee, date).

    Returns:
        Number of entries written

    Raises:
        ValueError: If the entries violate the persistence contract
    """
    errors = validate_entries(entries)
    if errors:
        raise ValueError("\n".join(errors))

    conn.executemany(
        """
        INSERT INTO pto_entries (employee_id, date, type, hours, notes, source)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(employee_id, date) DO UPDATE SET
            type = excluded.type,
            hours = excluded.hours,
            notes = excluded.notes,
            source = excluded.source,
            update_date = CURRENT_TIMESTAMP
        """,
        [
            (employee_id, e.date, e.type, e.hours, e.notes or None, e.source.value)
            for e in entries
        ],
    )
    return len(entries)


def upsert_acknowledgements(
    conn: sqlite3.Connection, employee_id: int, acks: list[ImportedAcknowledgement]
) -> int:
    """
    Add acknowledgements that are not on record yet.

    Existing sign-offs for the same (month, type) are left untouched.

    Returns:
        Number of acknowledgements added
    """
    added = 0
    for ack in acks:
        cursor = conn.execute(
            """
            INSERT INTO acknowledgements (employee_id, month, type, status, note)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(employee_id, month, type) DO NOTHING
            """,
            (employee_id, ack.month, ack.type, ack.status, ack.note or None),
        )
        added += cursor.rowcount
    return added


def record_import_run(
    conn: sqlite3.Connection,
    file_name: str | None,
    result: WorkbookImportResult,
    entries_upserted: int,
) -> int:
    """Record an import run with its warnings and resolutions; return run id."""
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO import_runs (file_name, sheets_imported, sheets_failed, entries_upserted)
        VALUES (?, ?, ?, ?)
        """,
        (file_name, len(result.sheets), len(result.failed_sheets), entries_upserted),
    )
    run_id = cursor.lastrowid

    messages = [("warning", m) for m in result.warnings] + [("resolved", m) for m in result.resolved]
    cursor.executemany(
        "INSERT INTO import_run_messages (import_run_id, message_type, message) VALUES (?, ?, ?)",
        [(run_id, message_type, message) for message_type, message in messages],
    )
    return run_id


def persist_import(
    conn: sqlite3.Connection, result: WorkbookImportResult, file_name: str | None = None
) -> int:
    """
    Upsert every imported sheet and record the run in one transaction.

    Every sheet is validated before anything is written, and any failure
    rolls back the whole import.

    Returns:
        Total number of PTO entries written

    Raises:
        ValueError: If any sheet's entries violate the persistence contract
    """
    errors = [
        f"{sheet.employee.name}: {error}"
        for sheet in result.sheets
        for error in validate_entries(sheet.pto_entries)
    ]
    if errors:
        raise ValueError("\n".join(errors))

    total = 0
    with conn:
        for sheet in result.sheets:
            employee_id = upsert_employee(conn, sheet.employee)
            total += upsert_pto_entries(conn, employee_id, sheet.pto_entries)
            upsert_acknowledgements(conn, employee_id, sheet.acknowledgements)
        record_import_run(conn, file_name, result, total)
    return total
