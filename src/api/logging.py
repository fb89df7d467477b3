"""SQLite request logging for the import API."""

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from core.config import DB_PATH
from core.database import get_connection
from models.entries import WorkbookImportResult

# api_requests columns, in RequestLog attribute names
REQUEST_COLUMNS = (
    "request_id",
    "timestamp",
    "endpoint",
    "method",
    "client_ip",
    "file_size_bytes",
    "file_name",
    "status_code",
    "error_code",
    "error_message",
    "processing_time_ms",
    "sheets_imported",
    "total_hours",
)


@dataclass
class RequestLog:
    """Request/response data for one API call."""

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    endpoint: str = ""
    method: str = ""
    client_ip: str | None = None
    file_size_bytes: int | None = None
    file_name: str | None = None
    status_code: int = 0
    error_code: str | None = None
    error_message: str | None = None
    processing_time_ms: int = 0
    sheets_imported: int | None = None
    total_hours: float | None = None
    details: list[tuple[str, str]] = field(default_factory=list)  # (type, message)
    started: float = field(default_factory=time.time, repr=False)

    def add_details(self, detail_type: str, messages) -> None:
        self.details.extend((detail_type, message) for message in messages)

    def record_import(self, result: WorkbookImportResult) -> None:
        """Summarize a workbook import: sheet names, hours and diagnostics."""
        self.sheets_imported = len(result.sheets)
        self.total_hours = round(sum(s.total_hours for s in result.sheets), 2)
        self.add_details("sheet_processed", (s.employee.name for s in result.sheets))
        self.add_details("warning", result.warnings)
        self.add_details("resolved", result.resolved)

    def finish(
        self,
        status_code: int,
        error_code: str | None = None,
        error_message: str | None = None,
    ) -> None:
        """Stamp the response status and elapsed processing time."""
        self.status_code = status_code
        self.error_code = error_code
        self.error_message = error_message
        self.processing_time_ms = int((time.time() - self.started) * 1000)


def log_request(log: RequestLog, db_path=DB_PATH) -> None:
    """Write a request and its detail rows to the log tables."""
    columns = ", ".join(REQUEST_COLUMNS)
    placeholders = ", ".join("?" for _ in REQUEST_COLUMNS)

    conn = get_connection(db_path)
    try:
        conn.execute(
            f"INSERT INTO api_requests ({columns}) VALUES ({placeholders})",
            tuple(getattr(log, column) for column in REQUEST_COLUMNS),
        )
        conn.executemany(
            "INSERT INTO api_request_details (request_id, detail_type, message) VALUES (?, ?, ?)",
            [(log.request_id, detail_type, message) for detail_type, message in log.details],
        )
        conn.commit()
    finally:
        conn.close()
