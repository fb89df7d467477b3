"""Pydantic response models for API endpoints."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    database_available: bool
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class PtoEntryResponse(BaseModel):
    """One reconciled PTO entry."""

    date: str
    type: str
    hours: float
    notes: str = ""
    source: str
    is_partial_pto_color: bool = False
    is_note_derived: bool = False


class EmployeeResponse(BaseModel):
    """Employee metadata parsed from a sheet header."""

    name: str
    year: int
    hire_date: str | None = None
    carryover_hours: float = 0.0
    pto_rate: float | None = None
    spreadsheet_pto_rate: float = 0.0


class AcknowledgementResponse(BaseModel):
    """Monthly employee or admin sign-off."""

    month: str  # YYYY-MM
    type: str  # "employee" or "admin"
    status: str | None = None  # "warning" when calendar and column S disagree
    note: str = ""


class SheetImportResponse(BaseModel):
    """Reconciled entries and diagnostics for one employee sheet."""

    employee: EmployeeResponse
    entries: list[PtoEntryResponse]
    acknowledgements: list[AcknowledgementResponse] = []
    declared_hours: list[float]  # Column S, January..December
    total_pto_hours: float
    warnings: list[str] = []
    resolved: list[str] = []


class ImportResponse(BaseModel):
    """Workbook import result."""

    sheets: list[SheetImportResponse]
    skipped_sheets: list[str] = []
    failed_sheets: list[str] = []
    warnings: list[str] = []
    resolved: list[str] = []
    entries_persisted: int | None = None


class ErrorCodes:
    """Error code constants."""

    INVALID_REQUEST = "INVALID_REQUEST"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    UNSUPPORTED_MEDIA_TYPE = "UNSUPPORTED_MEDIA_TYPE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
