"""API Pydantic models."""

from .responses import (
    AcknowledgementResponse,
    EmployeeResponse,
    ErrorCodes,
    ErrorResponse,
    HealthResponse,
    ImportResponse,
    PtoEntryResponse,
    SheetImportResponse,
)

__all__ = [
    "HealthResponse",
    "ErrorResponse",
    "ErrorCodes",
    "EmployeeResponse",
    "PtoEntryResponse",
    "AcknowledgementResponse",
    "SheetImportResponse",
    "ImportResponse",
]
