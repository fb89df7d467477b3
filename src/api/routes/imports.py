"""Workbook import endpoint."""

import asyncio
from typing import Annotated
from zipfile import BadZipFile

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile, status
from openpyxl.utils.exceptions import InvalidFileException

from api.logging import RequestLog, log_request
from api.models.responses import (
    AcknowledgementResponse,
    EmployeeResponse,
    ErrorCodes,
    ImportResponse,
    PtoEntryResponse,
    SheetImportResponse,
)
from core.config import DB_PATH, MAX_UPLOAD_SIZE_BYTES
from core.database import get_connection, init_database, persist_import
from models.entries import SheetImportResult, WorkbookImportResult
from services.sheets import import_workbook

router = APIRouter(prefix="/v1")

WORKBOOK_EXTENSIONS = (".xlsx", ".xlsm")


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def import_error(status_code: int, error: str, code: str, details: list[str] | None = None) -> HTTPException:
    """HTTPException carrying the standard {error, code, details} body."""
    return HTTPException(
        status_code=status_code,
        detail={"error": error, "code": code, "details": details or []},
    )


def sheet_to_response(sheet: SheetImportResult) -> SheetImportResponse:
    employee = sheet.employee
    return SheetImportResponse(
        employee=EmployeeResponse(
            name=employee.name,
            year=employee.year,
            hire_date=employee.hire_date,
            carryover_hours=employee.carryover_hours,
            pto_rate=employee.pto_rate,
            spreadsheet_pto_rate=employee.spreadsheet_pto_rate,
        ),
        entries=[
            PtoEntryResponse(
                date=e.date,
                type=e.type,
                hours=e.hours,
                notes=e.notes,
                source=e.source.value,
                is_partial_pto_color=e.is_partial_pto_color,
                is_note_derived=e.is_note_derived,
            )
            for e in sheet.pto_entries
        ],
        acknowledgements=[
            AcknowledgementResponse(month=a.month, type=a.type, status=a.status, note=a.note)
            for a in sheet.acknowledgements
        ],
        declared_hours=[row.used_hours for row in sheet.pto_calc_rows],
        total_pto_hours=sheet.total_hours,
        warnings=sheet.warnings,
        resolved=sheet.resolved,
    )


def _process_in_thread(
    file_content: bytes, file_name: str, persist: bool
) -> tuple[WorkbookImportResult, int | None]:
    """Import (and optionally persist) a workbook in the thread pool."""
    result = import_workbook(file_content, silent=True)
    if not persist:
        return result, None

    conn = get_connection(init_database(DB_PATH))
    try:
        return result, persist_import(conn, result, file_name)
    finally:
        conn.close()


@router.post("/imports", response_model=ImportResponse)
async def import_workbook_endpoint(
    request: Request,
    file: Annotated[UploadFile, File(description="Legacy PTO workbook (.xlsx)")],
    persist: Annotated[
        bool, Form(description="Upsert reconciled entries into the database")
    ] = False,
):
    """
    Import a legacy PTO workbook.

    Parses every employee sheet, reconciles the calendar against the
    declared column S totals, and returns entries with warnings and
    resolutions per sheet.
    """
    request_log = RequestLog(
        endpoint="/v1/imports",
        method="POST",
        client_ip=get_client_ip(request),
        file_name=file.filename,
    )

    try:
        if not file or not file.filename:
            raise import_error(
                status.HTTP_400_BAD_REQUEST, "No file provided", ErrorCodes.INVALID_REQUEST
            )

        if not file.filename.lower().endswith(WORKBOOK_EXTENSIONS):
            raise import_error(
                status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                "File is not an Excel workbook",
                ErrorCodes.UNSUPPORTED_MEDIA_TYPE,
                [f"Received: {file.filename}"],
            )

        file_content = await file.read()
        request_log.file_size_bytes = len(file_content)

        if len(file_content) > MAX_UPLOAD_SIZE_BYTES:
            raise import_error(
                status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                f"File exceeds maximum size of {MAX_UPLOAD_SIZE_BYTES // (1024 * 1024)} MB",
                ErrorCodes.FILE_TOO_LARGE,
                [f"File size: {len(file_content) / (1024 * 1024):.1f} MB"],
            )

        # openpyxl parsing and sqlite writes are blocking
        result, persisted = await asyncio.to_thread(
            _process_in_thread, file_content, file.filename, persist
        )

        request_log.record_import(result)
        request_log.finish(status.HTTP_200_OK)

        return ImportResponse(
            sheets=[sheet_to_response(sheet) for sheet in result.sheets],
            skipped_sheets=result.skipped_sheets,
            failed_sheets=result.failed_sheets,
            warnings=result.warnings,
            resolved=result.resolved,
            entries_persisted=persisted,
        )

    except HTTPException as e:
        detail = e.detail if isinstance(e.detail, dict) else {"error": str(e.detail)}
        request_log.add_details("validation_error", detail.get("details", []))
        request_log.finish(e.status_code, detail.get("code"), detail.get("error"))
        raise

    except (BadZipFile, InvalidFileException, ValueError) as e:
        # Unreadable workbook, or entries rejected before persisting
        details = [line.strip() for line in str(e).split("\n") if line.strip()]
        request_log.add_details("validation_error", details)
        request_log.finish(status.HTTP_422_UNPROCESSABLE_ENTITY, ErrorCodes.VALIDATION_ERROR, str(e))
        raise import_error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Workbook could not be imported",
            ErrorCodes.VALIDATION_ERROR,
            details,
        )

    except Exception as e:
        request_log.finish(status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCodes.INTERNAL_ERROR, str(e))
        raise import_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", ErrorCodes.INTERNAL_ERROR
        )

    finally:
        try:
            log_request(request_log, DB_PATH)
        except Exception as e:
            print(f"Request log write failed: {e}")
