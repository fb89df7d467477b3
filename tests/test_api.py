"""Tests for the REST API."""

from io import BytesIO

import pytest
from fastapi.testclient import TestClient

from api.main import app
from core.database import get_connection, init_database

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "api.db"
    monkeypatch.setattr("api.routes.imports.DB_PATH", path)
    monkeypatch.setattr("api.routes.health.DB_PATH", path)
    return path


@pytest.fixture
def client(db_path):
    return TestClient(app)


@pytest.fixture
def upload(workbook, build_sheet):
    sheet = build_sheet(declared={1: 12})
    sheet.paint("2025-01-06", "FF00B050")
    sheet.paint("2025-01-07", "FFFFFF00")
    sheet.paint("2025-01-08", "FFFFFF00")

    buffer = BytesIO()
    workbook.save(buffer)
    return {"file": ("pto_2025.xlsx", buffer.getvalue(), XLSX_MIME)}


class TestHealth:
    def test_unhealthy_without_database(self, client):
        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["database_available"] is False

    def test_healthy(self, client, db_path):
        init_database(db_path)

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestImports:
    def test_import_workbook(self, client, upload):
        response = client.post("/v1/imports", files=upload)

        assert response.status_code == 200
        body = response.json()
        assert body["skipped_sheets"] == ["Sheet"]
        assert body["entries_persisted"] is None
        (sheet,) = body["sheets"]
        assert sheet["employee"]["name"] == "Jane Doe"
        assert sheet["employee"]["hire_date"] == "2020-01-15"
        assert [e["hours"] for e in sheet["entries"]] == [8.0, 2.0, 2.0]
        assert sheet["total_pto_hours"] == 12.0
        assert sheet["declared_hours"][0] == 12.0

    def test_persist(self, client, upload, db_path):
        response = client.post("/v1/imports", files=upload, data={"persist": "true"})

        assert response.status_code == 200
        assert response.json()["entries_persisted"] == 3

        conn = get_connection(db_path)
        try:
            assert conn.execute("SELECT COUNT(*) FROM pto_entries").fetchone() == (3,)
            assert conn.execute("SELECT status_code, sheets_imported FROM api_requests").fetchall() == [
                (200, 1)
            ]
        finally:
            conn.close()

    def test_rejects_non_excel_file(self, client):
        response = client.post("/v1/imports", files={"file": ("pto.csv", b"a,b", "text/csv")})

        assert response.status_code == 415
        assert response.json()["detail"]["code"] == "UNSUPPORTED_MEDIA_TYPE"

    def test_unreadable_workbook(self, client):
        response = client.post(
            "/v1/imports", files={"file": ("pto.xlsx", b"not a workbook", XLSX_MIME)}
        )

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    def test_oversized_upload(self, client, monkeypatch):
        monkeypatch.setattr("api.routes.imports.MAX_UPLOAD_SIZE_BYTES", 10)

        response = client.post(
            "/v1/imports", files={"file": ("pto.xlsx", b"x" * 11, XLSX_MIME)}
        )

        assert response.status_code == 413
        assert response.json()["detail"]["code"] == "FILE_TOO_LARGE"

    def test_acknowledgements_and_rate(self, client, upload):
        response = client.post("/v1/imports", files=upload)

        (sheet,) = response.json()["sheets"]
        assert sheet["employee"]["pto_rate"] == 0.8
        assert len(sheet["acknowledgements"]) == 24
        assert sheet["acknowledgements"][:2] == [
            {"month": "2025-01", "type": "employee", "status": None, "note": ""},
            {"month": "2025-01", "type": "admin", "status": None, "note": ""},
        ]

    def test_request_log_failure_is_reported(self, client, upload, capsys):
        # No tables exist, so writing the request log fails
        response = client.post("/v1/imports", files=upload)

        assert response.status_code == 200
        assert "Request log write failed: no such table: api_requests" in capsys.readouterr().out
