"""
tests/test_policy_import_api.py

HTTP contract of the policy import router, with the database and service
dependencies pointed at the test fixtures.
"""

from __future__ import annotations

from typing import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.api.routers import policy_import_router
from app.parsers.base import CarrierParser
from app.services.policy_import_service import PolicyImportService, get_policy_import_service
from db.session import get_db

XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
HEADERS = {"X-Firm-Id": "1", "X-Branch-Id": "10", "X-User-Id": "7"}


@pytest.fixture()
def client(db_session: Session, import_service: PolicyImportService) -> Iterator[TestClient]:
    application = FastAPI()
    application.include_router(policy_import_router)

    def override_db() -> Iterator[Session]:
        yield db_session

    application.dependency_overrides[get_db] = override_db
    application.dependency_overrides[get_policy_import_service] = lambda: import_service

    with TestClient(application) as test_client:
        yield test_client


@pytest.fixture()
def hepiyi_upload(hepiyi_file, hepiyi_row) -> dict:
    content = hepiyi_file(hepiyi_row("HP-1"), hepiyi_row("HP-2"), hepiyi_row("HP-3", date=""))
    return {"file": ("hepiyi_uretim.xlsx", content, XLSX_TYPE)}


def upload(client: TestClient, files: dict) -> dict:
    response = client.post("/policy-import/upload", files=files, headers=HEADERS)
    assert response.status_code == 200, response.text
    return response.json()


class TestUploadEndpoint:
    def test_upload_returns_a_preview(self, client: TestClient, hepiyi_upload: dict) -> None:
        body = upload(client, hepiyi_upload)

        assert body["total_rows"] == 3
        assert body["valid_rows"] == 2
        assert body["invalid_rows"] == 1
        assert body["carrier_id"] == 3
        assert body["detection_method"] == "filename"
        assert body["session_id"]
        assert [row["row_number"] for row in body["rows"]] == [2, 3, 4]
        assert body["rows"][2]["is_valid"] is False

    def test_unsupported_extension_is_a_bad_request(self, client: TestClient) -> None:
        response = client.post(
            "/policy-import/upload",
            files={"file": ("notes.txt", b"policy list", "text/plain")},
            headers=HEADERS,
        )

        assert response.status_code == 400
        assert "Unsupported file type" in response.json()["detail"]

    def test_corrupt_workbook_is_a_bad_request(self, client: TestClient) -> None:
        response = client.post(
            "/policy-import/upload",
            files={"file": ("hepiyi.xlsx", b"not a zip archive", XLSX_TYPE)},
            headers=HEADERS,
        )

        assert response.status_code == 400

    def test_firm_header_is_required(self, client: TestClient, hepiyi_upload: dict) -> None:
        response = client.post("/policy-import/upload", files=hepiyi_upload)

        assert response.status_code == 422

    def test_unexpected_parse_failure_is_a_structured_server_error(
        self, client: TestClient, hepiyi_upload: dict, monkeypatch
    ) -> None:
        def explode(self, workbook, **kwargs):
            raise IndexError("insured sheet row out of range")

        monkeypatch.setattr(CarrierParser, "parse_workbook", explode)

        response = client.post("/policy-import/upload", files=hepiyi_upload, headers=HEADERS)

        assert response.status_code == 500
        assert response.json()["detail"] == {"code": "internal_error", "message": "File could not be parsed."}


class TestConfirmEndpoints:
    def test_confirm_batch_then_finish(self, client: TestClient, hepiyi_upload: dict) -> None:
        session_id = upload(client, hepiyi_upload)["session_id"]

        first = client.post(
            "/policy-import/confirm-batch",
            json={"session_id": session_id, "skip": 0, "take": 1},
            headers=HEADERS,
        )
        second = client.post(
            "/policy-import/confirm-batch",
            json={"session_id": session_id, "skip": 1, "take": 1},
            headers=HEADERS,
        )

        assert first.status_code == 200
        assert first.json()["has_more_batches"] is True
        assert first.json()["success_count"] == 1
        assert second.status_code == 200
        assert second.json()["is_completed"] is True
        assert second.json()["processed_so_far"] == 2

    def test_full_confirm_lists_invalid_rows(self, client: TestClient, hepiyi_upload: dict) -> None:
        session_id = upload(client, hepiyi_upload)["session_id"]

        response = client.post("/policy-import/confirm", json={"session_id": session_id}, headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["success_count"] == 2
        assert body["failed_count"] == 1
        assert body["errors"][0]["row_number"] == 4

    def test_unknown_session_maps_to_not_found(self, client: TestClient) -> None:
        response = client.post("/policy-import/confirm", json={"session_id": "deadbeef"}, headers=HEADERS)

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "session_not_found"

    def test_foreign_session_maps_to_forbidden(self, client: TestClient, hepiyi_upload: dict) -> None:
        session_id = upload(client, hepiyi_upload)["session_id"]

        response = client.post(
            "/policy-import/confirm",
            json={"session_id": session_id},
            headers={**HEADERS, "X-User-Id": "8"},
        )

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "session_forbidden"

    def test_window_past_the_end_maps_to_bad_request(self, client: TestClient, hepiyi_upload: dict) -> None:
        session_id = upload(client, hepiyi_upload)["session_id"]

        response = client.post(
            "/policy-import/confirm-batch",
            json={"session_id": session_id, "skip": 5, "take": 1},
            headers=HEADERS,
        )

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "invalid_window"

    def test_delete_abandons_the_session(self, client: TestClient, hepiyi_upload: dict) -> None:
        session_id = upload(client, hepiyi_upload)["session_id"]

        first = client.delete(f"/policy-import/sessions/{session_id}", headers=HEADERS)
        second = client.delete(f"/policy-import/sessions/{session_id}", headers=HEADERS)

        assert first.status_code == 204
        assert second.status_code == 404


class TestReferenceEndpoints:
    def test_formats_lists_every_parser(self, client: TestClient) -> None:
        response = client.get("/policy-import/formats")

        assert response.status_code == 200
        formats = response.json()
        assert len(formats) == 13
        hepiyi = next(item for item in formats if item["carrier_id"] == 3)
        assert hepiyi["carrier_name"] == "Hepiyi Sigorta"
        assert "Poliçe No" in hepiyi["required_columns"]

    def test_detect_format_reports_the_carrier(self, client: TestClient, hepiyi_upload: dict) -> None:
        response = client.post("/policy-import/detect-format", files=hepiyi_upload)

        assert response.status_code == 200
        assert response.json() == {
            "detected": True,
            "carrier_id": 3,
            "carrier_name": "Hepiyi Sigorta",
            "method": "filename",
            "message": "Detected Hepiyi Sigorta by filename.",
        }

    def test_history_pages_confirmed_runs(self, client: TestClient, hepiyi_upload: dict) -> None:
        session_id = upload(client, hepiyi_upload)["session_id"]
        client.post("/policy-import/confirm", json={"session_id": session_id}, headers=HEADERS)

        response = client.get("/policy-import/history", params={"page": 1, "page_size": 5}, headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["total_count"] == 1
        assert body["page_size"] == 5
        assert body["items"][0]["session_id"] == session_id
        assert body["items"][0]["status"] == "partial"

