"""Tests for the Health-Sieve API.

Covers the root and health endpoints, uploads, and the live event stream,
with the upload store redirected to a temporary directory.
"""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from generate_health_export_files import record_element, step_records, wrap_export
from src.adapters.ingesters.ingestion_session import IngestionSession
from src.adapters.storage import LocalUploadStore
from src.dashboard.api.dependencies import get_source_store
from src.dashboard.api.main import app
from src.dashboard.api.routes.ingest import SessionStreamingResponse
from src.domain.ingestion_events import SessionState


@pytest.fixture
def upload_store(tmp_path):
    return LocalUploadStore(str(tmp_path / "uploads"), max_upload_size=64 * 1024)


@pytest.fixture
def client(upload_store):
    """Create a test client whose uploads land in a temporary directory."""
    app.dependency_overrides[get_source_store] = lambda: upload_store

    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def parse_frames(body: str) -> list:
    """Split an event-stream body into decoded events."""
    frames = [frame for frame in body.split("\n\n") if frame]
    assert all(frame.startswith("data: ") for frame in frames)
    return [json.loads(frame[len("data: "):]) for frame in frames]


def upload(client, content: str, filename: str = "export.xml"):
    return client.post("/api/upload", files={"file": (filename, content.encode("utf-8"), "text/xml")})


class TestRootAndHealth:
    """Test informational endpoints."""

    def test_root_endpoint_returns_info(self, client):
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["version"] == "1.0.0"
        assert data["docs"] == "/api/docs"
        assert data["health"] == "/api/health"
        assert data["stream"] == "/api/parse-xml"

    def test_health_endpoint(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] in ("healthy", "degraded", "unhealthy")
        assert data["upload_directory"]["status"] in ("writable", "missing", "unwritable")
        assert "timestamp" in data

    def test_process_time_header(self, client):
        response = client.get("/")

        assert "X-Process-Time" in response.headers


class TestUpload:
    """Test POST /api/upload."""

    def test_upload_returns_handle(self, client, upload_store):
        content = wrap_export(step_records(3))

        response = upload(client, content)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["fileName"] == "export.xml"
        assert data["size"] == len(content.encode("utf-8"))
        assert data["message"] == "File uploaded successfully"
        assert upload_store.exists(data["fileId"])

    def test_rejects_non_xml(self, client):
        response = upload(client, "a,b,c", filename="export.csv")

        assert response.status_code == 400
        assert response.json()["detail"] == "Only XML files are supported"

    def test_rejects_missing_file(self, client):
        response = client.post("/api/upload", data={"note": "nothing here"})

        assert response.status_code == 400
        assert response.json()["detail"] == "No file provided"

    def test_rejects_oversized_upload(self, client, upload_store):
        response = upload(client, "x" * (64 * 1024 + 1))

        assert response.status_code == 413
        assert list(upload_store.upload_dir.iterdir()) == []


class TestParseXml:
    """Test POST /api/parse-xml."""

    def test_streams_events_and_removes_upload(self, client, upload_store):
        file_id = upload(client, wrap_export(step_records(3))).json()["fileId"]

        response = client.post("/api/parse-xml", json={"fileId": file_id})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        events = parse_frames(response.text)
        assert [event["type"] for event in events] == ["complete"]
        assert events[0]["data"]["recordsProcessed"] == 3
        assert [r["value"] for r in events[0]["data"]["records"]] == ["1", "2", "3"]
        assert not upload_store.exists(file_id)

    def test_date_range_filters_records(self, client):
        content = wrap_export([
            record_element("HKQuantityTypeIdentifierHeartRate", "60", "2024-01-15 08:00:00 +0000"),
            record_element("HKQuantityTypeIdentifierHeartRate", "70", "2024-02-15 08:00:00 +0000"),
        ])
        file_id = upload(client, content).json()["fileId"]

        response = client.post(
            "/api/parse-xml",
            json={"fileId": file_id, "dateRange": {"startDate": "2024-02-01", "endDate": None}},
        )

        events = parse_frames(response.text)
        assert [r["value"] for r in events[-1]["data"]["records"]] == ["70"]

    def test_malformed_upload_streams_one_error(self, client, upload_store):
        file_id = upload(client, "<HealthData><Record type='x'").json()["fileId"]

        response = client.post("/api/parse-xml", json={"fileId": file_id})

        assert response.status_code == 200
        events = parse_frames(response.text)
        assert [event["type"] for event in events] == ["error"]
        assert events[0]["data"]["errorType"] == "MarkupError"
        assert not upload_store.exists(file_id)

    def test_unknown_file_streams_error(self, client):
        response = client.post("/api/parse-xml", json={"fileId": "00000000-0000-4000-8000-000000000000"})

        events = parse_frames(response.text)
        assert [event["type"] for event in events] == ["error"]
        assert events[0]["data"]["errorType"] == "SourceIOError"

    def test_missing_file_id(self, client):
        response = client.post("/api/parse-xml", json={})

        assert response.status_code == 400
        assert response.json()["detail"] == "File ID is required"

    def test_invalid_date_range(self, client):
        response = client.post(
            "/api/parse-xml",
            json={"fileId": "00000000-0000-4000-8000-000000000000",
                  "dateRange": {"startDate": "2024-03-01", "endDate": "2024-02-01"}},
        )

        assert response.status_code == 400
        assert "Invalid date range" in response.json()["detail"]

    def test_malformed_body(self, client):
        response = client.post(
            "/api/parse-xml", content="not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 422


class TestSessionStreamingResponse:
    """Test release of the session when the response cannot be sent."""

    @pytest.mark.asyncio
    async def test_disconnect_before_body_releases_source(self, memory_store):
        memory_store.put("export-1", wrap_export(step_records(3)))
        session = IngestionSession(memory_store, "export-1")
        response = SessionStreamingResponse(session)
        scope = {"type": "http", "asgi": {"spec_version": "2.4"}}

        async def receive():
            await asyncio.Event().wait()

        async def send(message):
            raise OSError("client went away")

        with pytest.raises(Exception):
            await response(scope, receive, send)

        assert memory_store.deleted == ["export-1"]
        assert memory_store.streams == []
        assert session.state is SessionState.FAILED
        assert session.outcome.reason == "cancelled"
