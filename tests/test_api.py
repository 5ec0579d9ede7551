"""Tests for API endpoints."""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

from fastapi.testclient import TestClient

from conftest import make_guideline
from guideline_rag.core.exceptions import (
    GenerationFailedError,
    GuidelineNotFoundError,
    InvalidStateTransitionError,
    ValidationError,
)
from guideline_rag.dependencies import (
    get_chat_history_recorder,
    get_guideline_repository,
    get_guideline_service,
    get_ingestion_dispatcher,
    get_message_repository,
    get_query_service,
)
from guideline_rag.main import app
from guideline_rag.schemas.query import GuidelineSource, QueryAnswer


def override_dispatcher() -> MagicMock:
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock()
    app.dependency_overrides[get_ingestion_dispatcher] = lambda: dispatcher
    return dispatcher


def override_guideline_service() -> MagicMock:
    service = MagicMock()
    for method in (
        "upload_guideline",
        "list_guidelines",
        "get_guideline",
        "retry_guideline",
        "archive_guideline",
        "delete_guideline",
        "get_download_url",
    ):
        setattr(service, method, AsyncMock())
    app.dependency_overrides[get_guideline_service] = lambda: service
    return service


class TestGuidelineEndpoints:
    """Guideline management endpoints."""

    def test_ingest_accepts_and_schedules(self, test_client: TestClient) -> None:
        row = make_guideline()
        repo = MagicMock()
        repo.get_by_id = AsyncMock(return_value=row)
        app.dependency_overrides[get_guideline_repository] = lambda: repo
        dispatcher = override_dispatcher()

        response = test_client.post("/api/v1/guidelines/ingest", json={"guideline_id": str(row.id)})

        assert response.status_code == 202
        body = response.json()
        assert body["status"] is True
        assert body["data"]["guideline_id"] == str(row.id)
        dispatcher.dispatch.assert_awaited_once_with(row.id)

    def test_ingest_unknown_guideline(self, test_client: TestClient) -> None:
        repo = MagicMock()
        repo.get_by_id = AsyncMock(return_value=None)
        app.dependency_overrides[get_guideline_repository] = lambda: repo
        dispatcher = override_dispatcher()

        response = test_client.post("/api/v1/guidelines/ingest", json={"guideline_id": str(uuid4())})

        assert response.status_code == 404
        assert response.json()["detail"]["title"] == "Guideline Not Found"
        dispatcher.dispatch.assert_not_called()

    def test_ingest_archived_guideline_conflicts(self, test_client: TestClient) -> None:
        row = make_guideline(status="archived", gemini_file_uri="file://old")
        repo = MagicMock()
        repo.get_by_id = AsyncMock(return_value=row)
        app.dependency_overrides[get_guideline_repository] = lambda: repo
        dispatcher = override_dispatcher()

        response = test_client.post("/api/v1/guidelines/ingest", json={"guideline_id": str(row.id)})

        assert response.status_code == 409
        assert "archived" in response.json()["detail"]["detail"]
        dispatcher.dispatch.assert_not_called()

    def test_ingest_requires_uuid(self, test_client: TestClient) -> None:
        app.dependency_overrides[get_guideline_repository] = lambda: MagicMock()
        override_dispatcher()

        response = test_client.post("/api/v1/guidelines/ingest", json={"guideline_id": "abc"})

        assert response.status_code == 422

    def test_upload(self, test_client: TestClient, sample_pdf_content: bytes) -> None:
        service = override_guideline_service()
        dispatcher = override_dispatcher()
        row = make_guideline()
        service.upload_guideline.return_value = row

        response = test_client.post(
            "/api/v1/guidelines/upload",
            files={"file": ("acme_term.pdf", sample_pdf_content, "application/pdf")},
            data={
                "carrier_name": "Acme Life",
                "product_type": "Term Life",
                "effective_date": "2025-01-01",
                "document_type": "quick_reference",
                "min_age": "18",
                "max_age": "65",
            },
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["id"] == str(row.id)
        assert data["status"] == "pending"
        metadata, file_name, content = service.upload_guideline.call_args.args
        assert metadata.carrier_name == "Acme Life"
        assert metadata.document_type.value == "quick_reference"
        assert file_name == "acme_term.pdf"
        assert content == sample_pdf_content
        dispatcher.dispatch.assert_awaited_once_with(row.id)

    def test_upload_rejects_inverted_dates(self, test_client: TestClient) -> None:
        service = override_guideline_service()
        override_dispatcher()

        response = test_client.post(
            "/api/v1/guidelines/upload",
            files={"file": ("acme.pdf", b"%PDF-1.4", "application/pdf")},
            data={
                "carrier_name": "Acme Life",
                "product_type": "Term Life",
                "effective_date": "2025-06-01",
                "expiration_date": "2025-01-01",
            },
        )

        assert response.status_code == 400
        service.upload_guideline.assert_not_called()

    def test_upload_unsupported_type(self, test_client: TestClient) -> None:
        service = override_guideline_service()
        dispatcher = override_dispatcher()
        service.upload_guideline.side_effect = ValidationError("Unsupported file type for rates.csv")

        response = test_client.post(
            "/api/v1/guidelines/upload",
            files={"file": ("rates.csv", b"a,b", "text/csv")},
            data={"carrier_name": "Acme", "product_type": "Term", "effective_date": "2025-01-01"},
        )

        assert response.status_code == 400
        dispatcher.dispatch.assert_not_called()

    def test_list(self, test_client: TestClient) -> None:
        service = override_guideline_service()
        service.list_guidelines.return_value = (1, [make_guideline(status="active", gemini_file_uri="file://a")])

        response = test_client.get("/api/v1/guidelines", params={"status": "active", "limit": 10})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == 1
        assert data["guidelines"][0]["status"] == "active"
        kwargs = service.list_guidelines.call_args.kwargs
        assert kwargs["status"].value == "active"
        assert kwargs["limit"] == 10

    def test_get_unknown(self, test_client: TestClient) -> None:
        service = override_guideline_service()
        missing = uuid4()
        service.get_guideline.side_effect = GuidelineNotFoundError(missing)

        response = test_client.get(f"/api/v1/guidelines/{missing}")

        assert response.status_code == 404

    def test_retry_schedules_ingestion(self, test_client: TestClient) -> None:
        service = override_guideline_service()
        dispatcher = override_dispatcher()
        row = make_guideline(status="processing")
        service.retry_guideline.return_value = row

        response = test_client.post(f"/api/v1/guidelines/{row.id}/retry")

        assert response.status_code == 202
        assert response.json()["data"]["status"] == "processing"
        dispatcher.dispatch.assert_awaited_once_with(row.id)

    def test_retry_conflict(self, test_client: TestClient) -> None:
        service = override_guideline_service()
        dispatcher = override_dispatcher()
        guideline_id = uuid4()
        service.retry_guideline.side_effect = InvalidStateTransitionError(guideline_id, "active", "retry")

        response = test_client.post(f"/api/v1/guidelines/{guideline_id}/retry")

        assert response.status_code == 409
        assert "retry" in response.json()["detail"]["detail"]
        dispatcher.dispatch.assert_not_called()

    def test_archive(self, test_client: TestClient) -> None:
        service = override_guideline_service()
        row = make_guideline(status="archived")
        service.archive_guideline.return_value = row

        response = test_client.post(f"/api/v1/guidelines/{row.id}/archive")

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "archived"

    def test_delete(self, test_client: TestClient) -> None:
        service = override_guideline_service()
        guideline_id = uuid4()

        response = test_client.delete(f"/api/v1/guidelines/{guideline_id}")

        assert response.status_code == 200
        service.delete_guideline.assert_awaited_once_with(guideline_id)

    def test_download_url(self, test_client: TestClient) -> None:
        service = override_guideline_service()
        service.get_download_url.return_value = "https://signed"
        guideline_id = uuid4()

        response = test_client.get(f"/api/v1/guidelines/{guideline_id}/download-url")

        assert response.status_code == 200
        assert response.json()["data"]["url"] == "https://signed"


class TestQueryEndpoints:
    """Question answering endpoint contract."""

    def override_query_service(self) -> MagicMock:
        service = MagicMock()
        service.answer = AsyncMock()
        app.dependency_overrides[get_query_service] = lambda: service
        return service

    def test_answer(self, test_client: TestClient) -> None:
        service = self.override_query_service()
        service.answer.return_value = QueryAnswer(
            answer="Table 2",
            sources=[
                GuidelineSource(carrier_name="Carrier X", product_type="Term", document_type="full_guidelines", file_name="x.pdf"),
                GuidelineSource(carrier_name="Carrier Y", product_type="Term", document_type="full_guidelines", file_name="y.pdf"),
            ],
            guidelines_searched=2,
        )

        response = test_client.post(
            "/api/v1/query",
            json={"question": "What are the smoker guidelines?", "carrier_filters": ["Carrier X", " "], "session_id": "s-1"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["answer"] == "Table 2"
        assert body["guidelines_searched"] == 2
        assert len(body["sources"]) == 2
        service.answer.assert_awaited_once_with(
            question="What are the smoker guidelines?",
            carrier_filters=["Carrier X"],
            session_id="s-1",
        )

    def test_missing_question(self, test_client: TestClient) -> None:
        self.override_query_service()

        response = test_client.post("/api/v1/query", json={})

        assert response.status_code == 400
        assert "question" in response.json()["error"]

    def test_blank_question(self, test_client: TestClient) -> None:
        service = self.override_query_service()
        service.answer.side_effect = ValidationError("Question is required")

        response = test_client.post("/api/v1/query", json={"question": "   "})

        assert response.status_code == 400
        assert response.json() == {"error": "Question is required"}

    def test_generation_failure(self, test_client: TestClient) -> None:
        service = self.override_query_service()
        service.answer.side_effect = GenerationFailedError("Gemini generation failed: 503")

        response = test_client.post("/api/v1/query", json={"question": "Max face amount?"})

        assert response.status_code == 502
        assert response.json() == {"error": "Gemini generation failed: 503"}

    def test_generation_timeout(self, test_client: TestClient) -> None:
        service = self.override_query_service()
        service.answer.side_effect = GenerationFailedError(
            "Gemini generation timed out after 120 seconds", timed_out=True
        )

        response = test_client.post("/api/v1/query", json={"question": "Max face amount?"})

        assert response.status_code == 504
        assert "timed out" in response.json()["error"]

    def test_missing_gemini_client(self, test_client: TestClient) -> None:
        app.dependency_overrides[get_guideline_repository] = lambda: MagicMock()
        app.dependency_overrides[get_message_repository] = lambda: MagicMock()

        response = test_client.post("/api/v1/query", json={"question": "Max face amount?"})

        assert response.status_code == 500
        assert "GEMINI_API_KEY" in response.json()["error"]

    def test_session_messages(self, test_client: TestClient) -> None:
        recorder = MagicMock()
        recorder.history = AsyncMock(
            return_value=[
                {
                    "id": str(uuid4()),
                    "chat_id": "s-1",
                    "role": "user",
                    "content": "Q?",
                    "sources": None,
                    "created_at": "2025-01-01T00:00:00Z",
                },
                {
                    "id": str(uuid4()),
                    "chat_id": "s-1",
                    "role": "assistant",
                    "content": "A.",
                    "sources": [],
                    "created_at": "2025-01-01T00:00:01Z",
                },
            ]
        )
        app.dependency_overrides[get_chat_history_recorder] = lambda: recorder

        response = test_client.get("/api/v1/query/sessions/s-1/messages")

        assert response.status_code == 200
        assert [turn["role"] for turn in response.json()] == ["user", "assistant"]


class TestHealth:

    def test_health_reports_database(self, test_client: TestClient) -> None:
        with patch(
            "guideline_rag.api.v1.endpoints.health.db_client.health_check",
            new=AsyncMock(return_value={"status": "healthy", "connected": True}),
        ):
            response = test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "healthy"
        assert body["version"] == "0.1.0"

    def test_health_degraded(self, test_client: TestClient) -> None:
        with patch(
            "guideline_rag.api.v1.endpoints.health.db_client.health_check",
            new=AsyncMock(return_value={"status": "unhealthy", "connected": False, "error": "refused"}),
        ):
            response = test_client.get("/health")

        assert response.json()["status"] == "degraded"
