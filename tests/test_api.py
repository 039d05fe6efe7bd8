import base64
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.api import main
from src.api.deps import get_text_repo
from src.api.main import app
from src.api.routes import health
from src.core.config import Settings, get_settings
from src.db.database import get_db
from src.db.repository import DocumentNotFoundError, DocumentTextRepository
from src.extraction.models import ExtractionFailure, FailureKind
from src.extraction.pipeline import get_pipeline

from .builders import CONTRACT_SENTENCE

EXTRACT_URL = "/api/v1/extract"


def b64(content: bytes) -> str:
    return base64.b64encode(content).decode("ascii")


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# /extract
# ---------------------------------------------------------------------------


def test_extract_plain_text(client):
    response = client.post(
        EXTRACT_URL,
        json={"fileBase64": b64(b"Hello World"), "mimeType": "text/plain", "fileName": "hello.txt"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["text"] == "Hello World"
    assert body["extractedLength"] == 11
    assert body["fileName"] == "hello.txt"
    assert body["metadata"]["extractionMethod"] == "plain_text"
    assert body["metadata"]["originalLength"] == 11
    assert "pageCount" not in body["metadata"]


def test_extract_pdf(client, contract_pdf):
    response = client.post(
        EXTRACT_URL, json={"fileBase64": b64(contract_pdf), "mimeType": "application/pdf"}
    )

    assert response.status_code == 200
    body = response.json()
    assert CONTRACT_SENTENCE in body["text"]
    assert body["metadata"]["extractionMethod"] == "pdf_structured"
    assert body["metadata"]["pageCount"] == 1


def test_extract_accepts_data_url(client):
    payload = "data:text/plain;base64," + b64(b"Hello World")
    response = client.post(EXTRACT_URL, json={"fileBase64": payload, "mimeType": "text/plain"})

    assert response.status_code == 200
    assert response.json()["text"] == "Hello World"


def test_unsupported_type_is_422(client):
    response = client.post(
        EXTRACT_URL, json={"fileBase64": b64(b"legacy"), "mimeType": "application/msword"}
    )

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert "not supported" in body["error"]


def test_signature_mismatch_is_422(client):
    response = client.post(
        EXTRACT_URL, json={"fileBase64": b64(b"not a pdf"), "mimeType": "application/pdf"}
    )

    assert response.status_code == 422
    assert "header" in response.json()["error"]


def test_size_mismatch_is_422(client):
    response = client.post(
        EXTRACT_URL,
        json={"fileBase64": b64(b"Hello World"), "mimeType": "text/plain", "fileSize": 99},
    )

    assert response.status_code == 422
    assert "size mismatch" in response.json()["error"]


def test_invalid_base64_is_400(client):
    response = client.post(EXTRACT_URL, json={"fileBase64": "***not base64***", "mimeType": "text/plain"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid file encoding"}


def test_missing_fields_are_400(client):
    response = client.post(EXTRACT_URL, json={"fileBase64": b64(b"Hello World")})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "mimeType" in body["error"]


def test_wrong_method_is_405(client):
    response = client.get(EXTRACT_URL)

    assert response.status_code == 405
    assert response.json()["success"] is False


def test_oversize_file_is_413(client):
    app.dependency_overrides[get_settings] = lambda: Settings(max_file_size_bytes=8)

    response = client.post(
        EXTRACT_URL, json={"fileBase64": b64(b"Hello World, again"), "mimeType": "text/plain"}
    )

    assert response.status_code == 413
    assert response.json()["success"] is False


def test_internal_failure_is_500(client):
    pipeline = MagicMock()
    pipeline.extract.return_value = ExtractionFailure(
        reason="Unexpected error", kind=FailureKind.INTERNAL_ERROR
    )
    app.dependency_overrides[get_pipeline] = lambda: pipeline

    response = client.post(EXTRACT_URL, json={"fileBase64": b64(b"Hello World"), "mimeType": "text/plain"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Unexpected error"}


# ---------------------------------------------------------------------------
# Internal API key
# ---------------------------------------------------------------------------


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setenv("TEXT_EXTRACTOR_API_KEY", "s3cret")
    get_settings.cache_clear()
    return "s3cret"


def test_missing_api_key_is_401(client, api_key):
    response = client.post(EXTRACT_URL, json={"fileBase64": b64(b"Hello World"), "mimeType": "text/plain"})

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Unauthorized: Invalid internal API key."}


def test_wrong_api_key_is_401(client, api_key):
    response = client.post(
        EXTRACT_URL,
        json={"fileBase64": b64(b"Hello World"), "mimeType": "text/plain"},
        headers={"Authorization": "Bearer wrong"},
    )

    assert response.status_code == 401


def test_valid_api_key(client, api_key):
    response = client.post(
        EXTRACT_URL,
        json={"fileBase64": b64(b"Hello World"), "mimeType": "text/plain"},
        headers={"Authorization": f"Bearer {api_key}"},
    )

    assert response.status_code == 200


def test_health_is_public(client, api_key):
    response = client.get("/health/live")

    assert response.status_code == 200
    assert response.json()["status"] == "alive"


# ---------------------------------------------------------------------------
# /documents/{id}/extract
# ---------------------------------------------------------------------------


@pytest.fixture
def session():
    db = AsyncMock()

    async def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    return db


@pytest.fixture
def repo():
    repository = MagicMock()
    repository.get_version = AsyncMock(return_value=SimpleNamespace(id="ver-2"))
    repository.update_document_text = AsyncMock()
    app.dependency_overrides[get_text_repo] = lambda: repository
    return repository


async def test_text_repo_dependency_wraps_the_session():
    db = AsyncMock()

    repository = await get_text_repo(db)

    assert isinstance(repository, DocumentTextRepository)
    assert repository.db is db


def test_extract_and_store(client, session, repo):
    response = client.post(
        "/api/v1/documents/doc-1/extract",
        json={"fileBase64": b64(b"Hello World"), "mimeType": "text/plain"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["documentId"] == "doc-1"
    assert body["versionId"] == "ver-2"
    repo.get_version.assert_awaited_once_with("doc-1", None)
    repo.update_document_text.assert_awaited_once_with(
        "doc-1", "Hello World", version_id="ver-2", extraction_method="plain_text"
    )
    session.commit.assert_awaited_once()


def test_extract_and_store_unknown_document_is_404(client, session, repo):
    repo.get_version.return_value = None

    response = client.post(
        "/api/v1/documents/missing/extract",
        json={"fileBase64": b64(b"Hello World"), "mimeType": "text/plain"},
    )

    assert response.status_code == 404
    assert response.json()["success"] is False
    repo.update_document_text.assert_not_awaited()


def test_extract_and_store_does_not_persist_failures(client, session, repo):
    response = client.post(
        "/api/v1/documents/doc-1/extract",
        json={"fileBase64": b64(b"not a pdf"), "mimeType": "application/pdf"},
    )

    assert response.status_code == 422
    repo.update_document_text.assert_not_awaited()
    session.commit.assert_not_awaited()


def test_extract_and_store_version_removed_mid_request_is_404(client, session, repo):
    repo.update_document_text.side_effect = DocumentNotFoundError("doc-1", "ver-2")

    response = client.post(
        "/api/v1/documents/doc-1/extract",
        json={"fileBase64": b64(b"Hello World"), "mimeType": "text/plain"},
    )

    assert response.status_code == 404
    session.rollback.assert_awaited_once()


def test_extract_and_store_database_error_is_500(client, session, repo):
    session.commit.side_effect = RuntimeError("connection reset")

    response = client.post(
        "/api/v1/documents/doc-1/extract",
        json={"fileBase64": b64(b"Hello World"), "mimeType": "text/plain"},
    )

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to save extracted text to database"
    session.rollback.assert_awaited_once()


# ---------------------------------------------------------------------------
# /pdf/diagnose
# ---------------------------------------------------------------------------


def test_diagnose_pdf(client, contract_pdf):
    response = client.post(
        "/api/v1/pdf/diagnose", json={"fileBase64": b64(contract_pdf), "fileName": "spa.pdf"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["diagnostics"]["page_count"] == 1
    assert body["diagnostics"]["file_name"] == "spa.pdf"
    assert body["recommendations"] == ["PDF structure looks normal. Standard text extraction should work."]


# ---------------------------------------------------------------------------
# Health and root
# ---------------------------------------------------------------------------


def test_readiness_reports_database_without_failing(client, monkeypatch):
    async def database_down():
        return False, "unhealthy: connection refused"

    monkeypatch.setattr(health, "check_database", database_down)

    response = client.get("/health/ready")

    assert response.status_code == 200
    checks = response.json()["checks"]
    assert checks["database"] == "unhealthy: connection refused"
    assert checks["extraction"] == "formats=docx,pdf,plain_text,rtf pdf_max_pages=10"


def test_startup_check_reports_started(client, monkeypatch):
    monkeypatch.setattr(health, "_startup_complete", False)
    assert client.get("/health/startup").status_code == 503

    health.set_startup_complete()
    assert client.get("/health/startup").json()["status"] == "started"


def test_root(client):
    body = client.get("/").json()
    assert body["name"] == "Deal Room Text Extractor"
    assert body["health"] == "/health/ready"


def test_run_serves_on_configured_host_and_port(monkeypatch):
    serve = MagicMock()
    monkeypatch.setattr(main.uvicorn, "run", serve)
    monkeypatch.setattr(main, "settings", Settings(api_host="127.0.0.1", api_port=9123))

    main.run()

    serve.assert_called_once()
    assert serve.call_args.args == ("src.api.main:app",)
    assert serve.call_args.kwargs["host"] == "127.0.0.1"
    assert serve.call_args.kwargs["port"] == 9123
