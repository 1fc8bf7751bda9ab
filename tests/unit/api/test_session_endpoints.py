"""Tests for session API endpoints."""

import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from transcript_relay.api.v1.dependencies import get_pipeline, get_rate_limiter
from transcript_relay.api.v1.endpoints.sessions import get_session_service, router
from transcript_relay.core.exceptions import NotFoundError, setup_exception_handlers
from transcript_relay.models.domain.session import (
    SessionDeleteResponse,
    SessionRead,
    SessionRecountResponse,
)
from transcript_relay.models.domain.transcript import LastChunkRead
from transcript_relay.services.embedding_client import EmbeddingError
from transcript_relay.services.ingestion_pipeline import FlushResult


@pytest.fixture
def session_id() -> uuid.UUID:
    """Session id used across requests."""
    return uuid.uuid4()


@pytest.fixture
def session_read(session_id: uuid.UUID) -> SessionRead:
    """A session as the service returns it."""
    now = datetime.now(UTC)
    return SessionRead(
        id=session_id,
        name="Standup",
        total_transcripts=2,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def mock_service(session_read: SessionRead) -> MagicMock:
    """Create a mock session service."""
    service = MagicMock()
    service.create_session = AsyncMock(return_value=session_read)
    service.list_sessions = AsyncMock(return_value=[session_read])
    service.get_session = AsyncMock(return_value=session_read)
    service.delete_session = AsyncMock()
    service.list_transcripts = AsyncMock(return_value=[])
    service.recount = AsyncMock()
    return service


@pytest.fixture
def mock_pipeline() -> MagicMock:
    """Create a mock ingestion pipeline."""
    pipeline = MagicMock()
    pipeline.flush_now = AsyncMock()
    pipeline.get_last_chunk = AsyncMock()
    return pipeline


@pytest.fixture
def mock_limiter() -> MagicMock:
    """Rate limiter that allows everything."""
    limiter = MagicMock()
    limiter.check_and_increment = AsyncMock()
    return limiter


@pytest.fixture
def app(
    mock_service: MagicMock, mock_pipeline: MagicMock, mock_limiter: MagicMock
) -> FastAPI:
    """Create test app with mocked dependencies."""
    test_app = FastAPI()
    test_app.include_router(router, prefix="/sessions")
    setup_exception_handlers(test_app)

    test_app.dependency_overrides[get_session_service] = lambda: mock_service
    test_app.dependency_overrides[get_pipeline] = lambda: mock_pipeline
    test_app.dependency_overrides[get_rate_limiter] = lambda: mock_limiter
    return test_app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create test client."""
    return TestClient(app)


class TestCreateSession:
    """Tests for POST /sessions."""

    def test_create_session(self, client: TestClient, mock_service: MagicMock) -> None:
        """Test creating a session returns 201."""
        response = client.post("/sessions", json={"name": "  Standup  "})

        assert response.status_code == 201
        assert response.json()["name"] == "Standup"
        create = mock_service.create_session.call_args.args[0]
        assert create.name == "Standup"

    def test_blank_name_rejected(self, client: TestClient) -> None:
        """Test a whitespace-only name fails validation."""
        response = client.post("/sessions", json={"name": "   "})

        assert response.status_code == 422

    def test_counts_against_write_bucket(
        self, client: TestClient, mock_limiter: MagicMock
    ) -> None:
        """Test session creation is rate limited."""
        client.post("/sessions", json={"name": "Standup"})

        assert mock_limiter.check_and_increment.call_args.args[0] == "session_write"


class TestListSessions:
    """Tests for GET /sessions."""

    def test_list_sessions(self, client: TestClient, mock_service: MagicMock) -> None:
        """Test listing passes pagination through."""
        response = client.get("/sessions?limit=10&offset=5")

        assert response.status_code == 200
        assert len(response.json()) == 1
        mock_service.list_sessions.assert_awaited_once_with(limit=10, offset=5)

    def test_limit_bounds(self, client: TestClient) -> None:
        """Test limit above 1000 is rejected."""
        response = client.get("/sessions?limit=1001")

        assert response.status_code == 422


class TestGetSession:
    """Tests for GET /sessions/{id}."""

    def test_get_session(self, client: TestClient, session_id: uuid.UUID) -> None:
        """Test fetching an existing session."""
        response = client.get(f"/sessions/{session_id}")

        assert response.status_code == 200
        assert response.json()["total_transcripts"] == 2

    def test_get_session_not_found(
        self, client: TestClient, mock_service: MagicMock
    ) -> None:
        """Test 404 when the session is missing."""
        mock_service.get_session.side_effect = NotFoundError(resource="Session")

        response = client.get(f"/sessions/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.headers["content-type"] == "application/problem+json"

    def test_invalid_uuid(self, client: TestClient) -> None:
        """Test a malformed id is rejected."""
        response = client.get("/sessions/not-a-uuid")

        assert response.status_code == 422


class TestDeleteSession:
    """Tests for DELETE /sessions/{id}."""

    def test_delete_session(
        self, client: TestClient, mock_service: MagicMock, session_id: uuid.UUID
    ) -> None:
        """Test deleting reports how many transcripts went with it."""
        mock_service.delete_session.return_value = SessionDeleteResponse(
            session_id=session_id, session_name="Standup", transcripts_deleted=3
        )

        response = client.delete(f"/sessions/{session_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["transcripts_deleted"] == 3
        assert data["session_name"] == "Standup"


class TestListTranscripts:
    """Tests for GET /sessions/{id}/transcripts."""

    def test_list_transcripts(
        self, client: TestClient, mock_service: MagicMock, session_id: uuid.UUID
    ) -> None:
        """Test listing a session's chunks."""
        response = client.get(f"/sessions/{session_id}/transcripts")

        assert response.status_code == 200
        assert response.json() == []
        mock_service.list_transcripts.assert_awaited_once_with(session_id)


class TestFlushSession:
    """Tests for POST /sessions/{id}/flush."""

    def test_flush_with_content(
        self, client: TestClient, mock_pipeline: MagicMock, session_id: uuid.UUID
    ) -> None:
        """Test a successful flush reports the embedded length."""
        mock_pipeline.flush_now.return_value = FlushResult(
            flushed=True, content_length=11, chunk_id=uuid.uuid4()
        )

        response = client.post(f"/sessions/{session_id}/flush")

        assert response.status_code == 200
        data = response.json()
        assert data["flushed"] is True
        assert data["content_length"] == 11
        assert data["message"] == "Transcripts flushed and embedded successfully"

    def test_flush_nothing_pending(
        self, client: TestClient, mock_pipeline: MagicMock, session_id: uuid.UUID
    ) -> None:
        """Test flushing an empty buffer is not an error."""
        mock_pipeline.flush_now.return_value = FlushResult(flushed=False)

        response = client.post(f"/sessions/{session_id}/flush")

        assert response.status_code == 200
        data = response.json()
        assert data["flushed"] is False
        assert data["message"] == "No pending transcripts to flush"

    def test_flush_while_another_flush_holds_buffer(
        self, client: TestClient, mock_pipeline: MagicMock, session_id: uuid.UUID
    ) -> None:
        """Test a busy buffer is not reported as empty."""
        mock_pipeline.flush_now.return_value = FlushResult(flushed=False, in_progress=True)

        response = client.post(f"/sessions/{session_id}/flush")

        assert response.status_code == 200
        data = response.json()
        assert data["flushed"] is False
        assert data["in_progress"] is True
        assert data["message"] == "A flush is already in progress for this session"

    def test_flush_embedding_failure(
        self, client: TestClient, mock_pipeline: MagicMock, session_id: uuid.UUID
    ) -> None:
        """Test an embedding failure becomes a 502."""
        mock_pipeline.flush_now.side_effect = EmbeddingError("upstream down")

        response = client.post(f"/sessions/{session_id}/flush")

        assert response.status_code == 502
        assert response.json()["type"] == "about:blank#embedding-unavailable"

    def test_flush_unknown_session(
        self, client: TestClient, mock_pipeline: MagicMock
    ) -> None:
        """Test flushing a missing session is a 404."""
        mock_pipeline.flush_now.side_effect = NotFoundError(resource="Session")

        response = client.post(f"/sessions/{uuid.uuid4()}/flush")

        assert response.status_code == 404


class TestLastChunk:
    """Tests for GET /sessions/{id}/last-chunk."""

    def test_last_chunk_from_buffer(
        self, client: TestClient, mock_pipeline: MagicMock, session_id: uuid.UUID
    ) -> None:
        """Test buffered text is returned with its source."""
        mock_pipeline.get_last_chunk.return_value = LastChunkRead(
            source="buffer", content="Hello world", language="en"
        )

        response = client.get(f"/sessions/{session_id}/last-chunk")

        assert response.status_code == 200
        assert response.json()["source"] == "buffer"
        assert response.json()["content"] == "Hello world"
        mock_pipeline.flush_now.assert_not_called()

    def test_last_chunk_unknown_session(
        self, client: TestClient, mock_service: MagicMock, mock_pipeline: MagicMock
    ) -> None:
        """Test the session is checked before the pipeline is asked."""
        mock_service.get_session.side_effect = NotFoundError(resource="Session")

        response = client.get(f"/sessions/{uuid.uuid4()}/last-chunk")

        assert response.status_code == 404
        mock_pipeline.get_last_chunk.assert_not_called()


class TestRecount:
    """Tests for POST /sessions/{id}/recount."""

    def test_recount(
        self, client: TestClient, mock_service: MagicMock, session_id: uuid.UUID
    ) -> None:
        """Test the recalculated count is returned."""
        mock_service.recount.return_value = SessionRecountResponse(
            session_id=session_id, total_transcripts=4
        )

        response = client.post(f"/sessions/{session_id}/recount")

        assert response.status_code == 200
        assert response.json()["total_transcripts"] == 4
