from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from taskboard.core.errors import SERVICE_FAILURE_MESSAGE, UNRECOGNIZED_MESSAGE
from taskboard.db.deps import get_db
from taskboard.extraction.extractor import TaskExtractor, get_extractor
from taskboard.extraction.llm import CompletionServiceError, LLMDraftSource
from taskboard.extraction.rules import RuleBasedDraftSource
from taskboard.main import app


class FailingCompletionService:
    async def complete(self, prompt: str) -> str:
        raise CompletionServiceError("upstream returned 503")


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_extractor] = lambda: TaskExtractor(RuleBasedDraftSource())
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_parse_single_task_returns_object(client):
    resp = client.post("/parse", json={"message": "Review proposal"})
    assert resp.status_code == 200
    assert resp.json() == {"title": "Review proposal", "description": None, "due_at": None, "status": "todo"}


def test_parse_several_tasks_returns_list(client):
    resp = client.post("/parse", json={"message": "I need to: 1. Call client at 3 PM, 2. Review proposal"})
    assert resp.status_code == 200
    data = resp.json()
    assert [draft["title"] for draft in data] == ["Call client", "Review proposal"]
    assert data[0]["due_at"].endswith("T15:00:00.000Z")
    assert data[1]["due_at"] is None


def test_parse_completed_indonesian_task_returns_one_object(client):
    resp = client.post("/parse", json={"message": "tugas sudah selesai, tandai sebagai completed"})
    assert resp.status_code == 200
    assert resp.json() == {"title": "Tugas", "description": None, "due_at": None, "status": "completed"}


def test_parse_unrecognized_is_conversational_200(client):
    resp = client.post("/parse", json={"message": "asdkj qwoe"})
    assert resp.status_code == 200
    assert resp.json() == {"error": UNRECOGNIZED_MESSAGE}


def test_parse_service_failure_is_502(client):
    app.dependency_overrides[get_extractor] = lambda: TaskExtractor(LLMDraftSource(FailingCompletionService()))
    resp = client.post("/parse", json={"message": "Call client tomorrow"})
    assert resp.status_code == 502
    assert resp.json() == {"error": SERVICE_FAILURE_MESSAGE}


def test_ingest_creates_every_draft(client):
    owner = uuid4()
    resp = client.post(
        "/ingest",
        json={"owner": str(owner), "message": "tugas sudah selesai, tandai sebagai completed. Review proposal"},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert [task["title"] for task in data["created"]] == ["Tugas", "Review proposal"]
    assert [task["status"] for task in data["created"]] == ["completed", "todo"]
    assert data["failed"] == []
    assert data["message"] == "Added 2 tasks."

    listed = client.get("/tasks", params={"owner": str(owner)}).json()
    assert sorted(task["title"] for task in listed) == ["Review proposal", "Tugas"]


def test_ingest_unrecognized_creates_nothing(client):
    owner = uuid4()
    resp = client.post("/ingest", json={"owner": str(owner), "message": "asdkj qwoe"})
    assert resp.status_code == 200
    assert resp.json() == {"error": UNRECOGNIZED_MESSAGE}
    assert client.get("/tasks", params={"owner": str(owner)}).json() == []


def test_ingest_requires_owner(client):
    resp = client.post("/ingest", json={"message": "Review proposal"})
    assert resp.status_code == 400
