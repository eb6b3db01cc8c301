"""Async task-store capability consumed by the board and the ingestion coordinator.

Field vocabulary for ``create``/``update`` matches the ``/tasks`` API:
``title``, ``description``, ``due_at``, ``status`` and ``legacy_completed``.
A store raises :class:`SchemaMismatchError` when asked to set ``status`` on a
table that does not have it; retrying is the caller's decision.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Protocol, Tuple
from uuid import UUID

import httpx

from taskboard.core.errors import NotFoundError, StoreError, StoreUnavailableError, ValidationError
from taskboard.core.timeutil import format_instant
from taskboard.db.repository import TaskRepository
from taskboard.domain.task import TaskRecord, TaskStatus, record_from_payload

logger = logging.getLogger(__name__)


class TaskStore(Protocol):
    async def list(self, owner_id: UUID) -> List[TaskRecord]: ...

    async def create(self, owner_id: UUID, fields: Mapping[str, Any]) -> TaskRecord: ...

    async def update(self, task_id: UUID, owner_id: UUID, fields: Mapping[str, Any]) -> TaskRecord: ...

    async def delete(self, task_id: UUID, owner_id: UUID) -> None: ...


def _repository_fields(fields: Mapping[str, Any]) -> Tuple[Dict[str, Any], bool]:
    """Translate API-style fields into repository fields plus the include-status flag."""
    values = dict(fields)
    legacy = values.pop("legacy_completed", None)
    status = values.get("status")
    if status is not None:
        values["status"] = TaskStatus.parse(status)
        return values, True
    values.pop("status", None)
    if legacy is not None:
        values["status"] = TaskStatus.from_legacy(bool(legacy))
    return values, False


class RepositoryTaskStore:
    """Store backed directly by a :class:`TaskRepository`.

    Calls run on the caller's session and complete without yielding to the
    event loop.
    """

    def __init__(self, repo: TaskRepository) -> None:
        self.repo = repo

    async def list(self, owner_id: UUID) -> List[TaskRecord]:
        return self.repo.list_for_owner(owner_id)

    async def create(self, owner_id: UUID, fields: Mapping[str, Any]) -> TaskRecord:
        values, include_status = _repository_fields(fields)
        if not str(values.get("title") or "").strip():
            raise ValidationError("Title is required")
        values.setdefault("status", TaskStatus.TODO)
        return self.repo.insert(owner_id, values, include_status=include_status)

    async def update(self, task_id: UUID, owner_id: UUID, fields: Mapping[str, Any]) -> TaskRecord:
        values, include_status = _repository_fields(fields)
        record = self.repo.update(task_id, owner_id, values, include_status=include_status)
        if record is None:
            raise NotFoundError("Task not found")
        return record

    async def delete(self, task_id: UUID, owner_id: UUID) -> None:
        if not self.repo.delete(task_id, owner_id):
            raise NotFoundError("Task not found")

    async def suggestions(self, owner_id: UUID, query: str, limit: int = 5) -> List[str]:
        return self.repo.search_titles(owner_id, query, limit=limit)


class HttpTaskStore:
    """Store that talks to the ``/tasks`` API with an ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient, path: str = "/tasks") -> None:
        self.client = client
        self.path = path

    async def list(self, owner_id: UUID) -> List[TaskRecord]:
        response = await self._send("GET", params={"owner": str(owner_id)})
        return [record_from_payload(item) for item in response.json()]

    async def create(self, owner_id: UUID, fields: Mapping[str, Any]) -> TaskRecord:
        body = {**_encode(fields), "owner": str(owner_id)}
        response = await self._send("POST", json=body)
        return record_from_payload(response.json())

    async def update(self, task_id: UUID, owner_id: UUID, fields: Mapping[str, Any]) -> TaskRecord:
        body = {**_encode(fields), "id": str(task_id), "owner": str(owner_id)}
        response = await self._send("PUT", json=body)
        return record_from_payload(response.json())

    async def delete(self, task_id: UUID, owner_id: UUID) -> None:
        await self._send("DELETE", params={"id": str(task_id), "owner": str(owner_id)})

    async def suggestions(self, owner_id: UUID, query: str) -> List[str]:
        response = await self._send("GET", path=f"{self.path}/suggestions", params={"owner": str(owner_id), "q": query})
        return list(response.json())

    async def _send(self, method: str, path: str | None = None, **kwargs) -> httpx.Response:
        path = path or self.path
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Task API %s %s unreachable: %s", method, path, exc)
            raise StoreUnavailableError("task API unreachable") from exc

        if response.status_code == 404:
            raise NotFoundError(_error_message(response) or "Task not found")
        if response.status_code == 400:
            raise ValidationError(_error_message(response) or "Invalid task request")
        if response.status_code >= 400:
            raise StoreError(_error_message(response) or f"task API returned {response.status_code}")
        return response


def _encode(fields: Mapping[str, Any]) -> Dict[str, Any]:
    body: Dict[str, Any] = {}
    for key, value in fields.items():
        if key == "due_at":
            body[key] = format_instant(value)
        elif key == "status" and value is not None:
            body[key] = TaskStatus.parse(value).value
        else:
            body[key] = value
    return body


def _error_message(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        return payload.get("error")
    return None
