"""Validated task CRUD on top of the repository."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from taskboard.core.errors import NotFoundError, ValidationError
from taskboard.db.repository import TaskRepository
from taskboard.domain.task import BoardStats, TaskRecord, TaskStatus, summarize_statuses
from taskboard.services.task_writes import write_with_status_fallback

_UNSET: Any = object()


def list_tasks(repo: TaskRepository, owner_id: UUID) -> List[TaskRecord]:
    """Owner's tasks, newest created first."""
    return repo.list_for_owner(owner_id)


def create_task(
    repo: TaskRepository,
    *,
    owner_id: Optional[UUID],
    title: Optional[str],
    description: Optional[str] = None,
    due_at: Optional[datetime] = None,
    status: Optional[TaskStatus] = None,
) -> TaskRecord:
    if owner_id is None or not title or not title.strip():
        raise ValidationError("Title and owner are required")

    fields: Dict[str, Any] = {
        "title": title.strip(),
        "description": _clean_description(description),
        "due_at": due_at,
        "status": status or TaskStatus.TODO,
    }
    return write_with_status_fallback(
        lambda with_status: repo.insert(owner_id, fields, include_status=with_status),
        action="create",
    )


def update_task(
    repo: TaskRepository,
    *,
    task_id: UUID,
    owner_id: UUID,
    title: Any = _UNSET,
    description: Any = _UNSET,
    due_at: Any = _UNSET,
    status: Optional[TaskStatus] = None,
    legacy_completed: Optional[bool] = None,
) -> TaskRecord:
    """Apply a partial update; ``status`` wins over ``legacy_completed`` when both are sent."""
    fields: Dict[str, Any] = {}
    if title is not _UNSET:
        if title is None or not str(title).strip():
            raise ValidationError("Title cannot be blank")
        fields["title"] = str(title).strip()
    if description is not _UNSET:
        fields["description"] = _clean_description(description)
    if due_at is not _UNSET:
        fields["due_at"] = due_at

    if status is not None:
        fields["status"] = status
    elif legacy_completed is not None:
        current = repo.get(task_id, owner_id)
        if current is None:
            raise NotFoundError("Task not found")
        fields["status"] = _status_for_legacy_flag(current.status, legacy_completed)

    record = write_with_status_fallback(
        lambda with_status: repo.update(task_id, owner_id, fields, include_status=with_status),
        action="update",
    )
    if record is None:
        raise NotFoundError("Task not found")
    return record


def delete_task(repo: TaskRepository, *, task_id: UUID, owner_id: UUID) -> None:
    if not repo.delete(task_id, owner_id):
        raise NotFoundError("Task not found")


def suggest_titles(repo: TaskRepository, owner_id: UUID, query: str, *, limit: int, min_length: int) -> List[str]:
    query = (query or "").strip()
    if len(query) < min_length:
        return []
    return repo.search_titles(owner_id, query, limit=limit)


def task_stats(repo: TaskRepository, owner_id: UUID) -> BoardStats:
    return summarize_statuses(task.status for task in repo.list_for_owner(owner_id))


def _clean_description(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _status_for_legacy_flag(current: TaskStatus, completed: bool) -> TaskStatus:
    if completed:
        return TaskStatus.COMPLETED
    # Unchecking keeps an in-progress task where it is.
    if current is TaskStatus.COMPLETED:
        return TaskStatus.TODO
    return current
