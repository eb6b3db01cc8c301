"""Task CRUD, suggestions and stats routes."""
from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from taskboard.api.schemas.task import (
    DeleteResponse,
    StatsResponse,
    TaskCreateRequest,
    TaskResponse,
    TaskUpdateRequest,
)
from taskboard.core.config import settings
from taskboard.db.deps import get_db
from taskboard.db.repository import TaskRepository
from taskboard.observability.metrics import log_metric
from taskboard.observability.tracing import trace
from taskboard.services import task_service

router = APIRouter()


@router.get("/tasks", response_model=List[TaskResponse], tags=["tasks"])
def list_tasks(
    http_request: Request,
    owner: UUID = Query(..., description="Owner of the tasks"),
    db: Session = Depends(get_db),
) -> List[TaskResponse]:
    """List the owner's tasks, newest first."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace("task.list", metadata={"route": "/tasks"}, user_id=str(owner), request_id=request_id):
        records = task_service.list_tasks(TaskRepository(db), owner)
    log_metric("task.list.count", len(records), metadata={"user_id": str(owner)})
    return [TaskResponse.from_record(record) for record in records]


@router.post("/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED, tags=["tasks"])
def create_task(request: TaskCreateRequest, http_request: Request, db: Session = Depends(get_db)) -> TaskResponse:
    request_id = getattr(http_request.state, "request_id", None)
    owner = str(request.owner) if request.owner else None
    with trace("task.create", metadata={"route": "/tasks"}, user_id=owner, request_id=request_id):
        record = task_service.create_task(
            TaskRepository(db),
            owner_id=request.owner,
            title=request.title,
            description=request.description,
            due_at=request.due_at,
            status=request.status,
        )
    log_metric("task.create.success", 1, metadata={"status": record.status.value})
    return TaskResponse.from_record(record)


@router.put("/tasks", response_model=TaskResponse, tags=["tasks"])
def update_task(request: TaskUpdateRequest, http_request: Request, db: Session = Depends(get_db)) -> TaskResponse:
    """Update the fields present in the body; ``status`` wins over ``legacy_completed``."""
    request_id = getattr(http_request.state, "request_id", None)
    changes = {
        name: getattr(request, name)
        for name in ("title", "description", "due_at")
        if name in request.model_fields_set
    }
    with trace("task.update", metadata={"route": "/tasks"}, user_id=str(request.owner), request_id=request_id):
        record = task_service.update_task(
            TaskRepository(db),
            task_id=request.id,
            owner_id=request.owner,
            status=request.status,
            legacy_completed=request.legacy_completed,
            **changes,
        )
    return TaskResponse.from_record(record)


@router.delete("/tasks", response_model=DeleteResponse, tags=["tasks"])
def delete_task(
    http_request: Request,
    id: UUID = Query(...),
    owner: UUID = Query(...),
    db: Session = Depends(get_db),
) -> DeleteResponse:
    request_id = getattr(http_request.state, "request_id", None)
    with trace("task.delete", metadata={"route": "/tasks"}, user_id=str(owner), request_id=request_id):
        task_service.delete_task(TaskRepository(db), task_id=id, owner_id=owner)
    return DeleteResponse(success=True)


@router.get("/tasks/suggestions", response_model=List[str], tags=["tasks"])
def task_suggestions(
    owner: UUID = Query(...),
    q: str = Query(""),
    db: Session = Depends(get_db),
) -> List[str]:
    return task_service.suggest_titles(
        TaskRepository(db),
        owner,
        q,
        limit=settings.suggestion_limit,
        min_length=settings.suggestion_min_query_length,
    )


@router.get("/tasks/stats", response_model=StatsResponse, tags=["tasks"])
def task_stats(owner: UUID = Query(...), db: Session = Depends(get_db)) -> StatsResponse:
    return StatsResponse.from_stats(task_service.task_stats(TaskRepository(db), owner))
