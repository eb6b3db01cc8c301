"""Schemas for the task CRUD API."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, field_serializer, field_validator

from taskboard.core.timeutil import format_instant
from taskboard.domain.task import BoardStats, TaskRecord, TaskStatus


def _coerce_status(value):
    if value is None or value == "":
        return None
    return TaskStatus.parse(value)


class TaskCreateRequest(BaseModel):
    owner: Optional[UUID] = None
    title: Optional[str] = None
    description: Optional[str] = None
    due_at: Optional[datetime] = None
    status: Optional[TaskStatus] = None

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value):
        return _coerce_status(value)


class TaskUpdateRequest(BaseModel):
    """Partial update; only fields present in the body are written."""

    id: UUID
    owner: UUID
    title: Optional[str] = None
    description: Optional[str] = None
    due_at: Optional[datetime] = None
    status: Optional[TaskStatus] = None
    legacy_completed: Optional[bool] = None

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value):
        return _coerce_status(value)


class TaskResponse(BaseModel):
    id: UUID
    owner_id: UUID
    title: str
    description: Optional[str]
    due_at: Optional[datetime]
    status: TaskStatus
    legacy_completed: bool
    created_at: datetime

    @field_serializer("due_at", "created_at")
    def _serialize_instant(self, value: Optional[datetime]) -> Optional[str]:
        return format_instant(value)

    @classmethod
    def from_record(cls, record: TaskRecord) -> "TaskResponse":
        return cls(
            id=record.id,
            owner_id=record.owner_id,
            title=record.title,
            description=record.description,
            due_at=record.due_at,
            status=record.status,
            legacy_completed=record.legacy_completed,
            created_at=record.created_at,
        )


class DeleteResponse(BaseModel):
    success: bool


class StatsResponse(BaseModel):
    total: int
    todo: int
    in_progress: int
    completed: int
    completion_rate: int

    @classmethod
    def from_stats(cls, stats: BoardStats) -> "StatsResponse":
        return cls(**stats.to_dict())
