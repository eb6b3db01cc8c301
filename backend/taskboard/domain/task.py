"""Task lifecycle types shared by the store, extractor, board and API."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer, field_validator

from taskboard.core.timeutil import ensure_utc, format_instant, parse_instant


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def from_legacy(cls, completed: bool) -> "TaskStatus":
        """Derive a status from the legacy completion flag alone."""
        return cls.COMPLETED if completed else cls.TODO

    @classmethod
    def parse(cls, value: object) -> "TaskStatus":
        """Accept the spellings clients and models send (inProgress, in-progress, ...)."""
        if isinstance(value, TaskStatus):
            return value
        key = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
        aliases = {
            "inprogress": cls.IN_PROGRESS,
            "in_progress": cls.IN_PROGRESS,
            "doing": cls.IN_PROGRESS,
            "done": cls.COMPLETED,
            "complete": cls.COMPLETED,
            "completed": cls.COMPLETED,
            "todo": cls.TODO,
            "to_do": cls.TODO,
            "pending": cls.TODO,
        }
        if key not in aliases:
            raise ValueError(f"unknown task status: {value!r}")
        return aliases[key]


@dataclass(frozen=True)
class TaskRecord:
    """A persisted task as read back from a store."""

    id: UUID
    owner_id: UUID
    title: str
    description: Optional[str]
    due_at: Optional[datetime]
    status: TaskStatus
    created_at: datetime

    @property
    def legacy_completed(self) -> bool:
        return self.status is TaskStatus.COMPLETED

    def with_status(self, status: TaskStatus) -> "TaskRecord":
        return replace(self, status=status)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "owner_id": str(self.owner_id),
            "title": self.title,
            "description": self.description,
            "due_at": format_instant(self.due_at),
            "status": self.status.value,
            "legacy_completed": self.legacy_completed,
            "created_at": format_instant(self.created_at),
        }


class TaskDraft(BaseModel):
    """An unpersisted candidate task produced by extraction."""

    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    due_at: Optional[datetime] = None
    status: Optional[TaskStatus] = None

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title cannot be blank")
        return value

    @field_validator("description")
    @classmethod
    def _blank_description_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @field_validator("due_at")
    @classmethod
    def _due_at_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value):
        if value is None or value == "":
            return None
        return TaskStatus.parse(value)

    @field_serializer("due_at")
    def _serialize_due_at(self, value: Optional[datetime]) -> Optional[str]:
        return format_instant(value)

    @property
    def effective_status(self) -> TaskStatus:
        return self.status or TaskStatus.TODO


def record_from_payload(payload: dict) -> TaskRecord:
    """Build a record from a JSON task body; ``status`` may be missing on legacy stores."""
    raw_status = payload.get("status")
    if raw_status:
        status = TaskStatus.parse(raw_status)
    else:
        status = TaskStatus.from_legacy(bool(payload.get("legacy_completed", payload.get("is_completed", False))))
    return TaskRecord(
        id=UUID(str(payload["id"])),
        owner_id=UUID(str(payload.get("owner_id") or payload["user_id"])),
        title=payload["title"],
        description=payload.get("description") or None,
        due_at=parse_instant(payload.get("due_at") or payload.get("due_date")),
        status=status,
        created_at=parse_instant(payload["created_at"]),
    )


@dataclass(frozen=True)
class BoardStats:
    total: int
    todo: int
    in_progress: int
    completed: int

    @property
    def completion_rate(self) -> int:
        """Completed share as a rounded whole percentage."""
        if not self.total:
            return 0
        return int(self.completed * 100 / self.total + 0.5)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "todo": self.todo,
            "in_progress": self.in_progress,
            "completed": self.completed,
            "completion_rate": self.completion_rate,
        }


def summarize_statuses(statuses: Iterable[TaskStatus]) -> BoardStats:
    counts = Counter(statuses)
    return BoardStats(
        total=sum(counts.values()),
        todo=counts[TaskStatus.TODO],
        in_progress=counts[TaskStatus.IN_PROGRESS],
        completed=counts[TaskStatus.COMPLETED],
    )
