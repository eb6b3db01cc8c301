"""Owner-scoped task persistence over SQLAlchemy Core.

Statements are built from the ORM table but only reference the columns the
live database actually has, so the same code serves tables created before the
``status`` column was introduced. A write that needs ``status`` on such a
table raises :class:`SchemaMismatchError`; callers decide whether to retry
without it.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Set
from uuid import UUID, uuid4

from sqlalchemy import delete, insert, inspect, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskboard.core.errors import SchemaMismatchError, StoreError, StoreUnavailableError
from taskboard.core.timeutil import ensure_utc, utc_now
from taskboard.db.models.task import Task
from taskboard.domain.task import TaskRecord, TaskStatus

logger = logging.getLogger(__name__)

_TABLE = Task.__table__
_WRITABLE = ("title", "description", "due_at", "status")


class TaskRepository:
    def __init__(self, db: Session) -> None:
        self.db = db
        self._columns: Optional[Set[str]] = None

    def available_columns(self) -> Set[str]:
        if self._columns is None:
            try:
                inspector = inspect(self.db.connection())
                self._columns = {column["name"] for column in inspector.get_columns(_TABLE.name)}
            except SQLAlchemyError as exc:
                raise StoreUnavailableError("task table is not available") from exc
        return self._columns

    @property
    def supports_status(self) -> bool:
        return "status" in self.available_columns()

    def list_for_owner(self, owner_id: UUID) -> List[TaskRecord]:
        stmt = self._select().where(_TABLE.c.user_id == owner_id).order_by(_TABLE.c.created_at.desc())
        rows = self._execute(stmt, "list tasks").all()
        return [self._to_record(row._mapping) for row in rows]

    def get(self, task_id: UUID, owner_id: UUID) -> Optional[TaskRecord]:
        stmt = self._select().where(_TABLE.c.id == task_id, _TABLE.c.user_id == owner_id)
        row = self._execute(stmt, "load task").first()
        return self._to_record(row._mapping) if row else None

    def search_titles(self, owner_id: UUID, query: str, limit: int = 5) -> List[str]:
        escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        stmt = (
            select(_TABLE.c.title)
            .where(_TABLE.c.user_id == owner_id, _TABLE.c.title.ilike(f"%{escaped}%", escape="\\"))
            .order_by(_TABLE.c.created_at.desc())
            .limit(limit)
        )
        return [row.title for row in self._execute(stmt, "search task titles").all()]

    def insert(self, owner_id: UUID, fields: Mapping[str, Any], include_status: bool = True) -> TaskRecord:
        values = self._values(fields, include_status)
        task_id = uuid4()
        values.update(id=task_id, user_id=owner_id, created_at=utc_now())
        values.setdefault("is_completed", False)
        self._write(insert(_TABLE).values(**values), "insert task")
        record = self.get(task_id, owner_id)
        if record is None:  # pragma: no cover - insert just committed
            raise StoreError("inserted task could not be read back")
        return record

    def update(
        self,
        task_id: UUID,
        owner_id: UUID,
        fields: Mapping[str, Any],
        include_status: bool = True,
    ) -> Optional[TaskRecord]:
        values = self._values(fields, include_status)
        if not values:
            return self.get(task_id, owner_id)
        stmt = (
            update(_TABLE)
            .where(_TABLE.c.id == task_id, _TABLE.c.user_id == owner_id)
            .values(**values)
        )
        result = self._write(stmt, "update task")
        if result.rowcount == 0:
            return None
        return self.get(task_id, owner_id)

    def delete(self, task_id: UUID, owner_id: UUID) -> bool:
        stmt = delete(_TABLE).where(_TABLE.c.id == task_id, _TABLE.c.user_id == owner_id)
        result = self._write(stmt, "delete task")
        return result.rowcount > 0

    def _select(self):
        available = self.available_columns()
        return select(*[column for column in _TABLE.c if column.name in available])

    def _values(self, fields: Mapping[str, Any], include_status: bool) -> Dict[str, Any]:
        unknown = set(fields) - set(_WRITABLE)
        if unknown:
            raise ValueError(f"unsupported task fields: {sorted(unknown)}")

        values: Dict[str, Any] = {}
        if "title" in fields:
            values["title"] = fields["title"]
        if "description" in fields:
            values["description"] = fields["description"]
        if "due_at" in fields:
            values["due_date"] = ensure_utc(fields["due_at"])
        status = fields.get("status")
        if status is not None:
            status = TaskStatus.parse(status)
            values["is_completed"] = status is TaskStatus.COMPLETED
            if include_status:
                if not self.supports_status:
                    raise SchemaMismatchError("status")
                values["status"] = status.value
        return values

    def _execute(self, stmt, action: str):
        try:
            return self.db.execute(stmt)
        except SQLAlchemyError as exc:
            logger.exception("Task store failed to %s", action)
            raise StoreError(f"failed to {action}") from exc

    def _write(self, stmt, action: str):
        try:
            result = self.db.execute(stmt)
            self.db.commit()
            return result
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Task store failed to %s", action)
            raise StoreError(f"failed to {action}") from exc

    @staticmethod
    def _to_record(row: Mapping[str, Any]) -> TaskRecord:
        raw_status = row.get("status")
        if raw_status:
            status = TaskStatus.parse(raw_status)
        else:
            status = TaskStatus.from_legacy(bool(row["is_completed"]))
        return TaskRecord(
            id=row["id"],
            owner_id=row["user_id"],
            title=row["title"],
            description=row["description"],
            due_at=ensure_utc(row["due_date"]),
            status=status,
            created_at=ensure_utc(row["created_at"]),
        )
