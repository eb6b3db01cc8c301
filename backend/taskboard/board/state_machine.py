"""Three-column board with optimistic, per-task serialized status moves."""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional
from uuid import UUID

from taskboard.core.errors import NotFoundError, TransitionError
from taskboard.domain.task import BoardStats, TaskRecord, TaskStatus, summarize_statuses
from taskboard.observability.metrics import log_metric
from taskboard.services.store import TaskStore
from taskboard.services.task_writes import awrite_with_status_fallback

logger = logging.getLogger(__name__)

COLUMN_ORDER = (TaskStatus.TODO, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED)


class BoardStateMachine:
    """Board view for one owner.

    The view shows a moved card in its target column immediately. The write
    runs afterwards; on failure the card returns to its last confirmed
    column. Moves on the same task queue behind each other, moves on
    different tasks run independently.
    """

    def __init__(self, store: TaskStore, owner_id: UUID) -> None:
        self.store = store
        self.owner_id = owner_id
        self._tasks: Dict[UUID, TaskRecord] = {}
        self._confirmed: Dict[UUID, TaskStatus] = {}
        self._locks: Dict[UUID, asyncio.Lock] = {}
        self._waiting: Dict[UUID, int] = {}

    async def refresh(self) -> List[TaskRecord]:
        records = await self.store.list(self.owner_id)
        self._tasks = {record.id: record for record in records}
        self._confirmed = {record.id: record.status for record in records}
        return records

    def tasks(self) -> List[TaskRecord]:
        return list(self._tasks.values())

    def columns(self, search: Optional[str] = None) -> Dict[TaskStatus, List[TaskRecord]]:
        needle = (search or "").strip().lower()
        view: Dict[TaskStatus, List[TaskRecord]] = {status: [] for status in COLUMN_ORDER}
        for record in self._tasks.values():
            if needle and needle not in record.title.lower() and needle not in (record.description or "").lower():
                continue
            view[record.status].append(record)
        return view

    def column_of(self, task_id: UUID) -> TaskStatus:
        return self._get(task_id).status

    def stats(self) -> BoardStats:
        return summarize_statuses(record.status for record in self._tasks.values())

    async def toggle_completed(self, task_id: UUID) -> TaskRecord:
        current = self.column_of(task_id)
        target = TaskStatus.TODO if current is TaskStatus.COMPLETED else TaskStatus.COMPLETED
        return await self.move(task_id, target)

    async def move(self, task_id: UUID, target) -> TaskRecord:
        target = TaskStatus.parse(target)
        self._set_view(task_id, target)

        self._waiting[task_id] = self._waiting.get(task_id, 0) + 1
        lock = self._locks.setdefault(task_id, asyncio.Lock())
        try:
            async with lock:
                return await self._transition(task_id, target)
        finally:
            self._waiting[task_id] -= 1
            if not self._waiting[task_id]:
                del self._waiting[task_id]
                self._locks.pop(task_id, None)

    async def _transition(self, task_id: UUID, target: TaskStatus) -> TaskRecord:
        confirmed = self._confirmed[task_id]
        if confirmed is target:
            return self._set_view(task_id, target)

        self._set_view(task_id, target)
        completed = target is TaskStatus.COMPLETED

        async def write(with_status: bool) -> TaskRecord:
            fields = {"status": target, "legacy_completed": completed} if with_status else {"legacy_completed": completed}
            return await self.store.update(task_id, self.owner_id, fields)

        try:
            record = await awrite_with_status_fallback(write, action="move")
        except Exception as exc:
            self._set_view(task_id, confirmed)
            logger.warning("Moving task %s to %s failed; restored %s: %s", task_id, target.value, confirmed.value, exc)
            log_metric("board.move_failed", 1, metadata={"target": target.value})
            raise TransitionError(task_id, target, exc) from exc

        # A legacy store reports in_progress as todo; the board keeps the moved column.
        record = record.with_status(target)
        self._tasks[task_id] = record
        self._confirmed[task_id] = target
        log_metric("board.move", 1, metadata={"from": confirmed.value, "to": target.value})
        return record

    def _get(self, task_id: UUID) -> TaskRecord:
        record = self._tasks.get(task_id)
        if record is None:
            raise NotFoundError("Task not found")
        return record

    def _set_view(self, task_id: UUID, status: TaskStatus) -> TaskRecord:
        record = self._get(task_id).with_status(status)
        self._tasks[task_id] = record
        return record
