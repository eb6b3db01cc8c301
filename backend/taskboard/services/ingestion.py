"""Utterance to persisted tasks: extract, then write every draft concurrently."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from taskboard.domain.task import TaskDraft, TaskRecord, TaskStatus
from taskboard.extraction.extractor import TaskExtractor
from taskboard.observability.metrics import log_metric
from taskboard.observability.tracing import trace
from taskboard.services.store import TaskStore
from taskboard.services.task_writes import awrite_with_status_fallback

logger = logging.getLogger(__name__)


@dataclass
class DraftFailure:
    draft: TaskDraft
    error: Exception


@dataclass
class IngestionResult:
    created: List[TaskRecord] = field(default_factory=list)
    failed: List[DraftFailure] = field(default_factory=list)

    @property
    def message(self) -> str:
        if not self.failed:
            noun = "task" if len(self.created) == 1 else "tasks"
            return f"Added {len(self.created)} {noun}."
        return f"Added {len(self.created)} of {len(self.created) + len(self.failed)} tasks."


class IngestionCoordinator:
    def __init__(self, extractor: TaskExtractor, store: TaskStore) -> None:
        self.extractor = extractor
        self.store = store

    async def ingest(
        self,
        utterance: str,
        owner_id: UUID,
        now: Optional[datetime] = None,
        tz=None,
        request_id: Optional[str] = None,
    ) -> IngestionResult:
        """Persist each extracted draft; one failed write does not cancel the others.

        Extraction errors propagate unchanged and nothing is written.
        """
        with trace("tasks.ingest", user_id=str(owner_id), request_id=request_id):
            drafts = await self.extractor.extract_all(utterance, now=now, tz=tz)
            outcomes = await asyncio.gather(
                *(self._create(owner_id, draft) for draft in drafts),
                return_exceptions=True,
            )

        result = IngestionResult()
        for draft, outcome in zip(drafts, outcomes):
            if isinstance(outcome, Exception):
                logger.warning("Could not save draft %r for owner %s: %s", draft.title, owner_id, outcome)
                result.failed.append(DraftFailure(draft=draft, error=outcome))
            else:
                result.created.append(outcome)
        log_metric("tasks.ingested", len(result.created), metadata={"failed": len(result.failed)})
        return result

    async def _create(self, owner_id: UUID, draft: TaskDraft) -> TaskRecord:
        fields = {
            "title": draft.title,
            "description": draft.description,
            "due_at": draft.due_at,
            "status": draft.effective_status,
        }

        async def write(with_status: bool) -> TaskRecord:
            if with_status:
                return await self.store.create(owner_id, fields)
            legacy = {key: value for key, value in fields.items() if key != "status"}
            legacy["legacy_completed"] = draft.effective_status is TaskStatus.COMPLETED
            return await self.store.create(owner_id, legacy)

        return await awrite_with_status_fallback(write, action="create")
