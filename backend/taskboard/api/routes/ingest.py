"""Natural-language parse and ingest routes."""
from __future__ import annotations

from typing import Any, Dict, List, Union

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from taskboard.api.schemas.ingest import FailedDraft, IngestRequest, IngestResponse, ParseRequest
from taskboard.api.schemas.task import TaskResponse
from taskboard.db.deps import get_db
from taskboard.db.repository import TaskRepository
from taskboard.domain.task import TaskDraft
from taskboard.extraction.extractor import TaskExtractor, get_extractor
from taskboard.observability.metrics import log_metric
from taskboard.observability.tracing import trace
from taskboard.services.ingestion import IngestionCoordinator
from taskboard.services.store import RepositoryTaskStore

router = APIRouter()


@router.post("/parse", response_model=None, tags=["extraction"])
async def parse_message(
    request: ParseRequest,
    http_request: Request,
    extractor: TaskExtractor = Depends(get_extractor),
) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
    """Return one draft, or a list when the message holds several tasks."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace("task.parse", metadata={"route": "/parse", "text_length": len(request.message)}, request_id=request_id):
        result = await extractor.extract(request.message, tz=request.timezone)
    if isinstance(result, list):
        log_metric("task.parse.drafts", len(result))
        return [_draft_payload(draft) for draft in result]
    log_metric("task.parse.drafts", 1)
    return _draft_payload(result)


@router.post("/ingest", response_model=IngestResponse, tags=["extraction"])
async def ingest_message(
    request: IngestRequest,
    http_request: Request,
    db: Session = Depends(get_db),
    extractor: TaskExtractor = Depends(get_extractor),
) -> IngestResponse:
    """Extract tasks from a message and save each one for the owner."""
    coordinator = IngestionCoordinator(extractor, RepositoryTaskStore(TaskRepository(db)))
    result = await coordinator.ingest(
        request.message,
        request.owner,
        tz=request.timezone,
        request_id=getattr(http_request.state, "request_id", None),
    )
    return IngestResponse(
        created=[TaskResponse.from_record(record) for record in result.created],
        failed=[FailedDraft(title=failure.draft.title, error=str(failure.error)) for failure in result.failed],
        message=result.message,
    )


def _draft_payload(draft: TaskDraft) -> Dict[str, Any]:
    payload = draft.model_dump(mode="json")
    payload["status"] = draft.effective_status.value
    return payload
