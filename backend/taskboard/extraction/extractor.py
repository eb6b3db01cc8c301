"""Extraction facade: one draft, several drafts, or an ExtractionError."""
from __future__ import annotations

import logging
from datetime import datetime
from functools import lru_cache
from typing import List, Optional, Protocol, Union
from zoneinfo import ZoneInfo

from taskboard.core.config import Settings, get_settings
from taskboard.core.errors import ExtractionError, ExtractionErrorKind
from taskboard.core.timeutil import ensure_utc, resolve_zone, utc_now
from taskboard.domain.task import TaskDraft
from taskboard.extraction.llm import LLMDraftSource, OpenAICompletionService
from taskboard.extraction.rules import RuleBasedDraftSource
from taskboard.observability.metrics import log_metric

logger = logging.getLogger(__name__)


class DraftSource(Protocol):
    async def drafts(self, utterance: str, now: datetime, tz: ZoneInfo) -> List[TaskDraft]: ...


class TaskExtractor:
    def __init__(self, source: DraftSource, default_timezone: str = "UTC") -> None:
        self.source = source
        self.default_timezone = default_timezone

    async def extract(
        self,
        utterance: str,
        now: Optional[datetime] = None,
        tz: Union[ZoneInfo, str, None] = None,
    ) -> Union[TaskDraft, List[TaskDraft]]:
        """Return a lone draft for one task, a list in source order for several."""
        drafts = await self.extract_all(utterance, now=now, tz=tz)
        return drafts[0] if len(drafts) == 1 else drafts

    async def extract_all(
        self,
        utterance: str,
        now: Optional[datetime] = None,
        tz: Union[ZoneInfo, str, None] = None,
    ) -> List[TaskDraft]:
        if not (utterance or "").strip():
            raise ExtractionError(ExtractionErrorKind.UNRECOGNIZED, "empty message")
        zone = tz if isinstance(tz, ZoneInfo) else resolve_zone(tz, self.default_timezone)
        reference = ensure_utc(now) or utc_now()

        drafts = await self.source.drafts(utterance, reference, zone)
        if not drafts:
            logger.info("No task found in %d-character message", len(utterance))
            raise ExtractionError(ExtractionErrorKind.UNRECOGNIZED)
        log_metric("extract.drafts", len(drafts), metadata={"source": type(self.source).__name__})
        return drafts


def build_extractor(settings: Settings) -> TaskExtractor:
    """Pick the draft source from ``extraction_strategy``: rules, llm, or auto."""
    strategy = (settings.extraction_strategy or "auto").lower()
    if strategy == "llm" or (strategy == "auto" and settings.openai_api_key):
        if not settings.openai_api_key:
            raise ValueError("extraction_strategy=llm requires OPENAI_API_KEY")
        service = OpenAICompletionService(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout=settings.openai_timeout_seconds,
        )
        source: DraftSource = LLMDraftSource(service, default_hour=settings.default_due_hour)
    elif strategy in ("rules", "auto"):
        source = RuleBasedDraftSource(default_hour=settings.default_due_hour)
    else:
        raise ValueError(f"unknown extraction strategy: {settings.extraction_strategy!r}")
    logger.info("Task extraction uses %s", type(source).__name__)
    return TaskExtractor(source, default_timezone=settings.default_timezone)


@lru_cache
def get_extractor() -> TaskExtractor:
    """FastAPI dependency returning the process-wide extractor."""
    return build_extractor(get_settings())
