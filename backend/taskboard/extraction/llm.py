"""OpenAI-backed draft source."""
from __future__ import annotations

import asyncio
import json
import logging
import re
from datetime import date, datetime, time
from typing import Any, List, Optional, Protocol
from zoneinfo import ZoneInfo

import openai
from pydantic import ValidationError as PydanticValidationError

from taskboard.core.errors import ExtractionError, ExtractionErrorKind
from taskboard.domain.task import TaskDraft
from taskboard.observability.tracing import trace

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You turn short English or Indonesian messages into to-do items. "
    "Reply with JSON only."
)

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.I)


class CompletionServiceError(Exception):
    """The text-understanding service could not produce a reply."""


class TextCompletionService(Protocol):
    async def complete(self, prompt: str) -> str: ...


class OpenAICompletionService:
    """Chat completion in JSON mode with a hard timeout."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", timeout: float = 20.0, client: Any = None) -> None:
        self.client = client or openai.AsyncOpenAI(api_key=api_key)
        self.model = model
        self.timeout = timeout

    async def complete(self, prompt: str) -> str:
        try:
            with trace("extract.completion", metadata={"model": self.model}):
                completion = await asyncio.wait_for(
                    self.client.chat.completions.create(
                        model=self.model,
                        response_format={"type": "json_object"},
                        messages=[
                            {"role": "system", "content": SYSTEM_PROMPT},
                            {"role": "user", "content": prompt},
                        ],
                    ),
                    timeout=self.timeout,
                )
        except asyncio.TimeoutError as exc:
            raise CompletionServiceError(f"completion timed out after {self.timeout}s") from exc
        except openai.OpenAIError as exc:
            raise CompletionServiceError(str(exc)) from exc
        return completion.choices[0].message.content or ""


def build_prompt(utterance: str, now: datetime, tz: ZoneInfo) -> str:
    local_now = now.astimezone(tz)
    return (
        f"Current local time: {local_now.strftime('%A %Y-%m-%d %H:%M')} ({tz.key}).\n"
        "Extract every task from the user's message. The message may be English or Indonesian, "
        "formal or slang.\n"
        "Return an object of the form "
        '{"tasks": [{"title": str, "description": str|null, "due_at": "YYYY-MM-DDTHH:MM"|null, '
        '"status": "todo"|"in_progress"|"completed"}]}.\n'
        "Rules:\n"
        "- title: a short action phrase (max 8 words) in the message's language; for scheduling "
        "requests use the thing being scheduled (\"Schedule a meeting\" -> \"Meeting\").\n"
        "- description: null unless the message adds useful detail.\n"
        "- due_at: local wall-clock time. A date without a time means 09:00. A time without a date "
        "means today. No date and no time means null.\n"
        "- status: completed for done/finished/sudah/selesai, in_progress for working on/sedang/lagi, "
        "otherwise todo.\n"
        'If the message contains no task, return {"error": "no task"}.\n\n'
        f"Message: {json.dumps(utterance, ensure_ascii=False)}"
    )


def parse_reply(reply: str, tz: ZoneInfo, default_hour: int = 9) -> List[TaskDraft]:
    """Decode a model reply into drafts; raises ExtractionError for unusable replies.

    A date-only ``due_at`` lands on ``default_hour`` local time.
    """
    text = _FENCE_RE.sub("", reply or "").strip()
    try:
        payload = json.loads(text)
    except ValueError as exc:
        raise ExtractionError(ExtractionErrorKind.SERVICE_FAILURE, "reply was not JSON") from exc

    if isinstance(payload, dict):
        if payload.get("error"):
            raise ExtractionError(ExtractionErrorKind.UNRECOGNIZED, str(payload["error"]))
        if "tasks" in payload:
            payload = payload["tasks"]
        elif "title" in payload:
            payload = [payload]
        else:
            raise ExtractionError(ExtractionErrorKind.SERVICE_FAILURE, "reply had no tasks")
    if not isinstance(payload, list):
        raise ExtractionError(ExtractionErrorKind.SERVICE_FAILURE, "reply had no tasks")
    if not payload:
        raise ExtractionError(ExtractionErrorKind.UNRECOGNIZED, "reply listed no tasks")

    drafts = []
    for item in payload:
        if not isinstance(item, dict):
            raise ExtractionError(ExtractionErrorKind.SERVICE_FAILURE, "task entry was not an object")
        try:
            drafts.append(
                TaskDraft(
                    title=item.get("title") or "",
                    description=item.get("description"),
                    due_at=_local_instant(item.get("due_at", item.get("due_date")), tz, default_hour),
                    status=item.get("status"),
                )
            )
        except (PydanticValidationError, ValueError) as exc:
            raise ExtractionError(ExtractionErrorKind.SERVICE_FAILURE, f"invalid task entry: {exc}") from exc
    return drafts


def _local_instant(value: Any, tz: ZoneInfo, default_hour: int) -> Optional[datetime]:
    if value in (None, ""):
        return None
    text = str(value).strip()
    if len(text) == 10:
        return datetime.combine(date.fromisoformat(text), time(default_hour, 0), tzinfo=tz)
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


class LLMDraftSource:
    def __init__(self, service: TextCompletionService, default_hour: int = 9) -> None:
        self.service = service
        self.default_hour = default_hour

    async def drafts(self, utterance: str, now: datetime, tz: ZoneInfo) -> List[TaskDraft]:
        try:
            reply = await self.service.complete(build_prompt(utterance, now, tz))
        except CompletionServiceError as exc:
            logger.warning("Task extraction service failed: %s", exc)
            raise ExtractionError(ExtractionErrorKind.SERVICE_FAILURE, str(exc)) from exc
        return parse_reply(reply, tz, self.default_hour)
