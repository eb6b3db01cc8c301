import asyncio
import json
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import httpx
import openai
import pytest

from taskboard.core.config import Settings
from taskboard.core.errors import ExtractionError, ExtractionErrorKind
from taskboard.core.timeutil import format_instant
from taskboard.domain.task import TaskDraft, TaskStatus
from taskboard.extraction.extractor import TaskExtractor, build_extractor
from taskboard.extraction.llm import LLMDraftSource, OpenAICompletionService, build_prompt, parse_reply
from taskboard.extraction.rules import RuleBasedDraftSource

NOW = datetime(2025, 10, 16, 0, 0, tzinfo=timezone.utc)


class _FakeChatCompletions:
    def __init__(self, outer):
        self.outer = outer

    async def create(self, **kwargs):  # noqa: D401 - stub
        self.outer.calls.append(kwargs)
        if self.outer.delay:
            await asyncio.sleep(self.outer.delay)
        if isinstance(self.outer.response, Exception):
            raise self.outer.response
        return type("FakeCompletion", (), {
            "choices": [
                type("Choice", (), {"message": type("Message", (), {"content": self.outer.response})})
            ]
        })()


class _FakeChat:
    def __init__(self, outer):
        self.completions = _FakeChatCompletions(outer)


class FakeAsyncOpenAI:
    def __init__(self, response, delay=0.0):
        self.response = response
        self.delay = delay
        self.calls = []
        self.chat = _FakeChat(self)


def _extract(client, message="anything", tz="UTC", timeout=5.0):
    service = OpenAICompletionService(api_key="test-key", model="gpt-test", timeout=timeout, client=client)
    extractor = TaskExtractor(LLMDraftSource(service))
    return asyncio.run(extractor.extract(message, now=NOW, tz=tz))


def test_single_task_reply_returns_lone_draft():
    reply = json.dumps({"tasks": [{"title": "Meeting", "description": None, "due_at": "2025-10-17T14:00", "status": "todo"}]})
    client = FakeAsyncOpenAI(reply)

    draft = _extract(client, "Schedule a meeting for tomorrow at 2 PM")

    assert isinstance(draft, TaskDraft)
    assert draft.title == "Meeting"
    assert format_instant(draft.due_at) == "2025-10-17T14:00:00.000Z"
    call = client.calls[0]
    assert call["model"] == "gpt-test"
    assert call["response_format"] == {"type": "json_object"}
    assert "Schedule a meeting for tomorrow at 2 PM" in call["messages"][1]["content"]


def test_local_wall_clock_times_are_converted_to_utc():
    reply = json.dumps({"tasks": [{"title": "Rapat", "due_at": "2025-10-17T09:00", "status": "todo"}]})
    draft = _extract(FakeAsyncOpenAI(reply), tz="Asia/Jakarta")
    assert format_instant(draft.due_at) == "2025-10-17T02:00:00.000Z"


def test_date_only_reply_defaults_to_nine_local():
    reply = json.dumps({"tasks": [{"title": "Pay rent", "due_at": "2025-10-17"}]})
    draft = _extract(FakeAsyncOpenAI(reply), tz="Asia/Jakarta")
    assert format_instant(draft.due_at) == "2025-10-17T02:00:00.000Z"

    [utc_draft] = parse_reply(reply, ZoneInfo("UTC"))
    assert format_instant(utc_draft.due_at) == "2025-10-17T09:00:00.000Z"
    [late_draft] = parse_reply(reply, ZoneInfo("UTC"), default_hour=18)
    assert format_instant(late_draft.due_at) == "2025-10-17T18:00:00.000Z"


def test_fenced_array_reply_is_normalized():
    reply = "```json\n" + json.dumps([
        {"title": "Call client", "description": "", "due_date": "2025-10-16T15:00:00Z", "status": "inProgress"},
        {"title": "Review proposal"},
    ]) + "\n```"

    drafts = _extract(FakeAsyncOpenAI(reply))

    assert [d.title for d in drafts] == ["Call client", "Review proposal"]
    assert drafts[0].status is TaskStatus.IN_PROGRESS
    assert drafts[0].description is None
    assert format_instant(drafts[0].due_at) == "2025-10-16T15:00:00.000Z"
    assert drafts[1].due_at is None
    assert drafts[1].effective_status is TaskStatus.TODO


@pytest.mark.parametrize("reply", [json.dumps({"error": "no task"}), json.dumps({"tasks": []}), "[]"])
def test_no_task_replies_are_unrecognized(reply):
    with pytest.raises(ExtractionError) as excinfo:
        _extract(FakeAsyncOpenAI(reply))
    assert excinfo.value.kind is ExtractionErrorKind.UNRECOGNIZED


@pytest.mark.parametrize(
    "reply",
    ["Sure! Here are your tasks", json.dumps({"tasks": [{"title": ""}]}), json.dumps({"tasks": [{"title": "x", "status": "later"}]})],
)
def test_unusable_replies_are_service_failures(reply):
    with pytest.raises(ExtractionError) as excinfo:
        _extract(FakeAsyncOpenAI(reply))
    assert excinfo.value.kind is ExtractionErrorKind.SERVICE_FAILURE


def test_transport_error_is_service_failure():
    error = openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))
    with pytest.raises(ExtractionError) as excinfo:
        _extract(FakeAsyncOpenAI(error))
    assert excinfo.value.kind is ExtractionErrorKind.SERVICE_FAILURE


def test_timeout_is_service_failure():
    with pytest.raises(ExtractionError) as excinfo:
        _extract(FakeAsyncOpenAI("{}", delay=1.0), timeout=0.01)
    assert excinfo.value.kind is ExtractionErrorKind.SERVICE_FAILURE


def test_prompt_carries_reference_time_and_zone():
    prompt = build_prompt("besok rapat", NOW, ZoneInfo("Asia/Jakarta"))
    assert "2025-10-16 07:00" in prompt
    assert "Asia/Jakarta" in prompt
    assert '"besok rapat"' in prompt


def test_build_extractor_strategies():
    rules = build_extractor(Settings(extraction_strategy="rules", openai_api_key="key"))
    assert isinstance(rules.source, RuleBasedDraftSource)

    auto_without_key = build_extractor(Settings(extraction_strategy="auto", openai_api_key=None))
    assert isinstance(auto_without_key.source, RuleBasedDraftSource)

    auto_with_key = build_extractor(Settings(extraction_strategy="auto", openai_api_key="key"))
    assert isinstance(auto_with_key.source, LLMDraftSource)

    early = build_extractor(Settings(extraction_strategy="llm", openai_api_key="key", default_due_hour=8))
    assert early.source.default_hour == 8

    with pytest.raises(ValueError):
        build_extractor(Settings(extraction_strategy="llm", openai_api_key=None))
    with pytest.raises(ValueError):
        build_extractor(Settings(extraction_strategy="magic"))
