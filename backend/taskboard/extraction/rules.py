"""Deterministic keyword and date engine that turns an utterance into task drafts."""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from taskboard.domain.task import TaskDraft, TaskStatus
from taskboard.extraction.dates import DateMention, find_mention, resolve_instant, strip_spans
from taskboard.extraction.vocabulary import (
    ANNOTATION_RE,
    ARTICLE_RE,
    COMPLETED_RE,
    CONNECTOR_SPLIT_RE,
    IN_PROGRESS_RE,
    INTENT_RE,
    LEADING_FILLER_RE,
    SCHEDULING_RE,
    STATUS_WORD_RE,
    TASK_RE,
    TRAILING_RE,
)

PREAMBLE_RE = re.compile(r"^\s*([^:\n]{1,80}?)\s*:(?!\d)\s*")
LIST_MARKER_RE = re.compile(r"(?:(?:^|(?<=[\n,;:]))\s*(?:\d{1,2}[.)]|[-*•])|(?<=\s)\d{1,2}\))\s+", re.M)
SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+(?=\S)|\s*[\n;]+\s*")
COMMA_SPLIT_RE = re.compile(r",\s+(?!\d{4}\b)")
AND_RE = re.compile(r"\s+(?:and|dan|&)\s+", re.I)
_EDGE_PUNCTUATION = " \t,.;:!?-–—"


class RuleBasedDraftSource:
    """Keyword/date rule engine; needs no network and is fully reproducible."""

    def __init__(self, default_hour: int = 9, max_title_words: int = 8, max_title_length: int = 80) -> None:
        self.default_hour = default_hour
        self.max_title_words = max_title_words
        self.max_title_length = max_title_length

    async def drafts(self, utterance: str, now: datetime, tz: ZoneInfo) -> List[TaskDraft]:
        return self.parse(utterance, now, tz)

    def parse(self, utterance: str, now: datetime, tz: ZoneInfo) -> List[TaskDraft]:
        today = now.astimezone(tz).date()
        preamble, body = split_preamble(utterance, today)
        context = find_mention(preamble, today) if preamble else DateMention()
        context_status = infer_status(strip_spans(preamble, context.spans)) if preamble else None

        drafts: List[TaskDraft] = []
        carried_day: Optional[date] = context.day
        for clause in segment(body, today):
            mention = find_mention(clause, today)
            if not is_actionable(clause, mention):
                continue
            title, description = self.derive_title(clause, mention)
            if not title:
                continue

            day = mention.day
            at = mention.at
            if day is None and at is not None:
                day = carried_day or today
            elif day is None and context.day is not None:
                day, at = context.day, context.at
            if mention.day is not None:
                carried_day = mention.day

            status = infer_status(strip_spans(clause, mention.spans)) or context_status or TaskStatus.TODO
            drafts.append(
                TaskDraft(
                    title=title,
                    description=description,
                    due_at=resolve_instant(day, at, tz, self.default_hour) if day is not None else None,
                    status=status,
                )
            )
        return drafts

    def derive_title(self, clause: str, mention: DateMention) -> Tuple[str, Optional[str]]:
        """Concise action phrase for a clause; long clauses keep their full text as description."""
        text = strip_spans(clause, mention.spans)
        text = ANNOTATION_RE.sub(" ", text)
        text = STATUS_WORD_RE.sub(" ", text)
        text = _tidy(text)

        text = _strip_repeatedly(LEADING_FILLER_RE, text)
        scheduled = SCHEDULING_RE.sub("", text, count=1)
        if scheduled != text and scheduled.strip():
            text = scheduled
        text = ARTICLE_RE.sub("", text, count=1)
        text = _tidy(_strip_repeatedly(TRAILING_RE, text))
        if not text:
            return "", None

        words = text.split()
        shortened = len(words) > self.max_title_words
        if shortened:
            text = " ".join(words[: self.max_title_words])
        if len(text) > self.max_title_length:
            shortened = True
            text = text[: self.max_title_length].rsplit(" ", 1)[0]
        text = _tidy(_strip_repeatedly(TRAILING_RE, text))

        title = text[:1].upper() + text[1:]
        description = _tidy(clause) if shortened else None
        return title, description


def split_preamble(utterance: str, today: date) -> Tuple[str, str]:
    """Separate a lead-in such as "I need to:" or "Besok:" from the items that follow."""
    match = PREAMBLE_RE.match(utterance)
    if not match:
        return "", utterance
    preamble, rest = match.group(1), utterance[match.end():]
    if not rest.strip():
        return "", utterance
    if LIST_MARKER_RE.match(rest) or "\n" in rest:
        return preamble, rest
    leftover = strip_spans(preamble, find_mention(preamble, today).spans)
    if not _tidy(_strip_repeatedly(LEADING_FILLER_RE, leftover)):
        return preamble, rest
    return "", utterance


def segment(body: str, today: date) -> List[str]:
    """Split text into candidate clauses in source order."""
    clauses: List[str] = []
    for item in split_list_items(body):
        fragments: List[str] = []
        for sentence in SENTENCE_SPLIT_RE.split(item):
            for piece in CONNECTOR_SPLIT_RE.split(sentence):
                for part in COMMA_SPLIT_RE.split(piece):
                    fragments.extend(split_compound(part))
        clauses.extend(merge_fragments(fragments, today))
    return clauses


def split_list_items(body: str) -> List[str]:
    markers = list(LIST_MARKER_RE.finditer(body))
    if not markers:
        return [body]
    items = [body[: markers[0].start()]]
    for current, following in zip(markers, markers[1:] + [None]):
        end = following.start() if following is not None else len(body)
        items.append(body[current.end():end])
    return [item.strip(_EDGE_PUNCTUATION) for item in items if item.strip(_EDGE_PUNCTUATION)]


def split_compound(text: str) -> List[str]:
    """Split "buy milk and call mom" but not "review and sign the contract"."""
    parts: List[str] = []
    start = 0
    for match in AND_RE.finditer(text):
        left = text[start:match.start()]
        right = _strip_repeatedly(LEADING_FILLER_RE, text[match.end():])
        if len(left.split()) >= 2 and TASK_RE.search(left) and TASK_RE.match(right):
            parts.append(left)
            start = match.end()
    parts.append(text[start:])
    return parts


def merge_fragments(fragments: List[str], today: date) -> List[str]:
    """Fold status annotations, bare dates and verb-less tails into their neighbouring clause."""
    merged: List[str] = []
    pending = ""
    for raw in fragments:
        fragment = raw.strip(_EDGE_PUNCTUATION)
        if not fragment:
            continue
        if pending:
            fragment = f"{pending} {fragment}"
            pending = ""

        kind = _classify(fragment, today)
        if kind == "annotation" and merged:
            merged[-1] = f"{merged[-1]}, {fragment}"
        elif kind == "date" and not merged:
            pending = fragment
        elif kind == "date":
            merged[-1] = f"{merged[-1]} {fragment}"
        elif kind == "continuation" and merged:
            merged[-1] = f"{merged[-1]}, {fragment}"
        else:
            merged.append(fragment)
    if pending:
        merged.append(pending)
    return merged


def is_actionable(clause: str, mention: DateMention) -> bool:
    if TASK_RE.search(clause) or COMPLETED_RE.search(clause) or IN_PROGRESS_RE.search(clause):
        return True
    if mention.found:
        return bool(_tidy(_strip_repeatedly(LEADING_FILLER_RE, strip_spans(clause, mention.spans))))
    return False


def infer_status(text: str) -> Optional[TaskStatus]:
    """Completed beats in-progress; a status word after an intent phrase ("need to finish") does not count."""
    for status, regex in ((TaskStatus.COMPLETED, COMPLETED_RE), (TaskStatus.IN_PROGRESS, IN_PROGRESS_RE)):
        for match in regex.finditer(text):
            if not INTENT_RE.search(text[: match.start()]):
                return status
    return None


def _classify(fragment: str, today: date) -> str:
    if ANNOTATION_RE.search(fragment):
        remainder = STATUS_WORD_RE.sub(" ", ANNOTATION_RE.sub(" ", fragment))
        if not _tidy(_strip_repeatedly(LEADING_FILLER_RE, remainder)):
            return "annotation"
    mention = find_mention(fragment, today)
    if mention.found and not _tidy(_strip_repeatedly(LEADING_FILLER_RE, strip_spans(fragment, mention.spans))):
        return "date"
    if not (TASK_RE.search(fragment) or COMPLETED_RE.search(fragment) or IN_PROGRESS_RE.search(fragment) or mention.found):
        return "continuation"
    return "clause"


def _strip_repeatedly(regex: re.Pattern, text: str) -> str:
    text = text.strip()
    while True:
        stripped = regex.sub("", text, count=1).strip()
        if stripped == text:
            return text
        text = stripped


def _tidy(text: str) -> str:
    text = re.sub(r"\s*,(?:\s*,)*\s*", ", ", " ".join(text.split()))
    return text.strip(_EDGE_PUNCTUATION)
