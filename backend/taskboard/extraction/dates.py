"""Bilingual date and time phrase resolution.

``find_mention`` scans a clause for one date phrase and one time phrase and
reports the character spans it consumed so titles can be cleaned. Relative
phrases resolve against the caller's local "today".
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, List, Optional, Tuple
from zoneinfo import ZoneInfo

WEEKDAYS = {
    "monday": 0, "senin": 0,
    "tuesday": 1, "tues": 1, "selasa": 1,
    "wednesday": 2, "rabu": 2,
    "thursday": 3, "thurs": 3, "kamis": 3,
    "friday": 4, "jumat": 4, "jum'at": 4,
    "saturday": 5, "sabtu": 5,
    "sunday": 6, "minggu": 6, "ahad": 6,
}

MONTHS = {
    "january": 1, "jan": 1, "januari": 1,
    "february": 2, "feb": 2, "februari": 2, "pebruari": 2,
    "march": 3, "mar": 3, "maret": 3,
    "april": 4, "apr": 4,
    "may": 5, "mei": 5,
    "june": 6, "jun": 6, "juni": 6,
    "july": 7, "jul": 7, "juli": 7,
    "august": 8, "aug": 8, "agustus": 8, "agu": 8, "agt": 8,
    "september": 9, "sep": 9, "sept": 9,
    "october": 10, "oct": 10, "oktober": 10, "okt": 10,
    "november": 11, "nov": 11, "nopember": 11,
    "december": 12, "dec": 12, "desember": 12, "des": 12,
}

_MONTH_ALT = "|".join(sorted(MONTHS, key=len, reverse=True))
_WEEKDAY_ALT = "|".join(sorted((name for name in WEEKDAYS if name != "minggu"), key=len, reverse=True))
_ORDINAL = r"(?:st|nd|rd|th)?"
_PERIOD_WORDS = r"pagi|siang|sore|malam|malem"

ISO_RE = re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ](\d{1,2}):(\d{2})(?::\d{2}(?:\.\d+)?)?)?(?:Z|[+-]\d{2}:?\d{2})?\b")
NUMERIC_RE = re.compile(
    r"\b(?:on\s+|tanggal\s+|tgl\.?\s*)?(\d{1,2})(?:/(\d{1,2})(?:/(\d{2,4}))?|-(\d{1,2})-(\d{4}))\b", re.I
)
MONTH_FIRST_RE = re.compile(
    rf"\b(?:on\s+)?({_MONTH_ALT})\.?\s+(\d{{1,2}}){_ORDINAL}(?:,?\s+(\d{{4}}))?\b", re.I
)
DAY_FIRST_RE = re.compile(
    rf"\b(?:on\s+(?:the\s+)?|tanggal\s+|tgl\.?\s*)?(\d{{1,2}}){_ORDINAL}\s+(?:of\s+)?({_MONTH_ALT})\.?(?:,?\s+(\d{{4}}))?\b",
    re.I,
)
RELATIVE_DAY_RE = re.compile(
    r"\b(?:the\s+)?(day\s+after\s+tomorrow|lusa|tomorrow|tmrw|tmr|besoknya|besok|esok|"
    r"today|tonight|this\s+(?:morning|afternoon|evening)|hari\s+ini|(?:pagi|siang|sore|malam)\s+ini|"
    r"nanti\s+(?:pagi|siang|sore|malam|malem)|yesterday|kemarin)\b",
    re.I,
)
RELATIVE_SPAN_RE = re.compile(
    r"\b(?:in\s+(\d{1,2}|a|one|two|three)\s+(day|days|week|weeks)|"
    r"(\d{1,2})\s+(hari|minggu)\s+lagi|dalam\s+(\d{1,2})\s+(hari|minggu)|"
    r"(next\s+week|minggu\s+depan(?:nya)?|pekan\s+depan)|(next\s+month|bulan\s+depan))\b",
    re.I,
)
WEEKDAY_RE = re.compile(
    rf"\b(?:(next|this|coming|on)\s+)?(?:hari\s+)?({_WEEKDAY_ALT}|(?<=hari\s)minggu)(?:\s+(depan|ini))?\b",
    re.I,
)

MERIDIEM_TIME_RE = re.compile(
    r"(?:(?:\b(?:at|around|by|jam|pukul|pkl\.?)|@)\s*)?\b(\d{1,2})(?:[:.](\d{2}))?\s*([ap])\.?\s?m\b\.?",
    re.I,
)
PREFIXED_TIME_RE = re.compile(
    rf"(?:\b(?:at|around|jam|pukul|pkl\.?)|@)\s*(\d{{1,2}})(?:[:.](\d{{2}}))?(?:\s+({_PERIOD_WORDS}))?\b",
    re.I,
)
COLON_TIME_RE = re.compile(rf"\b(\d{{1,2}}):(\d{{2}})\b(?:\s+({_PERIOD_WORDS}))?", re.I)
NAMED_TIME_RE = re.compile(r"\b(?:at\s+)?(noon|midday|tengah\s+hari|midnight|tengah\s+malam)\b", re.I)
PERIOD_RE = re.compile(
    rf"\b(?:in\s+the\s+(morning|afternoon|evening)|(tonight)|this\s+(morning|afternoon|evening)|"
    rf"(?<!makan\s)(?<!tengah\s)({_PERIOD_WORDS})(?:-pagi|nya)?)\b",
    re.I,
)

_SMALL_NUMBERS = {"a": 1, "one": 1, "two": 2, "three": 3}


@dataclass
class DateMention:
    """A date and/or time found in a clause, plus the text spans it came from."""

    day: Optional[date] = None
    at: Optional[time] = None
    spans: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.day is not None or self.at is not None


def find_mention(text: str, today: date) -> DateMention:
    mention = DateMention()
    taken: List[Tuple[int, int]] = []

    for finder in _DATE_FINDERS:
        result = finder(text, today, taken)
        if result is not None:
            mention.day, span, embedded_time = result
            taken.append(span)
            if embedded_time is not None:
                mention.at = embedded_time
            break

    period = _find_period(text, taken)
    if mention.at is None:
        found_time = _find_time(text, taken, period[0] if period else None)
        if found_time is not None:
            mention.at, span = found_time
            taken.append(span)
    if period is not None:
        taken.append(period[1])

    mention.spans = sorted(taken)
    return mention


def resolve_instant(day: date, at: Optional[time], tz: ZoneInfo, default_hour: int = 9) -> datetime:
    """Local date + optional time-of-day -> aware UTC instant."""
    local_time = at if at is not None else time(default_hour, 0)
    return datetime.combine(day, local_time, tzinfo=tz).astimezone(timezone.utc)


def strip_spans(text: str, spans: List[Tuple[int, int]]) -> str:
    pieces = []
    cursor = 0
    for start, end in sorted(spans):
        if start < cursor:
            continue
        pieces.append(text[cursor:start])
        cursor = end
    pieces.append(text[cursor:])
    return " ".join(" ".join(pieces).split())


def _overlaps(span: Tuple[int, int], taken: List[Tuple[int, int]]) -> bool:
    return any(span[0] < end and start < span[1] for start, end in taken)


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _upcoming(month: int, day: int, today: date) -> Optional[date]:
    candidate = _safe_date(today.year, month, day)
    if candidate is not None and candidate < today:
        candidate = _safe_date(today.year + 1, month, day)
    return candidate


def _year(raw: Optional[str]) -> Optional[int]:
    if not raw:
        return None
    value = int(raw)
    return value + 2000 if value < 100 else value


def _find_iso(text: str, today: date, taken):
    for match in ISO_RE.finditer(text):
        found = _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        if found is None or _overlaps(match.span(), taken):
            continue
        embedded = None
        if match.group(4) is not None:
            hour, minute = int(match.group(4)), int(match.group(5))
            if hour < 24 and minute < 60:
                embedded = time(hour, minute)
        return found, match.span(), embedded
    return None


def _find_numeric(text: str, today: date, taken):
    for match in NUMERIC_RE.finditer(text):
        if _overlaps(match.span(), taken):
            continue
        first, second = int(match.group(1)), int(match.group(2) or match.group(4))
        # Day first unless that cannot be a valid month/day pair.
        day, month = (first, second) if second <= 12 else (second, first)
        year = _year(match.group(3) or match.group(5))
        found = _safe_date(year, month, day) if year else _upcoming(month, day, today)
        if found is not None:
            return found, match.span(), None
    return None


def _find_month_name(text: str, today: date, taken):
    candidates = []
    for regex, month_group, day_group in ((MONTH_FIRST_RE, 1, 2), (DAY_FIRST_RE, 2, 1)):
        for match in regex.finditer(text):
            if _overlaps(match.span(), taken):
                continue
            month = MONTHS[match.group(month_group).lower()]
            day = int(match.group(day_group))
            year = _year(match.group(3))
            found = _safe_date(year, month, day) if year else _upcoming(month, day, today)
            if found is not None:
                candidates.append((match.start(), found, match.span()))
    if not candidates:
        return None
    _, found, span = min(candidates)
    return found, span, None


def _find_relative_day(text: str, today: date, taken):
    for match in RELATIVE_DAY_RE.finditer(text):
        if _overlaps(match.span(), taken):
            continue
        phrase = " ".join(match.group(1).lower().split())
        if phrase in ("day after tomorrow", "lusa"):
            offset = 2
        elif phrase in ("tomorrow", "tmrw", "tmr", "besok", "besoknya", "esok"):
            offset = 1
        elif phrase in ("yesterday", "kemarin"):
            offset = -1
        else:
            offset = 0
        return today + timedelta(days=offset), match.span(), None
    return None


def _find_relative_span(text: str, today: date, taken):
    for match in RELATIVE_SPAN_RE.finditer(text):
        if _overlaps(match.span(), taken):
            continue
        if match.group(8):
            return _add_month(today), match.span(), None
        if match.group(7):
            return today + timedelta(days=7), match.span(), None
        amount_raw = (match.group(1) or match.group(3) or match.group(5)).lower()
        unit = (match.group(2) or match.group(4) or match.group(6)).lower()
        amount = int(amount_raw) if amount_raw.isdigit() else _SMALL_NUMBERS[amount_raw]
        days = amount * 7 if unit.startswith(("week", "minggu")) else amount
        return today + timedelta(days=days), match.span(), None
    return None


def _find_weekday(text: str, today: date, taken):
    for match in WEEKDAY_RE.finditer(text):
        if _overlaps(match.span(), taken):
            continue
        target = WEEKDAYS[match.group(2).lower()]
        ahead = (target - today.weekday()) % 7
        modifier = (match.group(1) or match.group(3) or "").lower()
        if ahead == 0 and modifier in ("next", "depan", "coming"):
            ahead = 7
        return today + timedelta(days=ahead), match.span(), None
    return None


def _add_month(today: date) -> date:
    year, month = (today.year + 1, 1) if today.month == 12 else (today.year, today.month + 1)
    for day in (today.day, 30, 29, 28):
        candidate = _safe_date(year, month, day)
        if candidate is not None:
            return candidate
    return today  # pragma: no cover - day 28 always exists


_DATE_FINDERS: Tuple[Callable, ...] = (
    _find_iso,
    _find_numeric,
    _find_month_name,
    _find_relative_day,
    _find_relative_span,
    _find_weekday,
)


def _find_period(text: str, taken) -> Optional[Tuple[str, Tuple[int, int]]]:
    for match in PERIOD_RE.finditer(text):
        if _overlaps(match.span(), taken):
            continue
        word = next(group for group in match.groups() if group)
        return word.lower(), match.span()
    # Periods already consumed as part of a date phrase ("tonight", "nanti malam") still qualify hours.
    for match in PERIOD_RE.finditer(text):
        word = next(group for group in match.groups() if group)
        return word.lower(), (match.start(), match.start())
    return None


def _find_time(text: str, taken, period: Optional[str]) -> Optional[Tuple[time, Tuple[int, int]]]:
    for match in MERIDIEM_TIME_RE.finditer(text):
        if _overlaps(match.span(), taken):
            continue
        hour, minute = int(match.group(1)), int(match.group(2) or 0)
        if not (1 <= hour <= 12 and minute < 60):
            continue
        meridiem = match.group(3).lower()
        if meridiem == "p" and hour != 12:
            hour += 12
        elif meridiem == "a" and hour == 12:
            hour = 0
        return time(hour, minute), match.span()

    for regex in (PREFIXED_TIME_RE, COLON_TIME_RE):
        for match in regex.finditer(text):
            if _overlaps(match.span(), taken):
                continue
            hour, minute = int(match.group(1)), int(match.group(2) or 0)
            if hour > 23 or minute > 59:
                continue
            qualifier = (match.group(3) or period or "").lower() or None
            return time(_apply_period(hour, qualifier), minute), match.span()

    for match in NAMED_TIME_RE.finditer(text):
        if _overlaps(match.span(), taken):
            continue
        word = match.group(1).lower()
        at = time(0, 0) if word == "midnight" or word.endswith("malam") else time(12, 0)
        return at, match.span()
    return None


def _apply_period(hour: int, period: Optional[str]) -> int:
    """Turn a 12-hour clock reading plus a part-of-day word into a 24-hour hour."""
    if hour > 12 or hour == 0:
        return hour
    if period in ("pagi", "morning"):
        return 0 if hour == 12 else hour
    if period in ("siang", "afternoon"):
        return hour + 12 if hour < 11 else hour
    if period in ("sore", "evening"):
        return hour if hour == 12 else hour + 12
    if period in ("malam", "malem", "tonight"):
        return 0 if hour == 12 else hour + 12
    # Bare readings: 1-6 are afternoon appointments, 7-11 morning, 12 noon.
    if 1 <= hour <= 6:
        return hour + 12
    return hour
