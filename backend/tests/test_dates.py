from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

import pytest

from taskboard.extraction.dates import find_mention, resolve_instant, strip_spans

TODAY = date(2025, 10, 16)  # Thursday


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Call mom tomorrow", date(2025, 10, 17)),
        ("besok ke kantor", date(2025, 10, 17)),
        ("lusa ujian", date(2025, 10, 18)),
        ("hari ini rapat", TODAY),
        ("in 3 days", date(2025, 10, 19)),
        ("3 hari lagi", date(2025, 10, 19)),
        ("next week", date(2025, 10, 23)),
        ("rapat hari senin depan", date(2025, 10, 20)),
        ("next Thursday", date(2025, 10, 23)),
        ("on Friday", date(2025, 10, 17)),
        ("due 2025-11-03", date(2025, 11, 3)),
        ("tanggal 20/10", date(2025, 10, 20)),
        ("Oct 20", date(2025, 10, 20)),
        ("15 Oktober", date(2026, 10, 15)),
    ],
)
def test_date_phrases(text, expected):
    assert find_mention(text, TODAY).day == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("at 2 PM", time(14, 0)),
        ("3:30pm", time(15, 30)),
        ("15:00", time(15, 0)),
        ("jam 7 pagi", time(7, 0)),
        ("jam 2 siang", time(14, 0)),
        ("jam 5 sore", time(17, 0)),
        ("jam 8 malam", time(20, 0)),
        ("jam 3", time(15, 0)),
        ("jam 9", time(9, 0)),
        ("at noon", time(12, 0)),
        ("tengah malam", time(0, 0)),
    ],
)
def test_time_phrases(text, expected):
    mention = find_mention(text, TODAY)
    assert mention.day is None
    assert mention.at == expected


def test_meal_words_are_not_times_of_day():
    assert not find_mention("makan malam bersama keluarga", TODAY).found


def test_no_date_or_time():
    mention = find_mention("Review proposal", TODAY)
    assert not mention.found
    assert mention.spans == []


def test_spans_cover_date_and_time_so_titles_can_be_cleaned():
    text = "Schedule a meeting for tomorrow at 2 PM"
    mention = find_mention(text, TODAY)
    assert strip_spans(text, mention.spans) == "Schedule a meeting for"


def test_date_without_time_uses_default_hour_in_local_zone():
    instant = resolve_instant(date(2025, 10, 17), None, ZoneInfo("Asia/Jakarta"))
    assert instant == datetime(2025, 10, 17, 2, 0, tzinfo=timezone.utc)


def test_explicit_time_converted_to_utc():
    instant = resolve_instant(date(2025, 10, 17), time(14, 0), ZoneInfo("UTC"))
    assert instant == datetime(2025, 10, 17, 14, 0, tzinfo=timezone.utc)
