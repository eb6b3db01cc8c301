"""English and Indonesian vocabulary used by the rule-based extractor.

Phrases are matched case-insensitively on word boundaries. Informal
Indonesian (gue, udah, kelar, ngantor, ...) sits next to the formal forms.
"""
from __future__ import annotations

import re
from typing import Iterable, Pattern

TASK_WORDS_EN = (
    "need to", "needs to", "should", "must", "have to", "has to", "got to", "gotta", "plan to",
    "going to", "gonna", "want to", "wanna", "remember to", "don't forget to", "todo", "to do", "task",
    "schedule", "create", "finish", "complete", "start", "meeting", "meet", "call", "email", "review",
    "submit", "attend", "visit", "buy", "shop", "shopping", "exercise", "study", "work", "practice",
    "prepare", "organize", "clean", "cook", "pick up", "drop off", "appointment", "deadline", "event",
    "activity", "write", "read", "send", "pay", "book", "fix", "check", "update", "finalize", "draft",
    "plan", "lunch", "dinner", "breakfast", "gym", "workout", "run", "walk", "class", "exam", "homework",
    "report", "presentation", "interview", "doctor", "dentist", "visit", "renew", "order", "deliver",
    "print", "sign", "follow up", "reply", "remind", "discuss", "present", "publish", "deploy", "test",
)

TASK_WORDS_ID = (
    "harus", "perlu", "akan", "mau", "pengen", "pengin", "ingin", "bakal", "jangan lupa", "tolong",
    "jadwal", "jadwalkan", "buat", "bikin", "selesaikan", "mulai", "rapat", "meeting", "telepon",
    "telpon", "nelpon", "email", "review", "kumpulkan", "kumpulin", "hadiri", "datang", "kunjungi",
    "beli", "belanja", "olahraga", "belajar", "kerja", "kerjakan", "ngerjain", "latihan", "siapkan",
    "siapin", "organisir", "bersihkan", "beresin", "masak", "ambil", "antar", "anterin", "janji temu",
    "deadline", "acara", "kegiatan", "ngantor", "kuliah", "main", "fokus", "cek", "update", "kirim",
    "terima", "tugas", "pr", "ujian", "bayar", "makan", "makan siang", "makan malam", "nonton", "pergi",
    "gym", "lari", "jalan", "baca", "tulis", "cuci", "setrika", "jemput", "periksa", "presentasi",
    "laporan", "urusan", "ke kantor", "ke bank", "ke dokter", "arisan", "ibadah", "sholat",
)

COMPLETED_WORDS = (
    # English
    "done", "finished", "completed", "accomplished", "already", "wrapped up", "got done",
    # Indonesian
    "selesai", "sudah", "udah", "telah", "beres", "kelar", "rampung", "tuntas",
)

IN_PROGRESS_WORDS = (
    # English
    "working on", "in progress", "work in progress", "ongoing", "on going", "starting", "started",
    "currently", "in the middle of", "halfway",
    # Indonesian
    "sedang", "lagi dikerjakan", "sedang dikerjakan", "sedang berlangsung", "berlangsung", "mulai",
    "proses", "dalam proses", "dikerjakan",
)

# "lagi" means "again/more" unless it prefixes an active verb (lagi ngerjain, lagi menulis).
IN_PROGRESS_PATTERNS = (r"\blagi\s+(?:ng|ny|me|di)\w+",)

INTENT_WORDS = (
    "need to", "needs to", "have to", "has to", "must", "should", "will", "going to", "gonna",
    "plan to", "want to", "wanna", "got to", "gotta", "remember to", "don't forget to",
    "harus", "perlu", "akan", "mau", "ingin", "pengen", "pengin", "bakal", "jangan lupa",
)

# Leading words removed from a clause before it becomes a title.
LEADING_FILLER = (
    "i", "i'm", "im", "i am", "i've", "i have", "i will", "i'll", "we", "we're", "we are", "we'll",
    "you", "please", "pls", "also", "and", "then", "and then", "after that", "afterwards", "plus",
    "saya", "aku", "gue", "gua", "gw", "kita", "kami", "ane", "dan", "lalu", "kemudian", "terus",
    "trus", "setelah itu", "habis itu", "abis itu", "sesudah itu", "lanjut", "juga", "serta", "nanti",
    "ada", "punya", "ok", "okay", "oke", "so", "jadi",
) + INTENT_WORDS + (
    "working on", "currently", "starting", "started", "already", "sedang", "lagi", "mulai", "sudah",
    "udah", "telah", "finished", "completed", "done",
)

# Scheduling verbs whose object is the real title ("schedule a meeting" -> "Meeting").
SCHEDULING_VERBS = (
    "schedule", "set up", "arrange", "book", "organize a", "plan a", "jadwalkan", "atur", "buat jadwal",
    "bikin jadwal", "agendakan",
)

ARTICLES = ("a", "an", "the", "my", "our", "some", "sebuah", "suatu")

TRAILING_STOPWORDS = (
    "is", "was", "are", "were", "be", "been", "for", "at", "on", "by", "with", "to", "in", "of", "and",
    "it", "this", "that", "now", "di", "pada", "untuk", "jam", "pukul", "sama", "dengan", "yang", "dan",
    "ke", "buat", "nya", "ini", "itu", "as", "sebagai", "the", "a", "an",
)

# Fragments that only annotate the previous clause's status ("tandai sebagai completed").
STATUS_ANNOTATIONS = (
    "mark as", "mark it as", "marked as", "set as", "set to", "move to", "tandai sebagai", "tandai",
    "tandain", "tandai jadi", "jadikan", "ubah ke", "pindah ke",
)

CONNECTORS = (
    "and then", "then", "after that", "afterwards", "lalu", "kemudian", "terus", "trus", "setelah itu",
    "habis itu", "abis itu", "sesudah itu", "lanjut",
)


def phrase_regex(phrase: str) -> str:
    """Escaped phrase whose words may be separated by any whitespace."""
    return r"\s+".join(re.escape(word) for word in phrase.split())


def phrase_pattern(phrases: Iterable[str], extra: Iterable[str] = ()) -> Pattern[str]:
    """Compile phrases (longest first) into one word-bounded, case-insensitive alternation."""
    ordered = sorted({phrase.lower() for phrase in phrases}, key=len, reverse=True)
    alternatives = [r"\b" + phrase_regex(phrase) + r"\b" for phrase in ordered]
    alternatives.extend(extra)
    return re.compile("|".join(alternatives), re.IGNORECASE)


def leading_pattern(phrases: Iterable[str]) -> Pattern[str]:
    ordered = sorted({phrase.lower() for phrase in phrases}, key=len, reverse=True)
    body = "|".join(phrase_regex(phrase) for phrase in ordered)
    return re.compile(rf"^(?:{body})(?:\b|(?<=\W))[\s,:\-]*", re.IGNORECASE)


def trailing_pattern(phrases: Iterable[str]) -> Pattern[str]:
    ordered = sorted({phrase.lower() for phrase in phrases}, key=len, reverse=True)
    body = "|".join(phrase_regex(phrase) for phrase in ordered)
    return re.compile(rf"[\s,]+(?:{body})$", re.IGNORECASE)


TASK_RE = phrase_pattern(TASK_WORDS_EN + TASK_WORDS_ID)
COMPLETED_RE = phrase_pattern(COMPLETED_WORDS)
IN_PROGRESS_RE = phrase_pattern(IN_PROGRESS_WORDS, IN_PROGRESS_PATTERNS)
INTENT_RE = phrase_pattern(INTENT_WORDS)
STATUS_WORD_RE = phrase_pattern(COMPLETED_WORDS + IN_PROGRESS_WORDS, IN_PROGRESS_PATTERNS)
ANNOTATION_RE = phrase_pattern(STATUS_ANNOTATIONS)
LEADING_FILLER_RE = leading_pattern(LEADING_FILLER)
SCHEDULING_RE = leading_pattern(SCHEDULING_VERBS)
ARTICLE_RE = leading_pattern(ARTICLES)
TRAILING_RE = trailing_pattern(TRAILING_STOPWORDS)
CONNECTOR_SPLIT_RE = re.compile(
    r"\s*,?\s+(?:" + "|".join(phrase_regex(c) for c in sorted(CONNECTORS, key=len, reverse=True)) + r")\s+",
    re.IGNORECASE,
)
