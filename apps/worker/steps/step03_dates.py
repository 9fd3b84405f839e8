"""
Step 3: Date extraction.

One left-to-right scan of the page text with a single compiled alternation.
Matches never overlap and come back in text order. Each match is parsed to a
calendar date, positioned on the page and classified from its context.

Numeric A/B/YYYY is read month-first (US); when that is not a real date it
is read day-first. Two-digit years are taken as 20YY. Neither rule can be
right for every record; without a locale signal they are applied as-is.
"""
from __future__ import annotations

import logging
import re
from datetime import date
from typing import Iterator

from packages.shared.models import ExtractedDate, PagePosition
from apps.worker.steps.step04_context import classify_context

logger = logging.getLogger(__name__)

CONTEXT_WINDOW = 50
_TOP_RATIO = 0.2
_BOTTOM_RATIO = 0.8

# ── Date regex building blocks ───────────────────────────────────────────

_MONTH = (
    r"(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?"
    r"|aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)
_DAY = r"(?:0?[1-9]|[12]\d|3[01])"
_MON_NUM = r"(?:0?[1-9]|1[0-2])"
_YEAR4 = r"(?:19|20)\d{2}"
_YEAR = r"(?:(?:19|20)?\d{2})"
_ORDINAL = r"(?:st|nd|rd|th)?"
_SEP = r"[-/.]"

# Order matters: at a given offset the first alternative that matches wins.
_DATE_FORMS = [
    # 2024-11-22 / 2024/11/22 / 2024.11.22
    ("ymd", rf"(?P<ymd_y>{_YEAR4}){_SEP}(?P<ymd_m>{_MON_NUM}){_SEP}(?P<ymd_d>{_DAY})"),
    # 22/11/2024 / 22-11-24 / 22.11.2024
    ("dmy", rf"(?P<dmy_a>{_DAY}){_SEP}(?P<dmy_b>{_MON_NUM}){_SEP}(?P<dmy_y>{_YEAR})"),
    # 11/22/2024 / 11-22-24 / 11.22.2024
    ("mdy", rf"(?P<mdy_a>{_MON_NUM}){_SEP}(?P<mdy_b>{_DAY}){_SEP}(?P<mdy_y>{_YEAR})"),
    # 20241122
    ("compact", rf"(?P<cmp_y>{_YEAR4})(?P<cmp_m>0[1-9]|1[0-2])(?P<cmp_d>0[1-9]|[12]\d|3[01])"),
    # Jan 5, 2024 / January 5th 24
    ("name_mdy", rf"(?P<nmdy_m>{_MONTH})\.?\s+(?P<nmdy_d>{_DAY}){_ORDINAL},?\s+(?P<nmdy_y>{_YEAR})"),
    # 5 Jan 2024 / 5th of January, 2024
    ("name_dmy", rf"(?P<ndmy_d>{_DAY}){_ORDINAL}\s+(?:of\s+)?(?P<ndmy_m>{_MONTH})\.?,?\s+(?P<ndmy_y>{_YEAR})"),
    # Jan 2024 / September 1999
    ("name_my", rf"(?P<nmy_m>{_MONTH})\.?,?\s+(?P<nmy_y>{_YEAR4})"),
    # 11/2024 / 11-2024
    ("num_my", rf"(?P<nummy_m>{_MON_NUM})[-/](?P<nummy_y>{_YEAR4})"),
]

DATE_RE = re.compile(
    "|".join(rf"\b(?P<{name}>{body})\b" for name, body in _DATE_FORMS),
    re.IGNORECASE,
)

_MONTH_MAP = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}


# ── Parsing helpers ──────────────────────────────────────────────────────


def _year(value: str) -> int:
    year = int(value)
    return 2000 + year if len(value) == 2 else year


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _parse_ambiguous(first: str, second: str, year: str) -> date | None:
    """Month-first, falling back to day-first."""
    y = _year(year)
    a, b = int(first), int(second)
    if a <= 12:
        parsed = _safe_date(y, a, b)
        if parsed:
            return parsed
    return _safe_date(y, b, a)


def _parse_match(m: re.Match) -> date | None:
    """Parse a DATE_RE match based on which alternative matched."""
    form = m.lastgroup
    g = m.group
    if form == "ymd":
        return _safe_date(int(g("ymd_y")), int(g("ymd_m")), int(g("ymd_d")))
    if form == "dmy":
        return _parse_ambiguous(g("dmy_a"), g("dmy_b"), g("dmy_y"))
    if form == "mdy":
        return _parse_ambiguous(g("mdy_a"), g("mdy_b"), g("mdy_y"))
    if form == "compact":
        return _safe_date(int(g("cmp_y")), int(g("cmp_m")), int(g("cmp_d")))
    if form == "name_mdy":
        month = _MONTH_MAP.get(g("nmdy_m").lower(), 0)
        return _safe_date(_year(g("nmdy_y")), month, int(g("nmdy_d")))
    if form == "name_dmy":
        month = _MONTH_MAP.get(g("ndmy_m").lower(), 0)
        return _safe_date(_year(g("ndmy_y")), month, int(g("ndmy_d")))
    if form == "name_my":
        month = _MONTH_MAP.get(g("nmy_m").lower(), 0)
        return _safe_date(int(g("nmy_y")), month, 1)
    if form == "num_my":
        return _safe_date(int(g("nummy_y")), int(g("nummy_m")), 1)
    return None


def parse_date(raw: str) -> date | None:
    """Parse a single date string in any supported surface form."""
    if not raw:
        return None
    m = DATE_RE.fullmatch(raw.strip())
    if not m:
        return None
    return _parse_match(m)


def page_position(offset: int, text_length: int) -> PagePosition:
    if text_length <= 0:
        return PagePosition.TOP
    ratio = offset / text_length
    if ratio < _TOP_RATIO:
        return PagePosition.TOP
    if ratio > _BOTTOM_RATIO:
        return PagePosition.BOTTOM
    return PagePosition.MIDDLE


# ── Extraction ───────────────────────────────────────────────────────────


def iter_dates(text: str) -> Iterator[ExtractedDate]:
    """Lazily yield classified dates in text order."""
    if not text:
        return
    length = len(text)
    for m in DATE_RE.finditer(text):
        parsed = _parse_match(m)
        if parsed is None:
            logger.debug(f"Dropped unparsable date-shaped match '{m.group(0)}' at {m.start()}")
            continue

        start, end = m.start(), m.end()
        before = text[max(0, start - CONTEXT_WINDOW):start].strip()
        after = text[end:min(length, end + CONTEXT_WINDOW)].strip()
        classification, confidence = classify_context(before, after)

        yield ExtractedDate(
            raw=m.group(0),
            iso_date=parsed,
            context_before=before,
            context_after=after,
            position=page_position(start, length),
            offset=start,
            classification=classification,
            confidence=confidence,
        )


def find_dates(text: str) -> list[ExtractedDate]:
    return list(iter_dates(text))


def has_date(text: str) -> bool:
    """True when the text holds at least one parsable date."""
    return next(iter_dates(text), None) is not None


def get_dates(text: str) -> list[str]:
    """ISO strings of every parsable date in the text, in text order."""
    return [d.iso for d in iter_dates(text)]


def order_dates(values: list[str]) -> list[str]:
    """
    Sort date strings chronologically.
    Strings that do not parse keep their relative order at the end.
    """
    parsed = [(value, parse_date(value)) for value in values]
    valid = [(value, d) for value, d in parsed if d is not None]
    invalid = [value for value, d in parsed if d is None]
    valid.sort(key=lambda item: item[1])
    return [value for value, _ in valid] + invalid
