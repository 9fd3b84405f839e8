"""
Step 4: Context classification of extracted dates.

Labels each date from the text windows around it. Preceding context is
checked first because form labels precede their values.

Decision order (first match wins):
  1. DOS label before the date      → date_of_service (0.9)
  2. DOB label before the date      → date_of_birth   (0.95)
  3. Fax marker before or after     → fax             (0.8)
  4. DOS label after the date       → date_of_service (0.7)
  5. otherwise                      → unknown         (0.0)
"""
from __future__ import annotations

import re

from packages.shared.models import DateClassification

# ── Indicator patterns ───────────────────────────────────────────────────

# Abbreviations accept a trailing colon, whitespace, or the window edge
# (context windows are trimmed, so "DOB 03/04/1980" leaves "DOB").
_ABBREV_END = r"(?:\s*:|\s|$)"

_DOS_PATTERNS = [
    r"date\s+of\s+service",
    rf"\bdos\b{_ABBREV_END}",
    r"visit\s+date",
    r"service\s+date",
    r"encounter\s+date",
    r"admission\s+date",
    r"procedure\s+date",
    r"exam\s+date",
    r"treatment\s+date",
]

_DOB_PATTERNS = [
    r"date\s+of\s+birth",
    rf"\bdob\b{_ABBREV_END}",
    r"birth\s*date",
    rf"\bborn\b{_ABBREV_END}",
    r"patient.*born",
]

_FAX_PATTERNS = [
    r"\bfax\b",
    r"transmitted",
    r"\bsent\b\s*:",
    r"received",
]


def _compile(patterns: list[str]) -> re.Pattern:
    return re.compile("|".join(f"(?:{p})" for p in patterns), re.IGNORECASE)


DOS_RE = _compile(_DOS_PATTERNS)
DOB_RE = _compile(_DOB_PATTERNS)
FAX_RE = _compile(_FAX_PATTERNS)


def classify_context(before: str, after: str) -> tuple[DateClassification, float]:
    """Classify a date from the text immediately before and after it."""
    before = before or ""
    after = after or ""

    if DOS_RE.search(before):
        return DateClassification.DATE_OF_SERVICE, 0.9

    if DOB_RE.search(before):
        return DateClassification.DATE_OF_BIRTH, 0.95

    if FAX_RE.search(f"{before} {after}"):
        return DateClassification.FAX, 0.8

    if DOS_RE.search(after):
        return DateClassification.DATE_OF_SERVICE, 0.7

    return DateClassification.UNKNOWN, 0.0
