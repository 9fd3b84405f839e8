"""
Step 5: Date of service selection (heuristic).

Picks one authoritative date of service per page from its classified
dates. A non-confident pick is the signal to route the page to the
language model for disambiguation.
"""
from __future__ import annotations

import logging
from typing import Iterable

from packages.shared.models import (
    DateClassification,
    DateOfService,
    DateSource,
    ExtractedDate,
    PagePosition,
    PageResult,
    PageText,
)
from apps.worker.steps.step03_dates import find_dates

logger = logging.getLogger(__name__)

CONFIDENT_DOS_THRESHOLD = 0.8
_EXCLUDED = {DateClassification.DATE_OF_BIRTH, DateClassification.FAX}

ROUTING_DATED = "dated"
ROUTING_AMBIGUOUS = "ambiguous"


def select_date_of_service(dates: list[ExtractedDate]) -> DateOfService | None:
    """
    Select the page's date of service.

    1. First labelled date of service at >= 0.8 confidence (confident).
    2. Otherwise ignore DOB and fax dates; none left means no date.
    3. A single remaining header (top-of-page) date.
    4. A single remaining date.
    5. The first remaining date by text order.
    """
    for d in dates:
        if (
            d.classification == DateClassification.DATE_OF_SERVICE
            and d.confidence >= CONFIDENT_DOS_THRESHOLD
        ):
            return DateOfService(date=d.iso_date, confident=True)

    candidates = [d for d in dates if d.classification not in _EXCLUDED]
    if not candidates:
        return None

    top = [d for d in candidates if d.position == PagePosition.TOP]
    if len(top) == 1:
        return DateOfService(date=top[0].iso_date, confident=False)

    # Either the only candidate, or several ambiguous ones: first by text order.
    return DateOfService(date=candidates[0].iso_date, confident=False)


def extract_page_result(
    page_number: int,
    text: str,
    document_type: str | None = None,
) -> PageResult:
    """Run date extraction and heuristic selection for one page."""
    dates = find_dates(text)
    selection = select_date_of_service(dates)
    return PageResult(
        page_number=page_number,
        text=text,
        extracted_dates=dates,
        date_of_service=selection.date if selection else None,
        date_source=DateSource.HEURISTIC if selection else DateSource.NONE,
        document_type=document_type,
    )


def extract_page_results(pages: Iterable[PageText]) -> list[PageResult]:
    """Per-page extraction, returned in ascending page order."""
    results = [extract_page_result(p.page_number, p.text) for p in pages]
    results.sort(key=lambda r: r.page_number)
    logger.info(
        f"Date extraction: {len(results)} pages, "
        f"{sum(1 for r in results if r.extracted_dates)} with dates"
    )
    return results


def needs_llm_review(result: PageResult, mode: str = ROUTING_DATED) -> bool:
    """
    Decide whether a page goes to the language model.

    'dated': every page with at least one extracted date.
    'ambiguous': only pages whose heuristic pick was not confident.
    """
    if not result.extracted_dates:
        return False
    if mode == ROUTING_AMBIGUOUS:
        selection = select_date_of_service(result.extracted_dates)
        return selection is None or not selection.confident
    return True
