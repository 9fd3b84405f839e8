"""
Step 7: Date of service inheritance.

Pages without their own date adopt the date of the nearest preceding page
that has one. Must run as one ordered pass over pages sorted by page number.
"""
from __future__ import annotations

import logging

from packages.shared.models import DateSource, PageResult

logger = logging.getLogger(__name__)


def apply_inheritance(pages: list[PageResult]) -> list[PageResult]:
    """
    Forward-fill dates of service.

    Only pages with their own date (heuristic or llm) act as sources; pages
    already marked inherited are re-derived from the current source, so
    applying the pass twice gives the same result.
    """
    result: list[PageResult] = []
    last_dated: PageResult | None = None
    inherited = 0

    for page in pages:
        if page.has_own_date:
            last_dated = page
            result.append(page.model_copy())
        elif last_dated is not None:
            result.append(page.model_copy(update={
                "date_of_service": last_dated.date_of_service,
                "date_source": DateSource.INHERITED,
                "inherited_from": last_dated.page_number,
            }))
            inherited += 1
        else:
            result.append(page.model_copy())

    if inherited:
        logger.debug(f"Inherited date of service on {inherited} pages")
    return result
