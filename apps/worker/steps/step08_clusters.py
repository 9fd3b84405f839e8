"""
Step 8: Page clustering and chronology assembly.
Groups post-inheritance pages by date of service into ordered clusters.
"""
from __future__ import annotations

import logging
from datetime import date

from packages.shared.models import (
    ChronologyResult,
    ChronologyStats,
    DateSource,
    PageCluster,
    PageResult,
)
from apps.worker.steps.step07_inheritance import apply_inheritance

logger = logging.getLogger(__name__)


def cluster_id(date_of_service: date, primary_page: int) -> str:
    return f"cluster-{date_of_service.isoformat()}-{primary_page}"


def build_clusters(pages: list[PageResult]) -> list[PageCluster]:
    """
    One cluster per distinct date of service, sorted by date.
    The first page seen for a date is the primary and supplies the
    document type. Undated pages are skipped.
    """
    groups: dict[date, PageCluster] = {}
    for page in pages:
        if page.date_of_service is None:
            continue
        existing = groups.get(page.date_of_service)
        if existing is not None:
            if page.page_number not in existing.pages:
                existing.pages.append(page.page_number)
            continue
        groups[page.date_of_service] = PageCluster(
            id=cluster_id(page.date_of_service, page.page_number),
            date_of_service=page.date_of_service,
            pages=[page.page_number],
            primary_page=page.page_number,
            document_type=page.document_type,
        )

    return sorted(groups.values(), key=lambda c: c.date_of_service)


def build_chronology(pages: list[PageResult]) -> ChronologyResult:
    """Sort, inherit, cluster, and summarize a document's pages."""
    ordered = sorted(pages, key=lambda p: p.page_number)
    with_inheritance = apply_inheritance(ordered)
    clusters = build_clusters(with_inheritance)
    undated = [p.page_number for p in with_inheritance if p.date_of_service is None]

    stats = ChronologyStats(
        total_pages=len(pages),
        pages_with_dates=sum(1 for p in pages if p.extracted_dates),
        pages_with_dos=sum(1 for p in with_inheritance if p.has_own_date),
        pages_inherited=sum(1 for p in with_inheritance if p.date_source == DateSource.INHERITED),
        llm_classified=sum(1 for p in pages if p.date_source == DateSource.LLM),
    )
    logger.info(
        f"Chronology: {len(clusters)} clusters, {len(undated)} undated of {stats.total_pages} pages"
    )
    return ChronologyResult(
        pages=with_inheritance,
        clusters=clusters,
        undated_pages=undated,
        stats=stats,
    )
