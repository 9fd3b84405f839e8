"""
Step 9: Duplicate page detection.
Exact duplicates share a text hash. Near duplicates are greedily grouped by
simhash similarity over the pages left after the exact pass.
"""
from __future__ import annotations

import logging
from collections import defaultdict

from packages.shared.models import (
    DuplicateGroup,
    DuplicateMember,
    DuplicateReport,
    PageFingerprint,
    PageText,
)
from apps.worker.lib.text_hash import (
    compute_fingerprint,
    fingerprint_from_hex,
    similarity,
)

logger = logging.getLogger(__name__)

NEAR_DUPLICATE_THRESHOLD = 0.9


def _exact_groups(pages: list[PageFingerprint]) -> list[DuplicateGroup]:
    by_hash: dict[str, list[PageFingerprint]] = defaultdict(list)
    for page in pages:
        if page.text_hash:
            by_hash[page.text_hash].append(page)

    groups: list[DuplicateGroup] = []
    for members in by_hash.values():
        if len(members) < 2:
            continue
        primary = members[0]
        groups.append(DuplicateGroup(
            primary_page_id=primary.id,
            primary_page_number=primary.page_number,
            pages=[
                DuplicateMember(id=p.id, page_number=p.page_number, similarity=1.0)
                for p in members
            ],
        ))
    return groups


def _near_groups(pages: list[PageFingerprint], threshold: float) -> list[DuplicateGroup]:
    """Greedy single-link grouping: each unprocessed page claims later matches."""
    processed: set[str] = set()
    groups: list[DuplicateGroup] = []

    for i, page_a in enumerate(pages):
        if page_a.id in processed or page_a.sim_fingerprint is None:
            continue
        processed.add(page_a.id)
        members = [DuplicateMember(id=page_a.id, page_number=page_a.page_number, similarity=1.0)]

        for page_b in pages[i + 1:]:
            if page_b.id in processed or page_b.sim_fingerprint is None:
                continue
            score = similarity(page_a.sim_fingerprint, page_b.sim_fingerprint)
            if score >= threshold:
                members.append(DuplicateMember(
                    id=page_b.id, page_number=page_b.page_number, similarity=score,
                ))
                processed.add(page_b.id)

        if len(members) > 1:
            groups.append(DuplicateGroup(
                primary_page_id=page_a.id,
                primary_page_number=page_a.page_number,
                pages=members,
            ))
    return groups


def find_duplicates(
    pages: list[PageFingerprint],
    threshold: float = NEAR_DUPLICATE_THRESHOLD,
) -> DuplicateReport:
    """
    Partition a document's pages into duplicate groups.
    Every member stays listed; the lowest page number is the primary.
    """
    ordered = sorted(pages, key=lambda p: p.page_number)
    exact = _exact_groups(ordered)

    in_exact = {m.id for g in exact for m in g.pages}
    remaining = [p for p in ordered if p.id not in in_exact]
    near = _near_groups(remaining, threshold)

    logger.info(
        f"Duplicate detection: {len(exact)} exact groups, {len(near)} near groups "
        f"over {len(ordered)} pages"
    )
    return DuplicateReport(exact_groups=exact, near_groups=near)


def duplicate_confidence(page_sim_hash: str | None, primary_sim_hash: str | None) -> float | None:
    """Similarity between two stored (hex) fingerprints, None when either is missing."""
    if not page_sim_hash or not primary_sim_hash:
        return None
    return similarity(fingerprint_from_hex(page_sim_hash), fingerprint_from_hex(primary_sim_hash))


def page_fingerprint(page_id: str, page: PageText) -> PageFingerprint:
    """Fingerprint one page. Blank pages hash the empty string."""
    fp = compute_fingerprint(page.text)
    return PageFingerprint(
        id=page_id,
        page_number=page.page_number,
        text_hash=fp.text_hash,
        sim_fingerprint=fp.sim_fingerprint,
    )
