"""
Pipeline orchestrator: ties page text, date heuristics, language-model
classification, chronology assembly and duplicate detection together.
"""
from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Iterable

from packages.db.database import get_session
from packages.db.models import Document as DocumentORM
from packages.shared.models import (
    ChronologyResult,
    ClassifySummary,
    DateIndex,
    DuplicateReport,
    PageClassification,
    PageDate,
    PageText,
    ProcessSummary,
    Warning,
)
from packages.shared.storage import get_upload_path

from apps.worker.pipeline_persistence import (
    load_page_fingerprints,
    load_page_texts,
    load_stored_classifications,
    persist_document_pages,
    persist_page_classification,
)
from apps.worker.steps.step01_page_split import dedupe_page_numbers, split_pages
from apps.worker.steps.step02_text_acquire import acquire_text
from apps.worker.steps.step03_dates import get_dates, order_dates
from apps.worker.steps.step05_date_of_service import extract_page_results
from apps.worker.steps.step06_llm_classify import (
    LLM_MODEL,
    LLM_ROUTING,
    PageToClassify,
    apply_llm_classifications,
    classify_pages,
    select_pages_for_llm,
)
from apps.worker.steps.step08_clusters import build_chronology
from apps.worker.steps.step09_dedup import find_duplicates, page_fingerprint

logger = logging.getLogger(__name__)

MAX_PAGES = int(os.getenv("MAX_PAGES", "1000"))


class DocumentNotFound(LookupError):
    pass


def extract_pages(
    pdf_path: str,
    document_id: str | None = None,
    max_pages: int | None = MAX_PAGES,
) -> tuple[list[PageText], int, list[Warning]]:
    """
    Split a PDF and make sure every page has usable text.
    Returns (pages, ocr_count, warnings). Raises OCRError on unreadable PDFs.
    """
    pages, warnings = split_pages(pdf_path, document_id=document_id, max_pages=max_pages)
    pages = dedupe_page_numbers(pages)
    pages, ocr_count, ocr_warnings = acquire_text(pages, pdf_path, document_id=document_id)
    warnings.extend(ocr_warnings)
    return pages, ocr_count, warnings


def build_document_chronology(
    pages: Iterable[PageText],
    classifications: Iterable[PageClassification] = (),
) -> ChronologyResult:
    """Heuristic extraction, optional language-model override, then inheritance and clustering."""
    results = extract_page_results(pages)
    results = apply_llm_classifications(results, classifications)
    return build_chronology(results)


def process_document(document_id: str, force: bool = False) -> ProcessSummary:
    """
    Extract, hash and store a document's pages.
    A document that was already processed is returned as-is unless `force`.
    """
    with get_session() as session:
        doc = session.query(DocumentORM).filter_by(id=document_id).first()
        if doc is None:
            raise DocumentNotFound(document_id)
        if doc.processed_at is not None and not force:
            logger.info(f"Document {document_id} already processed; skipping")
            return ProcessSummary(
                document_id=document_id,
                total_pages=doc.total_pages or 0,
                pages_with_dates=doc.pages_with_dates or 0,
                cached=True,
            )
        pdf_path = doc.storage_uri or str(get_upload_path(document_id))

    start = time.time()
    pages, ocr_count, warnings = extract_pages(pdf_path, document_id=document_id)
    dated = persist_document_pages(document_id, pages)
    logger.info(
        f"Processed document {document_id}: {len(pages)} pages, {dated} dated, "
        f"{ocr_count} OCR'd in {time.time() - start:.1f}s"
    )
    return ProcessSummary(
        document_id=document_id,
        total_pages=len(pages),
        pages_with_dates=dated,
        ocr_pages=ocr_count,
        warnings=warnings,
    )


def classify_document(
    document_id: str,
    client=None,
    mode: str = LLM_ROUTING,
    model: str = LLM_MODEL,
    force: bool = False,
) -> ClassifySummary:
    """
    Send routed pages to the language model and store their events.
    Each page is written in its own transaction; failed pages are left
    unanalyzed so a later call retries them.
    """
    stored = load_page_texts(document_id)
    page_ids = {page.page_number: page_id for page_id, page, _ in stored}
    analyzed = {page.page_number for _, page, done in stored if done}

    results = extract_page_results(page for _, page, _ in stored)
    routed = [
        r for r in select_pages_for_llm(results, mode)
        if force or r.page_number not in analyzed
    ]
    texts = {page.page_number: page.text for _, page, _ in stored}
    to_classify = [
        PageToClassify(page_number=r.page_number, text=texts[r.page_number], page_id=page_ids[r.page_number])
        for r in routed
    ]

    classifications = classify_pages(to_classify, client=client, model=model)
    summary = ClassifySummary(document_id=document_id, pages_requested=len(to_classify))
    for classification in classifications:
        if classification.failed:
            summary.pages_failed += 1
            continue
        summary.events_created += persist_page_classification(document_id, classification, model)
        summary.pages_classified += 1

    logger.info(
        f"Classified document {document_id}: {summary.pages_classified}/{summary.pages_requested} pages, "
        f"{summary.events_created} events"
    )
    return summary


def document_chronology(document_id: str) -> ChronologyResult:
    """Chronology recomputed from stored text plus stored language-model events."""
    pages = [page for _, page, _ in load_page_texts(document_id)]
    return build_document_chronology(pages, load_stored_classifications(document_id))


def find_document_duplicates(document_id: str) -> DuplicateReport:
    return find_duplicates(load_page_fingerprints(document_id))


def document_dates(document_id: str) -> DateIndex:
    """Page-to-date connections from stored text, with the distinct dates ordered."""
    connections = [
        PageDate(page_number=page.page_number, date=iso)
        for _, page, _ in load_page_texts(document_id)
        for iso in get_dates(page.text)
    ]
    distinct = list(dict.fromkeys(c.date for c in connections))
    return DateIndex(connections=connections, dates=order_dates(distinct))


@dataclass
class LocalRun:
    chronology: ChronologyResult
    duplicates: DuplicateReport
    classifications: list[PageClassification] = field(default_factory=list)
    warnings: list[Warning] = field(default_factory=list)


def run_local(
    pdf_path: str,
    client=None,
    use_llm: bool = False,
    mode: str = LLM_ROUTING,
    model: str = LLM_MODEL,
) -> LocalRun:
    """Full pass over a PDF on disk without touching the database."""
    pages, _, warnings = extract_pages(pdf_path)

    classifications: list[PageClassification] = []
    if use_llm:
        texts = {p.page_number: p.text for p in pages}
        routed = select_pages_for_llm(extract_page_results(pages), mode)
        classifications = classify_pages(
            [PageToClassify(page_number=r.page_number, text=texts[r.page_number]) for r in routed],
            client=client,
            model=model,
        )

    chronology = build_document_chronology(pages, classifications)
    duplicates = find_duplicates([page_fingerprint(str(p.page_number), p) for p in pages])
    return LocalRun(
        chronology=chronology,
        duplicates=duplicates,
        classifications=classifications,
        warnings=warnings,
    )
