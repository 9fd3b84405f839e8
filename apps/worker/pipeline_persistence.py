"""
Persistence helpers for processed pages and classified events.
"""
from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import or_

from packages.db.database import get_session
from packages.db.models import (
    DateEvent as DateEventORM,
    Document as DocumentORM,
    Page as PageORM,
)
from packages.shared.models import (
    EventSource,
    EventType,
    LLMEvent,
    PageClassification,
    PageFingerprint,
    PageText,
)
from apps.worker.lib.text_hash import compute_fingerprint, fingerprint_from_hex, fingerprint_to_hex
from apps.worker.steps.step03_dates import has_date


def _event_type(value: str) -> EventType:
    try:
        return EventType(value)
    except ValueError:
        return EventType.OTHER


def _page_hashes(page: PageText) -> tuple[str, str]:
    fp = compute_fingerprint(page.text)
    return fp.text_hash, fingerprint_to_hex(fp.sim_fingerprint)


def persist_document_pages(document_id: str, pages: list[PageText]) -> int:
    """
    Write a document's pages in one transaction.

    Rows are matched on page number. A page whose text changed loses its
    unedited language-model events and is marked for re-analysis. Events a
    user created or edited are never deleted; on pages that disappear they
    are kept without a page. Returns the number of pages with at least one
    date.
    """
    with get_session() as session:
        doc = session.query(DocumentORM).filter_by(id=document_id).one()
        existing = {p.page_number: p for p in session.query(PageORM).filter_by(document_id=document_id)}
        incoming = {p.page_number for p in pages}

        for page_number, row in existing.items():
            if page_number not in incoming:
                session.query(DateEventORM).filter(
                    DateEventORM.page_id == row.id,
                    or_(DateEventORM.user_edited.is_(True), DateEventORM.source == EventSource.USER.value),
                ).update({"page_id": None}, synchronize_session=False)
                session.delete(row)

        dated = 0
        for page in pages:
            text_hash, sim_hash = _page_hashes(page)
            page_has_date = has_date(page.text)
            dated += int(page_has_date)

            row = existing.get(page.page_number)
            if row is None:
                session.add(PageORM(
                    document_id=document_id,
                    page_number=page.page_number,
                    text=page.text,
                    text_source=page.text_source,
                    has_date=page_has_date,
                    text_hash=text_hash,
                    sim_hash=sim_hash,
                ))
                continue

            if row.text_hash != text_hash:
                session.query(DateEventORM).filter_by(
                    page_id=row.id, source=EventSource.LLM.value, user_edited=False,
                ).delete()
                row.llm_analyzed = False
                row.document_type = None
            row.text = page.text
            row.text_source = page.text_source
            row.has_date = page_has_date
            row.text_hash = text_hash
            row.sim_hash = sim_hash

        doc.total_pages = len(pages)
        doc.pages_with_dates = dated
        doc.processed_at = datetime.now(timezone.utc)
    return dated


def load_page_texts(document_id: str) -> list[tuple[str, PageText, bool]]:
    """(page_id, PageText, llm_analyzed) for every stored page, in page order."""
    with get_session() as session:
        rows = (
            session.query(PageORM)
            .filter_by(document_id=document_id)
            .order_by(PageORM.page_number)
            .all()
        )
        return [
            (r.id, PageText(page_number=r.page_number, text=r.text or "", text_source=r.text_source), r.llm_analyzed)
            for r in rows
        ]


def load_stored_classifications(document_id: str) -> list[PageClassification]:
    """Rebuild per-page classifications from stored language-model events."""
    with get_session() as session:
        pages = (
            session.query(PageORM)
            .filter_by(document_id=document_id, llm_analyzed=True)
            .order_by(PageORM.page_number)
            .all()
        )
        result: list[PageClassification] = []
        for page in pages:
            events = []
            for ev in page.events:
                if ev.source != EventSource.LLM.value:
                    continue
                try:
                    event_date = date.fromisoformat(ev.date)
                except ValueError:
                    continue
                events.append(LLMEvent(
                    date=event_date,
                    summary=ev.summary or "",
                    type=_event_type(ev.type),
                    is_primary=ev.is_primary,
                    confidence=ev.confidence,
                    raw_date_text=ev.raw_date_text,
                ))
            result.append(PageClassification(
                page_number=page.page_number,
                page_id=page.id,
                events=events,
                document_type=page.document_type,
            ))
        return result


def persist_page_classification(
    document_id: str,
    classification: PageClassification,
    model: str,
) -> int:
    """
    Store one page's events and mark it analyzed, in a single transaction.
    Previous unedited language-model events for the page are replaced;
    user-edited ones are kept.
    """
    with get_session() as session:
        page = session.query(PageORM).filter_by(id=classification.page_id).one()
        session.query(DateEventORM).filter_by(
            page_id=page.id, source=EventSource.LLM.value, user_edited=False,
        ).delete()
        for event in classification.events:
            session.add(DateEventORM(
                document_id=document_id,
                page_id=page.id,
                date=event.date.isoformat(),
                raw_date_text=event.raw_date_text,
                summary=event.summary,
                type=event.type.value,
                is_primary=event.is_primary,
                confidence=event.confidence,
                source=EventSource.LLM.value,
                llm_model=model,
            ))
        page.llm_analyzed = True
        page.document_type = classification.document_type
    return len(classification.events)


def load_page_fingerprints(document_id: str) -> list[PageFingerprint]:
    with get_session() as session:
        rows = session.query(PageORM).filter_by(document_id=document_id).all()
        return [
            PageFingerprint(
                id=r.id,
                page_number=r.page_number,
                text_hash=r.text_hash,
                sim_fingerprint=fingerprint_from_hex(r.sim_hash) if r.sim_hash else None,
            )
            for r in rows
        ]
