"""
API route: Duplicate pages
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from packages.db.database import get_db
from packages.db.models import Document, Page
from packages.shared.models import DuplicateReport
from apps.worker.pipeline import find_document_duplicates
from apps.worker.steps.step09_dedup import duplicate_confidence

router = APIRouter(tags=["duplicates"])


class DuplicateUpdateRequest(BaseModel):
    duplicate_of_id: str | None = None
    is_duplicate_reviewed: bool | None = None


class PageDuplicateResponse(BaseModel):
    id: str
    page_number: int
    duplicate_of_id: str | None = None
    duplicate_confidence: float | None = None
    is_duplicate_reviewed: bool


@router.get("/documents/{document_id}/duplicates", response_model=DuplicateReport)
def get_duplicates(document_id: str, db: Session = Depends(get_db)):
    """Exact and near-duplicate page groups for a document."""
    if not db.query(Document).filter_by(id=document_id).first():
        raise HTTPException(status_code=404, detail="Document not found")
    return find_document_duplicates(document_id)


@router.patch("/pages/{page_id}/duplicate", response_model=PageDuplicateResponse)
def update_page_duplicate(page_id: str, body: DuplicateUpdateRequest, db: Session = Depends(get_db)):
    """Mark (or unmark) a page as a duplicate of another, or record review."""
    page = db.query(Page).filter_by(id=page_id).first()
    if not page:
        raise HTTPException(status_code=404, detail="Page not found")

    changes = body.model_dump(exclude_unset=True)
    if "duplicate_of_id" in changes:
        target_id = changes["duplicate_of_id"]
        if target_id:
            if target_id == page.id:
                raise HTTPException(status_code=400, detail="A page cannot duplicate itself")
            primary = db.query(Page).filter_by(id=target_id).first()
            if not primary or primary.document_id != page.document_id:
                raise HTTPException(status_code=404, detail="Primary page not found")
            page.duplicate_of_id = primary.id
            page.duplicate_confidence = duplicate_confidence(page.sim_hash, primary.sim_hash)
        else:
            page.duplicate_of_id = None
            page.duplicate_confidence = None

    if changes.get("is_duplicate_reviewed") is not None:
        page.is_duplicate_reviewed = changes["is_duplicate_reviewed"]

    db.flush()
    return PageDuplicateResponse(
        id=page.id,
        page_number=page.page_number,
        duplicate_of_id=page.duplicate_of_id,
        duplicate_confidence=page.duplicate_confidence,
        is_duplicate_reviewed=page.is_duplicate_reviewed,
    )
