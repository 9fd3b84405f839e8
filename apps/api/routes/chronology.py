"""
API route: Chronology
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from packages.db.database import get_db
from packages.db.models import Document
from packages.shared.models import ChronologyResult, DateIndex, PageResult
from apps.worker.pipeline import document_chronology, document_dates
from apps.worker.steps.step08_clusters import build_chronology

router = APIRouter(tags=["chronology"])


class ClusterRequest(BaseModel):
    pages: list[PageResult]


def _get_processed_or_error(db: Session, document_id: str) -> Document:
    doc = db.query(Document).filter_by(id=document_id).first()
    if not doc:
        raise HTTPException(status_code=404, detail="Document not found")
    if doc.processed_at is None:
        raise HTTPException(status_code=400, detail="Document has not been processed")
    return doc


@router.get("/documents/{document_id}/chronology", response_model=ChronologyResult)
def get_chronology(document_id: str, db: Session = Depends(get_db)):
    """Dated clusters for a processed document."""
    _get_processed_or_error(db, document_id)
    return document_chronology(document_id)


@router.get("/documents/{document_id}/dates", response_model=DateIndex)
def get_dates_index(document_id: str, db: Session = Depends(get_db)):
    """Every date on every page of a processed document."""
    _get_processed_or_error(db, document_id)
    return document_dates(document_id)


@router.post("/chronology/cluster", response_model=ChronologyResult)
def cluster_pages(body: ClusterRequest):
    """Inherit and cluster caller-supplied page results without touching storage."""
    numbers = [p.page_number for p in body.pages]
    if len(numbers) != len(set(numbers)):
        raise HTTPException(status_code=400, detail="Duplicate page numbers")
    return build_chronology(body.pages)
