"""
API route: Documents (upload, lifecycle, processing, classification)
"""
from __future__ import annotations

import logging
import os
from typing import Literal

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session

from packages.db.database import get_db
from packages.db.models import DateEvent, Document
from packages.shared.models import ClassifySummary, ProcessSummary
from packages.shared.storage import delete_upload, save_upload, sha256_bytes
from apps.worker.pipeline import classify_document, process_document
from apps.worker.steps.step01_page_split import OCRError
from apps.worker.steps.step06_llm_classify import LLM_ROUTING

router = APIRouter(tags=["documents"])
logger = logging.getLogger(__name__)
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(25 * 1024 * 1024)))


class DocumentResponse(BaseModel):
    id: str
    filename: str
    file_hash: str
    bytes: int
    uploaded_at: str
    processed_at: str | None = None
    total_pages: int | None = None
    pages_with_dates: int | None = None
    event_count: int = 0
    already_exists: bool = False


class ClassifyRequest(BaseModel):
    mode: Literal["dated", "ambiguous"] = LLM_ROUTING
    force: bool = False


def get_llm_client():
    """Language-model client dependency; None lets the worker build the default one."""
    return None


def _to_response(doc: Document, event_count: int = 0, already_exists: bool = False) -> DocumentResponse:
    return DocumentResponse(
        id=doc.id,
        filename=doc.filename,
        file_hash=doc.file_hash,
        bytes=doc.bytes or 0,
        uploaded_at=doc.uploaded_at.isoformat(),
        processed_at=doc.processed_at.isoformat() if doc.processed_at else None,
        total_pages=doc.total_pages,
        pages_with_dates=doc.pages_with_dates,
        event_count=event_count,
        already_exists=already_exists,
    )


def _get_document_or_404(db: Session, document_id: str) -> Document:
    doc = db.query(Document).filter_by(id=document_id).first()
    if not doc:
        raise HTTPException(status_code=404, detail="Document not found")
    return doc


@router.post("/documents", response_model=DocumentResponse, status_code=201)
async def upload_document(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    """Upload a PDF. Identical content returns the existing document."""
    if file.content_type and "pdf" not in file.content_type.lower():
        raise HTTPException(status_code=400, detail="Only PDF files are accepted")

    content = await file.read()
    if len(content) == 0:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(content) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Upload exceeds configured size limit")
    if not content.startswith(b"%PDF-"):
        raise HTTPException(status_code=400, detail="Uploaded file is not a valid PDF signature")

    file_hash = sha256_bytes(content)
    existing = db.query(Document).filter_by(file_hash=file_hash).first()
    if existing:
        count = db.query(func.count(DateEvent.id)).filter_by(document_id=existing.id).scalar() or 0
        return _to_response(existing, event_count=count, already_exists=True)

    doc = Document(
        filename=file.filename or "upload.pdf",
        file_hash=file_hash,
        bytes=len(content),
    )
    db.add(doc)
    db.flush()

    try:
        path = save_upload(doc.id, content)
    except OSError as exc:
        logger.error(f"Failed to store upload {doc.id}: {exc}")
        raise HTTPException(status_code=500, detail="Failed to store upload")
    doc.storage_uri = str(path)
    db.flush()
    return _to_response(doc)


@router.get("/documents", response_model=list[DocumentResponse])
def list_documents(db: Session = Depends(get_db)):
    """List documents, newest first, with event counts."""
    counts = dict(
        db.query(DateEvent.document_id, func.count(DateEvent.id))
        .group_by(DateEvent.document_id)
        .all()
    )
    docs = db.query(Document).order_by(Document.uploaded_at.desc()).all()
    return [_to_response(d, event_count=counts.get(d.id, 0)) for d in docs]


@router.get("/documents/{document_id}", response_model=DocumentResponse)
def get_document(document_id: str, db: Session = Depends(get_db)):
    doc = _get_document_or_404(db, document_id)
    count = db.query(func.count(DateEvent.id)).filter_by(document_id=document_id).scalar() or 0
    return _to_response(doc, event_count=count)


@router.delete("/documents/{document_id}", status_code=204)
def delete_document(document_id: str, db: Session = Depends(get_db)):
    """Delete a document with its pages, events and stored file."""
    doc = _get_document_or_404(db, document_id)
    db.delete(doc)
    db.flush()
    delete_upload(document_id)
    return Response(status_code=204)


@router.get("/documents/{document_id}/download")
def download_document(document_id: str, db: Session = Depends(get_db)):
    """Download original uploaded source PDF."""
    doc = _get_document_or_404(db, document_id)
    if not doc.storage_uri or not os.path.exists(doc.storage_uri):
        raise HTTPException(status_code=404, detail="Document file missing")
    return FileResponse(
        path=doc.storage_uri,
        filename=doc.filename or f"{document_id}.pdf",
        media_type="application/pdf",
    )


@router.post("/documents/{document_id}/process", response_model=ProcessSummary)
def process(document_id: str, force: bool = False, db: Session = Depends(get_db)):
    """Extract page text, dates and fingerprints for a stored document."""
    _get_document_or_404(db, document_id)
    db.close()
    try:
        return process_document(document_id, force=force)
    except OCRError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


@router.post("/documents/{document_id}/classify", response_model=ClassifySummary)
def classify(
    document_id: str,
    body: ClassifyRequest | None = None,
    db: Session = Depends(get_db),
    client=Depends(get_llm_client),
):
    """Run the language model over routed pages and store their events."""
    doc = _get_document_or_404(db, document_id)
    if doc.processed_at is None:
        raise HTTPException(status_code=400, detail="Document has not been processed")
    db.close()

    body = body or ClassifyRequest()
    try:
        return classify_document(document_id, client=client, mode=body.mode, force=body.force)
    except ValueError as exc:
        logger.error(f"Classification unavailable for {document_id}: {exc}")
        raise HTTPException(status_code=500, detail=str(exc))
