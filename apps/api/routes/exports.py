"""
API route: Exports
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.orm import Session

from packages.db.database import get_db
from packages.db.models import DateEvent, Document
from apps.worker.steps.step10_export import build_export_rows, export_filename, generate_csv

router = APIRouter(tags=["exports"])


@router.get("/documents/{document_id}/export")
def export_events(document_id: str, db: Session = Depends(get_db)):
    """Download a document's events as CSV."""
    doc = db.query(Document).filter_by(id=document_id).first()
    if not doc:
        raise HTTPException(status_code=404, detail="Document not found")

    events = (
        db.query(DateEvent)
        .filter_by(document_id=document_id)
        .order_by(DateEvent.date.asc(), DateEvent.created_at.asc())
        .all()
    )
    data = generate_csv(build_export_rows(events))
    return Response(
        content=data,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(doc.filename)}"'},
    )
