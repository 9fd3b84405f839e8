"""
API route: Date events (list, manual create, edit, delete)
"""
from __future__ import annotations

import datetime

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from packages.db.database import get_db
from packages.db.models import DateEvent, Document, Page
from packages.shared.models import EventSource, EventType

router = APIRouter(tags=["events"])


class EventResponse(BaseModel):
    id: str
    document_id: str
    page_id: str | None = None
    page_number: int | None = None
    date: str
    raw_date_text: str | None = None
    summary: str
    type: str
    is_primary: bool
    confidence: float
    source: str
    user_edited: bool
    user_notes: str | None = None
    duplicate_of_id: str | None = None
    created_at: str
    updated_at: str


class EventCreateRequest(BaseModel):
    date: datetime.date
    summary: str = Field(min_length=1, max_length=500)
    type: EventType
    page_number: int | None = Field(default=None, ge=1)
    is_primary: bool = False
    user_notes: str | None = None


class EventUpdateRequest(BaseModel):
    date: datetime.date | None = None
    summary: str | None = Field(default=None, min_length=1, max_length=500)
    type: EventType | None = None
    is_primary: bool | None = None
    user_notes: str | None = None
    duplicate_of_id: str | None = None


_CONTENT_FIELDS = {"date", "summary", "type", "user_notes"}


def _to_response(event: DateEvent) -> EventResponse:
    return EventResponse(
        id=event.id,
        document_id=event.document_id,
        page_id=event.page_id,
        page_number=event.page.page_number if event.page is not None else None,
        date=event.date,
        raw_date_text=event.raw_date_text,
        summary=event.summary,
        type=event.type,
        is_primary=event.is_primary,
        confidence=event.confidence,
        source=event.source,
        user_edited=event.user_edited,
        user_notes=event.user_notes,
        duplicate_of_id=event.duplicate_of_id,
        created_at=event.created_at.isoformat(),
        updated_at=event.updated_at.isoformat(),
    )


def _get_event_or_404(db: Session, event_id: str) -> DateEvent:
    event = db.query(DateEvent).filter_by(id=event_id).first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@router.get("/documents/{document_id}/events", response_model=list[EventResponse])
def list_events(document_id: str, db: Session = Depends(get_db)):
    """Events for a document, by date then creation time."""
    if not db.query(Document).filter_by(id=document_id).first():
        raise HTTPException(status_code=404, detail="Document not found")
    events = (
        db.query(DateEvent)
        .filter_by(document_id=document_id)
        .order_by(DateEvent.date.asc(), DateEvent.created_at.asc())
        .all()
    )
    return [_to_response(e) for e in events]


@router.post("/documents/{document_id}/events", response_model=EventResponse, status_code=201)
def create_event(document_id: str, body: EventCreateRequest, db: Session = Depends(get_db)):
    """Add a manual event. Manual events are fully trusted."""
    if not db.query(Document).filter_by(id=document_id).first():
        raise HTTPException(status_code=404, detail="Document not found")

    page_id = None
    if body.page_number is not None:
        page = db.query(Page).filter_by(document_id=document_id, page_number=body.page_number).first()
        page_id = page.id if page else None

    event = DateEvent(
        document_id=document_id,
        page_id=page_id,
        date=body.date.isoformat(),
        summary=body.summary,
        type=body.type.value,
        is_primary=body.is_primary,
        confidence=1.0,
        source=EventSource.USER.value,
        user_notes=body.user_notes,
    )
    db.add(event)
    db.flush()
    db.refresh(event)
    return _to_response(event)


@router.get("/events/{event_id}", response_model=EventResponse)
def get_event(event_id: str, db: Session = Depends(get_db)):
    return _to_response(_get_event_or_404(db, event_id))


@router.patch("/events/{event_id}", response_model=EventResponse)
def update_event(event_id: str, body: EventUpdateRequest, db: Session = Depends(get_db)):
    """Partial update; any content change marks the event as user edited."""
    event = _get_event_or_404(db, event_id)
    changes = body.model_dump(exclude_unset=True)

    for key, value in changes.items():
        if key == "date" and value is not None:
            value = value.isoformat()
        elif key == "type" and value is not None:
            value = EventType(value).value
        elif value is None and key in {"date", "summary", "type", "is_primary"}:
            continue
        setattr(event, key, value)

    if _CONTENT_FIELDS & changes.keys():
        event.user_edited = True
    db.flush()
    db.refresh(event)
    return _to_response(event)


@router.delete("/events/{event_id}", status_code=204)
def delete_event(event_id: str, db: Session = Depends(get_db)):
    db.delete(_get_event_or_404(db, event_id))
    db.flush()
    return Response(status_code=204)
