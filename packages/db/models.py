"""
SQLAlchemy ORM models for document chronology persistence.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone as dt_timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship

def _uuid():
    return uuid.uuid4().hex

def utcnow():
    return datetime.now(dt_timezone.utc)

class Base(DeclarativeBase):
    pass


class Document(Base):
    __tablename__ = "documents"

    id = Column(String(120), primary_key=True, default=_uuid)
    filename = Column(String(200), nullable=False)
    storage_uri = Column(String(500), nullable=True)
    file_hash = Column(String(64), nullable=False, unique=True)
    bytes = Column(Integer, nullable=False, default=0)
    uploaded_at = Column(DateTime, default=utcnow)
    processed_at = Column(DateTime, nullable=True)
    total_pages = Column(Integer, nullable=True)
    pages_with_dates = Column(Integer, nullable=True)

    pages = relationship(
        "Page", back_populates="document", cascade="all, delete-orphan",
        order_by="Page.page_number",
    )
    events = relationship("DateEvent", back_populates="document", cascade="all, delete-orphan")


class Page(Base):
    __tablename__ = "pages"
    __table_args__ = (
        UniqueConstraint("document_id", "page_number", name="uq_pages_document_page"),
    )

    id = Column(String(120), primary_key=True, default=_uuid)
    document_id = Column(String(120), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    page_number = Column(Integer, nullable=False)
    text = Column(Text, nullable=False, default="")
    text_source = Column(String(40), nullable=False, default="embedded_pdf_text")
    has_date = Column(Boolean, nullable=False, default=False)
    llm_analyzed = Column(Boolean, nullable=False, default=False)
    document_type = Column(String(200), nullable=True)

    # Duplicate detection
    text_hash = Column(String(64), nullable=True, index=True)
    sim_hash = Column(String(16), nullable=True)
    duplicate_of_id = Column(String(120), ForeignKey("pages.id", ondelete="SET NULL"), nullable=True)
    duplicate_confidence = Column(Float, nullable=True)
    is_duplicate_reviewed = Column(Boolean, nullable=False, default=False)

    document = relationship("Document", back_populates="pages")
    events = relationship("DateEvent", back_populates="page", cascade="all, delete-orphan")


class DateEvent(Base):
    __tablename__ = "date_events"

    id = Column(String(120), primary_key=True, default=_uuid)
    document_id = Column(String(120), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    page_id = Column(String(120), ForeignKey("pages.id", ondelete="CASCADE"), nullable=True)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD
    raw_date_text = Column(String(200), nullable=True)
    summary = Column(Text, nullable=False, default="")
    type = Column(String(20), nullable=False, default="other")
    is_primary = Column(Boolean, nullable=False, default=False)
    confidence = Column(Float, nullable=False, default=0.5)
    source = Column(String(10), nullable=False, default="llm")  # llm | user
    llm_model = Column(String(100), nullable=True)
    user_edited = Column(Boolean, nullable=False, default=False)
    user_notes = Column(Text, nullable=True)
    duplicate_of_id = Column(String(120), ForeignKey("date_events.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    document = relationship("Document", back_populates="events")
    page = relationship("Page", back_populates="events")
