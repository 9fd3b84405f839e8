from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from .common import ExtractedDate
from .enums import DateSource, EventSource, EventType


class Warning(BaseModel):
    code: str
    message: str
    page: Optional[int] = None
    document_id: Optional[str] = None


class PageText(BaseModel):
    """Raw per-page text as produced by the OCR collaborator."""
    page_number: int = Field(ge=1)
    text: str = ""
    text_source: str = "embedded_pdf_text"  # embedded_pdf_text | ocr


class PageResult(BaseModel):
    page_number: int = Field(ge=1)
    text: str = ""
    extracted_dates: list[ExtractedDate] = Field(default_factory=list)
    date_of_service: Optional[date] = None
    date_source: DateSource = DateSource.NONE
    inherited_from: Optional[int] = None
    document_type: Optional[str] = None

    @model_validator(mode="after")
    def _check_source(self) -> "PageResult":
        if self.date_source == DateSource.NONE and self.date_of_service is not None:
            raise ValueError("date_source 'none' cannot carry a date_of_service")
        if self.date_source == DateSource.INHERITED:
            if self.inherited_from is None:
                raise ValueError("inherited pages must record inherited_from")
            if self.inherited_from >= self.page_number:
                raise ValueError("inheritance only flows from earlier pages")
        elif self.inherited_from is not None:
            raise ValueError("inherited_from is only valid for inherited pages")
        return self

    @property
    def has_own_date(self) -> bool:
        return self.date_of_service is not None and self.date_source != DateSource.INHERITED


class PageCluster(BaseModel):
    id: str
    date_of_service: date
    pages: list[int] = Field(min_length=1)
    primary_page: int = Field(ge=1)
    document_type: Optional[str] = None


class ChronologyStats(BaseModel):
    total_pages: int = 0
    pages_with_dates: int = 0
    pages_with_dos: int = 0
    pages_inherited: int = 0
    llm_classified: int = 0


class ChronologyResult(BaseModel):
    pages: list[PageResult] = Field(default_factory=list)
    clusters: list[PageCluster] = Field(default_factory=list)
    undated_pages: list[int] = Field(default_factory=list)
    stats: ChronologyStats = Field(default_factory=ChronologyStats)


class ContentFingerprint(BaseModel):
    text_hash: str = Field(pattern=r"^[a-f0-9]{64}$")
    sim_fingerprint: int = Field(ge=0, lt=2**64)


class PageFingerprint(BaseModel):
    """Duplicate-detection input: one stored page."""
    id: str
    page_number: int = Field(ge=1)
    text_hash: Optional[str] = None
    sim_fingerprint: Optional[int] = None


class DuplicateMember(BaseModel):
    id: str
    page_number: int
    similarity: float = Field(ge=0.0, le=1.0)


class DuplicateGroup(BaseModel):
    primary_page_id: str
    primary_page_number: int
    pages: list[DuplicateMember] = Field(min_length=2)


class DuplicateReport(BaseModel):
    exact_groups: list[DuplicateGroup] = Field(default_factory=list)
    near_groups: list[DuplicateGroup] = Field(default_factory=list)


class LLMEvent(BaseModel):
    date: date
    summary: str = Field(default="", max_length=500)
    type: EventType = EventType.OTHER
    is_primary: bool = False
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    raw_date_text: Optional[str] = None


class PageClassification(BaseModel):
    page_number: int = Field(ge=1)
    page_id: Optional[str] = None
    events: list[LLMEvent] = Field(default_factory=list)
    document_type: Optional[str] = None
    failed: bool = False

    def primary_event(self) -> Optional[LLMEvent]:
        """Highest-confidence primary event (first wins on ties)."""
        best: Optional[LLMEvent] = None
        for event in self.events:
            if not event.is_primary:
                continue
            if best is None or event.confidence > best.confidence:
                best = event
        return best


class PageDate(BaseModel):
    page_number: int = Field(ge=1)
    date: str


class DateIndex(BaseModel):
    """Every date found on every page, plus the distinct dates in calendar order."""
    connections: list[PageDate] = Field(default_factory=list)
    dates: list[str] = Field(default_factory=list)


class ExportRow(BaseModel):
    date: str
    summary: str
    type: str
    page: Optional[int] = None
    primary: bool = False
    source: str = EventSource.LLM.value
    notes: str = ""


class ProcessSummary(BaseModel):
    """Outcome of running text acquisition and hashing over one document."""
    document_id: str
    total_pages: int = 0
    pages_with_dates: int = 0
    ocr_pages: int = 0
    cached: bool = False
    warnings: list[Warning] = Field(default_factory=list)


class ClassifySummary(BaseModel):
    document_id: str
    pages_requested: int = 0
    pages_classified: int = 0
    pages_failed: int = 0
    events_created: int = 0
