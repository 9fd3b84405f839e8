from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from .enums import DateClassification, PagePosition


class ExtractedDate(BaseModel):
    """One date occurrence found in a page's text."""
    model_config = ConfigDict(frozen=True)

    raw: str
    iso_date: date
    context_before: str = ""
    context_after: str = ""
    position: PagePosition
    offset: int = Field(ge=0)
    classification: DateClassification = DateClassification.UNKNOWN
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @property
    def iso(self) -> str:
        return self.iso_date.isoformat()


class DateOfService(BaseModel):
    date: date
    confident: bool = False
