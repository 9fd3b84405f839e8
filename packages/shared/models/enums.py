from enum import Enum


class DateClassification(str, Enum):
    DATE_OF_SERVICE = "date_of_service"  # The date the document pertains to
    DATE_OF_BIRTH = "date_of_birth"  # Patient DOB, never a chronology date
    REFERENCED = "referenced"  # Mentioned in content (e.g. "since 2020")
    FAX = "fax"  # Fax / transmission header stamps
    UNKNOWN = "unknown"  # Needs LLM classification


class PagePosition(str, Enum):
    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


class DateSource(str, Enum):
    HEURISTIC = "heuristic"  # Selected from regex matches + context
    LLM = "llm"  # Primary event returned by the language model
    INHERITED = "inherited"  # Carried forward from a previous page
    NONE = "none"


class EventType(str, Enum):
    VISIT = "visit"
    LAB = "lab"
    IMAGING = "imaging"
    PROCEDURE = "procedure"
    MEDICATION = "medication"
    NOTE = "note"
    OTHER = "other"


class EventSource(str, Enum):
    LLM = "llm"
    USER = "user"
