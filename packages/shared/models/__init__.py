from .common import DateOfService, ExtractedDate
from .domain import (
    ChronologyResult,
    ChronologyStats,
    ClassifySummary,
    ContentFingerprint,
    DateIndex,
    DuplicateGroup,
    DuplicateMember,
    DuplicateReport,
    ExportRow,
    LLMEvent,
    PageClassification,
    PageCluster,
    PageDate,
    PageFingerprint,
    PageResult,
    PageText,
    ProcessSummary,
    Warning,
)
from .enums import (
    DateClassification,
    DateSource,
    EventSource,
    EventType,
    PagePosition,
)
