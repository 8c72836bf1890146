"""
app/domain package marker.
"""

from app.domain.customer_match import (
    CustomerMatchRequest,
    CustomerMatchResult,
    MatchConfidence,
    MatchSignal,
    OwnerType,
)
from app.domain.policy_import import (
    CallerContext,
    DetectionResult,
    ImportHistoryEntry,
    ImportHistoryPage,
    ImportPreview,
    ImportResult,
    ImportRowError,
    ParsedRow,
    RowKind,
    SupportedFormat,
)

__all__ = [
    "CallerContext",
    "CustomerMatchRequest",
    "CustomerMatchResult",
    "DetectionResult",
    "ImportHistoryEntry",
    "ImportHistoryPage",
    "ImportPreview",
    "ImportResult",
    "ImportRowError",
    "MatchConfidence",
    "MatchSignal",
    "OwnerType",
    "ParsedRow",
    "RowKind",
    "SupportedFormat",
]
