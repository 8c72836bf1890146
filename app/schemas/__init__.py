"""
app/schemas package marker.
"""

from app.schemas.policy_import import (
    ConfirmBatchRequest,
    ConfirmImportRequest,
    DetectFormatResponse,
    ImportHistoryResponse,
    ImportPreviewResponse,
    ImportResultResponse,
    ParsedRowResponse,
    SupportedFormatResponse,
)

__all__ = [
    "ConfirmBatchRequest",
    "ConfirmImportRequest",
    "DetectFormatResponse",
    "ImportHistoryResponse",
    "ImportPreviewResponse",
    "ImportResultResponse",
    "ParsedRowResponse",
    "SupportedFormatResponse",
]
