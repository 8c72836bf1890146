"""
app/services package marker.
"""

from app.services.customer_matching_service import CustomerMatchingService
from app.services.import_session_store import ImportSession, ImportSessionState, ImportSessionStore
from app.services.policy_import_service import (
    ImportCancelledError,
    ImportErrorCode,
    ImportPersistenceError,
    ImportSessionNotFoundError,
    ImportSessionOwnershipError,
    ImportSessionStateError,
    InvalidBatchWindowError,
    PolicyImportService,
    get_policy_import_service,
)

__all__ = [
    "CustomerMatchingService",
    "ImportSession",
    "ImportSessionState",
    "ImportSessionStore",
    "ImportCancelledError",
    "ImportErrorCode",
    "ImportPersistenceError",
    "ImportSessionNotFoundError",
    "ImportSessionOwnershipError",
    "ImportSessionStateError",
    "InvalidBatchWindowError",
    "PolicyImportService",
    "get_policy_import_service",
]
