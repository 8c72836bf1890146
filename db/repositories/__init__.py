"""
Repository layer exports.
"""

from db.repositories.carrier_repository import CarrierRepository
from db.repositories.customer_repository import CustomerRepository
from db.repositories.errors import ImportRepositoryError, ScratchStorageError
from db.repositories.import_run_repository import ImportRunRepository
from db.repositories.staged_policy_repository import StagedPolicyRepository
from db.repositories.storage import LocalScratchStorage, ScratchStorageBackend
from db.repositories.types import CustomerSnapshot, PlateHistoryEntry, StoredPayloadMetadata

__all__ = [
    "CarrierRepository",
    "CustomerRepository",
    "ImportRunRepository",
    "StagedPolicyRepository",
    "LocalScratchStorage",
    "ScratchStorageBackend",
    "CustomerSnapshot",
    "PlateHistoryEntry",
    "StoredPayloadMetadata",
    "ImportRepositoryError",
    "ScratchStorageError",
]
