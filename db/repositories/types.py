"""
Typed DTOs used by repository import/storage flows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class StoredPayloadMetadata:
    """
    Metadata produced by the scratch storage backend after saving a payload.
    """

    storage_path: str
    size_bytes: int
    checksum: str
    stored_at: datetime


@dataclass(frozen=True)
class PlateHistoryEntry:
    """
    Most recent policy seen for one plate inside the lookback window.
    """

    plate: str
    customer_id: int
    insured_name: str | None
    start_date: datetime


@dataclass(frozen=True)
class CustomerSnapshot:
    """
    Identity columns of one customer, detached from the ORM session.
    """

    id: int
    first_name: str | None
    surname: str | None
    national_id: str | None
    tax_id: str | None
    address: str | None = None
    owner_type: int | None = None
