"""
app/domain/customer_match.py

Domain models for customer identity resolution.
"""

from __future__ import annotations

from dataclasses import dataclass, field


class MatchConfidence:
    EXACT = "exact"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


class MatchSignal:
    NATIONAL_ID = "national_id"
    TAX_ID = "tax_id"
    PLATE = "plate"
    NAME = "name"
    NONE = "none"


class OwnerType:
    INDIVIDUAL = 1
    ORGANIZATION = 2


@dataclass(frozen=True)
class CustomerMatchRequest:
    """
    Identity signals extracted from one parsed row.
    """

    national_id: str | None = None
    tax_id: str | None = None
    plate: str | None = None
    name: str | None = None
    surname: str | None = None
    address: str | None = None


@dataclass(frozen=True)
class CustomerMatchResult:
    """
    Outcome of the identity cascade for one row.

    ``candidates`` is only populated for ambiguous (Low) matches, and
    ``auto_created`` marks the row whose signal caused a new customer insert.
    ``pending_creation`` marks an Exact identifier with no customer yet when
    resolution ran without creating customers (preview).
    """

    customer_id: int | None = None
    confidence: str = MatchConfidence.NONE
    signal: str = MatchSignal.NONE
    candidates: tuple[int, ...] = field(default_factory=tuple)
    auto_created: bool = False
    pending_creation: bool = False

    @classmethod
    def no_match(cls) -> CustomerMatchResult:
        return cls()
