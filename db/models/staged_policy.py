"""
db/models/staged_policy.py

Staging pool for imported carrier policies. Rows are append-only; the unique
constraint on (firm, carrier, policy, endorsement) is the store-level guard
against double imports.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, BigIntPK, Money, TimestampMixin


class StagedPolicyStatus:
    PENDING = 0
    MATCHED = 1


EXCEL_IMPORT_SOURCE = "excel import"


class StagedPolicy(Base, TimestampMixin):
    __tablename__ = "staged_policies"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    firm_id: Mapped[int] = mapped_column(Integer, nullable=False)
    branch_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    carrier_id: Mapped[int] = mapped_column(Integer, nullable=False)
    policy_no: Mapped[str] = mapped_column(String(50), nullable=False)
    endorsement_no: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    renewal_no: Mapped[str | None] = mapped_column(String(20), nullable=True)
    policy_kind: Mapped[str] = mapped_column(String(20), nullable=False, comment="TAHAKKUK or IPTAL")
    plate: Mapped[str | None] = mapped_column(String(20), nullable=True)
    issue_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    gross_premium: Mapped[Decimal] = mapped_column(Money, nullable=False, default=0)
    net_premium: Mapped[Decimal] = mapped_column(Money, nullable=False, default=0)
    tax: Mapped[Decimal] = mapped_column(Money, nullable=False, default=0)
    commission: Mapped[Decimal] = mapped_column(Money, nullable=False, default=0)
    product_branch_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    customer_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    national_id: Mapped[str | None] = mapped_column(String(11), nullable=True)
    tax_id: Mapped[str | None] = mapped_column(String(10), nullable=True)
    insured_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    agent_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    detection_source: Mapped[str] = mapped_column(String(50), nullable=False, default=EXCEL_IMPORT_SOURCE)
    source_file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    import_session_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    record_status: Mapped[int] = mapped_column(Integer, nullable=False, default=StagedPolicyStatus.PENDING)

    __table_args__ = (
        UniqueConstraint(
            "firm_id",
            "carrier_id",
            "policy_no",
            "endorsement_no",
            name="uq_staged_policies_firm_carrier_policy_endorsement",
        ),
        Index("ix_staged_policies_firm_carrier", "firm_id", "carrier_id"),
        Index("ix_staged_policies_import_session_id", "import_session_id"),
    )
