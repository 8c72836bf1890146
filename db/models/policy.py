"""
db/models/policy.py

Issued policies. The import pipeline only reads this table, for the plate
history used by customer resolution.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, BigIntPK, TimestampMixin


class Policy(Base, TimestampMixin):
    __tablename__ = "policies"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    firm_id: Mapped[int] = mapped_column(Integer, nullable=False)
    carrier_id: Mapped[int] = mapped_column(Integer, nullable=False)
    policy_no: Mapped[str] = mapped_column(String(50), nullable=False)
    plate: Mapped[str | None] = mapped_column(String(20), nullable=True)
    insured_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    customer_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
    )
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_policies_firm_plate", "firm_id", "plate"),
        Index("ix_policies_firm_start_date", "firm_id", "start_date"),
    )
