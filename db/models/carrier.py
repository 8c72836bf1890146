"""
db/models/carrier.py

Reference tables for insurance carriers and canonical insurance branches.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class InsuranceCarrier(Base, TimestampMixin):
    """
    Carrier reference list. Ids are assigned by the business, not generated.
    """

    __tablename__ = "insurance_carriers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    short_code: Mapped[str | None] = mapped_column(String(30), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class InsuranceBranch(Base):
    __tablename__ = "insurance_branches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    code: Mapped[str | None] = mapped_column(String(30), nullable=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
