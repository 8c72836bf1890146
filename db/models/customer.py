"""
db/models/customer.py

Customer model. Customers are owned by a firm (agency) and optionally one of
its branches; identity columns are looked up by the import resolver.
"""

from __future__ import annotations

from sqlalchemy import Index, Integer, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, BigIntPK, TimestampMixin


class Customer(Base, TimestampMixin):
    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    firm_id: Mapped[int] = mapped_column(Integer, nullable=False)
    branch_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    owner_type: Mapped[int] = mapped_column(
        SmallInteger,
        nullable=False,
        default=1,
        comment="1 individual, 2 organization",
    )
    first_name: Mapped[str | None] = mapped_column(String(150), nullable=True)
    surname: Mapped[str | None] = mapped_column(String(30), nullable=True)
    national_id: Mapped[str | None] = mapped_column(String(11), nullable=True)
    tax_id: Mapped[str | None] = mapped_column(String(10), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        Index("ix_customers_firm_id", "firm_id"),
        Index("ix_customers_firm_national_id", "firm_id", "national_id"),
        Index("ix_customers_firm_tax_id", "firm_id", "tax_id"),
    )
