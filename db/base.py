"""
db/base.py

Declarative base, shared column types and the audit timestamp mixin used by
the policy import tables.
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, Integer, Numeric, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# 64-bit surrogate keys on PostgreSQL; SQLite only autoincrements INTEGER.
BigIntPK = BigInteger().with_variant(Integer, "sqlite")

# Premium, tax and commission amounts in the carrier's currency.
Money = Numeric(18, 2)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    """
    Adds created_at / updated_at. Inserts take the database clock; updates
    made through the ORM stamp the application clock in UTC.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    )
