from __future__ import annotations

from sqlalchemy import BigInteger, Identity, Integer
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Value(Base):
    """One submitted index. Rows are appended and never updated or deleted."""

    __tablename__ = "values"

    # Surrogate key; only used to read rows back in insertion order.
    id: Mapped[int] = mapped_column(BigInteger, Identity(always=True), primary_key=True)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
