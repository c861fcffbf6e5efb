"""Named sequence counter model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.database import Base


class SequenceCounter(Base):
    """Next value of a business number series (order numbers, invoice numbers).

    Only the sequence allocator writes to this table.
    """

    __tablename__ = "sequence_counters"

    ORDER = "order"
    INVOICE = "invoice"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    next_value: Mapped[int | None] = mapped_column(Integer)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
