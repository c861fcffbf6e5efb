"""Sequence allocator for order and invoice numbers.

Each allocation is one ``UPDATE ... RETURNING`` statement: the row lock taken
by the update serializes concurrent callers on the same counter, and the read
of the issued value happens in the same statement as the increment. Because it
runs inside the caller's transaction, a rollback of the surrounding booking
change also rolls back the increment, so no number is lost to a half-finished
request.
"""

import logging

from sqlalchemy import case, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConfigurationError
from app.models.sequence import SequenceCounter
from app.utils.booking_number import format_invoice_number, format_order_number

logger = logging.getLogger(__name__)

DEFAULT_COUNTERS = (SequenceCounter.ORDER, SequenceCounter.INVOICE)


class SequenceService:
    """Issues values of named, monotonically increasing counters."""

    async def allocate(self, db: AsyncSession, counter_name: str) -> int:
        """Issue the next value of ``counter_name``.

        A stored value that is missing or below 1 is treated as 1.

        Raises:
            ConfigurationError: If the counter row does not exist (nothing is mutated)
        """
        current = SequenceCounter.next_value
        stmt = (
            update(SequenceCounter)
            .where(SequenceCounter.name == counter_name)
            .values(
                next_value=case(
                    (or_(current.is_(None), current < 1), 2),
                    else_=current + 1,
                )
            )
            .returning(SequenceCounter.next_value)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        stored_next = result.scalar_one_or_none()
        if stored_next is None:
            logger.error(f"Sequence counter '{counter_name}' is not configured")
            raise ConfigurationError(f"Sequence counter '{counter_name}' not found")

        issued = stored_next - 1
        logger.debug(f"Allocated {counter_name} #{issued}")
        return issued

    async def next_order_number(self, db: AsyncSession) -> str:
        """Allocate and format an order number (K000001)."""
        return format_order_number(await self.allocate(db, SequenceCounter.ORDER))

    async def next_invoice_number(self, db: AsyncSession) -> str:
        """Allocate and format an invoice number (P000001)."""
        return format_invoice_number(await self.allocate(db, SequenceCounter.INVOICE))

    async def current_value(self, db: AsyncSession, counter_name: str) -> int | None:
        """Return the stored next value without allocating (reporting only)."""
        result = await db.execute(
            select(SequenceCounter.next_value).where(SequenceCounter.name == counter_name)
        )
        return result.scalar_one_or_none()

    async def ensure_counters(self, db: AsyncSession, names: tuple[str, ...] = DEFAULT_COUNTERS) -> None:
        """Create missing counter rows starting at 1. Existing rows are left untouched."""
        result = await db.execute(
            select(SequenceCounter.name).where(SequenceCounter.name.in_(names))
        )
        existing = set(result.scalars().all())
        for name in names:
            if name not in existing:
                db.add(SequenceCounter(name=name, next_value=1))
                logger.info(f"Seeded sequence counter '{name}'")
        await db.flush()


# Singleton instance
sequence_service = SequenceService()
