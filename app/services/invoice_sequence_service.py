"""
Invoice Sequence Service

Financial year based invoice numbering (April-March), one continuous
sequence per user per year:

    INV/{FY}/{SEQUENCE}   e.g. INV/2025-26/001

USAGE:
    from app.services.invoice_sequence_service import InvoiceSequenceService

    sequencer = InvoiceSequenceService(db)

    # Preview only, nothing is reserved
    number = await sequencer.preview_next_number(user_id)

    # Reserve and persist
    async with sequencer.reserve(user_id) as number:
        invoice.invoice_number = number
        db.add(invoice)
        await db.commit()

Reservations for the same user and year are serialized in-process with an
asyncio.Lock held until the caller has committed. Across processes the
unique (user_id, invoice_number) constraint on gst_invoices rejects a
duplicate and the caller retries with a reservation past the highest
sequence of the year.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import AsyncIterator, Optional, Tuple, Union
from weakref import WeakValueDictionary

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, utc_now
from app.core.invoice_numbering import (
    financial_year, format_invoice_number, highest_sequence, invoice_number_prefix, next_number_after,
)
from app.models.gst_invoice import GSTInvoice


logger = logging.getLogger(__name__)

# (user_id, financial_year) -> lock; entries go away once no reservation holds them
_sequence_locks: "WeakValueDictionary[Tuple[str, str], asyncio.Lock]" = WeakValueDictionary()


def _sequence_lock(user_id: str, fy: str) -> asyncio.Lock:
    lock = _sequence_locks.get((user_id, fy))
    if lock is None:
        lock = asyncio.Lock()
        _sequence_locks[(user_id, fy)] = lock
    return lock


class InvoiceSequenceService:
    """Generates invoice numbers from the latest invoice in the user's financial year."""

    def __init__(self, db: AsyncSession, clock: Clock = utc_now):
        self.db = db
        self.clock = clock

    async def get_latest_number(self, user_id: str, fy: str) -> Optional[str]:
        """Most recently created invoice number of the user in the given financial year."""
        prefix = invoice_number_prefix(fy)
        result = await self.db.execute(
            select(GSTInvoice.invoice_number)
            .where(
                GSTInvoice.user_id == user_id,
                GSTInvoice.invoice_number.startswith(prefix, autoescape=True),
            )
            .order_by(GSTInvoice.created_at.desc(), GSTInvoice.invoice_number.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_highest_sequence(self, user_id: str, fy: str) -> int:
        """Highest sequence among all of the user's numbers in the financial year."""
        prefix = invoice_number_prefix(fy)
        result = await self.db.execute(
            select(GSTInvoice.invoice_number).where(
                GSTInvoice.user_id == user_id,
                GSTInvoice.invoice_number.startswith(prefix, autoescape=True),
            )
        )
        return highest_sequence(result.scalars().all())

    async def preview_next_number(
        self,
        user_id: str,
        as_of: Optional[Union[date, datetime]] = None,
    ) -> str:
        """Next number without reserving it. Useful for showing in forms."""
        fy = financial_year(as_of or self.clock())
        latest = await self.get_latest_number(user_id, fy)
        return next_number_after(fy, latest)

    @asynccontextmanager
    async def reserve(
        self,
        user_id: str,
        as_of: Optional[Union[date, datetime]] = None,
        after_highest: bool = False,
    ) -> AsyncIterator[str]:
        """
        Reserve the next number for the duration of the block.

        The caller must persist and commit the invoice inside the block;
        the number is only "taken" once the row exists. Normally the number
        follows the most recently created invoice. With after_highest it
        follows the highest sequence used in the year, which is free even
        when a hand-entered number was created after a higher generated one.
        """
        fy = financial_year(as_of or self.clock())
        lock = _sequence_lock(user_id, fy)
        async with lock:
            if after_highest:
                sequence = await self.get_highest_sequence(user_id, fy)
                number = format_invoice_number(fy, sequence + 1)
            else:
                latest = await self.get_latest_number(user_id, fy)
                number = next_number_after(fy, latest)
            logger.debug(f"Reserved invoice number {number} for user {user_id}")
            yield number
