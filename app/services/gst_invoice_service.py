"""
GST Invoice Service

Creates, updates and queries a user's GST invoices. Every write goes through
the same path:

1. validate the draft (GSTIN, state codes, line items)
2. recompute supply type, item taxes and totals with the tax engine
3. reserve an invoice number when none was supplied
4. persist; a duplicate (user_id, invoice_number) is a conflict

Generated numbers are retried on conflict (up to INVOICE_NUMBER_MAX_RETRIES),
continuing after the highest sequence used in the year; user-supplied
numbers are reported back as a conflict.
"""

import logging
import math
import uuid
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.clock import Clock, business_today, utc_now
from app.core.tax_engine import InvoiceTotals, LineItemDraft, compute_totals
from app.core.validation import FieldError, validate_invoice_draft
from app.models.gst_invoice import GSTInvoice, GSTInvoiceItem, InvoiceStatus
from app.schemas.gst_invoice import GSTInvoiceCreate, GSTInvoiceUpdate
from app.services.invoice_sequence_service import InvoiceSequenceService


logger = logging.getLogger(__name__)


# Scalar invoice fields copied from a draft onto the model
INVOICE_FIELDS = (
    "invoice_date", "due_date",
    "supplier_name", "supplier_gstin", "supplier_pan", "supplier_address",
    "supplier_city", "supplier_state", "supplier_pincode", "supplier_phone",
    "supplier_email",
    "buyer_name", "buyer_gstin", "buyer_pan", "buyer_address",
    "buyer_city", "buyer_state", "buyer_pincode", "buyer_phone",
    "buyer_email",
    "place_of_supply", "reverse_charge",
    "bank_name", "account_number", "ifsc_code", "branch_name",
    "notes", "terms", "status",
)

# Fields that may not be cleared on update
REQUIRED_FIELDS = frozenset({
    "invoice_number", "invoice_date", "due_date", "supplier_name",
    "supplier_gstin", "supplier_state", "buyer_name", "place_of_supply",
    "reverse_charge", "status", "items",
})

ITEM_FIELDS = ("description", "hsn_sac", "quantity", "unit", "rate", "gst_rate")

SORT_COLUMNS = {
    "created_at": GSTInvoice.created_at,
    "invoice_date": GSTInvoice.invoice_date,
    "due_date": GSTInvoice.due_date,
    "grand_total": GSTInvoice.grand_total,
    "invoice_number": GSTInvoice.invoice_number,
}


class GSTInvoiceError(Exception):
    """Base exception for GST invoice operations."""
    def __init__(self, message: str, error_code: str = None, details: Dict = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class InvoiceValidationError(GSTInvoiceError):
    """The draft failed validation; nothing was saved."""
    def __init__(self, errors: List[FieldError]):
        self.errors = errors
        super().__init__(
            "Invoice validation failed",
            error_code="INVOICE_VALIDATION_FAILED",
            details={"errors": [{"field": e.field, "message": e.message} for e in errors]},
        )


class InvoiceNumberConflictError(GSTInvoiceError):
    """The user already has an invoice with this number."""
    def __init__(self, invoice_number: str):
        super().__init__(
            f"Invoice number {invoice_number} already exists",
            error_code="INVOICE_NUMBER_CONFLICT",
            details={"invoice_number": invoice_number},
        )


def _value(v):
    """Enum members are stored by value."""
    return getattr(v, "value", v)


def line_item_drafts(items: Sequence[Mapping[str, Any]]) -> List[LineItemDraft]:
    return [
        LineItemDraft(quantity=item["quantity"], rate=item["rate"], gst_rate=item["gst_rate"])
        for item in items
    ]


def _round_money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class GSTInvoiceService:
    """Service for a single user's GST invoices."""

    def __init__(self, db: AsyncSession, user_id: str, clock: Clock = utc_now):
        self.db = db
        self.user_id = user_id
        self.clock = clock
        self.sequencer = InvoiceSequenceService(db, clock)

    # ==================== Computation ====================

    def validate_and_compute(self, draft: Mapping[str, Any]) -> InvoiceTotals:
        """
        Validate a full invoice draft and compute its totals.

        Raises:
            InvoiceValidationError: If any field is invalid
        """
        result = validate_invoice_draft(draft)
        if not result.ok:
            logger.warning(
                f"Invoice draft rejected for user {self.user_id}: "
                f"{', '.join(e.field for e in result.errors)}"
            )
            raise InvoiceValidationError(result.errors)

        return compute_totals(
            line_item_drafts(draft["items"]),
            draft["supplier_state"],
            draft["place_of_supply"],
        )

    @staticmethod
    def _apply_totals(
        invoice: GSTInvoice,
        items: Sequence[Mapping[str, Any]],
        totals: InvoiceTotals,
    ) -> None:
        invoice.supply_type = totals.supply_type.value
        invoice.total_taxable_value = totals.total_taxable_value
        invoice.total_cgst = totals.total_cgst
        invoice.total_sgst = totals.total_sgst
        invoice.total_igst = totals.total_igst
        invoice.total_tax = totals.total_tax
        invoice.grand_total = totals.grand_total
        invoice.amount_in_words = totals.amount_in_words

        invoice.items = [
            GSTInvoiceItem(
                line_number=line_number,
                description=item["description"].strip(),
                hsn_sac=item["hsn_sac"].strip(),
                quantity=Decimal(str(item["quantity"])),
                unit=_value(item.get("unit")) or "Nos",
                rate=Decimal(str(item["rate"])),
                taxable_value=tax.taxable_value,
                gst_rate=tax.gst_rate,
                cgst_rate=tax.cgst_rate,
                cgst_amount=tax.cgst_amount,
                sgst_rate=tax.sgst_rate,
                sgst_amount=tax.sgst_amount,
                igst_rate=tax.igst_rate,
                igst_amount=tax.igst_amount,
                total_amount=tax.total_amount,
            )
            for line_number, (item, tax) in enumerate(zip(items, totals.items), start=1)
        ]

    def _build_invoice(
        self,
        draft: Mapping[str, Any],
        invoice_number: str,
        totals: InvoiceTotals,
    ) -> GSTInvoice:
        fields = {name: _value(draft.get(name)) for name in INVOICE_FIELDS}
        fields["invoice_date"] = fields["invoice_date"] or self.today()
        fields["terms"] = fields["terms"] or settings.DEFAULT_INVOICE_TERMS
        fields["status"] = fields["status"] or InvoiceStatus.SENT.value
        fields["reverse_charge"] = bool(fields["reverse_charge"])

        invoice = GSTInvoice(user_id=self.user_id, invoice_number=invoice_number, **fields)
        self._apply_totals(invoice, draft["items"], totals)
        return invoice

    @staticmethod
    def _to_draft(invoice: GSTInvoice) -> Dict[str, Any]:
        draft = {name: getattr(invoice, name) for name in INVOICE_FIELDS}
        draft["invoice_number"] = invoice.invoice_number
        draft["items"] = [
            {name: getattr(item, name) for name in ITEM_FIELDS}
            for item in invoice.items
        ]
        return draft

    async def _save(self, invoice: GSTInvoice) -> None:
        self.db.add(invoice)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise InvoiceNumberConflictError(invoice.invoice_number) from e

    # ==================== Commands ====================

    async def create_invoice(self, data: GSTInvoiceCreate) -> GSTInvoice:
        """
        Create an invoice from a draft.

        Raises:
            InvoiceValidationError: If the draft is invalid
            InvoiceNumberConflictError: If the supplied number exists, or no
                free number was found within the retry limit
        """
        draft = data.model_dump()
        totals = self.validate_and_compute(draft)

        if data.invoice_number:
            invoice = self._build_invoice(draft, data.invoice_number, totals)
            await self._save(invoice)
            logger.info(f"Created GST invoice {invoice.invoice_number} for user {self.user_id}")
            return invoice

        max_attempts = max(1, settings.INVOICE_NUMBER_MAX_RETRIES)
        number = None
        for attempt in range(1, max_attempts + 1):
            # Retries number after the highest sequence used in the year
            async with self.sequencer.reserve(self.user_id, after_highest=attempt > 1) as number:
                invoice = self._build_invoice(draft, number, totals)
                try:
                    await self._save(invoice)
                except InvoiceNumberConflictError:
                    logger.warning(
                        f"Invoice number {number} taken for user {self.user_id}, "
                        f"retrying ({attempt}/{max_attempts})"
                    )
                    continue

            logger.info(f"Created GST invoice {number} for user {self.user_id}")
            return invoice

        logger.error(f"Could not allocate an invoice number for user {self.user_id} after {max_attempts} attempts")
        raise InvoiceNumberConflictError(number)

    async def update_invoice(
        self,
        invoice_id: uuid.UUID,
        data: GSTInvoiceUpdate,
    ) -> Optional[GSTInvoice]:
        """
        Update an invoice. Supply type, item taxes and totals are recomputed
        from the merged draft. Returns None if the invoice does not exist.
        """
        invoice = await self.get_invoice(invoice_id)
        if not invoice:
            return None

        changes = {
            name: value
            for name, value in data.model_dump(exclude_unset=True).items()
            if value is not None or name not in REQUIRED_FIELDS
        }
        draft = self._to_draft(invoice)
        draft.update(changes)
        totals = self.validate_and_compute(draft)

        for name in INVOICE_FIELDS:
            if name in changes:
                setattr(invoice, name, _value(changes[name]))
        if "invoice_number" in changes:
            invoice.invoice_number = changes["invoice_number"].strip()
        self._apply_totals(invoice, draft["items"], totals)

        await self._save(invoice)
        logger.info(f"Updated GST invoice {invoice.invoice_number} for user {self.user_id}")
        return invoice

    async def update_status(
        self,
        invoice_id: uuid.UUID,
        status: InvoiceStatus,
    ) -> Optional[GSTInvoice]:
        invoice = await self.get_invoice(invoice_id)
        if not invoice:
            return None

        invoice.status = status.value
        await self.db.commit()
        logger.info(f"GST invoice {invoice.invoice_number} marked {status.value}")
        return invoice

    async def delete_invoice(self, invoice_id: uuid.UUID) -> bool:
        invoice = await self.get_invoice(invoice_id)
        if not invoice:
            return False

        await self.db.delete(invoice)
        await self.db.commit()
        logger.info(f"Deleted GST invoice {invoice.invoice_number} for user {self.user_id}")
        return True

    # ==================== Queries ====================

    async def get_invoice(self, invoice_id: uuid.UUID) -> Optional[GSTInvoice]:
        result = await self.db.execute(
            select(GSTInvoice).where(
                GSTInvoice.id == invoice_id,
                GSTInvoice.user_id == self.user_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_invoices(
        self,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Tuple[List[GSTInvoice], int]:
        """List invoices with filters. Returns (invoices, total_count)."""
        query = select(GSTInvoice).where(GSTInvoice.user_id == self.user_id)

        if status and status != "all":
            query = query.where(GSTInvoice.status == status)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(
                    GSTInvoice.invoice_number.ilike(pattern),
                    GSTInvoice.buyer_name.ilike(pattern),
                    GSTInvoice.supplier_name.ilike(pattern),
                )
            )

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        column = SORT_COLUMNS.get(sort_by, GSTInvoice.created_at)
        query = query.order_by(column.asc() if sort_order == "asc" else column.desc())
        query = query.offset((page - 1) * limit).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def get_stats(self) -> Dict[str, Any]:
        """Invoice counts and grand-total sums by status; revenue is the sum of paid invoices."""
        result = await self.db.execute(
            select(
                GSTInvoice.status,
                func.count(GSTInvoice.id),
                func.coalesce(func.sum(GSTInvoice.grand_total), 0),
            )
            .where(GSTInvoice.user_id == self.user_id)
            .group_by(GSTInvoice.status)
            .order_by(GSTInvoice.status)
        )

        by_status = [
            {"status": status, "count": count, "total_amount": _round_money(total)}
            for status, count, total in result.all()
        ]
        total_revenue = sum(
            (row["total_amount"] for row in by_status if row["status"] == InvoiceStatus.PAID.value),
            Decimal("0.00"),
        )

        return {
            "by_status": by_status,
            "total_invoices": sum(row["count"] for row in by_status),
            "total_revenue": total_revenue,
        }

    def today(self):
        return business_today(self.clock)

    @staticmethod
    def page_count(total: int, limit: int) -> int:
        return math.ceil(total / limit) if total > 0 else 1
