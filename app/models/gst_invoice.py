"""GST invoice models.

An invoice belongs to one user; its number is unique per user and,
when generated, follows INV/{FY}/{SEQUENCE}. Taxes and totals are derived
from the line items and never taken from input.
"""
import uuid
from datetime import datetime, date, timezone
from enum import Enum
from typing import Optional, List
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Text, Numeric, Date
from sqlalchemy import UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType, Money


class InvoiceStatus(str, Enum):
    """GST invoice status enumeration."""
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class GSTInvoice(Base):
    """
    GST tax invoice raised by a user.
    Supply type and all tax aggregates are recomputed on every save.
    """
    __tablename__ = "gst_invoices"
    __table_args__ = (
        UniqueConstraint("user_id", "invoice_number", name="uq_gst_invoices_user_invoice_number"),
        Index("ix_gst_invoices_user_created", "user_id", "created_at"),
        Index("ix_gst_invoices_user_status", "user_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # Invoice Identification
    invoice_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Unique per user, e.g. INV/2025-26/001"
    )
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Supplier Details
    supplier_name: Mapped[str] = mapped_column(String(200), nullable=False)
    supplier_gstin: Mapped[str] = mapped_column(String(15), nullable=False)
    supplier_pan: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    supplier_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    supplier_city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    supplier_state: Mapped[str] = mapped_column(
        String(2),
        nullable=False,
        comment="GST state code, e.g. 27 for Maharashtra"
    )
    supplier_pincode: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    supplier_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    supplier_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Buyer Details
    buyer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    buyer_gstin: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)
    buyer_pan: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    buyer_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    buyer_city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    buyer_state: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    buyer_pincode: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    buyer_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    buyer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Supply Details
    place_of_supply: Mapped[str] = mapped_column(String(2), nullable=False)
    supply_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="intra-state, inter-state"
    )
    reverse_charge: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Totals
    total_taxable_value: Mapped[Decimal] = mapped_column(Money, default=0, nullable=False)
    total_cgst: Mapped[Decimal] = mapped_column(Money, default=0, nullable=False)
    total_sgst: Mapped[Decimal] = mapped_column(Money, default=0, nullable=False)
    total_igst: Mapped[Decimal] = mapped_column(Money, default=0, nullable=False)
    total_tax: Mapped[Decimal] = mapped_column(Money, default=0, nullable=False)
    grand_total: Mapped[Decimal] = mapped_column(Money, default=0, nullable=False)
    amount_in_words: Mapped[str] = mapped_column(String(500), nullable=False)

    # Bank Details
    bank_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    account_number: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    ifsc_code: Mapped[Optional[str]] = mapped_column(String(11), nullable=True)
    branch_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=InvoiceStatus.SENT.value,
        nullable=False,
        comment="draft, sent, paid, overdue, cancelled"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    items: Mapped[List["GSTInvoiceItem"]] = relationship(
        "GSTInvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="GSTInvoiceItem.line_number",
        lazy="selectin"
    )

    def is_overdue_on(self, today: date) -> bool:
        """Unpaid and past the due date."""
        return self.status != InvoiceStatus.PAID.value and today > self.due_date

    def __repr__(self) -> str:
        return f"<GSTInvoice(number='{self.invoice_number}', status='{self.status}')>"


class GSTInvoiceItem(Base):
    """Line item of a GST invoice, with its computed taxes."""
    __tablename__ = "gst_invoice_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("gst_invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    description: Mapped[str] = mapped_column(String(500), nullable=False)
    hsn_sac: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    unit: Mapped[str] = mapped_column(String(10), default="Nos", nullable=False)
    rate: Mapped[Decimal] = mapped_column(Money, nullable=False)

    # Tax
    taxable_value: Mapped[Decimal] = mapped_column(Money, nullable=False)
    gst_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    cgst_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=0, nullable=False)
    cgst_amount: Mapped[Decimal] = mapped_column(Money, default=0, nullable=False)
    sgst_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=0, nullable=False)
    sgst_amount: Mapped[Decimal] = mapped_column(Money, default=0, nullable=False)
    igst_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=0, nullable=False)
    igst_amount: Mapped[Decimal] = mapped_column(Money, default=0, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)

    invoice: Mapped["GSTInvoice"] = relationship("GSTInvoice", back_populates="items")

    def __repr__(self) -> str:
        return f"<GSTInvoiceItem(hsn='{self.hsn_sac}', qty={self.quantity})>"
