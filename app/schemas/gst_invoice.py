"""Pydantic schemas for GST invoices."""
from datetime import datetime, date
from typing import Optional, List
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field, field_validator

from app.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema, MoneyOut
from app.models.gst_invoice import InvoiceStatus


def _upper_or_none(v):
    if v is None:
        return None
    v = str(v).strip().upper()
    return v or None


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


# ==================== Line Item Schemas ====================

class InvoiceItemInput(BaseModel):
    """
    Line item as entered by the user.

    Range and enum checks (quantity, rate, unit, gst_rate) are done by
    `validate_invoice_draft` so every problem is reported together.
    Precision matches the item columns, so a stored invoice recomputes
    to the same totals.
    """
    description: str = Field(..., max_length=500)
    hsn_sac: str = Field(..., max_length=20)
    quantity: Decimal = Field(..., max_digits=12, decimal_places=3)
    unit: str = "Nos"
    rate: Decimal = Field(..., max_digits=14, decimal_places=2)
    gst_rate: Decimal = Field(..., max_digits=5, decimal_places=2)

    @field_validator("hsn_sac", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


class InvoiceItemResponse(BaseResponseSchema):
    """Response schema for a line item with computed taxes."""
    id: UUID
    line_number: int
    description: str
    hsn_sac: str
    quantity: Decimal
    unit: str
    rate: MoneyOut
    taxable_value: MoneyOut
    gst_rate: Decimal
    cgst_rate: Decimal
    cgst_amount: MoneyOut
    sgst_rate: Decimal
    sgst_amount: MoneyOut
    igst_rate: Decimal
    igst_amount: MoneyOut
    total_amount: MoneyOut


# ==================== Draft Computation Schemas ====================

class InvoiceDraftCompute(BaseCreateSchema):
    """Draft sent for live recomputation; nothing is persisted."""
    supplier_state: str
    place_of_supply: str
    items: List[InvoiceItemInput]


class ComputedLineItem(BaseModel):
    taxable_value: MoneyOut
    gst_rate: Decimal
    cgst_rate: Decimal
    cgst_amount: MoneyOut
    sgst_rate: Decimal
    sgst_amount: MoneyOut
    igst_rate: Decimal
    igst_amount: MoneyOut
    total_amount: MoneyOut


class InvoiceTotalsResponse(BaseModel):
    supply_type: str
    items: List[ComputedLineItem]
    total_taxable_value: MoneyOut
    total_cgst: MoneyOut
    total_sgst: MoneyOut
    total_igst: MoneyOut
    total_tax: MoneyOut
    grand_total: MoneyOut
    amount_in_words: str


# ==================== Invoice Schemas ====================

class GSTInvoiceBase(BaseModel):
    """Base schema for GST invoices."""
    invoice_date: Optional[date] = None
    due_date: date

    # Supplier
    supplier_name: str = Field(..., min_length=1, max_length=200)
    supplier_gstin: str = Field(..., max_length=15)
    supplier_pan: Optional[str] = Field(None, max_length=10)
    supplier_address: Optional[str] = None
    supplier_city: Optional[str] = Field(None, max_length=100)
    supplier_state: str = Field(..., description="GST state code, e.g. 27")
    supplier_pincode: Optional[str] = Field(None, max_length=10)
    supplier_phone: Optional[str] = Field(None, max_length=20)
    supplier_email: Optional[EmailStr] = None

    # Buyer
    buyer_name: str = Field(..., min_length=1, max_length=200)
    buyer_gstin: Optional[str] = Field(None, max_length=15)
    buyer_pan: Optional[str] = Field(None, max_length=10)
    buyer_address: Optional[str] = None
    buyer_city: Optional[str] = Field(None, max_length=100)
    buyer_state: Optional[str] = None
    buyer_pincode: Optional[str] = Field(None, max_length=10)
    buyer_phone: Optional[str] = Field(None, max_length=20)
    buyer_email: Optional[EmailStr] = None

    place_of_supply: str
    reverse_charge: bool = False
    items: List[InvoiceItemInput]

    # Bank
    bank_name: Optional[str] = Field(None, max_length=200)
    account_number: Optional[str] = Field(None, max_length=30)
    ifsc_code: Optional[str] = Field(None, max_length=11)
    branch_name: Optional[str] = Field(None, max_length=200)

    notes: Optional[str] = None
    terms: Optional[str] = None
    status: InvoiceStatus = InvoiceStatus.SENT

    @field_validator("supplier_gstin", "buyer_gstin", "supplier_pan", "buyer_pan", "ifsc_code", mode="before")
    @classmethod
    def normalize_codes(cls, v):
        return _upper_or_none(v)

    @field_validator("supplier_email", "buyer_email", "buyer_state", mode="before")
    @classmethod
    def empty_as_missing(cls, v):
        return _blank_to_none(v)


class GSTInvoiceCreate(GSTInvoiceBase, BaseCreateSchema):
    """Schema for creating an invoice. The number is generated when omitted."""
    invoice_number: Optional[str] = Field(None, max_length=50)

    @field_validator("invoice_number", mode="before")
    @classmethod
    def strip_number(cls, v):
        v = _blank_to_none(v)
        return v.strip() if isinstance(v, str) else v


class GSTInvoiceUpdate(BaseUpdateSchema):
    """Schema for updating an invoice. Totals are recomputed from the merged draft."""
    invoice_number: Optional[str] = Field(None, min_length=1, max_length=50)
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None

    supplier_name: Optional[str] = Field(None, min_length=1, max_length=200)
    supplier_gstin: Optional[str] = Field(None, max_length=15)
    supplier_pan: Optional[str] = Field(None, max_length=10)
    supplier_address: Optional[str] = None
    supplier_city: Optional[str] = Field(None, max_length=100)
    supplier_state: Optional[str] = None
    supplier_pincode: Optional[str] = Field(None, max_length=10)
    supplier_phone: Optional[str] = Field(None, max_length=20)
    supplier_email: Optional[EmailStr] = None

    buyer_name: Optional[str] = Field(None, min_length=1, max_length=200)
    buyer_gstin: Optional[str] = Field(None, max_length=15)
    buyer_pan: Optional[str] = Field(None, max_length=10)
    buyer_address: Optional[str] = None
    buyer_city: Optional[str] = Field(None, max_length=100)
    buyer_state: Optional[str] = None
    buyer_pincode: Optional[str] = Field(None, max_length=10)
    buyer_phone: Optional[str] = Field(None, max_length=20)
    buyer_email: Optional[EmailStr] = None

    place_of_supply: Optional[str] = None
    reverse_charge: Optional[bool] = None
    items: Optional[List[InvoiceItemInput]] = None

    bank_name: Optional[str] = Field(None, max_length=200)
    account_number: Optional[str] = Field(None, max_length=30)
    ifsc_code: Optional[str] = Field(None, max_length=11)
    branch_name: Optional[str] = Field(None, max_length=200)

    notes: Optional[str] = None
    terms: Optional[str] = None
    status: Optional[InvoiceStatus] = None

    @field_validator("supplier_gstin", "buyer_gstin", "supplier_pan", "buyer_pan", "ifsc_code", mode="before")
    @classmethod
    def normalize_codes(cls, v):
        return _upper_or_none(v)

    @field_validator("supplier_email", "buyer_email", "buyer_state", mode="before")
    @classmethod
    def empty_as_missing(cls, v):
        return _blank_to_none(v)


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus


class GSTInvoiceResponse(BaseResponseSchema):
    """Response schema for a full invoice."""
    id: UUID
    user_id: str
    invoice_number: str
    invoice_date: date
    due_date: date

    supplier_name: str
    supplier_gstin: str
    supplier_pan: Optional[str] = None
    supplier_address: Optional[str] = None
    supplier_city: Optional[str] = None
    supplier_state: str
    supplier_pincode: Optional[str] = None
    supplier_phone: Optional[str] = None
    supplier_email: Optional[str] = None

    buyer_name: str
    buyer_gstin: Optional[str] = None
    buyer_pan: Optional[str] = None
    buyer_address: Optional[str] = None
    buyer_city: Optional[str] = None
    buyer_state: Optional[str] = None
    buyer_pincode: Optional[str] = None
    buyer_phone: Optional[str] = None
    buyer_email: Optional[str] = None

    place_of_supply: str
    supply_type: str
    reverse_charge: bool
    items: List[InvoiceItemResponse] = []

    total_taxable_value: MoneyOut
    total_cgst: MoneyOut
    total_sgst: MoneyOut
    total_igst: MoneyOut
    total_tax: MoneyOut
    grand_total: MoneyOut
    amount_in_words: str

    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    ifsc_code: Optional[str] = None
    branch_name: Optional[str] = None

    notes: Optional[str] = None
    terms: Optional[str] = None
    status: str
    is_overdue: bool = False
    created_at: datetime
    updated_at: datetime


class GSTInvoiceBrief(BaseResponseSchema):
    """Brief invoice info for lists."""
    id: UUID
    invoice_number: str
    invoice_date: date
    due_date: date
    buyer_name: str
    supply_type: str
    grand_total: MoneyOut
    status: str
    is_overdue: bool = False
    created_at: datetime


class GSTInvoiceListResponse(BaseModel):
    """Response for listing invoices."""
    items: List[GSTInvoiceBrief]
    total: int
    page: int = 1
    limit: int = 10
    pages: int = 1


class NextInvoiceNumberResponse(BaseModel):
    invoice_number: str


class InvoiceStatusSummary(BaseModel):
    status: str
    count: int
    total_amount: MoneyOut


class InvoiceStatsResponse(BaseModel):
    by_status: List[InvoiceStatusSummary]
    total_invoices: int
    total_revenue: MoneyOut
