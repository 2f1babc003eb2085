"""API endpoints for GST invoices."""
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, status, Query

from app.api.deps import DB, CurrentUserId, AppClock
from app.models.gst_invoice import GSTInvoice
from app.schemas.base import MessageResponse
from app.schemas.gst_invoice import (
    GSTInvoiceCreate, GSTInvoiceUpdate, GSTInvoiceResponse, GSTInvoiceBrief,
    GSTInvoiceListResponse, InvoiceStatusUpdate, NextInvoiceNumberResponse,
    InvoiceStatsResponse,
)
from app.services.gst_invoice_service import (
    GSTInvoiceService, InvoiceValidationError, InvoiceNumberConflictError,
)

router = APIRouter()


def _invoice_response(invoice: GSTInvoice, today: date) -> GSTInvoiceResponse:
    response = GSTInvoiceResponse.model_validate(invoice)
    response.is_overdue = invoice.is_overdue_on(today)
    return response


def _validation_failed(e: InvoiceValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"message": e.message, "errors": e.details["errors"]},
        headers={"X-Error-Code": e.error_code},
    )


def _number_conflict(e: InvoiceNumberConflictError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=e.message,
        headers={"X-Error-Code": e.error_code},
    )


@router.get("/next-number", response_model=NextInvoiceNumberResponse)
async def get_next_invoice_number(
    db: DB,
    user_id: CurrentUserId,
    clock: AppClock,
):
    """Preview the next invoice number. The number is not reserved."""
    service = GSTInvoiceService(db, user_id, clock)
    invoice_number = await service.sequencer.preview_next_number(user_id)
    return NextInvoiceNumberResponse(invoice_number=invoice_number)


@router.get("/stats/summary", response_model=InvoiceStatsResponse)
async def get_invoice_stats(
    db: DB,
    user_id: CurrentUserId,
):
    """Invoice counts and totals by status."""
    service = GSTInvoiceService(db, user_id)
    return InvoiceStatsResponse(**await service.get_stats())


@router.get("", response_model=GSTInvoiceListResponse)
async def list_invoices(
    db: DB,
    user_id: CurrentUserId,
    clock: AppClock,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[str] = Query(
        None,
        alias="status",
        pattern="^(all|draft|sent|paid|overdue|cancelled)$",
    ),
    search: Optional[str] = None,
    sort_by: str = Query(
        "created_at",
        pattern="^(created_at|invoice_date|due_date|grand_total|invoice_number)$",
    ),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
):
    """List invoices with filters, search and sorting."""
    service = GSTInvoiceService(db, user_id, clock)
    invoices, total = await service.list_invoices(
        page=page,
        limit=limit,
        status=status_filter,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )

    today = service.today()
    items = []
    for invoice in invoices:
        brief = GSTInvoiceBrief.model_validate(invoice)
        brief.is_overdue = invoice.is_overdue_on(today)
        items.append(brief)

    return GSTInvoiceListResponse(
        items=items,
        total=total,
        page=page,
        limit=limit,
        pages=service.page_count(total, limit),
    )


@router.post("", response_model=GSTInvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    invoice_in: GSTInvoiceCreate,
    db: DB,
    user_id: CurrentUserId,
    clock: AppClock,
):
    """
    Create a GST invoice.

    Taxes and totals are computed from the items; the invoice number is
    generated when not supplied.
    """
    service = GSTInvoiceService(db, user_id, clock)
    try:
        invoice = await service.create_invoice(invoice_in)
    except InvoiceValidationError as e:
        raise _validation_failed(e)
    except InvoiceNumberConflictError as e:
        raise _number_conflict(e)

    return _invoice_response(invoice, service.today())


@router.get("/{invoice_id}", response_model=GSTInvoiceResponse)
async def get_invoice(
    invoice_id: UUID,
    db: DB,
    user_id: CurrentUserId,
    clock: AppClock,
):
    """Get invoice by ID."""
    service = GSTInvoiceService(db, user_id, clock)
    invoice = await service.get_invoice(invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")

    return _invoice_response(invoice, service.today())


@router.put("/{invoice_id}", response_model=GSTInvoiceResponse)
async def update_invoice(
    invoice_id: UUID,
    invoice_in: GSTInvoiceUpdate,
    db: DB,
    user_id: CurrentUserId,
    clock: AppClock,
):
    """Update an invoice. Supply type and totals are recomputed."""
    service = GSTInvoiceService(db, user_id, clock)
    try:
        invoice = await service.update_invoice(invoice_id, invoice_in)
    except InvoiceValidationError as e:
        raise _validation_failed(e)
    except InvoiceNumberConflictError as e:
        raise _number_conflict(e)

    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")

    return _invoice_response(invoice, service.today())


@router.put("/{invoice_id}/status", response_model=GSTInvoiceResponse)
async def update_invoice_status(
    invoice_id: UUID,
    status_in: InvoiceStatusUpdate,
    db: DB,
    user_id: CurrentUserId,
    clock: AppClock,
):
    """Set invoice status (draft, sent, paid, overdue, cancelled)."""
    service = GSTInvoiceService(db, user_id, clock)
    invoice = await service.update_status(invoice_id, status_in.status)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")

    return _invoice_response(invoice, service.today())


@router.delete("/{invoice_id}", response_model=MessageResponse)
async def delete_invoice(
    invoice_id: UUID,
    db: DB,
    user_id: CurrentUserId,
):
    """Delete an invoice."""
    service = GSTInvoiceService(db, user_id)
    if not await service.delete_invoice(invoice_id):
        raise HTTPException(status_code=404, detail="Invoice not found")

    return MessageResponse(message="Invoice deleted successfully")
