"""API endpoints for GST reference data, live tax computation and liability estimates."""
from dataclasses import asdict

from fastapi import APIRouter, HTTPException, status

from app.api.deps import DB, CurrentUserId, AppClock
from app.core.gst_reference import GST_RATE_SLABS, CATEGORY_GST_RATES, GST_STATE_CODES
from app.core.tax_engine import TaxComputationError, compute_totals
from app.schemas.gst import GSTRatesResponse, StateCodesResponse, StateCode, GSTEstimateResponse
from app.schemas.gst_invoice import InvoiceDraftCompute, InvoiceTotalsResponse, ComputedLineItem
from app.services.gst_invoice_service import line_item_drafts
from app.services.gst_liability_service import GSTLiabilityService

router = APIRouter()


@router.get("/rates", response_model=GSTRatesResponse)
async def get_gst_rates():
    """GST rate slabs and the category to rate mapping used for estimates."""
    return GSTRatesResponse(rates=GST_RATE_SLABS, category_mapping=CATEGORY_GST_RATES)


@router.get("/state-codes", response_model=StateCodesResponse)
async def get_state_codes():
    """GST state codes (first two digits of a GSTIN)."""
    state_codes = [StateCode(code=code, name=name) for code, name in GST_STATE_CODES.items()]
    return StateCodesResponse(state_codes=state_codes, total=len(state_codes))


@router.post("/compute", response_model=InvoiceTotalsResponse)
async def compute_invoice_totals(
    draft: InvoiceDraftCompute,
    user_id: CurrentUserId,
):
    """
    Compute taxes and totals for an invoice draft without saving it.

    Intra-state supplies are split into CGST + SGST, inter-state supplies
    attract IGST.
    """
    try:
        totals = compute_totals(
            line_item_drafts([item.model_dump() for item in draft.items]),
            draft.supplier_state,
            draft.place_of_supply,
        )
    except TaxComputationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    return InvoiceTotalsResponse(
        supply_type=totals.supply_type.value,
        items=[ComputedLineItem(**asdict(item)) for item in totals.items],
        total_taxable_value=totals.total_taxable_value,
        total_cgst=totals.total_cgst,
        total_sgst=totals.total_sgst,
        total_igst=totals.total_igst,
        total_tax=totals.total_tax,
        grand_total=totals.grand_total,
        amount_in_words=totals.amount_in_words,
    )


@router.post("/estimate", response_model=GSTEstimateResponse)
async def estimate_gst_liability(
    db: DB,
    user_id: CurrentUserId,
    clock: AppClock,
):
    """Estimate GST liability from the latest completed P&L statement."""
    service = GSTLiabilityService(db, user_id, clock)
    estimate = await service.estimate_from_latest_statement()
    if estimate is None:
        raise HTTPException(
            status_code=404,
            detail="No P&L statement found. Please generate a P&L statement first.",
        )

    return GSTEstimateResponse(**estimate)
