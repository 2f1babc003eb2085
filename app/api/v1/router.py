from fastapi import APIRouter

from app.api.v1.endpoints import (
    # GST Invoicing
    gst_invoices,
    # P&L Statements
    pl_statements,
    # GST Reference & Estimates
    gst,
)


# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== GST Invoicing ====================
api_router.include_router(
    gst_invoices.router,
    prefix="/gst-invoices",
    tags=["GST Invoices"]
)

# ==================== P&L Statements ====================
api_router.include_router(
    pl_statements.router,
    prefix="/pl-statements",
    tags=["P&L Statements"]
)

# ==================== GST Reference & Estimates ====================
api_router.include_router(
    gst.router,
    prefix="/gst",
    tags=["GST"]
)
