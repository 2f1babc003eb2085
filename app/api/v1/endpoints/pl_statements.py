"""API endpoints for P&L statements."""
import math
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, status, Query

from app.api.deps import DB, CurrentUserId, AppClock
from app.models.pl_statement import PLPeriod
from app.schemas.base import MessageResponse
from app.schemas.pl_statement import (
    PLStatementCreate, PLStatementResponse, PLStatementBrief, PLStatementListResponse,
    PLStatementStatusUpdate, PaginationInfo, PLAnalyticsResponse, Insight, ExportRequest,
)
from app.services.pl_statement_service import PLStatementService, PLStatementValidationError

router = APIRouter()


@router.post("/save-statement", response_model=PLStatementResponse, status_code=status.HTTP_201_CREATED)
async def save_statement(
    statement_in: PLStatementCreate,
    db: DB,
    user_id: CurrentUserId,
):
    """Save a generated P&L statement. Breakdowns must add up to their totals."""
    service = PLStatementService(db, user_id)
    try:
        pl_statement = await service.save_statement(statement_in)
    except PLStatementValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": e.message, "errors": e.details["errors"]},
            headers={"X-Error-Code": e.error_code},
        )

    return PLStatementResponse.model_validate(pl_statement)


@router.get("/statements", response_model=PLStatementListResponse)
async def list_statements(
    db: DB,
    user_id: CurrentUserId,
    period: Optional[PLPeriod] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """List saved statements, newest first."""
    service = PLStatementService(db, user_id)
    statements, total = await service.list_statements(
        period=period.value if period else None,
        page=page,
        limit=limit,
    )

    total_pages = math.ceil(total / limit)
    return PLStatementListResponse(
        statements=[PLStatementBrief.model_validate(s) for s in statements],
        pagination=PaginationInfo(
            current_page=page,
            total_pages=total_pages,
            total_count=total,
            has_next=page < total_pages,
            has_prev=page > 1,
        ),
    )


@router.get("/statements/{statement_id}", response_model=PLStatementResponse)
async def get_statement(
    statement_id: UUID,
    db: DB,
    user_id: CurrentUserId,
):
    service = PLStatementService(db, user_id)
    pl_statement = await service.get_statement(statement_id)
    if not pl_statement:
        raise HTTPException(status_code=404, detail="P&L statement not found")

    return PLStatementResponse.model_validate(pl_statement)


@router.delete("/statements/{statement_id}", response_model=MessageResponse)
async def delete_statement(
    statement_id: UUID,
    db: DB,
    user_id: CurrentUserId,
):
    service = PLStatementService(db, user_id)
    if not await service.delete_statement(statement_id):
        raise HTTPException(status_code=404, detail="P&L statement not found")

    return MessageResponse(message="P&L statement deleted successfully")


@router.put("/statements/{statement_id}/status", response_model=PLStatementResponse)
async def update_statement_status(
    statement_id: UUID,
    status_in: PLStatementStatusUpdate,
    db: DB,
    user_id: CurrentUserId,
):
    """Set status (processing, completed, failed, archived)."""
    service = PLStatementService(db, user_id)
    pl_statement = await service.update_status(statement_id, status_in.status)
    if not pl_statement:
        raise HTTPException(status_code=404, detail="P&L statement not found")

    return PLStatementResponse.model_validate(pl_statement)


@router.post("/statements/{statement_id}/insights", response_model=PLStatementResponse)
async def add_insight(
    statement_id: UUID,
    insight_in: Insight,
    db: DB,
    user_id: CurrentUserId,
):
    """Append an insight to a statement."""
    service = PLStatementService(db, user_id)
    pl_statement = await service.add_insight(statement_id, insight_in)
    if not pl_statement:
        raise HTTPException(status_code=404, detail="P&L statement not found")

    return PLStatementResponse.model_validate(pl_statement)


@router.post("/statements/{statement_id}/exports", response_model=PLStatementResponse)
async def record_export(
    statement_id: UUID,
    export_in: ExportRequest,
    db: DB,
    user_id: CurrentUserId,
    clock: AppClock,
):
    """Record a PDF / Excel / CSV export of a statement."""
    service = PLStatementService(db, user_id, clock)
    pl_statement = await service.record_export(statement_id, export_in.format)
    if not pl_statement:
        raise HTTPException(status_code=404, detail="P&L statement not found")

    return PLStatementResponse.model_validate(pl_statement)


@router.get("/analytics", response_model=PLAnalyticsResponse)
async def get_analytics(
    db: DB,
    user_id: CurrentUserId,
):
    """Revenue and profit trends over the latest completed statements."""
    service = PLStatementService(db, user_id)
    return PLAnalyticsResponse(**await service.get_analytics())
