"""
P&L Statement Service

Stores AI-generated profit & loss statements per user and derives
analytics across the latest completed statements.
"""

import logging
import uuid
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.clock import Clock, utc_now
from app.core.validation import FieldError, validate_pl_statement
from app.models.pl_statement import (
    PLStatement, PLStatementStatus, InsightType, ExportFormat
)
from app.schemas.pl_statement import PLStatementCreate, Insight


logger = logging.getLogger(__name__)


class PLStatementError(Exception):
    """Base exception for P&L statement operations."""
    def __init__(self, message: str, error_code: str = None, details: Dict = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class PLStatementValidationError(PLStatementError):
    """Breakdown totals do not match the declared totals; nothing was saved."""
    def __init__(self, errors: List[FieldError]):
        self.errors = errors
        super().__init__(
            "P&L statement validation failed",
            error_code="PL_STATEMENT_VALIDATION_FAILED",
            details={"errors": [{"field": e.field, "message": e.message} for e in errors]},
        )


def _round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PLStatementService:
    """Service for a single user's P&L statements."""

    def __init__(self, db: AsyncSession, user_id: str, clock: Clock = utc_now):
        self.db = db
        self.user_id = user_id
        self.clock = clock

    async def save_statement(self, data: PLStatementCreate) -> PLStatement:
        """
        Validate and save a generated statement as completed.

        Raises:
            PLStatementValidationError: If a breakdown is more than
                PL_BREAKDOWN_TOLERANCE away from its total
        """
        statement = data.statement.model_dump(mode="json")
        result = validate_pl_statement(statement, settings.PL_BREAKDOWN_TOLERANCE)
        if not result.ok:
            logger.warning(
                f"P&L statement rejected for user {self.user_id}: "
                f"{'; '.join(e.message for e in result.errors)}"
            )
            raise PLStatementValidationError(result.errors)

        pl_statement = PLStatement(
            user_id=self.user_id,
            period=data.period.value,
            statement=statement,
            insights=[insight.model_dump(mode="json") for insight in data.insights],
            analysis_metadata=data.metadata.model_dump(mode="json"),
            status=PLStatementStatus.COMPLETED.value,
            tags=data.tags,
            notes=data.notes,
            is_public=data.is_public,
            export_history=[],
        )
        self.db.add(pl_statement)
        await self.db.commit()
        await self.db.refresh(pl_statement)

        logger.info(f"Saved {data.period.value} P&L statement {pl_statement.id} for user {self.user_id}")
        return pl_statement

    async def get_statement(self, statement_id: uuid.UUID) -> Optional[PLStatement]:
        result = await self.db.execute(
            select(PLStatement).where(
                PLStatement.id == statement_id,
                PLStatement.user_id == self.user_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_statements(
        self,
        period: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[PLStatement], int]:
        """Statements newest first. Returns (statements, total_count)."""
        query = select(PLStatement).where(PLStatement.user_id == self.user_id)
        if period:
            query = query.where(PLStatement.period == period)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = (
            query.order_by(PLStatement.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def delete_statement(self, statement_id: uuid.UUID) -> bool:
        pl_statement = await self.get_statement(statement_id)
        if not pl_statement:
            return False

        await self.db.delete(pl_statement)
        await self.db.commit()
        logger.info(f"Deleted P&L statement {statement_id} for user {self.user_id}")
        return True

    async def update_status(
        self,
        statement_id: uuid.UUID,
        status: PLStatementStatus,
    ) -> Optional[PLStatement]:
        pl_statement = await self.get_statement(statement_id)
        if not pl_statement:
            return None

        pl_statement.update_status(status)
        await self.db.commit()
        await self.db.refresh(pl_statement)
        return pl_statement

    async def add_insight(self, statement_id: uuid.UUID, insight: Insight) -> Optional[PLStatement]:
        pl_statement = await self.get_statement(statement_id)
        if not pl_statement:
            return None

        pl_statement.add_insight(insight.model_dump(mode="json"))
        await self.db.commit()
        await self.db.refresh(pl_statement)
        return pl_statement

    async def record_export(
        self,
        statement_id: uuid.UUID,
        export_format: ExportFormat,
    ) -> Optional[PLStatement]:
        pl_statement = await self.get_statement(statement_id)
        if not pl_statement:
            return None

        pl_statement.add_export(export_format, self.clock())
        await self.db.commit()
        await self.db.refresh(pl_statement)
        logger.info(f"Recorded {export_format.value} export of P&L statement {statement_id}")
        return pl_statement

    async def get_latest_completed(self) -> Optional[PLStatement]:
        result = await self.db.execute(
            select(PLStatement)
            .where(
                PLStatement.user_id == self.user_id,
                PLStatement.status == PLStatementStatus.COMPLETED.value,
            )
            .order_by(PLStatement.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_analytics(self) -> Dict[str, Any]:
        """
        Trends and insight counts over the latest completed statements
        (PL_ANALYTICS_WINDOW, default 12).
        """
        result = await self.db.execute(
            select(PLStatement)
            .where(
                PLStatement.user_id == self.user_id,
                PLStatement.status == PLStatementStatus.COMPLETED.value,
            )
            .order_by(PLStatement.created_at.desc())
            .limit(settings.PL_ANALYTICS_WINDOW)
        )
        statements = list(result.scalars().all())

        if not statements:
            return {
                "total_statements": 0,
                "average_revenue": 0,
                "average_profit": 0,
                "trends": [],
                "insights_summary": {},
                "latest_insights": [],
            }

        revenues = [(s.statement.get("revenue") or {}).get("total_revenue") or 0 for s in statements]
        profits = [s.statement.get("net_profit") or 0 for s in statements]

        # Oldest first
        trends = [
            {
                "period": s.period,
                "date": s.created_at,
                "revenue": revenue,
                "profit": profit,
                "margin": s.statement.get("profit_margin") or 0,
            }
            for s, revenue, profit in zip(statements, revenues, profits)
        ][::-1]

        all_insights = [insight for s in statements for insight in (s.insights or [])]

        def count(insight_type: InsightType) -> int:
            return sum(1 for i in all_insights if i.get("type") == insight_type.value)

        return {
            "total_statements": len(statements),
            "average_revenue": _round_half_up(sum(revenues) / len(revenues)),
            "average_profit": _round_half_up(sum(profits) / len(profits)),
            "trends": trends,
            "insights_summary": {
                "positive": count(InsightType.POSITIVE),
                "warnings": count(InsightType.WARNING),
                "actions": count(InsightType.ACTION),
                "insights": count(InsightType.INSIGHT),
            },
            "latest_insights": all_insights[:5],
        }
