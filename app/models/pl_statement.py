"""P&L statement records.

The statement body, insights, metadata and export history are stored as
JSON documents; breakdown totals are validated before every write.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, List

from sqlalchemy import String, Boolean, DateTime, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import JSONType, UUIDType


class PLPeriod(str, Enum):
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


class PLStatementStatus(str, Enum):
    """P&L statement status enumeration."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    ARCHIVED = "archived"


class InsightType(str, Enum):
    POSITIVE = "positive"
    WARNING = "warning"
    INSIGHT = "insight"
    ACTION = "action"


class InsightImpact(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ExportFormat(str, Enum):
    PDF = "pdf"
    EXCEL = "excel"
    CSV = "csv"


def _percent_of_revenue(statement: dict, value: Any) -> float:
    revenue = (statement.get("revenue") or {}).get("total_revenue") or 0
    if revenue > 0:
        return round((value or 0) / revenue * 100, 2)
    return 0


class PLStatement(Base):
    """AI-generated profit & loss statement for a user and period."""
    __tablename__ = "pl_statements"
    __table_args__ = (
        Index("ix_pl_statements_user_created", "user_id", "created_at"),
        Index("ix_pl_statements_user_period", "user_id", "period"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    period: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        comment="Weekly, Monthly, Yearly"
    )

    # period label, dates, revenue, expenses, net_profit, profit_margin, kpis
    statement: Mapped[dict] = mapped_column(JSONType, nullable=False)
    insights: Mapped[List[dict]] = mapped_column(JSONType, default=list, nullable=False)

    # "metadata" is reserved on declarative classes
    analysis_metadata: Mapped[dict] = mapped_column(
        "metadata",
        JSONType,
        default=dict,
        nullable=False
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=PLStatementStatus.PROCESSING.value,
        nullable=False,
        index=True,
        comment="processing, completed, failed, archived"
    )
    tags: Mapped[List[str]] = mapped_column(JSONType, default=list, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    export_history: Mapped[List[dict]] = mapped_column(JSONType, default=list, nullable=False)

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

    @property
    def profit_percentage(self) -> float:
        """Net profit as a percentage of total revenue."""
        return _percent_of_revenue(self.statement, self.statement.get("net_profit"))

    @property
    def expense_ratio(self) -> float:
        """Total expenses as a percentage of total revenue."""
        expenses = (self.statement.get("expenses") or {}).get("total_expenses")
        return _percent_of_revenue(self.statement, expenses)

    # JSON columns are not mutation-tracked, so each change assigns a new value.

    def add_insight(self, insight: dict) -> None:
        self.insights = [*(self.insights or []), insight]

    def update_status(self, status: PLStatementStatus) -> None:
        self.status = status.value

    def add_export(self, export_format: ExportFormat, exported_at: datetime) -> None:
        """Record an export, bumping the download count if the format was exported before."""
        history = [dict(entry) for entry in (self.export_history or [])]
        for entry in history:
            if entry.get("format") == export_format.value:
                entry["download_count"] = entry.get("download_count", 1) + 1
                entry["exported_at"] = exported_at.isoformat()
                break
        else:
            history.append({
                "format": export_format.value,
                "exported_at": exported_at.isoformat(),
                "download_count": 1,
            })
        self.export_history = history

    def __repr__(self) -> str:
        return f"<PLStatement(period='{self.period}', status='{self.status}')>"
