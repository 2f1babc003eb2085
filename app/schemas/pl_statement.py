"""Pydantic schemas for P&L statements."""
from datetime import datetime
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from app.schemas.base import BaseResponseSchema, BaseCreateSchema
from app.models.pl_statement import (
    PLPeriod, PLStatementStatus, InsightType, InsightImpact, ExportFormat
)


# ==================== Statement Body ====================

class BreakdownEntry(BaseModel):
    category: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0)


class RevenueSection(BaseModel):
    total_revenue: float = Field(..., ge=0)
    breakdown: List[BreakdownEntry] = []


class ExpenseSection(BaseModel):
    total_expenses: float = Field(..., ge=0)
    breakdown: List[BreakdownEntry] = []


class StatementKPIs(BaseModel):
    gross_margin: Optional[float] = None
    net_margin: Optional[float] = None
    expense_ratio: Optional[float] = None


class StatementBody(BaseModel):
    period: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    revenue: RevenueSection
    expenses: ExpenseSection
    net_profit: float
    profit_margin: float
    kpis: Optional[StatementKPIs] = None


class Insight(BaseModel):
    type: InsightType
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=1000)
    impact: InsightImpact = InsightImpact.MEDIUM
    category: str = "general"


class AnalysisMetadata(BaseModel):
    original_file_name: Optional[str] = None
    file_size: Optional[int] = Field(None, ge=0)
    file_type: Optional[str] = None
    analysis_type: str = "AI-Generated"
    ai_model: Optional[str] = None
    processing_time: Optional[int] = Field(None, ge=0, description="Milliseconds")
    confidence: float = Field(95, ge=0, le=100)
    version: str = "1.0"


class ExportRecord(BaseModel):
    format: ExportFormat
    exported_at: datetime
    download_count: int = 1


# ==================== Requests ====================

class PLStatementCreate(BaseCreateSchema):
    """Schema for saving a generated P&L statement."""
    period: PLPeriod
    statement: StatementBody
    insights: List[Insight] = []
    metadata: AnalysisMetadata = Field(default_factory=AnalysisMetadata)
    tags: List[str] = []
    notes: Optional[str] = Field(None, max_length=2000)
    is_public: bool = False

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: List[str]) -> List[str]:
        return [tag.strip().lower() for tag in v if tag.strip()]


class PLStatementStatusUpdate(BaseModel):
    status: PLStatementStatus


class ExportRequest(BaseModel):
    format: ExportFormat


# ==================== Responses ====================

class PLStatementResponse(BaseResponseSchema):
    """Response schema for a stored statement."""
    id: UUID
    user_id: str
    period: str
    statement: StatementBody
    insights: List[Insight] = []
    metadata: AnalysisMetadata = Field(validation_alias="analysis_metadata")
    status: str
    tags: List[str] = []
    notes: Optional[str] = None
    is_public: bool
    export_history: List[ExportRecord] = []
    profit_percentage: float
    expense_ratio: float
    created_at: datetime
    updated_at: datetime


class PLStatementBrief(BaseResponseSchema):
    id: UUID
    period: str
    statement: StatementBody
    status: str
    tags: List[str] = []
    profit_percentage: float
    created_at: datetime


class PaginationInfo(BaseModel):
    current_page: int
    total_pages: int
    total_count: int
    has_next: bool
    has_prev: bool


class PLStatementListResponse(BaseModel):
    statements: List[PLStatementBrief]
    pagination: PaginationInfo


class TrendPoint(BaseModel):
    period: str
    date: datetime
    revenue: float
    profit: float
    margin: float


class InsightsSummary(BaseModel):
    positive: int = 0
    warnings: int = 0
    actions: int = 0
    insights: int = 0


class PLAnalyticsResponse(BaseModel):
    total_statements: int
    average_revenue: int
    average_profit: int
    trends: List[TrendPoint] = []
    insights_summary: InsightsSummary = Field(default_factory=InsightsSummary)
    latest_insights: List[Insight] = []
