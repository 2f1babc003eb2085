"""Pydantic schemas for GST reference data and the liability estimate."""
from datetime import date
from typing import Dict, List, Optional
from pydantic import BaseModel

from app.schemas.base import MoneyOut


class GSTRateSlab(BaseModel):
    rate: int
    label: str
    examples: List[str]


class GSTRatesResponse(BaseModel):
    rates: List[GSTRateSlab]
    category_mapping: Dict[str, int]


class StateCode(BaseModel):
    code: str
    name: str


class StateCodesResponse(BaseModel):
    state_codes: List[StateCode]
    total: int


class GSTLiabilitySummary(BaseModel):
    total_sales: MoneyOut
    total_sales_base_value: MoneyOut
    total_output_gst: MoneyOut
    total_purchases: MoneyOut
    total_purchases_base_value: MoneyOut
    total_input_gst: MoneyOut
    net_gst_payable: MoneyOut
    total_exempt: MoneyOut
    category_count: int


class CategoryGST(BaseModel):
    category: str
    kind: str  # "sale" or "purchase"
    amount: MoneyOut
    gst_rate: int
    base_value: MoneyOut
    gst_amount: MoneyOut


class RateDistributionEntry(BaseModel):
    rate: int
    category_count: int
    total_amount: MoneyOut


class FilingDueDates(BaseModel):
    gstr1_due_date: date
    gstr3b_due_date: date


class EstimateDisclaimer(BaseModel):
    message: str
    notes: List[str]


class GSTEstimateResponse(BaseModel):
    summary: GSTLiabilitySummary
    categories: List[CategoryGST]
    rate_distribution: List[RateDistributionEntry]
    filing_due_dates: Optional[FilingDueDates] = None
    financial_year: str
    statement_period: str
    statement_id: str
    disclaimer: EstimateDisclaimer
