"""
GST Liability Estimate

Rule-based estimate of a user's GST position from their latest completed
P&L statement. Every revenue category is treated as GST-inclusive sales
and every expense category as GST-inclusive purchases, taxed at the rate
mapped for the category (18% when unmapped).

This is an estimate for planning, not a return: it cannot tell intra-state
from inter-state supplies and ignores reverse charge.
"""

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, utc_now
from app.core.invoice_numbering import financial_year
from app.core.tax_engine import extract_inclusive_gst, round_money, to_decimal
from app.core.gst_reference import gst_rate_for_category
from app.services.pl_statement_service import PLStatementService


logger = logging.getLogger(__name__)


DISCLAIMER = {
    "message": (
        "This is an ESTIMATE based on your P&L statement. For accurate GST filing, "
        "please verify with your CA and actual invoices."
    ),
    "notes": [
        "GST rates are assumed from revenue and expense categories",
        "Inter-state vs Intra-state GST (IGST vs CGST+SGST) is not differentiated",
        "Reverse charge mechanism is not considered",
        "Always verify with actual invoices before filing",
    ],
}


def filing_due_dates(period_end: date) -> Dict[str, date]:
    """GSTR-1 is due on the 11th and GSTR-3B on the 20th of the following month."""
    year, month = period_end.year, period_end.month + 1
    if month > 12:
        month = 1
        year += 1
    return {
        "gstr1_due_date": date(year, month, 11),
        "gstr3b_due_date": date(year, month, 20),
    }


def _parse_date(value: Any) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


class GSTLiabilityService:
    """Estimates output GST, input GST and net payable for a user."""

    def __init__(self, db: AsyncSession, user_id: str, clock: Clock = utc_now):
        self.user_id = user_id
        self.clock = clock
        self.statements = PLStatementService(db, user_id, clock)

    def estimate(self, statement: Dict[str, Any]) -> Dict[str, Any]:
        """Estimate GST for a statement body (revenue and expense breakdowns)."""
        categories: List[Dict[str, Any]] = []
        distribution = defaultdict(lambda: {"category_count": 0, "total_amount": Decimal("0")})
        totals = defaultdict(lambda: Decimal("0"))

        sections = (
            ("sale", (statement.get("revenue") or {}).get("breakdown") or []),
            ("purchase", (statement.get("expenses") or {}).get("breakdown") or []),
        )
        for kind, breakdown in sections:
            for entry in breakdown:
                amount = to_decimal(entry.get("amount") or 0)
                rate = gst_rate_for_category(entry.get("category", ""))
                split = extract_inclusive_gst(amount, rate)

                totals[kind] += amount
                totals[f"{kind}_gst"] += split.gst_amount
                if rate == 0:
                    totals["exempt"] += amount

                distribution[rate]["category_count"] += 1
                distribution[rate]["total_amount"] += amount

                categories.append({
                    "category": entry.get("category", ""),
                    "kind": kind,
                    "amount": round_money(amount),
                    "gst_rate": rate,
                    "base_value": split.base_value,
                    "gst_amount": split.gst_amount,
                })

        output_gst = totals["sale_gst"]
        input_gst = totals["purchase_gst"]

        return {
            "summary": {
                "total_sales": round_money(totals["sale"]),
                "total_sales_base_value": round_money(totals["sale"] - output_gst),
                "total_output_gst": round_money(output_gst),
                "total_purchases": round_money(totals["purchase"]),
                "total_purchases_base_value": round_money(totals["purchase"] - input_gst),
                "total_input_gst": round_money(input_gst),
                "net_gst_payable": round_money(output_gst - input_gst),
                "total_exempt": round_money(totals["exempt"]),
                "category_count": len(categories),
            },
            "categories": categories,
            "rate_distribution": [
                {
                    "rate": rate,
                    "category_count": data["category_count"],
                    "total_amount": round_money(data["total_amount"]),
                }
                for rate, data in sorted(distribution.items())
            ],
        }

    async def estimate_from_latest_statement(self) -> Optional[Dict[str, Any]]:
        """Estimate from the latest completed statement; None if the user has none."""
        pl_statement = await self.statements.get_latest_completed()
        if not pl_statement:
            return None

        result = self.estimate(pl_statement.statement)

        period_end = _parse_date(pl_statement.statement.get("end_date"))
        result["filing_due_dates"] = filing_due_dates(period_end) if period_end else None
        result["financial_year"] = f"FY {financial_year(self.clock())}"
        result["statement_period"] = pl_statement.period
        result["statement_id"] = str(pl_statement.id)
        result["disclaimer"] = DISCLAIMER

        logger.info(
            f"GST estimate for user {self.user_id}: output {result['summary']['total_output_gst']}, "
            f"input {result['summary']['total_input_gst']}, net {result['summary']['net_gst_payable']}"
        )
        return result
