"""
Invoice numbering within the Indian financial year (April-March).

Format: INV/{FY}/{SEQUENCE}, e.g. INV/2025-26/001

The sequence is continuous within a financial year and restarts at 001
on April 1. These helpers are pure; the persistence-backed reservation
lives in app.services.invoice_sequence_service.
"""
import re
from datetime import date, datetime
from typing import Callable, Iterable, Optional, Union

from app.core.clock import to_business_time


INVOICE_PREFIX = "INV"
SEQUENCE_PADDING = 3

_LEADING_DIGITS = re.compile(r"\d+")

# lookup(user_id, prefix) -> most recent invoice number starting with prefix
InvoiceNumberLookup = Callable[[str, str], Optional[str]]


def financial_year(as_of: Union[date, datetime]) -> str:
    """
    Financial year label for a date: 2025-26 runs April 2025 to March 2026.

    Aware datetimes are judged in IST, so 2026-03-31 20:00 UTC is already 2026-27.
    """
    if isinstance(as_of, datetime):
        as_of = to_business_time(as_of)
    if as_of.month >= 4:
        start = as_of.year
    else:
        start = as_of.year - 1
    return f"{start}-{(start + 1) % 100:02d}"


def invoice_number_prefix(fy: str) -> str:
    return f"{INVOICE_PREFIX}/{fy}/"


def format_invoice_number(fy: str, sequence: int) -> str:
    return f"{invoice_number_prefix(fy)}{str(sequence).zfill(SEQUENCE_PADDING)}"


def parse_sequence(invoice_number: Optional[str]) -> int:
    """Sequence part of an invoice number; 0 when it has none."""
    if not invoice_number:
        return 0
    parts = invoice_number.split("/")
    if len(parts) < 3:
        return 0
    match = _LEADING_DIGITS.match(parts[-1])
    return int(match.group()) if match else 0


def next_number_after(fy: str, latest: Optional[str]) -> str:
    return format_invoice_number(fy, parse_sequence(latest) + 1)


def highest_sequence(invoice_numbers: Iterable[Optional[str]]) -> int:
    return max((parse_sequence(n) for n in invoice_numbers), default=0)


def next_invoice_number(
    user_id: str,
    as_of: Union[date, datetime],
    lookup: InvoiceNumberLookup,
) -> str:
    """
    Next invoice number for a user in the financial year containing as_of.

    Each user has an independent sequence; the first invoice of a year is 001.
    """
    fy = financial_year(as_of)
    latest = lookup(user_id, invoice_number_prefix(fy))
    return next_number_after(fy, latest)
