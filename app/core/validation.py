"""
Validation of invoice drafts and P&L statements.

These checks run before anything is computed or persisted. They take plain
mappings (e.g. ``model.model_dump()``) so they work the same for API requests
and for internal callers, and report every problem at once instead of
stopping at the first.
"""
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from app.core.gst_reference import GST_RATE_VALUES, INVOICE_UNITS, is_valid_state_code


# GSTIN format: 2-digit state, 10-char PAN, entity number, 'Z', checksum
GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$")


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass
class ValidationResult:
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add(self, field_name: str, message: str) -> None:
        self.errors.append(FieldError(field_name, message))

    def to_list(self) -> List[Dict[str, str]]:
        return [{"field": e.field, "message": e.message} for e in self.errors]


def validate_gstin(value: Optional[str]) -> bool:
    """Check a GSTIN against the portal format. Input is upper-cased first."""
    if not value or not isinstance(value, str):
        return False
    return GSTIN_PATTERN.match(value.strip().upper()) is not None


def _as_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None


def _is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def _check_items(items: Sequence[Mapping[str, Any]], result: ValidationResult) -> None:
    if not items:
        result.add("items", "At least one line item is required")
        return

    for index, item in enumerate(items):
        prefix = f"items[{index}]"
        if _is_blank(item.get("description")):
            result.add(f"{prefix}.description", "Description is required")
        if _is_blank(item.get("hsn_sac")):
            result.add(f"{prefix}.hsn_sac", "HSN/SAC code is required")

        quantity = _as_decimal(item.get("quantity"))
        if quantity is None:
            result.add(f"{prefix}.quantity", "Quantity must be a number")
        elif quantity < 0:
            result.add(f"{prefix}.quantity", "Quantity cannot be negative")

        rate = _as_decimal(item.get("rate"))
        if rate is None:
            result.add(f"{prefix}.rate", "Rate must be a number")
        elif rate < 0:
            result.add(f"{prefix}.rate", "Rate cannot be negative")

        unit = item.get("unit") or "Nos"
        unit = getattr(unit, "value", unit)
        if unit not in INVOICE_UNITS:
            result.add(f"{prefix}.unit", f"Unit must be one of {', '.join(sorted(INVOICE_UNITS))}")

        gst_rate = _as_decimal(item.get("gst_rate"))
        if gst_rate is None or gst_rate not in GST_RATE_VALUES:
            result.add(f"{prefix}.gst_rate", "GST rate must be one of 0, 5, 12, 18, 28")


def validate_invoice_draft(draft: Mapping[str, Any]) -> ValidationResult:
    """
    Validate an invoice draft before tax computation.

    Checks supplier GSTIN (required) and buyer GSTIN (when present), the
    supplier / buyer / place-of-supply state codes, and every line item.
    Any error rejects the whole draft.
    """
    result = ValidationResult()

    if _is_blank(draft.get("supplier_gstin")):
        result.add("supplier_gstin", "Supplier GSTIN is required")
    elif not validate_gstin(draft["supplier_gstin"]):
        result.add("supplier_gstin", "Invalid GSTIN format")

    buyer_gstin = draft.get("buyer_gstin")
    if not _is_blank(buyer_gstin) and not validate_gstin(buyer_gstin):
        result.add("buyer_gstin", "Invalid GSTIN format")

    if not is_valid_state_code(draft.get("supplier_state")):
        result.add("supplier_state", "Invalid state code")
    if not is_valid_state_code(draft.get("place_of_supply")):
        result.add("place_of_supply", "Invalid state code")
    buyer_state = draft.get("buyer_state")
    if not _is_blank(buyer_state) and not is_valid_state_code(buyer_state):
        result.add("buyer_state", "Invalid state code")

    _check_items(draft.get("items") or [], result)
    return result


def _check_breakdown(
    section: Optional[Mapping[str, Any]],
    total_key: str,
    field_name: str,
    label: str,
    tolerance: Decimal,
    result: ValidationResult,
) -> None:
    if not section:
        return
    total = _as_decimal(section.get(total_key))
    if total is None:
        result.add(f"{field_name}.{total_key}", f"Total {label} must be a number")
        return

    breakdown_sum = Decimal("0")
    for index, entry in enumerate(section.get("breakdown") or []):
        amount = _as_decimal(entry.get("amount"))
        if amount is None:
            result.add(f"{field_name}.breakdown[{index}].amount", "Amount must be a number")
            return
        breakdown_sum += amount

    if abs(breakdown_sum - total) > total * tolerance:
        result.add(f"{field_name}.breakdown", f"{label.capitalize()} breakdown does not match total {label}")


def validate_pl_statement(
    statement: Mapping[str, Any],
    tolerance: Union[float, Decimal] = 0.01,
) -> ValidationResult:
    """
    Check that revenue and expense breakdowns add up to their totals.

    The sum of a breakdown may differ from the declared total by at most
    ``tolerance`` (a fraction of the total, 0.01 = 1%).
    """
    result = ValidationResult()
    tolerance = Decimal(str(tolerance))
    _check_breakdown(statement.get("revenue"), "total_revenue", "statement.revenue", "revenue", tolerance, result)
    _check_breakdown(statement.get("expenses"), "total_expenses", "statement.expenses", "expenses", tolerance, result)
    return result
