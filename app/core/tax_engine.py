"""
Tax Computation Engine

Computes CGST/SGST/IGST for an invoice draft:

    taxable_value = quantity x rate
    Intra-state (supplier state == place of supply): CGST = SGST = gst_rate / 2
    Inter-state (supplier state != place of supply): IGST = gst_rate

All arithmetic is done in Decimal. Values are rounded to paise (half-up)
only when the result is built; aggregates are rounded once from the
unrounded item values, and total_tax / grand_total are sums of the rounded
aggregates.

The engine is pure: the same draft always produces the same totals, so
results are memoized and the UI can recompute on every keystroke.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from functools import lru_cache
from typing import Iterable, Tuple, Union

from app.core.amount_words import number_to_indian_words
from app.core.gst_reference import GST_RATE_VALUES, SupplyType, is_valid_state_code


Number = Union[Decimal, int, float, str]

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


class TaxComputationError(ValueError):
    """Raised when a draft cannot be taxed (bad rate, state code or quantity)."""
    pass


def to_decimal(value: Number) -> Decimal:
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise TaxComputationError(f"Not a number: {value!r}") from e
    if not result.is_finite():
        raise TaxComputationError(f"Not a finite number: {value!r}")
    return result


def canonical_decimal(value: Number) -> Decimal:
    """One representation per value: 18.0 -> 18, 10.50 -> 10.5."""
    result = to_decimal(value)
    if result == result.to_integral_value():
        return result.quantize(Decimal("1"))
    return result.normalize()


def round_money(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def determine_supply_type(supplier_state: str, place_of_supply: str) -> SupplyType:
    if supplier_state != place_of_supply:
        return SupplyType.INTER_STATE
    return SupplyType.INTRA_STATE


@dataclass(frozen=True)
class LineItemDraft:
    """Quantity, rate and GST rate of one invoice line. Hashable, so drafts can be memoized."""
    quantity: Decimal
    rate: Decimal
    gst_rate: Decimal

    def __post_init__(self):
        # Equal values share a memo key, so each is reduced to one spelling
        object.__setattr__(self, "quantity", canonical_decimal(self.quantity))
        object.__setattr__(self, "rate", canonical_decimal(self.rate))
        object.__setattr__(self, "gst_rate", canonical_decimal(self.gst_rate))


@dataclass(frozen=True)
class LineItemTax:
    taxable_value: Decimal
    gst_rate: Decimal
    cgst_rate: Decimal
    cgst_amount: Decimal
    sgst_rate: Decimal
    sgst_amount: Decimal
    igst_rate: Decimal
    igst_amount: Decimal
    total_amount: Decimal


@dataclass(frozen=True)
class InvoiceTotals:
    supply_type: SupplyType
    items: Tuple[LineItemTax, ...]
    total_taxable_value: Decimal
    total_cgst: Decimal
    total_sgst: Decimal
    total_igst: Decimal
    total_tax: Decimal
    grand_total: Decimal
    amount_in_words: str

    @property
    def is_inter_state(self) -> bool:
        return self.supply_type == SupplyType.INTER_STATE


@dataclass(frozen=True)
class InclusiveGST:
    base_value: Decimal
    gst_amount: Decimal
    gst_rate: Decimal


def _check_item(index: int, item: LineItemDraft) -> None:
    if item.quantity < 0:
        raise TaxComputationError(f"Item {index + 1}: quantity cannot be negative")
    if item.rate < 0:
        raise TaxComputationError(f"Item {index + 1}: rate cannot be negative")
    if item.gst_rate not in GST_RATE_VALUES:
        raise TaxComputationError(
            f"Item {index + 1}: GST rate {item.gst_rate} is not one of 0, 5, 12, 18, 28"
        )


def compute_totals(
    items: Iterable[LineItemDraft],
    supplier_state: str,
    place_of_supply: str,
) -> InvoiceTotals:
    """
    Compute per-item taxes and invoice aggregates.

    Args:
        items: Line items of the draft (at least one)
        supplier_state: Supplier's 2-digit GST state code
        place_of_supply: 2-digit state code of the place of supply

    Raises:
        TaxComputationError: On empty items, an invalid state code,
            a negative quantity or rate, or an unsupported GST rate.
    """
    items = tuple(items)
    if not items:
        raise TaxComputationError("At least one line item is required")
    if not is_valid_state_code(supplier_state):
        raise TaxComputationError(f"Invalid supplier state code: {supplier_state!r}")
    if not is_valid_state_code(place_of_supply):
        raise TaxComputationError(f"Invalid place of supply: {place_of_supply!r}")
    for index, item in enumerate(items):
        _check_item(index, item)

    return _compute_totals(items, supplier_state, place_of_supply)


@lru_cache(maxsize=1024)
def _compute_totals(
    items: Tuple[LineItemDraft, ...],
    supplier_state: str,
    place_of_supply: str,
) -> InvoiceTotals:
    supply_type = determine_supply_type(supplier_state, place_of_supply)
    inter_state = supply_type == SupplyType.INTER_STATE

    item_taxes = []
    sum_taxable = sum_cgst = sum_sgst = sum_igst = ZERO

    for item in items:
        taxable = item.quantity * item.rate
        if inter_state:
            cgst_rate = sgst_rate = ZERO
            igst_rate = item.gst_rate
        else:
            cgst_rate = sgst_rate = item.gst_rate / 2
            igst_rate = ZERO

        cgst = taxable * cgst_rate / HUNDRED
        sgst = taxable * sgst_rate / HUNDRED
        igst = taxable * igst_rate / HUNDRED

        sum_taxable += taxable
        sum_cgst += cgst
        sum_sgst += sgst
        sum_igst += igst

        taxable_value = round_money(taxable)
        cgst_amount = round_money(cgst)
        sgst_amount = round_money(sgst)
        igst_amount = round_money(igst)
        item_taxes.append(LineItemTax(
            taxable_value=taxable_value,
            gst_rate=item.gst_rate,
            cgst_rate=cgst_rate,
            cgst_amount=cgst_amount,
            sgst_rate=sgst_rate,
            sgst_amount=sgst_amount,
            igst_rate=igst_rate,
            igst_amount=igst_amount,
            total_amount=taxable_value + cgst_amount + sgst_amount + igst_amount,
        ))

    total_taxable_value = round_money(sum_taxable)
    total_cgst = round_money(sum_cgst)
    total_sgst = round_money(sum_sgst)
    total_igst = round_money(sum_igst)
    total_tax = total_cgst + total_sgst + total_igst
    grand_total = total_taxable_value + total_tax

    return InvoiceTotals(
        supply_type=supply_type,
        items=tuple(item_taxes),
        total_taxable_value=total_taxable_value,
        total_cgst=total_cgst,
        total_sgst=total_sgst,
        total_igst=total_igst,
        total_tax=total_tax,
        grand_total=grand_total,
        amount_in_words=number_to_indian_words(grand_total),
    )


def extract_inclusive_gst(total: Number, gst_rate: Number) -> InclusiveGST:
    """
    Split a GST-inclusive amount into base value and GST.

        base = total / (1 + rate / 100)
        gst  = total - base
    """
    total = to_decimal(total)
    rate = to_decimal(gst_rate)
    if rate < 0:
        raise TaxComputationError(f"GST rate cannot be negative: {rate}")

    base = total / (1 + rate / HUNDRED)
    return InclusiveGST(
        base_value=round_money(base),
        gst_amount=round_money(total - base),
        gst_rate=rate,
    )
