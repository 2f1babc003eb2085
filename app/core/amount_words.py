"""Render rupee amounts in words using the Indian numbering system (lakh, crore)."""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union


ONES = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine"]
TEENS = ["Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen",
         "Sixteen", "Seventeen", "Eighteen", "Nineteen"]
TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]

PAISE = Decimal("0.01")


def integer_to_words(number: int) -> str:
    """Words for a non-negative integer; empty string for zero."""
    if number < 10:
        return ONES[number]
    elif number < 20:
        return TEENS[number - 10]
    elif number < 100:
        return TENS[number // 10] + (" " + ONES[number % 10] if number % 10 else "")
    elif number < 1000:
        return ONES[number // 100] + " Hundred" + (" " + integer_to_words(number % 100) if number % 100 else "")
    elif number < 100000:
        return integer_to_words(number // 1000) + " Thousand" + (" " + integer_to_words(number % 1000) if number % 1000 else "")
    elif number < 10000000:
        return integer_to_words(number // 100000) + " Lakh" + (" " + integer_to_words(number % 100000) if number % 100000 else "")
    else:
        return integer_to_words(number // 10000000) + " Crore" + (" " + integer_to_words(number % 10000000) if number % 10000000 else "")


def number_to_indian_words(amount: Union[Decimal, int, float, str]) -> str:
    """
    Convert an amount to words for printing on an invoice.

    Paise are rounded half-up to two places first, so 99.999 carries
    into the next rupee.

    Examples:
        100000   -> "One Lakh Rupees Only"
        1234.50  -> "One Thousand Two Hundred Thirty Four Rupees and Fifty Paise Only"
    """
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    if not value.is_finite() or value < 0:
        raise ValueError(f"Cannot render amount in words: {amount}")

    value = value.quantize(PAISE, rounding=ROUND_HALF_UP)
    rupees = int(value)
    paise = int((value - rupees) * 100)

    words = f"{integer_to_words(rupees) or 'Zero'} Rupees"
    if paise > 0:
        words += f" and {integer_to_words(paise)} Paise"
    return words + " Only"
