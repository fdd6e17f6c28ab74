"""
Money helpers: decimal coercion and PKR display formatting
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Any, Optional

from dailybook.core.config import settings

CENT = Decimal("0.01")

# Currency code to display symbol mapping
CURRENCY_SYMBOLS = {
    'PKR': 'Rs',
    'USD': '$',
    'EUR': '€',
    'GBP': '£',
    'INR': '₹',
    'AED': 'د.إ',
    'SAR': '﷼',
}


def to_decimal(value: Any, default: Optional[Decimal] = Decimal("0")) -> Optional[Decimal]:
    """Convert API values (str, int, float, Decimal, None) to Decimal.

    Empty strings, None, NaN/infinite values, unparsable text and values too
    large to hold in cents give `default`.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            text = str(value).strip().replace(",", "")
            if not text:
                return default
            result = Decimal(text)
        except (InvalidOperation, ValueError, TypeError):
            return default
    if not result.is_finite():
        return default
    # integer digits plus two decimals must fit the context precision
    if result and result.adjusted() > getcontext().prec - 3:
        return default
    return result


def quantize_money(value: Any) -> Decimal:
    """Round to 2 decimal places (half up) after coercion"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money_str(value: Any) -> str:
    """Fixed 2-decimal string as sent to the backend, e.g. "5000.00" """
    return f"{quantize_money(value):.2f}"


def format_currency(value: Any, decimals: int = 2, currency_code: Optional[str] = None) -> str:
    """Format a number for display in the en-PK style (`Rs 5,000.00`).

    Balances and amounts use 2 decimals; print-style totals use 0.
    Invalid values format as zero.
    """
    code = currency_code or settings.CURRENCY_CODE
    symbol = CURRENCY_SYMBOLS.get(code, code)
    amount = to_decimal(value)
    quant = Decimal(1).scaleb(-decimals) if decimals > 0 else Decimal(1)
    amount = amount.quantize(quant, rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol} {abs(amount):,.{decimals}f}"
