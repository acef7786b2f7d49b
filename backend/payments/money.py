"""
Monetary precision helpers.

CRITICAL: money never touches binary floating point. Amounts are Decimals,
quantized to the currency's minor unit with banker's rounding.

Key Principles:
1. NEVER use float for money
2. Always quantize Decimals BEFORE storing or comparing them
3. Use ROUND_HALF_EVEN (banker's rounding) to prevent systematic bias
"""

from decimal import Decimal, ROUND_HALF_EVEN, InvalidOperation, getcontext
from typing import Union

# Set high precision for intermediate calculations
getcontext().prec = 28

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Currency minor unit exponents (how many decimal places)
CURRENCY_EXPONENT = {
    "USD": 2,
    "EUR": 2,
    "GBP": 2,
    "CAD": 2,
    "AUD": 2,
    "INR": 2,
    "AED": 2,
    "SAR": 2,
    "JPY": 0,
    "KRW": 0,
    "VND": 0,
    "KWD": 3,
    "BHD": 3,
    "OMR": 3,
}

Amount = Union[Decimal, str, int]


def currency_exponent(currency: str) -> int:
    """
    Number of decimal places for a currency; unknown codes default to 2.

    >>> currency_exponent("JPY")
    0
    """
    return CURRENCY_EXPONENT.get(currency.upper(), 2)


def quantize_decimal(currency: str) -> Decimal:
    """Smallest unit of the currency, e.g. Decimal('0.01') for USD."""
    return Decimal(10) ** -currency_exponent(currency)


def to_decimal(amount: Amount) -> Decimal:
    """
    Coerce an incoming amount to Decimal.

    Floats are rejected outright: by the time a float exists the cent is
    already lost.

    Raises:
        TypeError: for float input
        ValueError: for strings that are not numbers
    """
    if isinstance(amount, float):
        raise TypeError("Monetary amounts must not be floats; pass a Decimal or string")
    if isinstance(amount, Decimal):
        return amount
    try:
        return Decimal(str(amount))
    except InvalidOperation:
        raise ValueError(f"'{amount}' is not a valid amount") from None


def quantize(currency: str, amount: Amount) -> Decimal:
    """
    Round to currency decimals using banker's rounding (ROUND_HALF_EVEN).

    >>> quantize("USD", "10.125")
    Decimal('10.12')
    >>> quantize("USD", "10.135")
    Decimal('10.14')
    """
    return to_decimal(amount).quantize(quantize_decimal(currency), rounding=ROUND_HALF_EVEN)


def percentage_of(currency: str, amount: Amount, rate: Amount) -> Decimal:
    """
    ``amount × rate / 100`` rounded to the currency.

    >>> percentage_of("USD", "27.00", "10")
    Decimal('2.70')
    """
    return quantize(currency, to_decimal(amount) * to_decimal(rate) / HUNDRED)
