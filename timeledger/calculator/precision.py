"""
Currency Precision Policy

Every currency is either whole-unit (JPY, KRW, ...) or has two
fractional digits. The policy decides three things:
1. How many decimals a currency allows (decimal_limit)
2. Whether a keypad buffer may grow to a given string (validate)
3. How a computed amount is shown back to the user (format)

DESIGN DECISION: The zero-decimal set is a fixed list, not configuration.
Precision is part of what an amount *means*; it must not change between
the moment a value is typed and the moment it is saved.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from timeledger.calculator.expression import parse_number

Number = Union[Decimal, int, float]


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


class PrecisionPolicy:
    """Maps currency codes to their fractional precision."""

    ZERO_DECIMAL_CURRENCIES = frozenset({
        "JPY",  # Japanese yen
        "KRW",  # South Korean won
        "VND",  # Vietnamese dong
        "IDR",  # Indonesian rupiah
        "HUF",  # Hungarian forint
        "CLP",  # Chilean peso
        "PYG",  # Paraguayan guarani
    })
    DEFAULT_DECIMALS = 2

    # Computed values this close to a whole number are shown without ".00"
    WHOLE_NUMBER_TOLERANCE = Decimal("0.001")

    def decimal_limit(self, currency_code: str) -> int:
        """Allowed fractional digits for a currency: 0 or 2."""
        if (currency_code or "").upper() in self.ZERO_DECIMAL_CURRENCIES:
            return 0
        return self.DEFAULT_DECIMALS

    def validate(self, candidate: str, currency_code: str) -> bool:
        """
        Check a keypad buffer against the currency's precision.

        Used to intercept keystrokes: "10.825" is refused for USD,
        "10." for JPY. The empty string and a lone "." are transient
        states on the way to a number and are always allowed.
        """
        if candidate == "" or candidate == ".":
            return True

        if parse_number(candidate) is None:
            return False

        dot_index = candidate.find(".")
        if dot_index == -1:
            return True

        limit = self.decimal_limit(currency_code)
        if limit == 0:
            return False

        decimals = len(candidate) - dot_index - 1
        return decimals <= limit

    def quantize(self, value: Number, currency_code: str) -> Decimal:
        """Round an amount to the currency's precision (half up)."""
        places = self.decimal_limit(currency_code)
        exponent = Decimal(1).scaleb(-places)
        return _to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)

    def format(self, value: Number, currency_code: str = "") -> str:
        """
        Render a computed amount for display.

        Zero-decimal currencies round to the nearest whole unit.
        Two-decimal currencies drop the fraction only when the value is
        (almost) whole: 100.00 -> "100", but 100.8 -> "100.80", never "100.8".
        """
        amount = _to_decimal(value)

        if self.decimal_limit(currency_code) == 0:
            return str(int(amount.to_integral_value(rounding=ROUND_HALF_UP)))

        nearest = amount.to_integral_value(rounding=ROUND_HALF_UP)
        if abs(amount - nearest) < self.WHOLE_NUMBER_TOLERANCE:
            return str(int(nearest))

        return format(self.quantize(amount, currency_code), "f")
