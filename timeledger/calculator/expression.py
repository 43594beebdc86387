"""
Keypad Expression Evaluator

The transfer keypad lets users type running sums such as "120 + 30 - 5".
The operator keys always insert " + " / " - " with surrounding spaces,
so the buffer is a flat, space-separated token stream:

    operand (operator operand)*

Evaluation is strictly left to right. There is no precedence, there are
no parentheses, and only + and - exist.

KNOWN QUIRK: an operand that does not parse (e.g. "2..5" after a double
tap on the decimal key) silently contributes 0 instead of failing. This
matches how the keypad has always behaved and is left alone until the
product decides otherwise.
"""

import re
from decimal import Decimal, DecimalException
from typing import Optional


class ExpressionError(Exception):
    """The expression's arithmetic could not be carried out."""
    pass


# Plain decimal literal, optionally signed, optionally with an exponent.
# No whitespace, no digit separators, no NaN/Infinity.
_NUMBER_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

OPERATORS = ("+", "-")

# Amounts this large are never real money on a personal ledger.
MAX_INTEGER_DIGITS = 15


def parse_number(text: str) -> Optional[Decimal]:
    """Parse a single operand token, or return None if it isn't a number."""
    if not _NUMBER_PATTERN.match(text):
        return None
    try:
        value = Decimal(text)
    except DecimalException:
        return None
    if not value.is_finite():
        return None
    return value


class ExpressionEvaluator:
    """Evaluates keypad buffers into a single Decimal."""

    def evaluate(self, text: str) -> Decimal:
        """
        Evaluate a keypad buffer.

        Unparsable tokens count as 0 and a trailing operator with no operand
        is ignored, so any half-typed buffer still has a value.

        Raises:
            ExpressionError: if the arithmetic overflows or the result is
                out of range for an amount.
        """
        parts = text.strip().split(" ")

        try:
            result = self._operand(parts[0])
            for i in range(1, len(parts) - 1, 2):
                operator = parts[i]
                operand = self._operand(parts[i + 1])
                if operator == "+":
                    result = result + operand
                elif operator == "-":
                    result = result - operand
        except DecimalException as e:
            raise ExpressionError(f"Cannot evaluate {text!r}: {e!r}") from e

        if result.is_finite() and result != 0 and result.adjusted() >= MAX_INTEGER_DIGITS:
            raise ExpressionError(f"Amount out of range: {text!r}")
        return result

    def evaluate_or_zero(self, text: str) -> Decimal:
        """Evaluate, treating any failure as 0 (for intermediate states)."""
        try:
            return self.evaluate(text)
        except ExpressionError:
            return Decimal("0")

    @staticmethod
    def _operand(token: str) -> Decimal:
        value = parse_number(token)
        return value if value is not None else Decimal("0")
