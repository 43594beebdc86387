"""Keypad arithmetic and currency precision."""

from timeledger.calculator.expression import (
    ExpressionError,
    ExpressionEvaluator,
    parse_number,
)
from timeledger.calculator.precision import PrecisionPolicy

__all__ = [
    "ExpressionError",
    "ExpressionEvaluator",
    "PrecisionPolicy",
    "parse_number",
]
