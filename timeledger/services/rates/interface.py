"""
Currency Conversion Port

DESIGN DECISION: The transfer resolver never knows where rates come from.
It only needs a pure, synchronous convert(). This keeps the resolver
testable with a one-line stub and lets the real rate table refresh in
the background without the resolver ever awaiting anything.
"""

from abc import ABC, abstractmethod
from decimal import Decimal


class ConversionPort(ABC):
    """
    Converts an amount between two currencies.

    Implementations must be total: identity when the codes match, and
    the input returned unchanged for pairs they cannot convert.
    """

    @abstractmethod
    def convert(
        self,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
    ) -> Decimal:
        """
        Convert `amount` from one currency into another.

        Args:
            amount: Amount in `from_currency`
            from_currency: ISO code of the amount
            to_currency: ISO code wanted

        Returns:
            The amount expressed in `to_currency`
        """
        pass


class RateRefreshError(Exception):
    """Fetching fresh exchange rates failed; last known rates are kept."""
    pass
