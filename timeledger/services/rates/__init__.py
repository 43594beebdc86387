"""
Exchange Rate Services Package

Provides the conversion port the transfer resolver depends on and the
in-memory rate table that implements it.
"""

from timeledger.services.rates.interface import ConversionPort, RateRefreshError
from timeledger.services.rates.rate_table import (
    DEFAULT_RATES,
    ExchangeRateTable,
    RateFetcher,
)

__all__ = [
    "ConversionPort",
    "DEFAULT_RATES",
    "ExchangeRateTable",
    "RateFetcher",
    "RateRefreshError",
]
