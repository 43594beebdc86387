"""
Exchange Rate Table

Holds the last known exchange rates and converts between currencies
through a single base currency (CNY by default).

Storage format: 1 unit of currency X = rate[X] units of base.
Conversion goes X -> base -> Y.

DESIGN DECISION: The table always has an answer. It starts from a
built-in offline table, a refresh only ever overwrites the currencies
the quote source actually returned, and a failed refresh leaves the
previous rates in place. Where quotes come from is not this module's
business: the caller passes a fetcher.
"""

from decimal import Decimal
from typing import Callable, Mapping, Optional

from tenacity import Retrying, stop_after_attempt, wait_exponential

from timeledger.audit.log_config import get_logger
from timeledger.config import RateSettings, get_settings
from timeledger.services.rates.interface import ConversionPort, RateRefreshError


# Offline defaults (1 unit = x CNY)
DEFAULT_RATES: dict[str, Decimal] = {
    "CNY": Decimal("1.0"),
    "USD": Decimal("7.25"),
    "JPY": Decimal("0.046"),
    "HKD": Decimal("0.93"),
    "EUR": Decimal("7.85"),
    "GBP": Decimal("9.20"),
    "CAD": Decimal("5.30"),
    "AUD": Decimal("4.80"),
    "KRW": Decimal("0.0053"),
    "SGD": Decimal("5.35"),
    "INR": Decimal("0.087"),
    "IDR": Decimal("0.00045"),
}

# Returns quotes as "1 base = x currency" (the way public rate APIs answer).
RateFetcher = Callable[[str], Mapping[str, Decimal]]


class ExchangeRateTable(ConversionPort):
    """In-memory, last-known-good exchange rate table."""

    def __init__(
        self,
        rates: Optional[Mapping[str, Decimal]] = None,
        settings: Optional[RateSettings] = None,
    ):
        """
        Initialize the table.

        Args:
            rates: Starting rates (1 unit = x base). Defaults to the
                   built-in offline table.
            settings: Rate settings; loaded from the environment if None.
        """
        self._settings = settings or get_settings().rates
        self._defaults = {
            code.upper(): Decimal(rate)
            for code, rate in (rates if rates is not None else DEFAULT_RATES).items()
        }
        self._defaults.setdefault(self.base_currency, Decimal("1"))
        self._rates = dict(self._defaults)
        self._logger = get_logger(__name__)

    @property
    def base_currency(self) -> str:
        return self._settings.base_currency

    @property
    def rates(self) -> dict[str, Decimal]:
        """Snapshot of the current table."""
        return dict(self._rates)

    def rate_for(self, currency: str) -> Optional[Decimal]:
        return self._rates.get(currency.upper())

    def set_rate(self, currency: str, rate: Decimal) -> None:
        """Set one rate by hand (1 unit of `currency` = `rate` base)."""
        rate = Decimal(rate)
        if not rate.is_finite() or rate <= 0:
            raise ValueError(f"Rate for {currency} must be positive, got {rate}")
        self._rates[currency.upper()] = rate

    def convert(
        self,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
    ) -> Decimal:
        from_code = from_currency.upper()
        to_code = to_currency.upper()
        if from_code == to_code:
            return amount

        from_rate = self._rates.get(from_code)
        to_rate = self._rates.get(to_code)
        if from_rate is None or to_rate is None:
            # Unknown pair: hand the amount back rather than invent a rate
            return amount

        amount_in_base = amount * from_rate
        return amount_in_base / to_rate

    def refresh(self, fetcher: RateFetcher) -> int:
        """
        Pull fresh quotes and merge them over the offline defaults.

        Retries with exponential back-off. On final failure the current
        rates are left untouched.

        Returns:
            Number of currencies updated from the quote source

        Raises:
            RateRefreshError: if every attempt failed
        """
        retrying = Retrying(
            stop=stop_after_attempt(self._settings.refresh_max_attempts),
            wait=wait_exponential(
                multiplier=1,
                min=self._settings.refresh_wait_min,
                max=self._settings.refresh_wait_max,
            ),
            reraise=True,
        )

        try:
            quotes = retrying(fetcher, self.base_currency)
        except Exception as e:
            self._logger.warning(
                "rate_refresh_failed",
                base_currency=self.base_currency,
                error=str(e),
            )
            raise RateRefreshError(f"Rate refresh failed: {e}") from e

        fresh: dict[str, Decimal] = {self.base_currency: Decimal("1")}
        for code, quote in quotes.items():
            quote = Decimal(str(quote))
            if not quote.is_finite() or quote <= 0:
                continue
            # 1 base = quote X  =>  1 X = 1/quote base
            fresh[code.upper()] = Decimal("1") / quote

        merged = dict(self._defaults)
        merged.update(fresh)
        self._rates = merged

        updated = len(fresh) - 1
        self._logger.info(
            "rates_refreshed",
            base_currency=self.base_currency,
            updated=updated,
        )
        return updated
