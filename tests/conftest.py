"""Shared fixtures: a handful of accounts and a fixed-rate conversion."""

from decimal import Decimal

import pytest

from timeledger.config import get_settings
from timeledger.models.transfer import Account, AccountCategory
from timeledger.services.rates import ConversionPort


class FixedRateConversion(ConversionPort):
    """Converts with hand-set pair rates; identity for unknown pairs."""

    def __init__(self, pairs=None):
        self.pairs = dict(pairs or {})
        self.calls = 0

    def convert(self, amount, from_currency, to_currency):
        self.calls += 1
        if from_currency == to_currency:
            return amount
        if (from_currency, to_currency) in self.pairs:
            return amount * self.pairs[(from_currency, to_currency)]
        if (to_currency, from_currency) in self.pairs:
            return amount / self.pairs[(to_currency, from_currency)]
        return amount


CASH = Account(id=1, name="Cash", currency="CNY")
BANK = Account(id=2, name="Bank Card", currency="CNY")
US_CHECKING = Account(id=3, name="US Checking", currency="USD")
JAPAN_WALLET = Account(id=4, name="Japan Wallet", currency="JPY")
CREDIT_CARD = Account(id=5, name="Credit Card", currency="CNY", category=AccountCategory.CREDIT)
LOAN = Account(id=6, name="Loan to Li", currency="CNY", category=AccountCategory.DEBT)

ALL_ACCOUNTS = [CASH, BANK, US_CHECKING, JAPAN_WALLET, CREDIT_CARD, LOAN]


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are cached per process; start every test from the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def conversion():
    return FixedRateConversion({
        ("USD", "JPY"): Decimal("150"),
        ("USD", "CNY"): Decimal("7"),
    })


@pytest.fixture
def accounts():
    return list(ALL_ACCOUNTS)
