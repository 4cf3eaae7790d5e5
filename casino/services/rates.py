"""Static currency -> USD rate table."""

from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType

from db.enums import Currency

CENT = Decimal("0.01")

# 1 unit of currency in USD. Fixed; stored events keep the USD value
# they were written with.
USD_RATES: Mapping[Currency, Decimal] = MappingProxyType(
    {
        Currency.ETH: Decimal("3000"),
        Currency.BTC: Decimal("50000"),
        Currency.USDT: Decimal("1"),
    }
)

CURRENCIES: tuple[Currency, ...] = tuple(USD_RATES)


def rate_for(currency: Currency | str) -> Decimal:
    """USD factor for ``currency``. Raises ValueError for unknown codes."""
    return USD_RATES[Currency(currency)]


def usd_equivalent(amount: Decimal, currency: Currency | str) -> Decimal:
    """``amount * rate(currency)`` rounded half-up to cents."""
    return (amount * rate_for(currency)).quantize(CENT, rounding=ROUND_HALF_UP)
