"""Synthetic wager/payout generator used to seed the ledger."""

import random
from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal

from casino.services._helpers import new_id
from casino.services.rates import CURRENCIES, usd_equivalent
from casino.services.schemas.results import LedgerEvent
from db.enums import Currency, TransactionType
from db.models import utc_now

CENT = Decimal("0.01")
LOOKBACK = timedelta(days=365)
PAYOUT_DELAY_MIN_SECONDS = 60
PAYOUT_DELAY_MAX_SECONDS = 3600  # exclusive


class TransactionGenerator:
    """Builds the two ledger events of one betting round.

    Randomness and the clock are injected so that a seeded generator
    reproduces the same ledger.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utc_now,
        wager_min: float = 10.0,
        wager_max: float = 500.0,
        payout_min_multiplier: float = 0.5,
        payout_max_multiplier: float = 2.0,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self.rng: random.Random = rng or random.Random()
        self.clock: Callable[[], datetime] = clock
        self.wager_min: float = wager_min
        self.wager_max: float = wager_max
        self.payout_min_multiplier: float = payout_min_multiplier
        self.payout_max_multiplier: float = payout_max_multiplier
        self.id_factory: Callable[[], str] = id_factory

    # ------------------------------------------------------------------
    # Random draws
    # ------------------------------------------------------------------

    def random_amount(self, low: float | Decimal, high: float | Decimal) -> Decimal:
        """Uniform whole-cent amount in ``[low, high]``.

        A non-positive upper bound collapses to zero; an inverted range is swapped.
        When no whole cent lies inside the range, ``low`` rounded half-up is returned.
        """
        low_d: Decimal = max(Decimal(str(low)), Decimal("0"))
        high_d: Decimal = Decimal(str(high))
        if high_d <= 0:
            return Decimal("0.00")
        if low_d > high_d:
            low_d, high_d = high_d, low_d
        low_cents: int = int((low_d / CENT).to_integral_value(rounding=ROUND_CEILING))
        high_cents: int = int((high_d / CENT).to_integral_value(rounding=ROUND_FLOOR))
        if low_cents > high_cents:
            return low_d.quantize(CENT, rounding=ROUND_HALF_UP)
        return Decimal(self.rng.randint(low_cents, high_cents)) * CENT

    def random_currency(self) -> Currency:
        return self.rng.choice(CURRENCIES)

    def random_date(self) -> datetime:
        """Whole-second timestamp within the year before now (UTC)."""
        now: datetime = self.clock()
        window: int = int(LOOKBACK.total_seconds())
        return (now - LOOKBACK) + timedelta(seconds=self.rng.randrange(window))

    def random_payout_delay(self) -> timedelta:
        seconds: int = self.rng.randrange(PAYOUT_DELAY_MIN_SECONDS, PAYOUT_DELAY_MAX_SECONDS)
        return timedelta(seconds=seconds)

    # ------------------------------------------------------------------
    # Round construction
    # ------------------------------------------------------------------

    def generate_round(self, round_id: str, user_id: str) -> tuple[LedgerEvent, LedgerEvent]:
        """Return ``(wager, payout)`` for one round."""
        currency: Currency = self.random_currency()
        wager_time: datetime = self.random_date()
        payout_time: datetime = wager_time + self.random_payout_delay()

        wager_amount: Decimal = self.random_amount(self.wager_min, self.wager_max)
        payout_amount: Decimal = self.random_amount(
            Decimal(str(self.payout_min_multiplier)) * wager_amount,
            Decimal(str(self.payout_max_multiplier)) * wager_amount,
        )

        wager = LedgerEvent(
            id=self.id_factory(),
            created_at=wager_time,
            user_id=user_id,
            round_id=round_id,
            type=TransactionType.WAGER,
            amount=wager_amount,
            currency=currency,
            usd_amount=usd_equivalent(wager_amount, currency),
        )
        payout = LedgerEvent(
            id=self.id_factory(),
            created_at=payout_time,
            user_id=user_id,
            round_id=round_id,
            type=TransactionType.PAYOUT,
            amount=payout_amount,
            currency=currency,
            usd_amount=usd_equivalent(payout_amount, currency),
        )
        return wager, payout
