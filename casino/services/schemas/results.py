"""Result dataclasses returned by service operations."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from db.enums import Currency, TransactionType


@dataclass(frozen=True)
class LedgerEvent:
    """A transaction ready for bulk insert."""

    id: str
    created_at: datetime
    user_id: str
    round_id: str
    type: TransactionType
    amount: Decimal
    currency: Currency
    usd_amount: Decimal

    def as_row(self) -> dict[str, object]:
        return {
            "id": self.id,
            "created_at": self.created_at,
            "user_id": self.user_id,
            "round_id": self.round_id,
            "type": self.type.value,
            "amount": self.amount,
            "currency": self.currency.value,
            "usd_amount": self.usd_amount,
        }


@dataclass(frozen=True)
class GGRRow:
    currency: str
    ggr: Decimal
    ggr_usd: Decimal
    total_wagered: Decimal
    total_payout: Decimal
    total_wagered_usd: Decimal
    total_payout_usd: Decimal


@dataclass(frozen=True)
class DailyVolumeRow:
    day: str
    currency: str
    total_amount: Decimal
    total_usd_amount: Decimal


@dataclass(frozen=True)
class PercentileResult:
    user_id: str
    percentile: float
    rank: int
    total_users: int
    total_usd_amount: Decimal


@dataclass
class LoadResult:
    run_id: str
    rounds_generated: int
    events_inserted: int
    batches_dispatched: int
    partial_flushes: int
    duration_seconds: float
