"""Shared utilities for the service layer."""

import random
import re
from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID, uuid4

from casino.services.errors import InvalidArgumentError

CENT = Decimal("0.01")
ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def new_id() -> str:
    return str(uuid4())


def seeded_id_factory(rng: random.Random) -> Callable[[], str]:
    """UUID4-shaped ids drawn from ``rng``, so a seeded run repeats its ids."""

    def _next_id() -> str:
        return str(UUID(int=rng.getrandbits(128), version=4))

    return _next_id


def to_money(value: object) -> Decimal:
    """Coerce a DB scalar (Decimal, float, int, None) to a 2-dp Decimal."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_iso_date(raw: str | None, name: str = "date") -> date:
    """Parse a ``YYYY-MM-DD`` boundary value."""
    if not raw or not ISO_DATE.match(raw):
        raise InvalidArgumentError(f"Invalid '{name}' date")
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError as exc:
        raise InvalidArgumentError(f"Invalid '{name}' date") from exc


def day_bounds(from_date: date, to_date: date) -> tuple[datetime, datetime]:
    """Half-open datetime window covering every day of ``[from_date, to_date]``.

    Raises InvalidArgumentError when the range is inverted.
    """
    if to_date < from_date:
        raise InvalidArgumentError(
            f"Invalid range: 'to' ({to_date.isoformat()}) is before "
            f"'from' ({from_date.isoformat()})"
        )
    start: datetime = datetime.combine(from_date, time.min)
    end: datetime = datetime.combine(to_date + timedelta(days=1), time.min)
    return start, end


def parse_user_id(raw: str) -> str:
    """Normalise a ledger user identifier (UUID) or raise."""
    try:
        return str(UUID(raw))
    except (TypeError, ValueError, AttributeError) as exc:
        raise InvalidArgumentError("Invalid user ID") from exc
