"""User percentile ranking by total USD wagered."""

from bisect import bisect_left
from datetime import date, datetime
from decimal import Decimal

import structlog
from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from casino.services._helpers import day_bounds, parse_user_id, to_money
from casino.services.errors import NotFoundError, StoreUnavailableError
from casino.services.schemas.results import PercentileResult
from db.enums import TransactionType
from db.models import Transactions

logger = structlog.get_logger(__name__)


class PercentileService:
    """
    Ranks users by USD wagered in a date range.

    Totals are sorted ascending, so the smallest wagerer has rank 1 and
    the largest has percentile 100. Ties share a rank (competition
    ranking: 1, 2, 2, 4): a user's rank is one plus the number of users
    with a strictly smaller total.
    """

    def __init__(self, session: Session) -> None:
        self.session: Session = session

    def _wager_totals(self, start: datetime, end: datetime) -> list[tuple[str, Decimal]]:
        total = func.sum(Transactions.usd_amount).label("total_usd_amount")
        stmt = (
            select(Transactions.user_id, total)
            .where(
                and_(
                    Transactions.type == TransactionType.WAGER.value,
                    Transactions.created_at >= start,
                    Transactions.created_at < end,
                )
            )
            .group_by(Transactions.user_id)
            .order_by(total, Transactions.user_id)
        )
        try:
            rows = self.session.execute(stmt).all()
        except SQLAlchemyError as exc:
            logger.exception("Percentile query failed")
            raise StoreUnavailableError("Failed to query database") from exc
        return [(uid, to_money(amount)) for uid, amount in rows]

    def compute_user_percentile(
        self, user_id: str, from_date: date, to_date: date
    ) -> PercentileResult:
        uid: str = parse_user_id(user_id)
        start, end = day_bounds(from_date, to_date)

        totals: list[tuple[str, Decimal]] = self._wager_totals(start, end)
        if not totals:
            raise NotFoundError("No data found for the specified date range")

        by_user: dict[str, Decimal] = dict(totals)
        user_total: Decimal | None = by_user.get(uid)
        if user_total is None:
            raise NotFoundError(f"User {uid} has no wagers in the specified date range")

        ordered: list[Decimal] = [amount for _, amount in totals]
        rank: int = bisect_left(ordered, user_total) + 1
        total_users: int = len(ordered)

        return PercentileResult(
            user_id=uid,
            percentile=rank / total_users * 100,
            rank=rank,
            total_users=total_users,
            total_usd_amount=user_total,
        )
