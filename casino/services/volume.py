"""Daily wagered volume per currency."""

from datetime import date, datetime

import structlog
from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from casino.services._helpers import day_bounds, to_money
from casino.services.errors import NoDataError, StoreUnavailableError
from casino.services.schemas.results import DailyVolumeRow
from db.enums import TransactionType
from db.models import Transactions

logger = structlog.get_logger(__name__)


def _day_string(value: object) -> str:
    # SQLite's date() yields text, PostgreSQL yields a date
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


class VolumeService:
    def __init__(self, session: Session) -> None:
        self.session: Session = session

    def compute_daily_volume(self, from_date: date, to_date: date) -> list[DailyVolumeRow]:
        """Wagered totals bucketed by (UTC day, currency).

        Raises NoDataError when no wager falls in the range.
        """
        start: datetime
        end: datetime
        start, end = day_bounds(from_date, to_date)

        day = func.date(Transactions.created_at).label("day")
        stmt = (
            select(
                day,
                Transactions.currency,
                func.sum(Transactions.amount).label("total_amount"),
                func.sum(Transactions.usd_amount).label("total_usd_amount"),
            )
            .where(
                and_(
                    Transactions.type == TransactionType.WAGER.value,
                    Transactions.created_at >= start,
                    Transactions.created_at < end,
                )
            )
            .group_by(day, Transactions.currency)
            .order_by(day, Transactions.currency)
        )

        try:
            rows = self.session.execute(stmt).all()
        except SQLAlchemyError as exc:
            logger.exception("Daily volume query failed", start=str(from_date), end=str(to_date))
            raise StoreUnavailableError("Failed to query database") from exc

        if not rows:
            raise NoDataError("No data found for the specified date range")

        return [
            DailyVolumeRow(
                day=_day_string(bucket),
                currency=currency,
                total_amount=to_money(amount),
                total_usd_amount=to_money(usd_amount),
            )
            for bucket, currency, amount, usd_amount in rows
        ]
