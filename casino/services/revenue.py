"""Revenue aggregation: gross gaming revenue per currency."""

from datetime import date, datetime
from decimal import Decimal

import structlog
from sqlalchemy import ColumnElement, and_, case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from casino.services._helpers import day_bounds, to_money
from casino.services.errors import StoreUnavailableError
from casino.services.schemas.results import GGRRow
from db.enums import TransactionType
from db.models import Transactions

logger = structlog.get_logger(__name__)


def _sum_where(
    condition: ColumnElement[bool], column: ColumnElement[Decimal]
) -> ColumnElement[Decimal]:
    """SUM(CASE WHEN condition THEN column ELSE 0 END)."""
    return func.sum(case((condition, column), else_=0))


class RevenueService:
    """Computes GGR (wagered minus paid out) for a date range."""

    def __init__(self, session: Session) -> None:
        self.session: Session = session

    def compute_ggr(self, from_date: date, to_date: date) -> list[GGRRow]:
        """Per-currency GGR over the whole days ``[from_date, to_date]``, sorted by currency."""
        start: datetime
        end: datetime
        start, end = day_bounds(from_date, to_date)

        is_wager = Transactions.type == TransactionType.WAGER.value
        is_payout = Transactions.type == TransactionType.PAYOUT.value
        stmt = (
            select(
                Transactions.currency,
                _sum_where(is_wager, Transactions.amount).label("total_wagered"),
                _sum_where(is_payout, Transactions.amount).label("total_payout"),
                _sum_where(is_wager, Transactions.usd_amount).label("total_wagered_usd"),
                _sum_where(is_payout, Transactions.usd_amount).label("total_payout_usd"),
            )
            .where(and_(Transactions.created_at >= start, Transactions.created_at < end))
            .group_by(Transactions.currency)
            .order_by(Transactions.currency)
        )

        try:
            rows = self.session.execute(stmt).all()
        except SQLAlchemyError as exc:
            logger.exception("GGR query failed", start=str(from_date), end=str(to_date))
            raise StoreUnavailableError("Failed to query database") from exc

        results: list[GGRRow] = []
        for currency, wagered, payout, wagered_usd, payout_usd in rows:
            total_wagered = to_money(wagered)
            total_payout = to_money(payout)
            total_wagered_usd = to_money(wagered_usd)
            total_payout_usd = to_money(payout_usd)
            results.append(
                GGRRow(
                    currency=currency,
                    ggr=total_wagered - total_payout,
                    ggr_usd=total_wagered_usd - total_payout_usd,
                    total_wagered=total_wagered,
                    total_payout=total_payout,
                    total_wagered_usd=total_wagered_usd,
                    total_payout_usd=total_payout_usd,
                )
            )
        return results
