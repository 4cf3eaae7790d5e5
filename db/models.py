"""SQLAlchemy ORM models for the transaction ledger."""

from datetime import UTC, datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import DateTime, Index, MetaData, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=convention)


def generate_uuid() -> str:
    return str(uuid4())


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the ledger."""
    return datetime.now(UTC).replace(tzinfo=None)


class Transactions(Base):
    """
    One ledger event.

    Rows are written once (by the seeder or an external settlement
    system) and never updated. ``usd_amount`` is the USD value at
    write time and is not recomputed when rates change.
    """

    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    round_id: Mapped[str] = mapped_column(String(36), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)  # Wager | Payout
    amount: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    usd_amount: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)

    __table_args__ = (
        Index("ix_transactions_created_at", "created_at"),
        Index("ix_transactions_type_created_at", "type", "created_at"),
        Index("ix_transactions_user_id", "user_id"),
        Index("ix_transactions_round_id", "round_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Transactions(round={self.round_id}, type={self.type}, "
            f"amount={self.amount} {self.currency}, at={self.created_at})>"
        )
