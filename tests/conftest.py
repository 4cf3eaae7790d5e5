"""Shared fixtures — in-memory SQLite DB with all tables."""

from collections.abc import Callable, Generator
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from casino.services._helpers import new_id
from casino.services.rates import usd_equivalent
from db.enums import TransactionType
from db.models import Base, Transactions

AddTx = Callable[..., Transactions]


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    eng: Engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session(engine: Engine) -> Generator[Session, None, None]:
    factory: sessionmaker[Session] = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    sess: Session = factory()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture()
def add_tx(session: Session) -> AddTx:
    """Insert one ledger row; USD value derived from the rate table unless given."""

    def _add(
        created_at: datetime,
        amount: str | Decimal,
        currency: str = "USDT",
        type: TransactionType = TransactionType.WAGER,
        user_id: str | None = None,
        round_id: str | None = None,
        usd_amount: str | Decimal | None = None,
    ) -> Transactions:
        amt: Decimal = Decimal(str(amount))
        tx: Transactions = Transactions(
            id=new_id(),
            created_at=created_at,
            user_id=user_id or new_id(),
            round_id=round_id or new_id(),
            type=type.value,
            amount=amt,
            currency=currency,
            usd_amount=(
                Decimal(str(usd_amount))
                if usd_amount is not None
                else usd_equivalent(amt, currency)
            ),
        )
        session.add(tx)
        session.flush()
        return tx

    return _add
