"""Tests for casino.services.loader."""

import random
import threading
import time
from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from structlog.testing import capture_logs

from casino.services.errors import (
    FatalLoadFailureError,
    InvalidArgumentError,
    StoreUnavailableError,
)
from casino.services.generator import TransactionGenerator
from casino.services.loader import BatchLoader, LedgerWriter
from casino.services.percentile import PercentileService
from casino.services.revenue import RevenueService
from casino.services.schemas.results import LedgerEvent, LoadResult
from casino.services.volume import VolumeService
from db.enums import TransactionType
from db.models import Base, Transactions


class RecordingSink:
    """Keeps every batch it receives, with its length at hand-off time."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay: float = delay
        self.batches: list[Sequence[LedgerEvent]] = []
        self.sizes_at_insert: list[int] = []
        self.active: int = 0
        self.max_active: int = 0
        self._lock = threading.Lock()

    def insert_batch(self, events: Sequence[LedgerEvent]) -> int:
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.batches.append(events)
            self.sizes_at_insert.append(len(events))
        if self.delay:
            time.sleep(self.delay)
        with self._lock:
            self.active -= 1
        return len(events)


class FailingSink(RecordingSink):
    def __init__(self, fail_on: int) -> None:
        super().__init__()
        self.fail_on: int = fail_on
        self.calls: int = 0

    def insert_batch(self, events: Sequence[LedgerEvent]) -> int:
        with self._lock:
            self.calls += 1
            call = self.calls
        if call == self.fail_on:
            raise StoreUnavailableError("disk full")
        return super().insert_batch(events)


class CountingGenerator(TransactionGenerator):
    def __init__(self) -> None:
        super().__init__(rng=random.Random(1))
        self.calls: int = 0

    def generate_round(self, round_id: str, user_id: str) -> tuple[LedgerEvent, LedgerEvent]:
        self.calls += 1
        return super().generate_round(round_id, user_id)


def _loader(sink, **kwargs: object) -> BatchLoader:
    return BatchLoader(sink, rng=random.Random(11), **kwargs)


class TestBatching:
    def test_four_rounds_batch_of_two(self) -> None:
        sink: RecordingSink = RecordingSink()
        result: LoadResult = _loader(sink).load(total_rounds=4, user_pool_size=3, batch_size=2)

        assert result.batches_dispatched == 2
        assert result.partial_flushes == 0
        assert result.rounds_generated == 4
        assert result.events_inserted == 8
        assert sorted(len(b) for b in sink.batches) == [4, 4]

    def test_partial_batch_flushed(self) -> None:
        sink: RecordingSink = RecordingSink()
        result: LoadResult = _loader(sink).load(total_rounds=5, user_pool_size=2, batch_size=2)

        assert result.batches_dispatched == 3
        assert result.partial_flushes == 1
        assert result.events_inserted == 10
        assert sorted(len(b) for b in sink.batches) == [2, 4, 4]

    def test_each_batch_is_a_fresh_buffer(self) -> None:
        sink: RecordingSink = RecordingSink(delay=0.01)
        _loader(sink, max_workers=3).load(total_rounds=30, user_pool_size=4, batch_size=4)

        assert len({id(b) for b in sink.batches}) == len(sink.batches)
        assert [len(b) for b in sink.batches] == sink.sizes_at_insert

    def test_rounds_stay_paired_within_a_batch(self) -> None:
        sink: RecordingSink = RecordingSink()
        _loader(sink).load(total_rounds=9, user_pool_size=3, batch_size=2)

        for batch in sink.batches:
            by_round: dict[str, list[LedgerEvent]] = {}
            for event in batch:
                by_round.setdefault(event.round_id, []).append(event)
            for events in by_round.values():
                assert sorted(e.type.value for e in events) == ["Payout", "Wager"]

    def test_users_drawn_from_pool(self) -> None:
        sink: RecordingSink = RecordingSink()
        _loader(sink).load(total_rounds=200, user_pool_size=3, batch_size=50)

        users: set[str] = {e.user_id for b in sink.batches for e in b}
        assert 1 <= len(users) <= 3

    @pytest.mark.parametrize(
        ("rounds", "users", "batch"), [(0, 1, 1), (1, 0, 1), (1, 1, 0), (-5, 1, 1)]
    )
    def test_invalid_parameters(self, rounds: int, users: int, batch: int) -> None:
        with pytest.raises(InvalidArgumentError):
            _loader(RecordingSink()).load(rounds, users, batch)

    def test_invalid_pool_size(self) -> None:
        with pytest.raises(InvalidArgumentError):
            BatchLoader(RecordingSink(), max_workers=0)


class TestConcurrency:
    def test_workers_bounded(self) -> None:
        sink: RecordingSink = RecordingSink(delay=0.02)
        _loader(sink, max_workers=2, max_in_flight=4).load(
            total_rounds=40, user_pool_size=5, batch_size=2
        )
        assert 1 <= sink.max_active <= 2
        assert len(sink.batches) == 20

    def test_producer_blocks_when_in_flight_limit_reached(self) -> None:
        gate = threading.Event()
        started = threading.Event()

        class GatedSink(RecordingSink):
            def insert_batch(self, events: Sequence[LedgerEvent]) -> int:
                started.set()
                gate.wait(timeout=5)
                return super().insert_batch(events)

        generator: CountingGenerator = CountingGenerator()
        loader: BatchLoader = _loader(
            GatedSink(), generator=generator, max_workers=1, max_in_flight=2
        )
        outcome: list[LoadResult] = []
        producer = threading.Thread(
            target=lambda: outcome.append(loader.load(10, 2, 1)), daemon=True
        )
        producer.start()

        assert started.wait(timeout=5)
        time.sleep(0.2)
        # one batch running, one queued, the third round waits for a slot
        assert generator.calls == 3

        gate.set()
        producer.join(timeout=5)
        assert outcome and outcome[0].events_inserted == 20


class TestFailure:
    def test_failed_insert_aborts_load(self) -> None:
        sink: FailingSink = FailingSink(fail_on=2)
        with pytest.raises(FatalLoadFailureError) as excinfo:
            _loader(sink, max_workers=1, max_in_flight=1).load(
                total_rounds=50, user_pool_size=3, batch_size=5
            )
        assert isinstance(excinfo.value.__cause__, StoreUnavailableError)
        # generation stops once the failure is seen
        assert sink.calls < 10

    def test_failure_in_final_flush(self) -> None:
        sink: FailingSink = FailingSink(fail_on=1)
        with pytest.raises(FatalLoadFailureError):
            _loader(sink).load(total_rounds=3, user_pool_size=1, batch_size=10)


class TestLedgerWriter:
    @pytest.fixture()
    def file_engine(self, tmp_path: Path):
        eng: Engine = create_engine(
            f"sqlite:///{(tmp_path / 'ledger.db').as_posix()}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        Base.metadata.create_all(eng)
        yield eng
        eng.dispose()

    def test_seeds_ledger_end_to_end(self, file_engine: Engine) -> None:
        factory: sessionmaker[Session] = sessionmaker(bind=file_engine, expire_on_commit=False)
        loader: BatchLoader = BatchLoader(
            LedgerWriter(factory), rng=random.Random(5), max_workers=2, max_in_flight=3
        )

        result: LoadResult = loader.load(total_rounds=120, user_pool_size=6, batch_size=25)

        assert result.events_inserted == 240
        with factory() as session:
            assert session.scalar(select(func.count()).select_from(Transactions)) == 240

            per_round = session.execute(
                select(
                    Transactions.round_id,
                    func.count(),
                    func.count(func.distinct(Transactions.type)),
                    func.min(Transactions.created_at),
                    func.max(Transactions.created_at),
                ).group_by(Transactions.round_id)
            ).all()
            assert len(per_round) == 120
            assert all(count == 2 and kinds == 2 for _, count, kinds, _, _ in per_round)

            wagers = session.scalars(
                select(Transactions).where(Transactions.type == TransactionType.WAGER.value)
            ).all()
            payouts = {
                t.round_id: t
                for t in session.scalars(
                    select(Transactions).where(Transactions.type == TransactionType.PAYOUT.value)
                )
            }
            for wager in wagers:
                assert payouts[wager.round_id].created_at > wager.created_at

            everything = (date(2000, 1, 1), date(2100, 1, 1))
            revenue = RevenueService(session).compute_ggr(*everything)
            volume = VolumeService(session).compute_daily_volume(*everything)
            for row in revenue:
                assert row.ggr == row.total_wagered - row.total_payout
                assert row.total_wagered == sum(
                    (v.total_amount for v in volume if v.currency == row.currency),
                    start=Decimal("0"),
                )

            some_user: str = wagers[0].user_id
            pct = PercentileService(session).compute_user_percentile(some_user, *everything)
            assert 0 < pct.percentile <= 100
            assert pct.total_users <= 6

    def test_insert_failure_is_store_unavailable(self, tmp_path: Path) -> None:
        eng: Engine = create_engine(f"sqlite:///{(tmp_path / 'empty.db').as_posix()}")
        writer: LedgerWriter = LedgerWriter(sessionmaker(bind=eng))
        gen: TransactionGenerator = TransactionGenerator(rng=random.Random(2))
        with capture_logs() as logs, pytest.raises(StoreUnavailableError):
            writer.insert_batch(list(gen.generate_round("r", "u")))
        failed = [e for e in logs if e["event"] == "Bulk insert failed"]
        assert len(failed) == 1
        assert failed[0]["events"] == 2
        assert failed[0]["log_level"] == "error"
        eng.dispose()

    def test_empty_batch_is_noop(self, file_engine: Engine) -> None:
        assert LedgerWriter(sessionmaker(bind=file_engine)).insert_batch([]) == 0
