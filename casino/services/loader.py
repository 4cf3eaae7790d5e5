"""Batch loader: seeds the ledger with synthetic rounds using a bounded worker pool."""

import random
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Protocol

import structlog
from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from casino.services._helpers import new_id
from casino.services.errors import (
    FatalLoadFailureError,
    InvalidArgumentError,
    StoreUnavailableError,
)
from casino.services.generator import TransactionGenerator
from casino.services.schemas.results import LedgerEvent, LoadResult
from db.models import Transactions

logger = structlog.get_logger(__name__)


class BatchSink(Protocol):
    def insert_batch(self, events: Sequence[LedgerEvent]) -> int: ...


class LedgerWriter:
    """Bulk-inserts event batches. One session per batch, so safe across threads."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory: sessionmaker[Session] = session_factory

    def insert_batch(self, events: Sequence[LedgerEvent]) -> int:
        if not events:
            return 0
        session: Session = self.session_factory()
        try:
            session.execute(insert(Transactions), [e.as_row() for e in events])
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Bulk insert failed", events=len(events))
            raise StoreUnavailableError(f"Bulk insert of {len(events)} events failed") from exc
        finally:
            session.close()
        return len(events)


class BatchLoader:
    """Generates rounds and hands full batches to a bounded pool of insert workers.

    At most ``max_in_flight`` batches are queued or running at any time; the
    producer blocks until a slot frees up. A failed insert stops generation
    and the load raises FatalLoadFailureError once outstanding work has drained.
    """

    def __init__(
        self,
        writer: BatchSink,
        generator: TransactionGenerator | None = None,
        max_workers: int = 4,
        max_in_flight: int = 8,
        rng: random.Random | None = None,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        if max_workers < 1 or max_in_flight < 1:
            raise InvalidArgumentError("max_workers and max_in_flight must be positive")
        self.writer: BatchSink = writer
        self.rng: random.Random = rng or random.Random()
        self.generator: TransactionGenerator = generator or TransactionGenerator(rng=self.rng)
        self.max_workers: int = max_workers
        self.max_in_flight: int = max_in_flight
        self.id_factory: Callable[[], str] = id_factory

    def build_user_pool(self, size: int) -> list[str]:
        pool: set[str] = set()
        while len(pool) < size:
            pool.add(self.id_factory())
        return sorted(pool)

    def load(self, total_rounds: int, user_pool_size: int, batch_size: int) -> LoadResult:
        """Generate ``total_rounds`` rounds and insert them ``batch_size`` rounds at a time."""
        for name, value in (
            ("total_rounds", total_rounds),
            ("user_pool_size", user_pool_size),
            ("batch_size", batch_size),
        ):
            if value < 1:
                raise InvalidArgumentError(f"{name} must be a positive integer, got {value}")

        run_id: str = self.id_factory()
        started: float = time.monotonic()
        users: list[str] = self.build_user_pool(user_pool_size)

        slots = threading.BoundedSemaphore(self.max_in_flight)
        abort = threading.Event()
        futures: list[Future[int]] = []
        batches_dispatched: int = 0
        partial_flushes: int = 0
        rounds_generated: int = 0

        logger.info(
            "Starting ledger load",
            run_id=run_id,
            rounds=total_rounds,
            users=user_pool_size,
            batch_size=batch_size,
            max_workers=self.max_workers,
            max_in_flight=self.max_in_flight,
        )

        def _on_done(future: Future[int]) -> None:
            if not future.cancelled() and future.exception() is not None:
                abort.set()
            slots.release()

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="ledger-insert"
        ) as pool:

            def _dispatch(batch: list[LedgerEvent]) -> None:
                slots.acquire()
                future: Future[int] = pool.submit(self.writer.insert_batch, batch)
                future.add_done_callback(_on_done)
                futures.append(future)

            buffer: list[LedgerEvent] = []
            rounds_in_buffer: int = 0
            for _ in range(total_rounds):
                if abort.is_set():
                    break
                user_id: str = self.rng.choice(users)
                buffer.extend(self.generator.generate_round(self.id_factory(), user_id))
                rounds_in_buffer += 1
                rounds_generated += 1

                if rounds_in_buffer == batch_size:
                    _dispatch(buffer)
                    batches_dispatched += 1
                    logger.info(
                        "Batch dispatched",
                        batch=batches_dispatched,
                        rounds=rounds_generated,
                        events=len(buffer),
                    )
                    buffer = []
                    rounds_in_buffer = 0

            if buffer and not abort.is_set():
                _dispatch(buffer)
                batches_dispatched += 1
                partial_flushes += 1
                logger.info("Final insert dispatched", events=len(buffer))

            if abort.is_set():
                for future in futures:
                    future.cancel()
            wait(futures)

        failures: list[BaseException] = [
            f.exception() for f in futures if not f.cancelled() and f.exception() is not None
        ]
        if failures:
            logger.error(
                "Ledger load aborted",
                run_id=run_id,
                failed_batches=len(failures),
                rounds_generated=rounds_generated,
            )
            raise FatalLoadFailureError(
                f"Ledger load {run_id} aborted: {len(failures)} batch insert(s) failed"
            ) from failures[0]

        events_inserted: int = sum(f.result() for f in futures)
        duration: float = time.monotonic() - started
        logger.info(
            "Data generation complete",
            run_id=run_id,
            rounds=rounds_generated,
            events=events_inserted,
            batches=batches_dispatched,
            seconds=round(duration, 2),
        )
        return LoadResult(
            run_id=run_id,
            rounds_generated=rounds_generated,
            events_inserted=events_inserted,
            batches_dispatched=batches_dispatched,
            partial_flushes=partial_flushes,
            duration_seconds=duration,
        )
