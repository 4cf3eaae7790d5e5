"""Health endpoints."""

import logging
import os

from sqlalchemy import func, inspect, select
from sqlalchemy.engine import Engine

from casino.services._types import DbInfoDict
from config import DatabaseSettings, get_settings
from db.connection import REQUIRED_TABLES, get_engine
from db.models import Transactions

logger: logging.Logger = logging.getLogger(__name__)


def get_db_info() -> DbInfoDict:
    """Gather DB info. Never raises."""
    try:
        db: DatabaseSettings = get_settings().database

        if db._use_postgres():
            backend_type: str = "postgres"
            url_or_path: str | None = db._redacted_postgres_dsn()
        else:
            backend_type = "sqlite"
            url_or_path = db._resolved_sqlite_path().as_posix()

        engine: Engine = get_engine()
        existing: set[str] = set()
        count: int = 0
        try:
            existing = set(inspect(engine).get_table_names())
            if Transactions.__tablename__ in existing:
                with engine.connect() as conn:
                    count = conn.scalar(select(func.count()).select_from(Transactions)) or 0
        except Exception as e:
            logger.warning("Could not inspect DB: %s", e)

        return DbInfoDict(
            backend_type=backend_type,
            database_url_or_path=url_or_path,
            tables_present=sorted(existing),
            tables_missing=[t for t in REQUIRED_TABLES if t not in existing],
            schema_initialized=all(t in existing for t in REQUIRED_TABLES),
            transaction_count=count,
            pid=os.getpid(),
        )
    except Exception as e:
        logger.exception("Health DB check failed: %s", e)
        return DbInfoDict(
            backend_type="unknown",
            database_url_or_path=None,
            tables_present=[],
            tables_missing=list(REQUIRED_TABLES),
            schema_initialized=False,
            error=str(e),
            pid=os.getpid(),
        )
