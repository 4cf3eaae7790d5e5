"""FastAPI dependencies — DB sessions."""

from db.connection import get_db as get_db  # noqa: F401  re-exported for routes
