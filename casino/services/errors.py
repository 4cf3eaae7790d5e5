"""Shared exception hierarchy for casino services."""

# ── Analytics ─────────────────────────────────────────────────────────────────


class AnalyticsError(Exception):
    """Base exception for analytics queries."""


class InvalidArgumentError(AnalyticsError):
    """Malformed date, inverted range, or malformed identifier."""


class NotFoundError(AnalyticsError):
    """Valid query, but no matching aggregate row."""


class NoDataError(AnalyticsError):
    """No transactions matched the requested range."""


class StoreUnavailableError(AnalyticsError):
    """The ledger store failed to answer an aggregation or insert."""


# ── Seeding ───────────────────────────────────────────────────────────────────


class LoadError(Exception):
    """Base exception for ledger seeding errors."""


class FatalLoadFailureError(LoadError):
    """A bulk insert failed; the load was aborted."""
