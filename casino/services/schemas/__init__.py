"""Shared dataclasses for casino services."""

from casino.services.schemas.results import (
    DailyVolumeRow,
    GGRRow,
    LedgerEvent,
    LoadResult,
    PercentileResult,
)

__all__ = [
    "DailyVolumeRow",
    "GGRRow",
    "LedgerEvent",
    "LoadResult",
    "PercentileResult",
]
