"""Enumeration types for the casino ledger."""

from enum import Enum


class TransactionType(str, Enum):
    """Side of a betting round."""

    WAGER = "Wager"
    PAYOUT = "Payout"


class Currency(str, Enum):
    """Currencies accepted on the ledger."""

    ETH = "ETH"
    BTC = "BTC"
    USDT = "USDT"
