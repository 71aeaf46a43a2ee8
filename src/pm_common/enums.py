"""Global enums: must match DB CHECK constraints exactly (see alembic/versions)."""

from enum import Enum


class MarketStatus(str, Enum):
    """Forward-only lifecycle: OPEN -> LOCKED -> RESOLVED."""

    OPEN = "OPEN"
    LOCKED = "LOCKED"
    RESOLVED = "RESOLVED"


class Side(str, Enum):
    UP = "UP"
    DOWN = "DOWN"


class BetSettlement(str, Enum):
    """Per-stake settlement state; distinguishes settled losers from unsettled bets."""

    PENDING = "PENDING"
    WON = "WON"
    LOST = "LOST"
    REFUNDED = "REFUNDED"
