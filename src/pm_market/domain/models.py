"""Domain models for pm_market: pure dataclasses, no business logic."""

from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass
class Market:
    id: str
    underlying: str
    period_date: date
    status: str
    up_pool: float
    down_pool: float
    opened_at: datetime | None
    locked_at: datetime | None
    resolved_at: datetime | None
    open_price: float | None = None
    last_price: float | None = None
    winning_side: str | None = None
    payout_multiplier: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total_pool(self) -> float:
        return self.up_pool + self.down_pool


@dataclass
class Bet:
    id: int                  # BIGSERIAL
    user_id: int
    market_id: str
    side: str                # Side value
    stake: float
    payout: float | None
    settlement: str          # BetSettlement value
    created_at: datetime


@dataclass
class BetStats:
    votes: int               # number of stakes
    bettors: int             # distinct users


@dataclass(frozen=True)
class BetPayout:
    """Settlement decision for one stake. payout is None for losing stakes."""

    bet_id: int
    user_id: int
    side: str
    stake: float
    settlement: str
    payout: float | None


@dataclass
class RollReport:
    previous_id: str
    current_id: str
    locked: bool
    created: bool
    current_status: str


@dataclass
class ResolutionOutcome:
    market: Market
    multiplier: float | None
    total_paid: float
    house_take: float
    payouts: list[BetPayout] = field(default_factory=list)

    @property
    def winners(self) -> list[BetPayout]:
        return [p for p in self.payouts if p.payout is not None and p.payout > 0]
