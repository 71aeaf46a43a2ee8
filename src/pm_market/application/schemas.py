"""Pydantic schemas for pm_market API responses.

Percentages are of the total pool (50/50 while empty). Implied multipliers
are what each side would pay per unit staked if the market resolved now.
"""

from pydantic import BaseModel, ConfigDict, Field

from src.pm_common.amounts import pool_percentages
from src.pm_common.datetime_utils import iso_or_none
from src.pm_market.domain.history import HistoryPoint
from src.pm_market.domain.models import BetStats, Market, ResolutionOutcome, RollReport
from src.pm_market.domain.period import MarketCalendar
from src.pm_market.domain.settlement import implied_multiplier

# ---------------------------------------------------------------------------
# Market snapshot
# ---------------------------------------------------------------------------


class MarketSnapshot(BaseModel):
    id: str
    underlying: str
    period_date: str
    period_start: str
    period_end: str
    status: str
    up_pool: float
    down_pool: float
    volume: float
    up_pct: float
    down_pct: float
    up_multiplier: float | None
    down_multiplier: float | None
    votes: int
    bettors: int
    opened_at: str | None
    locked_at: str | None
    resolved_at: str | None
    open_price: float | None
    last_price: float | None
    winning_side: str | None
    payout_multiplier: float | None

    @classmethod
    def from_domain(
        cls, m: Market, stats: BetStats, calendar: MarketCalendar, fee: float
    ) -> "MarketSnapshot":
        start, end = calendar.bounds(m.period_date)
        up_pct, down_pct = pool_percentages(m.up_pool, m.down_pool)
        return cls(
            id=m.id,
            underlying=m.underlying,
            period_date=m.period_date.isoformat(),
            period_start=start.isoformat(),
            period_end=end.isoformat(),
            status=m.status,
            up_pool=m.up_pool,
            down_pool=m.down_pool,
            volume=m.total_pool,
            up_pct=up_pct,
            down_pct=down_pct,
            up_multiplier=implied_multiplier(m.up_pool, m.total_pool, fee),
            down_multiplier=implied_multiplier(m.down_pool, m.total_pool, fee),
            votes=stats.votes,
            bettors=stats.bettors,
            opened_at=iso_or_none(m.opened_at),
            locked_at=iso_or_none(m.locked_at),
            resolved_at=iso_or_none(m.resolved_at),
            open_price=m.open_price,
            last_price=m.last_price,
            winning_side=m.winning_side,
            payout_multiplier=m.payout_multiplier,
        )


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


class HistoryPointOut(BaseModel):
    at: str
    up_pool: float
    down_pool: float
    up_pct: float
    down_pct: float
    votes: int

    @classmethod
    def from_domain(cls, p: HistoryPoint) -> "HistoryPointOut":
        return cls(
            at=p.at.isoformat(),
            up_pool=p.up_pool,
            down_pool=p.down_pool,
            up_pct=p.up_pct,
            down_pct=p.down_pct,
            votes=p.votes,
        )


class HistoryResponse(BaseModel):
    market_id: str
    bucket_minutes: int
    points: list[HistoryPointOut]


# ---------------------------------------------------------------------------
# Maintenance / resolution reports
# ---------------------------------------------------------------------------


class RollReportOut(BaseModel):
    """Serialized with camelCase keys: {locked, created, previousId, currentId, currentStatus}."""

    model_config = ConfigDict(populate_by_name=True)

    locked: bool
    created: bool
    previous_id: str = Field(serialization_alias="previousId")
    current_id: str = Field(serialization_alias="currentId")
    current_status: str = Field(serialization_alias="currentStatus")

    @classmethod
    def from_domain(cls, r: RollReport) -> "RollReportOut":
        return cls(
            locked=r.locked,
            created=r.created,
            previous_id=r.previous_id,
            current_id=r.current_id,
            current_status=r.current_status,
        )


class ResolutionOut(BaseModel):
    market_id: str
    winning_side: str
    multiplier: float | None
    total_paid: float
    house_take: float
    winners: int
    settled_bets: int

    @classmethod
    def from_domain(cls, o: ResolutionOutcome) -> "ResolutionOut":
        return cls(
            market_id=o.market.id,
            winning_side=o.market.winning_side or "",
            multiplier=o.multiplier,
            total_paid=o.total_paid,
            house_take=o.house_take,
            winners=len(o.winners),
            settled_bets=len(o.payouts),
        )
