"""Pool history reconstruction by replaying stakes in creation order."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from src.pm_common.amounts import pool_percentages
from src.pm_common.enums import Side
from src.pm_market.domain.models import Bet

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class HistoryPoint:
    """Cumulative pool state after every stake in the bucket starting at `at`."""

    at: datetime
    up_pool: float
    down_pool: float
    up_pct: float
    down_pct: float
    votes: int


def bucket_start(ts: datetime, bucket: timedelta) -> datetime:
    """Floor `ts` to a bucket boundary aligned to the UTC epoch."""
    utc_ts = ts.astimezone(timezone.utc)
    return _EPOCH + ((utc_ts - _EPOCH) // bucket) * bucket


def build_history(
    bets: Iterable[Bet],
    bucket: timedelta,
    opened_at: datetime | None = None,
) -> list[HistoryPoint]:
    if bucket <= timedelta(0):
        raise ValueError("bucket must be positive")

    points: list[HistoryPoint] = []
    opened = opened_at.astimezone(timezone.utc) if opened_at is not None else None
    if opened is not None:
        points.append(_point(opened, 0.0, 0.0, 0))

    up = down = 0.0
    votes = 0
    current: datetime | None = None
    for bet in sorted(bets, key=lambda b: (b.created_at, b.id)):
        start = bucket_start(bet.created_at, bucket)
        # The bucket holding the open starts at the open, keeping points in time order.
        if opened is not None and start < opened:
            start = opened
        if current is not None and start != current:
            points.append(_point(current, up, down, votes))
        current = start
        if bet.side == Side.UP.value:
            up += bet.stake
        else:
            down += bet.stake
        votes += 1

    if current is not None:
        points.append(_point(current, up, down, votes))
    return points


def _point(at: datetime, up: float, down: float, votes: int) -> HistoryPoint:
    up_pct, down_pct = pool_percentages(up, down)
    return HistoryPoint(
        at=at, up_pool=up, down_pool=down, up_pct=up_pct, down_pct=down_pct, votes=votes
    )
