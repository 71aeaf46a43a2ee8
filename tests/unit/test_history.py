# tests/unit/test_history.py
"""Pool history replay."""
from datetime import UTC, datetime, timedelta

import pytest

from src.pm_market.domain.history import bucket_start, build_history
from src.pm_market.domain.models import Bet

HOUR = timedelta(hours=1)


def _bet(bet_id: int, side: str, stake: float, at: datetime) -> Bet:
    return Bet(
        id=bet_id, user_id=1, market_id="TSLA-2025-11-14", side=side, stake=stake,
        payout=None, settlement="PENDING", created_at=at,
    )


class TestBucketStart:
    def test_floors_to_hour(self) -> None:
        ts = datetime(2025, 11, 14, 15, 42, 7, tzinfo=UTC)
        assert bucket_start(ts, HOUR) == datetime(2025, 11, 14, 15, 0, tzinfo=UTC)

    def test_boundary_is_inclusive(self) -> None:
        ts = datetime(2025, 11, 14, 15, 0, tzinfo=UTC)
        assert bucket_start(ts, timedelta(minutes=15)) == ts


class TestBuildHistory:
    def test_empty_market_has_only_opening_point(self) -> None:
        opened = datetime(2025, 11, 14, 14, 30, tzinfo=UTC)
        points = build_history([], HOUR, opened_at=opened)
        assert len(points) == 1
        assert points[0].at == opened
        assert (points[0].up_pct, points[0].down_pct) == (50.0, 50.0)
        assert points[0].votes == 0

    def test_cumulative_points_per_bucket(self) -> None:
        t = datetime(2025, 11, 14, 15, 5, tzinfo=UTC)
        bets = [
            _bet(1, "UP", 10, t),
            _bet(2, "DOWN", 30, t + timedelta(minutes=10)),
            _bet(3, "UP", 60, t + timedelta(hours=2)),
        ]
        points = build_history(bets, HOUR)

        assert [p.at.hour for p in points] == [15, 17]
        assert (points[0].up_pool, points[0].down_pool) == (10, 30)
        assert (points[0].up_pct, points[0].down_pct) == (25.0, 75.0)
        assert points[-1].votes == 3
        assert points[-1].up_pct == pytest.approx(70.0)

    def test_replay_order_ignores_input_order(self) -> None:
        t = datetime(2025, 11, 14, 15, 5, tzinfo=UTC)
        bets = [_bet(2, "DOWN", 1, t + HOUR), _bet(1, "UP", 3, t)]
        points = build_history(bets, HOUR)
        assert (points[0].up_pool, points[0].down_pool) == (3, 0)
        assert (points[1].up_pool, points[1].down_pool) == (3, 1)

    def test_final_point_matches_pools(self) -> None:
        t = datetime(2025, 11, 14, 15, 5, tzinfo=UTC)
        bets = [_bet(i, "UP" if i % 3 else "DOWN", 0.5 * i, t + timedelta(minutes=7 * i)) for i in range(1, 20)]
        last = build_history(bets, timedelta(minutes=30))[-1]
        assert last.up_pool == pytest.approx(sum(b.stake for b in bets if b.side == "UP"))
        assert last.down_pool == pytest.approx(sum(b.stake for b in bets if b.side == "DOWN"))

    def test_first_bucket_never_precedes_open(self) -> None:
        # opened at a half hour, hourly buckets floor the first stake to 14:00
        opened = datetime(2025, 11, 14, 14, 30, tzinfo=UTC)
        bets = [
            _bet(1, "UP", 2, opened + timedelta(minutes=5)),
            _bet(2, "DOWN", 2, opened + timedelta(minutes=50)),
        ]
        points = build_history(bets, HOUR, opened_at=opened)

        stamps = [p.at for p in points]
        assert stamps == sorted(stamps)
        assert stamps == [opened, opened, datetime(2025, 11, 14, 15, 0, tzinfo=UTC)]
        assert (points[1].up_pool, points[1].down_pool) == (2, 0)
        assert points[2].votes == 2

    def test_rejects_non_positive_bucket(self) -> None:
        with pytest.raises(ValueError):
            build_history([], timedelta(0))
