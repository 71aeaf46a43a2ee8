# tests/unit/test_market_persistence.py
"""Unit tests for MarketRepository / BetRepository using a mocked AsyncSession."""
from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pm_common.errors import InternalError
from src.pm_market.infrastructure.persistence import (
    _CLAIM_RESOLUTION_SQL,
    _INCREMENT_DOWN_SQL,
    _INCREMENT_UP_SQL,
    BetRepository,
    MarketRepository,
)

_NOW = datetime(2025, 11, 14, 15, 0, tzinfo=UTC)


def _make_market_row(**kwargs):
    """Build a mock DB row with all required fields."""
    row = MagicMock()
    row.id = kwargs.get("id", "TSLA-2025-11-14")
    row.underlying = "TSLA"
    row.period_date = date(2025, 11, 14)
    row.status = kwargs.get("status", "OPEN")
    row.up_pool = kwargs.get("up_pool", 0.0)
    row.down_pool = kwargs.get("down_pool", 0.0)
    row.opened_at = _NOW
    row.locked_at = None
    row.resolved_at = kwargs.get("resolved_at")
    row.open_price = None
    row.last_price = None
    row.winning_side = kwargs.get("winning_side")
    row.payout_multiplier = None
    row.created_at = _NOW
    row.updated_at = _NOW
    return row


def _make_bet_row(**kwargs):
    row = MagicMock()
    row.id = kwargs.get("id", 1)
    row.user_id = kwargs.get("user_id", 42)
    row.market_id = "TSLA-2025-11-14"
    row.side = kwargs.get("side", "UP")
    row.stake = kwargs.get("stake", 10.0)
    row.payout = None
    row.settlement = "PENDING"
    row.created_at = _NOW
    return row


def _result(one=None, all_=None, rowcount=None):
    result = MagicMock()
    result.fetchone.return_value = one
    result.fetchall.return_value = all_ or []
    result.rowcount = rowcount
    return result


@pytest.fixture
def db():
    return MagicMock()


class TestGetMarketById:
    @pytest.mark.asyncio
    async def test_returns_market_when_found(self, db):
        db.execute = AsyncMock(return_value=_result(_make_market_row(up_pool=7.5)))

        market = await MarketRepository().get_market_by_id(db, "TSLA-2025-11-14")

        assert market is not None
        assert market.id == "TSLA-2025-11-14"
        assert market.up_pool == 7.5
        assert market.total_pool == 7.5

    @pytest.mark.asyncio
    async def test_returns_none_when_not_found(self, db):
        db.execute = AsyncMock(return_value=_result(None))
        assert await MarketRepository().get_market_by_id(db, "TSLA-1999-01-01") is None


class TestInsertMarketIfAbsent:
    @pytest.mark.asyncio
    async def test_conflict_returns_none(self, db):
        db.execute = AsyncMock(return_value=_result(None))
        market = await MarketRepository().insert_market_if_absent(
            db, "TSLA-2025-11-14", "TSLA", date(2025, 11, 14), _NOW
        )
        assert market is None
        params = db.execute.call_args[0][1]
        assert params == {
            "market_id": "TSLA-2025-11-14",
            "underlying": "TSLA",
            "period_date": date(2025, 11, 14),
            "opened_at": _NOW,
        }


class TestIncrementPool:
    @pytest.mark.asyncio
    async def test_up_uses_up_statement(self, db):
        db.execute = AsyncMock(return_value=_result(_make_market_row(up_pool=5.0)))
        market = await MarketRepository().increment_pool(db, "TSLA-2025-11-14", "UP", 5.0)
        assert market is not None and market.up_pool == 5.0
        sql, params = db.execute.call_args[0]
        assert sql is _INCREMENT_UP_SQL
        assert params == {"market_id": "TSLA-2025-11-14", "amount": 5.0}

    @pytest.mark.asyncio
    async def test_down_uses_down_statement(self, db):
        db.execute = AsyncMock(return_value=_result(_make_market_row(down_pool=2.0)))
        await MarketRepository().increment_pool(db, "TSLA-2025-11-14", "DOWN", 2.0)
        assert db.execute.call_args[0][0] is _INCREMENT_DOWN_SQL

    @pytest.mark.asyncio
    async def test_not_open_returns_none(self, db):
        db.execute = AsyncMock(return_value=_result(None))
        assert await MarketRepository().increment_pool(db, "TSLA-2025-11-14", "UP", 1.0) is None

    def test_increment_is_conditional_on_open(self):
        assert "status = 'OPEN'" in str(_INCREMENT_UP_SQL)
        assert "up_pool = up_pool + :amount" in str(_INCREMENT_UP_SQL)


class TestClaimForResolution:
    @pytest.mark.asyncio
    async def test_claim_returns_resolved_market(self, db):
        row = _make_market_row(status="RESOLVED", winning_side="UP", resolved_at=_NOW)
        db.execute = AsyncMock(return_value=_result(row))
        market = await MarketRepository().claim_for_resolution(db, "TSLA-2025-11-14", "UP", _NOW)
        assert market is not None
        assert market.winning_side == "UP"

    @pytest.mark.asyncio
    async def test_lost_claim_returns_none(self, db):
        db.execute = AsyncMock(return_value=_result(None))
        assert await MarketRepository().claim_for_resolution(db, "TSLA-2025-11-14", "UP", _NOW) is None

    def test_claim_only_from_open_or_locked(self):
        assert "status IN ('OPEN', 'LOCKED')" in str(_CLAIM_RESOLUTION_SQL)


class TestBetRepository:
    @pytest.mark.asyncio
    async def test_insert_bet(self, db):
        db.execute = AsyncMock(return_value=_result(_make_bet_row(id=7)))
        bet = await BetRepository().insert_bet(db, "TSLA-2025-11-14", 42, "UP", 10.0, _NOW)
        assert bet.id == 7
        assert bet.settlement == "PENDING"
        assert db.execute.call_args[0][1]["user_id"] == 42

    @pytest.mark.asyncio
    async def test_insert_bet_without_row_raises(self, db):
        db.execute = AsyncMock(return_value=_result(None))
        with pytest.raises(InternalError):
            await BetRepository().insert_bet(db, "TSLA-2025-11-14", 42, "UP", 10.0, _NOW)

    @pytest.mark.asyncio
    async def test_list_bets(self, db):
        rows = [_make_bet_row(id=i) for i in range(1, 4)]
        db.execute = AsyncMock(return_value=_result(all_=rows))
        bets = await BetRepository().list_bets_for_market(db, "TSLA-2025-11-14")
        assert [b.id for b in bets] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_record_settlement_reports_write(self, db):
        db.execute = AsyncMock(return_value=_result(rowcount=1))
        assert await BetRepository().record_settlement(db, 1, "WON", 14.0) is True
        assert db.execute.call_args[0][1] == {"bet_id": 1, "settlement": "WON", "payout": 14.0}

    @pytest.mark.asyncio
    async def test_record_settlement_already_settled(self, db):
        db.execute = AsyncMock(return_value=_result(rowcount=0))
        assert await BetRepository().record_settlement(db, 1, "LOST", None) is False

    @pytest.mark.asyncio
    async def test_record_settlement_rejects_pending(self, db):
        db.execute = AsyncMock()
        with pytest.raises(InternalError):
            await BetRepository().record_settlement(db, 1, "PENDING", None)
        db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_stats(self, db):
        row = MagicMock()
        row.votes = 5
        row.bettors = 3
        db.execute = AsyncMock(return_value=_result(row))
        stats = await BetRepository().get_bet_stats(db, "TSLA-2025-11-14")
        assert (stats.votes, stats.bettors) == (5, 3)
