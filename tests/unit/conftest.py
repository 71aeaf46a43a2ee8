"""In-memory repository fakes with the same conditional-update semantics as SQL.

Each method yields to the event loop once before its check-and-set, so
coroutines started with asyncio.gather interleave the way concurrent
requests do, while every individual write stays atomic.
"""

import asyncio
from dataclasses import replace
from datetime import date, datetime

import pytest

from src.pm_common.enums import BetSettlement, MarketStatus, Side
from src.pm_market.application.service import MarketLifecycleService
from src.pm_market.domain.models import Bet, BetStats, Market


class FakeMarketRepository:
    def __init__(self) -> None:
        self.markets: dict[str, Market] = {}
        self.insert_attempts = 0

    def add(self, market: Market) -> Market:
        self.markets[market.id] = market
        return market

    async def get_market_by_id(self, db, market_id: str) -> Market | None:
        await asyncio.sleep(0)
        m = self.markets.get(market_id)
        return replace(m) if m else None

    async def get_latest_market(self, db, underlying: str, status: str | None) -> Market | None:
        await asyncio.sleep(0)
        candidates = [
            m for m in self.markets.values()
            if m.underlying == underlying and (status is None or m.status == status)
        ]
        if not candidates:
            return None
        return replace(max(candidates, key=lambda m: m.period_date))

    async def insert_market_if_absent(
        self, db, market_id: str, underlying: str, period_date: date, opened_at: datetime
    ) -> Market | None:
        await asyncio.sleep(0)
        self.insert_attempts += 1
        if market_id in self.markets:
            return None
        m = Market(
            id=market_id, underlying=underlying, period_date=period_date,
            status=MarketStatus.OPEN.value, up_pool=0.0, down_pool=0.0,
            opened_at=opened_at, locked_at=None, resolved_at=None,
        )
        self.markets[market_id] = m
        return replace(m)

    async def increment_pool(self, db, market_id: str, side: str, amount: float) -> Market | None:
        await asyncio.sleep(0)
        m = self.markets.get(market_id)
        if m is None or m.status != MarketStatus.OPEN.value:
            return None
        if side == Side.UP.value:
            m.up_pool += amount
        else:
            m.down_pool += amount
        return replace(m)

    async def lock_market(self, db, market_id: str, locked_at: datetime) -> Market | None:
        await asyncio.sleep(0)
        m = self.markets.get(market_id)
        if m is None or m.status != MarketStatus.OPEN.value:
            return None
        m.status = MarketStatus.LOCKED.value
        m.locked_at = locked_at
        return replace(m)

    async def claim_for_resolution(
        self, db, market_id: str, winning_side: str, resolved_at: datetime
    ) -> Market | None:
        await asyncio.sleep(0)
        m = self.markets.get(market_id)
        if m is None or m.status == MarketStatus.RESOLVED.value:
            return None
        m.status = MarketStatus.RESOLVED.value
        m.resolved_at = resolved_at
        m.locked_at = m.locked_at or resolved_at
        m.winning_side = winning_side
        return replace(m)

    async def set_payout_multiplier(self, db, market_id: str, multiplier: float | None) -> None:
        self.markets[market_id].payout_multiplier = multiplier

    async def set_open_price(self, db, market_id: str, price: float) -> None:
        m = self.markets[market_id]
        if m.open_price is None:
            m.open_price = price
            m.last_price = m.last_price if m.last_price is not None else price

    async def set_last_price(self, db, market_id: str, price: float) -> None:
        self.markets[market_id].last_price = price


class FakeBetRepository:
    def __init__(self) -> None:
        self.bets: list[Bet] = []

    async def insert_bet(
        self, db, market_id: str, user_id: int, side: str, stake: float, created_at: datetime
    ) -> Bet:
        await asyncio.sleep(0)
        bet = Bet(
            id=len(self.bets) + 1, user_id=user_id, market_id=market_id, side=side,
            stake=stake, payout=None, settlement=BetSettlement.PENDING.value,
            created_at=created_at,
        )
        self.bets.append(bet)
        return replace(bet)

    async def list_bets_for_market(self, db, market_id: str) -> list[Bet]:
        await asyncio.sleep(0)
        rows = [b for b in self.bets if b.market_id == market_id]
        return [replace(b) for b in sorted(rows, key=lambda b: (b.created_at, b.id))]

    async def record_settlement(
        self, db, bet_id: int, settlement: str, payout: float | None
    ) -> bool:
        bet = next((b for b in self.bets if b.id == bet_id), None)
        if bet is None or bet.settlement != BetSettlement.PENDING.value:
            return False
        bet.settlement = settlement
        bet.payout = payout
        return True

    async def get_bet_stats(self, db, market_id: str) -> BetStats:
        rows = [b for b in self.bets if b.market_id == market_id]
        return BetStats(votes=len(rows), bettors=len({b.user_id for b in rows}))

    def total(self, market_id: str, side: str) -> float:
        return sum(b.stake for b in self.bets if b.market_id == market_id and b.side == side)


class FakePriceFeed:
    def __init__(self, price: float | None = 250.0) -> None:
        self.price = price
        self.calls: list[str] = []

    async def fetch_price(self, symbol: str) -> float | None:
        self.calls.append(symbol)
        return self.price


@pytest.fixture
def markets() -> FakeMarketRepository:
    return FakeMarketRepository()


@pytest.fixture
def bets() -> FakeBetRepository:
    return FakeBetRepository()


@pytest.fixture
def feed() -> FakePriceFeed:
    return FakePriceFeed(250.0)


@pytest.fixture
def lifecycle(calendar, markets, bets, feed) -> MarketLifecycleService:
    return MarketLifecycleService(
        calendar, fee=0.02, market_repo=markets, bet_repo=bets, price_feed=feed
    )
