# src/pm_market/domain/repository.py
"""Repository Protocols: the store contract the lifecycle service relies on.

Every mutating method is a single atomic statement: creation relies on the
(underlying, period_date) uniqueness constraint, pool changes are in-place
increments, and status transitions are compare-and-set on `status`. None of
them compute a new value from a previously fetched snapshot.

Unit tests inject fakes that conform to these Protocols.
"""

from datetime import date, datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_market.domain.models import Bet, BetStats, Market


class MarketRepositoryProtocol(Protocol):
    async def get_market_by_id(
        self, db: AsyncSession, market_id: str
    ) -> Market | None: ...

    async def get_latest_market(
        self, db: AsyncSession, underlying: str, status: str | None
    ) -> Market | None: ...

    async def insert_market_if_absent(
        self,
        db: AsyncSession,
        market_id: str,
        underlying: str,
        period_date: date,
        opened_at: datetime,
    ) -> Market | None:
        """Insert an OPEN market with empty pools; None if it already exists."""
        ...

    async def increment_pool(
        self, db: AsyncSession, market_id: str, side: str, amount: float
    ) -> Market | None:
        """Atomically add to one pool; None unless the market exists and is OPEN."""
        ...

    async def lock_market(
        self, db: AsyncSession, market_id: str, locked_at: datetime
    ) -> Market | None:
        """OPEN -> LOCKED; None if the market is missing or not OPEN."""
        ...

    async def claim_for_resolution(
        self,
        db: AsyncSession,
        market_id: str,
        winning_side: str,
        resolved_at: datetime,
    ) -> Market | None:
        """OPEN|LOCKED -> RESOLVED; None if missing or already RESOLVED."""
        ...

    async def set_payout_multiplier(
        self, db: AsyncSession, market_id: str, multiplier: float | None
    ) -> None: ...

    async def set_open_price(
        self, db: AsyncSession, market_id: str, price: float
    ) -> None:
        """Set once: no-op when open_price is already recorded."""
        ...

    async def set_last_price(
        self, db: AsyncSession, market_id: str, price: float
    ) -> None: ...


class BetRepositoryProtocol(Protocol):
    async def insert_bet(
        self,
        db: AsyncSession,
        market_id: str,
        user_id: int,
        side: str,
        stake: float,
        created_at: datetime,
    ) -> Bet: ...

    async def list_bets_for_market(
        self, db: AsyncSession, market_id: str
    ) -> list[Bet]:
        """All stakes of a market ordered by (created_at, id)."""
        ...

    async def record_settlement(
        self,
        db: AsyncSession,
        bet_id: int,
        settlement: str,
        payout: float | None,
    ) -> bool:
        """Write the settlement once; False if the bet was already settled."""
        ...

    async def get_bet_stats(self, db: AsyncSession, market_id: str) -> BetStats: ...
