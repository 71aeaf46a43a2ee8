"""MarketQueryService: read-only composition for the HTTP query surface.

No commit/rollback needed; all calls are plain reads.
"""

from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import MarketStatus
from src.pm_common.errors import MarketNotFoundError
from src.pm_market.application.schemas import (
    HistoryPointOut,
    HistoryResponse,
    MarketSnapshot,
)
from src.pm_market.application.service import MarketLifecycleService
from src.pm_market.domain.history import build_history
from src.pm_market.domain.models import Market
from src.pm_market.domain.repository import BetRepositoryProtocol
from src.pm_market.infrastructure.persistence import BetRepository


class MarketQueryService:
    def __init__(
        self,
        lifecycle: MarketLifecycleService,
        bet_repo: BetRepositoryProtocol | None = None,
    ) -> None:
        self._lifecycle = lifecycle
        self._bets: BetRepositoryProtocol = bet_repo or BetRepository()

    async def snapshot(self, db: AsyncSession, market_id: str) -> MarketSnapshot:
        market = await self._lifecycle.get_market(db, market_id)
        return await self._to_snapshot(db, market)

    async def current_snapshot(
        self, db: AsyncSession, now: datetime | None = None
    ) -> MarketSnapshot:
        now = now or utc_now()
        market = await self._lifecycle.get_current_market(db, now)
        if market is None:
            raise MarketNotFoundError(self._lifecycle.calendar.current_market_id(now))
        return await self._to_snapshot(db, market)

    async def latest_snapshot(
        self, db: AsyncSession, status: MarketStatus | None = None
    ) -> MarketSnapshot:
        market = await self._lifecycle.get_latest_market(db, status)
        if market is None:
            raise MarketNotFoundError(f"latest {status.value if status else 'any'}")
        return await self._to_snapshot(db, market)

    async def history(
        self, db: AsyncSession, market_id: str, bucket_minutes: int
    ) -> HistoryResponse:
        market = await self._lifecycle.get_market(db, market_id)
        bets = await self._bets.list_bets_for_market(db, market_id)
        points = build_history(
            bets, timedelta(minutes=bucket_minutes), opened_at=market.opened_at
        )
        return HistoryResponse(
            market_id=market.id,
            bucket_minutes=bucket_minutes,
            points=[HistoryPointOut.from_domain(p) for p in points],
        )

    async def _to_snapshot(self, db: AsyncSession, market: Market) -> MarketSnapshot:
        stats = await self._bets.get_bet_stats(db, market.id)
        return MarketSnapshot.from_domain(
            market, stats, self._lifecycle.calendar, self._lifecycle.fee
        )
