"""MarketLifecycleService: the OPEN -> LOCKED -> RESOLVED state machine.

Every mutating method runs inside `unit_of_work(db)`: the service owns the
transaction, commits on success and rolls back on any error. Price-feed calls
happen outside transactions and never fail an operation.
"""

import logging
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.amounts import is_valid_stake
from src.pm_common.database import unit_of_work
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import MarketStatus, Side
from src.pm_common.errors import (
    AlreadyResolvedError,
    InternalError,
    InvalidSideError,
    InvalidStakeError,
    MarketNotFoundError,
    MarketNotOpenError,
    UnknownUserError,
)
from src.pm_feed.domain.protocol import PriceFeedProtocol
from src.pm_market.domain.models import Bet, Market, ResolutionOutcome, RollReport
from src.pm_market.domain.period import MarketCalendar, previous_period
from src.pm_market.domain.repository import (
    BetRepositoryProtocol,
    MarketRepositoryProtocol,
)
from src.pm_market.domain.settlement import compute_settlement
from src.pm_market.infrastructure.persistence import BetRepository, MarketRepository

logger = logging.getLogger(__name__)


def parse_side(side: object) -> str:
    """Normalise 'up'/'UP'/Side.UP to 'UP'; anything else is rejected."""
    if isinstance(side, Side):
        return side.value
    if isinstance(side, str):
        try:
            return Side(side.strip().upper()).value
        except ValueError:
            pass
    raise InvalidSideError(side)


class MarketLifecycleService:
    def __init__(
        self,
        calendar: MarketCalendar,
        fee: float,
        refund_when_no_winners: bool = False,
        market_repo: MarketRepositoryProtocol | None = None,
        bet_repo: BetRepositoryProtocol | None = None,
        price_feed: PriceFeedProtocol | None = None,
    ) -> None:
        if not (0 <= fee < 1):
            raise ValueError(f"fee must satisfy 0 <= fee < 1, got {fee}")
        self._calendar = calendar
        self._fee = fee
        self._refund_when_no_winners = refund_when_no_winners
        self._markets: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._bets: BetRepositoryProtocol = bet_repo or BetRepository()
        self._price_feed = price_feed

    @property
    def calendar(self) -> MarketCalendar:
        return self._calendar

    @property
    def fee(self) -> float:
        return self._fee

    # ------------------------------------------------------------------
    # Creation / intake
    # ------------------------------------------------------------------

    async def ensure_open_market(
        self,
        db: AsyncSession,
        period: date | None = None,
        now: datetime | None = None,
    ) -> Market:
        """Fetch-or-create the market for `period` (default: current period).

        An existing market that is no longer OPEN is never reopened.
        """
        now = now or utc_now()
        period = period or self._calendar.current_period(now)
        async with unit_of_work(db):
            market, created = await self._fetch_or_create(db, period, now)

        if market.status != MarketStatus.OPEN.value:
            raise MarketNotOpenError(market.id, market.status)
        if created:
            await self._capture_open_price(db, market)
        return market

    async def place_stake(
        self,
        db: AsyncSession,
        market_id: str,
        user_id: int,
        side: object,
        amount: object,
        now: datetime | None = None,
    ) -> tuple[Bet, Market]:
        """Record a stake and grow its pool in one transaction."""
        side_value = parse_side(side)
        if not is_valid_stake(amount):
            raise InvalidStakeError(f"amount must be a positive number, got {amount!r}")
        stake = float(amount)  # type: ignore[arg-type]
        now = now or utc_now()

        async with unit_of_work(db):
            market = await self._markets.increment_pool(db, market_id, side_value, stake)
            if market is None:
                existing = await self._markets.get_market_by_id(db, market_id)
                if existing is None:
                    raise MarketNotFoundError(market_id)
                raise MarketNotOpenError(market_id, existing.status)
            try:
                bet = await self._bets.insert_bet(
                    db, market_id, user_id, side_value, stake, now
                )
            except IntegrityError as exc:
                # market_id was just matched, so the failing reference is the user
                raise UnknownUserError(user_id) from exc

        logger.info(
            "Stake placed: market=%s user=%s side=%s stake=%s pools=UP %s / DOWN %s",
            market_id, user_id, side_value, stake, market.up_pool, market.down_pool,
        )
        return bet, market

    # ------------------------------------------------------------------
    # Scheduled transitions
    # ------------------------------------------------------------------

    async def roll_period(
        self, db: AsyncSession, now: datetime | None = None
    ) -> RollReport:
        """Lock the previous period's market (if still OPEN) and ensure the current one.

        Safe to invoke repeatedly: LOCKED/RESOLVED markets are left untouched
        and an existing current market is reused whatever its status.
        """
        now = now or utc_now()
        current = self._calendar.current_period(now)
        previous_id = self._calendar.market_id(previous_period(current))
        current_id = self._calendar.market_id(current)

        async with unit_of_work(db):
            locked = await self._markets.lock_market(db, previous_id, now)
            market, created = await self._fetch_or_create(db, current, now)

        if locked is not None:
            logger.info("Market locked: %s", previous_id)
        if created:
            await self._capture_open_price(db, market)
        elif market.status == MarketStatus.OPEN.value:
            await self.refresh_last_price(db, market.id)

        return RollReport(
            previous_id=previous_id,
            current_id=current_id,
            locked=locked is not None,
            created=created,
            current_status=market.status,
        )

    async def resolve(
        self,
        db: AsyncSession,
        market_id: str,
        winning_side: object,
        now: datetime | None = None,
    ) -> ResolutionOutcome:
        """Settle every stake and move the market to RESOLVED, exactly once.

        The status claim is a conditional update, so of two concurrent
        resolvers only one ever reaches the payout writes.
        """
        side_value = parse_side(winning_side)
        now = now or utc_now()

        async with unit_of_work(db):
            market = await self._markets.claim_for_resolution(db, market_id, side_value, now)
            if market is None:
                existing = await self._markets.get_market_by_id(db, market_id)
                if existing is None:
                    raise MarketNotFoundError(market_id)
                raise AlreadyResolvedError(market_id)

            bets = await self._bets.list_bets_for_market(db, market_id)
            result = compute_settlement(
                market.up_pool,
                market.down_pool,
                side_value,
                bets,
                self._fee,
                self._refund_when_no_winners,
            )
            for decision in result.payouts:
                written = await self._bets.record_settlement(
                    db, decision.bet_id, decision.settlement, decision.payout
                )
                if not written:
                    raise InternalError(f"Bet {decision.bet_id} was already settled")
            await self._markets.set_payout_multiplier(db, market_id, result.multiplier)

        market.payout_multiplier = result.multiplier
        logger.info(
            "Market resolved: %s side=%s multiplier=%s paid=%.2f house=%.2f stakes=%d",
            market_id, side_value, result.multiplier, result.total_paid,
            result.house_take, len(result.payouts),
        )
        return ResolutionOutcome(
            market=market,
            multiplier=result.multiplier,
            total_paid=result.total_paid,
            house_take=result.house_take,
            payouts=result.payouts,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_market(self, db: AsyncSession, market_id: str) -> Market:
        market = await self._markets.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    async def get_current_market(
        self, db: AsyncSession, now: datetime | None = None
    ) -> Market | None:
        """Market of the period `now` falls in, if it has been created."""
        market_id = self._calendar.current_market_id(now or utc_now())
        return await self._markets.get_market_by_id(db, market_id)

    async def get_latest_market(
        self, db: AsyncSession, status: MarketStatus | None = None
    ) -> Market | None:
        """Most recent market by period, optionally restricted to one status.

        A fallback lookup only; it says nothing about which period is current.
        """
        return await self._markets.get_latest_market(
            db, self._calendar.underlying, status.value if status else None
        )

    async def list_bets(self, db: AsyncSession, market_id: str) -> list[Bet]:
        return await self._bets.list_bets_for_market(db, market_id)

    # ------------------------------------------------------------------
    # Prices
    # ------------------------------------------------------------------

    async def refresh_last_price(self, db: AsyncSession, market_id: str) -> float | None:
        """Poll the feed into `last_price`; None (and no write) when the feed is down."""
        if self._price_feed is None:
            return None
        price = await self._price_feed.fetch_price(self._calendar.underlying)
        if price is None:
            return None
        async with unit_of_work(db):
            await self._markets.set_last_price(db, market_id, price)
        return price

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _fetch_or_create(
        self, db: AsyncSession, period: date, now: datetime
    ) -> tuple[Market, bool]:
        market_id = self._calendar.market_id(period)
        market = await self._markets.insert_market_if_absent(
            db, market_id, self._calendar.underlying, period, now
        )
        if market is not None:
            logger.info("Market created: %s", market_id)
            return market, True

        existing = await self._markets.get_market_by_id(db, market_id)
        if existing is None:
            raise InternalError(f"Market {market_id} neither inserted nor found")
        return existing, False

    async def _capture_open_price(self, db: AsyncSession, market: Market) -> None:
        if self._price_feed is None:
            return
        price = await self._price_feed.fetch_price(self._calendar.underlying)
        if price is None:
            return
        async with unit_of_work(db):
            await self._markets.set_open_price(db, market.id, price)
        market.open_price = price
        if market.last_price is None:
            market.last_price = price
