"""MarketRepository / BetRepository: concrete implementations of the Protocols.

All queries use raw text() SQL (no ORM).
Pool changes are in-place `SET pool = pool + :amount` increments and status
transitions are conditional on the current status, so concurrent writers can
never lose an update or double-apply a transition.
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from datetime import date, datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.enums import BetSettlement, MarketStatus, Side
from src.pm_common.errors import InternalError
from src.pm_market.domain.models import Bet, BetStats, Market

# ---------------------------------------------------------------------------
# SQL: markets
# ---------------------------------------------------------------------------

_MARKET_COLUMNS = """
    id, underlying, period_date, status,
    up_pool, down_pool,
    opened_at, locked_at, resolved_at,
    open_price, last_price,
    winning_side, payout_multiplier,
    created_at, updated_at
"""

_GET_MARKET_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE id = :market_id
""")

_LATEST_MARKET_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE underlying = :underlying
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
    ORDER BY period_date DESC
    LIMIT 1
""")

# ON CONFLICT covers both the primary key and uq_markets_underlying_period:
# of two racing creators exactly one gets a row back.
_INSERT_MARKET_SQL = text(f"""
    INSERT INTO markets
        (id, underlying, period_date, status, up_pool, down_pool, opened_at)
    VALUES
        (:market_id, :underlying, :period_date, 'OPEN', 0, 0, :opened_at)
    ON CONFLICT DO NOTHING
    RETURNING {_MARKET_COLUMNS}
""")

_INCREMENT_UP_SQL = text(f"""
    UPDATE markets
    SET up_pool = up_pool + :amount
    WHERE id = :market_id AND status = 'OPEN'
    RETURNING {_MARKET_COLUMNS}
""")

_INCREMENT_DOWN_SQL = text(f"""
    UPDATE markets
    SET down_pool = down_pool + :amount
    WHERE id = :market_id AND status = 'OPEN'
    RETURNING {_MARKET_COLUMNS}
""")

_LOCK_MARKET_SQL = text(f"""
    UPDATE markets
    SET status = 'LOCKED',
        locked_at = :locked_at
    WHERE id = :market_id AND status = 'OPEN'
    RETURNING {_MARKET_COLUMNS}
""")

_CLAIM_RESOLUTION_SQL = text(f"""
    UPDATE markets
    SET status = 'RESOLVED',
        resolved_at = :resolved_at,
        locked_at = COALESCE(locked_at, :resolved_at),
        winning_side = :winning_side
    WHERE id = :market_id AND status IN ('OPEN', 'LOCKED')
    RETURNING {_MARKET_COLUMNS}
""")

_SET_MULTIPLIER_SQL = text("""
    UPDATE markets
    SET payout_multiplier = :multiplier
    WHERE id = :market_id
""")

_SET_OPEN_PRICE_SQL = text("""
    UPDATE markets
    SET open_price = :price,
        last_price = COALESCE(last_price, :price)
    WHERE id = :market_id AND open_price IS NULL
""")

_SET_LAST_PRICE_SQL = text("""
    UPDATE markets
    SET last_price = :price
    WHERE id = :market_id
""")

# ---------------------------------------------------------------------------
# SQL: bets
# ---------------------------------------------------------------------------

_BET_COLUMNS = "id, user_id, market_id, side, stake, payout, settlement, created_at"

_INSERT_BET_SQL = text(f"""
    INSERT INTO bets (user_id, market_id, side, stake, created_at)
    VALUES (:user_id, :market_id, :side, :stake, :created_at)
    RETURNING {_BET_COLUMNS}
""")

_LIST_BETS_SQL = text(f"""
    SELECT {_BET_COLUMNS}
    FROM bets
    WHERE market_id = :market_id
    ORDER BY created_at, id
""")

_SETTLE_BET_SQL = text("""
    UPDATE bets
    SET settlement = :settlement,
        payout = :payout
    WHERE id = :bet_id AND settlement = 'PENDING'
""")

_BET_STATS_SQL = text("""
    SELECT COUNT(*) AS votes, COUNT(DISTINCT user_id) AS bettors
    FROM bets
    WHERE market_id = :market_id
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_market(row: object) -> Market:
    return Market(
        id=row.id,  # type: ignore[attr-defined]
        underlying=row.underlying,  # type: ignore[attr-defined]
        period_date=row.period_date,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        up_pool=float(row.up_pool),  # type: ignore[attr-defined]
        down_pool=float(row.down_pool),  # type: ignore[attr-defined]
        opened_at=row.opened_at,  # type: ignore[attr-defined]
        locked_at=row.locked_at,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
        open_price=row.open_price,  # type: ignore[attr-defined]
        last_price=row.last_price,  # type: ignore[attr-defined]
        winning_side=row.winning_side,  # type: ignore[attr-defined]
        payout_multiplier=row.payout_multiplier,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_bet(row: object) -> Bet:
    return Bet(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        side=row.side,  # type: ignore[attr-defined]
        stake=float(row.stake),  # type: ignore[attr-defined]
        payout=row.payout,  # type: ignore[attr-defined]
        settlement=row.settlement,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class MarketRepository:
    """Concrete market store: every write is one atomic statement."""

    async def get_market_by_id(
        self, db: AsyncSession, market_id: str
    ) -> Market | None:
        result = await db.execute(_GET_MARKET_SQL, {"market_id": market_id})
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def get_latest_market(
        self, db: AsyncSession, underlying: str, status: str | None
    ) -> Market | None:
        result = await db.execute(
            _LATEST_MARKET_SQL, {"underlying": underlying, "status": status}
        )
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def insert_market_if_absent(
        self,
        db: AsyncSession,
        market_id: str,
        underlying: str,
        period_date: date,
        opened_at: datetime,
    ) -> Market | None:
        result = await db.execute(
            _INSERT_MARKET_SQL,
            {
                "market_id": market_id,
                "underlying": underlying,
                "period_date": period_date,
                "opened_at": opened_at,
            },
        )
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def increment_pool(
        self, db: AsyncSession, market_id: str, side: str, amount: float
    ) -> Market | None:
        sql = _INCREMENT_UP_SQL if side == Side.UP.value else _INCREMENT_DOWN_SQL
        result = await db.execute(sql, {"market_id": market_id, "amount": amount})
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def lock_market(
        self, db: AsyncSession, market_id: str, locked_at: datetime
    ) -> Market | None:
        result = await db.execute(
            _LOCK_MARKET_SQL, {"market_id": market_id, "locked_at": locked_at}
        )
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def claim_for_resolution(
        self,
        db: AsyncSession,
        market_id: str,
        winning_side: str,
        resolved_at: datetime,
    ) -> Market | None:
        result = await db.execute(
            _CLAIM_RESOLUTION_SQL,
            {
                "market_id": market_id,
                "winning_side": winning_side,
                "resolved_at": resolved_at,
            },
        )
        row = result.fetchone()
        if row is None:
            return None
        market = _row_to_market(row)
        if market.status != MarketStatus.RESOLVED.value:
            raise InternalError("Resolution claim returned a non-RESOLVED row")
        return market

    async def set_payout_multiplier(
        self, db: AsyncSession, market_id: str, multiplier: float | None
    ) -> None:
        await db.execute(
            _SET_MULTIPLIER_SQL, {"market_id": market_id, "multiplier": multiplier}
        )

    async def set_open_price(
        self, db: AsyncSession, market_id: str, price: float
    ) -> None:
        await db.execute(_SET_OPEN_PRICE_SQL, {"market_id": market_id, "price": price})

    async def set_last_price(
        self, db: AsyncSession, market_id: str, price: float
    ) -> None:
        await db.execute(_SET_LAST_PRICE_SQL, {"market_id": market_id, "price": price})


class BetRepository:
    """Concrete stake ledger: append-only apart from the one settlement write."""

    async def insert_bet(
        self,
        db: AsyncSession,
        market_id: str,
        user_id: int,
        side: str,
        stake: float,
        created_at: datetime,
    ) -> Bet:
        result = await db.execute(
            _INSERT_BET_SQL,
            {
                "user_id": user_id,
                "market_id": market_id,
                "side": side,
                "stake": stake,
                "created_at": created_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Bet insert returned no rows: this should never happen")
        return _row_to_bet(row)

    async def list_bets_for_market(
        self, db: AsyncSession, market_id: str
    ) -> list[Bet]:
        result = await db.execute(_LIST_BETS_SQL, {"market_id": market_id})
        return [_row_to_bet(row) for row in result.fetchall()]

    async def record_settlement(
        self,
        db: AsyncSession,
        bet_id: int,
        settlement: str,
        payout: float | None,
    ) -> bool:
        if settlement == BetSettlement.PENDING.value:
            raise InternalError(f"Refusing to settle bet {bet_id} as PENDING")
        result = await db.execute(
            _SETTLE_BET_SQL,
            {"bet_id": bet_id, "settlement": settlement, "payout": payout},
        )
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def get_bet_stats(self, db: AsyncSession, market_id: str) -> BetStats:
        result = await db.execute(_BET_STATS_SQL, {"market_id": market_id})
        row = result.fetchone()
        if row is None:
            return BetStats(votes=0, bettors=0)
        return BetStats(votes=int(row.votes), bettors=int(row.bettors))
