# src/pm_admin/application/service.py
"""Admin application service: manual resolution and ledger reconciliation."""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_chat.application.notifications import SettlementNotifier
from src.pm_common.amounts import amounts_equal
from src.pm_market.application.schemas import ResolutionOut
from src.pm_market.application.service import MarketLifecycleService

_POOL_VS_LEDGER_SQL = text("""
    SELECT
        m.id,
        m.status,
        m.up_pool,
        m.down_pool,
        COALESCE(SUM(b.stake) FILTER (WHERE b.side = 'UP'), 0) AS ledger_up,
        COALESCE(SUM(b.stake) FILTER (WHERE b.side = 'DOWN'), 0) AS ledger_down
    FROM markets m
    LEFT JOIN bets b ON b.market_id = m.id
    WHERE m.underlying = :underlying
    GROUP BY m.id, m.status, m.up_pool, m.down_pool
    ORDER BY m.period_date
""")
_UNSETTLED_ON_RESOLVED_SQL = text("""
    SELECT b.market_id, COUNT(*) AS pending
    FROM bets b
    JOIN markets m ON m.id = b.market_id
    WHERE m.status = 'RESOLVED' AND b.settlement = 'PENDING'
      AND m.underlying = :underlying
    GROUP BY b.market_id
""")


class AdminService:
    def __init__(
        self,
        lifecycle: MarketLifecycleService,
        notifier: SettlementNotifier | None = None,
    ) -> None:
        self._lifecycle = lifecycle
        self._notifier = notifier

    async def resolve_market(
        self, market_id: str, outcome: str, db: AsyncSession
    ) -> dict[str, Any]:
        result = await self._lifecycle.resolve(db, market_id, outcome)
        notified = 0
        if self._notifier is not None:
            notified = await self._notifier.notify(result)
        return {**ResolutionOut.from_domain(result).model_dump(), "notified": notified}

    async def verify_pool_invariants(self, db: AsyncSession) -> dict[str, object]:
        """Compare each market's pools with its recorded stakes.

        Also flags RESOLVED markets that still carry PENDING stakes.
        """
        params = {"underlying": self._lifecycle.calendar.underlying}
        violations: list[str] = []
        rows = (await db.execute(_POOL_VS_LEDGER_SQL, params)).fetchall()
        for row in rows:
            if not amounts_equal(row.up_pool, row.ledger_up):
                violations.append(
                    f"{row.id}: up_pool={row.up_pool} != ledger {row.ledger_up}"
                )
            if not amounts_equal(row.down_pool, row.ledger_down):
                violations.append(
                    f"{row.id}: down_pool={row.down_pool} != ledger {row.ledger_down}"
                )
        pending = (await db.execute(_UNSETTLED_ON_RESOLVED_SQL, params)).fetchall()
        for row in pending:
            violations.append(f"{row.market_id}: {row.pending} unsettled stake(s) after resolution")
        return {
            "ok": len(violations) == 0,
            "markets_checked": len(rows),
            "violations": violations,
        }
