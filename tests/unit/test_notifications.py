# tests/unit/test_notifications.py
"""Post-resolution direct messages."""
from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, MagicMock

from src.pm_chat.application.notifications import SettlementNotifier
from src.pm_market.domain.models import BetPayout, Market, ResolutionOutcome

NOW = datetime(2025, 11, 14, 15, 0, tzinfo=UTC)


def _outcome(payouts) -> ResolutionOutcome:
    market = Market(
        id="TSLA-2025-11-14", underlying="TSLA", period_date=date(2025, 11, 14),
        status="RESOLVED", up_pool=0, down_pool=0, opened_at=NOW, locked_at=NOW,
        resolved_at=NOW, winning_side="UP",
    )
    return ResolutionOutcome(market=market, multiplier=1.4, total_paid=0, house_take=0, payouts=payouts)


async def test_one_message_per_winner_with_summed_payout() -> None:
    sender = MagicMock()
    sender.send_message = AsyncMock(return_value=True)
    outcome = _outcome([
        BetPayout(1, 10, "UP", 5, "WON", 7.0),
        BetPayout(2, 10, "UP", 5, "WON", 7.0),
        BetPayout(3, 11, "DOWN", 5, "LOST", None),
    ])

    delivered = await SettlementNotifier(sender).notify(outcome)

    assert delivered == 1
    sender.send_message.assert_awaited_once_with(10, "🎉 You WON on TSLA-2025-11-14! Payout: 14.00")


async def test_refund_messages_and_failed_delivery_counted() -> None:
    sender = MagicMock()
    sender.send_message = AsyncMock(side_effect=[True, False])
    outcome = _outcome([
        BetPayout(1, 10, "UP", 5, "REFUNDED", 5.0),
        BetPayout(2, 11, "UP", 2, "REFUNDED", 2.0),
    ])

    assert await SettlementNotifier(sender).notify(outcome) == 1
    assert "refunded" in sender.send_message.call_args_list[0].args[1]
