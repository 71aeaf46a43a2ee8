"""Direct messages sent to bettors after a market resolves.

Chat ids for private conversations equal the Telegram user id, so the user id
stored on each stake is a valid send target. A user with several winning
stakes receives one message with the summed payout.
"""

import logging
from collections import defaultdict

from src.pm_chat.infrastructure.telegram_client import ChatSenderProtocol
from src.pm_common.amounts import format_amount
from src.pm_common.enums import BetSettlement
from src.pm_market.domain.models import ResolutionOutcome

logger = logging.getLogger(__name__)


class SettlementNotifier:
    def __init__(self, sender: ChatSenderProtocol) -> None:
        self._sender = sender

    async def notify(self, outcome: ResolutionOutcome) -> int:
        """Send winner and refund DMs; returns the number delivered."""
        won: dict[int, float] = defaultdict(float)
        refunded: dict[int, float] = defaultdict(float)
        for p in outcome.payouts:
            if p.payout is None:
                continue
            if p.settlement == BetSettlement.WON.value:
                won[p.user_id] += p.payout
            elif p.settlement == BetSettlement.REFUNDED.value:
                refunded[p.user_id] += p.payout

        market_id = outcome.market.id
        delivered = 0
        for user_id, total in won.items():
            text = f"🎉 You WON on {market_id}! Payout: {format_amount(total)}"
            if await self._sender.send_message(user_id, text):
                delivered += 1
        for user_id, total in refunded.items():
            text = (
                f"↩️ Nobody picked the winning side on {market_id}. "
                f"Your stake of {format_amount(total)} was refunded."
            )
            if await self._sender.send_message(user_id, text):
                delivered += 1

        expected = len(won) + len(refunded)
        if delivered < expected:
            logger.warning(
                "Settlement DMs for %s: %d of %d delivered", market_id, delivered, expected
            )
        return delivered
