"""ChatBotService: turns one Telegram update into market operations and replies.

Handling is best effort end to end: every failure is answered with a short
apology in the chat and the update is still acknowledged, so Telegram does
not redeliver it. Committed work is never undone by a failed reply.
"""

import logging
from collections.abc import Collection

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_chat.application.notifications import SettlementNotifier
from src.pm_chat.application.schemas import TelegramMessage, TelegramUpdate
from src.pm_chat.domain.commands import Command, parse_bet_payload, parse_command
from src.pm_chat.infrastructure.telegram_client import (
    ChatSenderProtocol,
    web_app_keyboard,
)
from src.pm_chat.infrastructure.update_dedup import UpdateDeduplicatorProtocol
from src.pm_common.amounts import format_amount, pool_percentages
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import MarketStatus, Side
from src.pm_common.errors import (
    AlreadyResolvedError,
    AppError,
    InvalidSideError,
    InvalidStakeError,
    MarketNotFoundError,
    MarketNotOpenError,
)
from src.pm_gateway.user.service import UserService
from src.pm_market.application.service import MarketLifecycleService
from src.pm_market.domain.models import Market

logger = logging.getLogger(__name__)

MSG_BET_FAILED = "❌ Error saving your bet."
MSG_STATUS_FAILED = "❌ Error loading market status."
MSG_RESOLVE_FAILED = "❌ Error resolving the market."
MSG_GENERIC_FAILURE = "❌ Something went wrong, please try again later."
MSG_NOT_ALLOWED = "⛔ You are not allowed to resolve markets."


class ChatBotService:
    def __init__(
        self,
        lifecycle: MarketLifecycleService,
        sender: ChatSenderProtocol,
        dedup: UpdateDeduplicatorProtocol,
        web_app_url: str,
        resolver_user_ids: Collection[int] = (),
        user_service: UserService | None = None,
        notifier: SettlementNotifier | None = None,
    ) -> None:
        self._lifecycle = lifecycle
        self._sender = sender
        self._dedup = dedup
        self._web_app_url = web_app_url
        self._resolvers = frozenset(resolver_user_ids)
        self._users = user_service or UserService()
        self._notifier = notifier or SettlementNotifier(sender)

    async def handle_update(self, db: AsyncSession, update: TelegramUpdate) -> None:
        message = update.message
        if message is None:
            return
        if not await self._dedup.first_delivery(update.update_id):
            logger.info("Skipping redelivered update %s", update.update_id)
            return

        try:
            await self._dispatch(db, message)
        except Exception:
            logger.exception("Unhandled error for update %s", update.update_id)
            await self._sender.send_message(message.chat.id, MSG_GENERIC_FAILURE)

    async def _dispatch(self, db: AsyncSession, message: TelegramMessage) -> None:
        if message.web_app_data is not None:
            await self._handle_web_app_data(db, message)
            return

        command = parse_command(message.text)
        if command is Command.START:
            await self._handle_start(message)
        elif command is Command.STATUS:
            await self._handle_status(db, message)
        elif command is not None and command.resolution_side is not None:
            await self._handle_resolve(db, message, command.resolution_side)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def _handle_start(self, message: TelegramMessage) -> None:
        underlying = self._lifecycle.calendar.underlying
        await self._sender.send_message(
            message.chat.id,
            f"⚡ Welcome!\nPredict {underlying}: will it go UP or DOWN?",
            reply_markup=web_app_keyboard("🚀 Open the Mini-App", self._web_app_url),
        )

    async def _handle_status(self, db: AsyncSession, message: TelegramMessage) -> None:
        chat_id = message.chat.id
        try:
            market = await self._lifecycle.get_current_market(db)
            if market is None:
                market = await self._lifecycle.get_latest_market(db)
        except AppError:
            logger.exception("Status lookup failed for chat %s", chat_id)
            await self._sender.send_message(chat_id, MSG_STATUS_FAILED)
            return

        if market is None:
            current_id = self._lifecycle.calendar.current_market_id(utc_now())
            await self._sender.send_message(chat_id, f"No market yet for today ({current_id}).")
            return
        await self._sender.send_message(chat_id, _format_status(market))

    async def _handle_resolve(
        self, db: AsyncSession, message: TelegramMessage, side: Side
    ) -> None:
        chat_id = message.chat.id
        user_id = message.from_user.id if message.from_user else None
        if self._resolvers and user_id not in self._resolvers:
            logger.warning("Resolve refused for user %s", user_id)
            await self._sender.send_message(chat_id, MSG_NOT_ALLOWED)
            return

        try:
            target = await self._resolution_target(db)
            if target is None:
                current_id = self._lifecycle.calendar.current_market_id(utc_now())
                await self._sender.send_message(chat_id, f"No market for today ({current_id}).")
                return
            outcome = await self._lifecycle.resolve(db, target.id, side)
        except AlreadyResolvedError as exc:
            await self._sender.send_message(chat_id, f"Market {exc.market_id} is already resolved.")
            return
        except AppError:
            logger.exception("Resolve failed via chat %s", chat_id)
            await self._sender.send_message(chat_id, MSG_RESOLVE_FAILED)
            return

        await self._notifier.notify(outcome)
        summary = f"Market {outcome.market.id} resolved as {side.value}."
        if outcome.multiplier is not None:
            summary += f"\nMultiplier: x{outcome.multiplier:.4f} · winners: {len(outcome.winners)}"
        await self._sender.send_message(chat_id, summary)

    async def _resolution_target(self, db: AsyncSession) -> Market | None:
        """Most recent LOCKED market, else the current-period market."""
        locked = await self._lifecycle.get_latest_market(db, MarketStatus.LOCKED)
        if locked is not None:
            return locked
        return await self._lifecycle.get_current_market(db)

    # ------------------------------------------------------------------
    # Web-App bets
    # ------------------------------------------------------------------

    async def _handle_web_app_data(self, db: AsyncSession, message: TelegramMessage) -> None:
        chat_id = message.chat.id
        sender = message.from_user
        if sender is None or message.web_app_data is None:
            return

        try:
            intent = parse_bet_payload(message.web_app_data.data)
            if intent is None:
                return
            await self._users.upsert(db, sender.id, sender.username, sender.first_name)
            market = await self._lifecycle.ensure_open_market(db)
            _, market = await self._lifecycle.place_stake(
                db, market.id, sender.id, intent.side, intent.stake
            )
        except MarketNotOpenError as exc:
            await self._sender.send_message(chat_id, f"❌ Market {exc.market_id} is not open.")
            return
        except (InvalidSideError, InvalidStakeError) as exc:
            logger.info("Rejected bet from user %s: %s", sender.id, exc.message)
            await self._sender.send_message(chat_id, f"❌ {exc.message}")
            return
        except MarketNotFoundError:
            await self._sender.send_message(chat_id, MSG_BET_FAILED)
            return
        except AppError:
            logger.exception("Bet intake failed for user %s", sender.id)
            await self._sender.send_message(chat_id, MSG_BET_FAILED)
            return

        await self._sender.send_message(
            chat_id,
            f"Got it ✅ You chose {intent.side} with stake {format_amount(intent.stake)} "
            f"on {market.id}\nCurrent pool → UP: {format_amount(market.up_pool)} | "
            f"DOWN: {format_amount(market.down_pool)}",
        )


def _format_status(market: Market) -> str:
    up_pct, down_pct = pool_percentages(market.up_pool, market.down_pool)
    lines = [
        f"📊 Market {market.id}",
        f"Status: {market.status}",
        f"UP pool: {format_amount(market.up_pool)} ({up_pct:.0f}%)",
        f"DOWN pool: {format_amount(market.down_pool)} ({down_pct:.0f}%)",
        f"Opened at: {market.opened_at.isoformat() if market.opened_at else 'n/a'}",
    ]
    if market.winning_side:
        lines.append(f"Winner: {market.winning_side}")
    return "\n".join(lines)

