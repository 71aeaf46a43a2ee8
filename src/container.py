"""Process-wide dependency graph, built once in the FastAPI lifespan.

Routers reach services through `get_container` / `get_db_session` so tests can
swap either with `app.dependency_overrides`.
"""

from collections.abc import AsyncIterator
from dataclasses import dataclass
from zoneinfo import ZoneInfo

import httpx
import redis.asyncio as aioredis
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from config.settings import Settings
from src.pm_admin.application.service import AdminService
from src.pm_chat.application.notifications import SettlementNotifier
from src.pm_chat.application.service import ChatBotService
from src.pm_chat.infrastructure.telegram_client import TelegramClient
from src.pm_chat.infrastructure.update_dedup import RedisUpdateDeduplicator
from src.pm_common.database import build_engine, build_session_factory
from src.pm_common.redis_client import build_redis
from src.pm_feed.infrastructure.yahoo_client import YahooPriceFeed
from src.pm_market.application.query_service import MarketQueryService
from src.pm_market.application.service import MarketLifecycleService
from src.pm_market.domain.period import MarketCalendar


@dataclass
class ServiceContainer:
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    http_client: httpx.AsyncClient
    redis: aioredis.Redis
    lifecycle: MarketLifecycleService
    queries: MarketQueryService
    admin: AdminService
    chat: ChatBotService
    cron_secret: str
    telegram_webhook_secret: str | None
    history_bucket_minutes: int

    async def aclose(self) -> None:
        await self.http_client.aclose()
        await self.redis.aclose()
        await self.engine.dispose()


def build_container(settings: Settings) -> ServiceContainer:
    engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
    http_client = httpx.AsyncClient()
    redis = build_redis(settings.REDIS_URL)

    calendar = MarketCalendar(
        underlying=settings.UNDERLYING,
        zone=ZoneInfo(settings.REFERENCE_TZ),
        cutover=settings.CUTOVER_TIME,
    )
    price_feed = YahooPriceFeed(
        http_client,
        settings.PRICE_FEED_URL,
        timeout_seconds=settings.PRICE_FEED_TIMEOUT_SECONDS,
    )
    lifecycle = MarketLifecycleService(
        calendar,
        settings.FEE,
        refund_when_no_winners=settings.REFUND_WHEN_NO_WINNERS,
        price_feed=price_feed,
    )
    telegram = TelegramClient(
        http_client, settings.BOT_TOKEN, api_base=settings.TELEGRAM_API_BASE
    )
    notifier = SettlementNotifier(telegram)
    chat = ChatBotService(
        lifecycle,
        telegram,
        RedisUpdateDeduplicator(redis, ttl_seconds=settings.UPDATE_DEDUP_TTL_SECONDS),
        web_app_url=settings.WEB_APP_URL,
        resolver_user_ids=settings.RESOLVER_USER_IDS,
        notifier=notifier,
    )
    return ServiceContainer(
        engine=engine,
        session_factory=build_session_factory(engine),
        http_client=http_client,
        redis=redis,
        lifecycle=lifecycle,
        queries=MarketQueryService(lifecycle),
        admin=AdminService(lifecycle, notifier=notifier),
        chat=chat,
        cron_secret=settings.CRON_SECRET,
        telegram_webhook_secret=settings.TELEGRAM_WEBHOOK_SECRET,
        history_bucket_minutes=settings.HISTORY_BUCKET_MINUTES,
    )


def get_container(request: Request) -> ServiceContainer:
    """FastAPI dependency: the container stored on app.state by the lifespan."""
    return request.app.state.container


async def get_db_session(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one AsyncSession per request.

    Services own their transactions via unit_of_work; the session is only
    closed here.
    """
    async with get_container(request).session_factory() as session:
        yield session
