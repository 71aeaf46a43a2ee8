# tests/unit/test_telegram_client.py
"""TelegramClient.send_message and the update de-duplicator."""
import json
from unittest.mock import AsyncMock

import httpx
from redis.exceptions import ConnectionError as RedisConnectionError

from src.pm_chat.infrastructure.telegram_client import TelegramClient, web_app_keyboard
from src.pm_chat.infrastructure.update_dedup import RedisUpdateDeduplicator


class TestTelegramClient:
    async def test_posts_send_message(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True, "result": {}})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        tg = TelegramClient(client, "123:abc", api_base="https://tg.test")
        markup = web_app_keyboard("Open", "https://example.test/app")

        assert await tg.send_message(42, "hello", reply_markup=markup) is True

        assert seen[0].url == "https://tg.test/bot123:abc/sendMessage"
        body = json.loads(seen[0].content)
        assert body["chat_id"] == 42
        assert body["text"] == "hello"
        assert body["reply_markup"]["keyboard"][0][0]["web_app"]["url"] == "https://example.test/app"

    async def test_api_error_returns_false(self) -> None:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(403, json={"ok": False}))
        )
        assert await TelegramClient(client, "t").send_message(1, "x") is False

    async def test_transport_error_returns_false(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        assert await TelegramClient(client, "t").send_message(1, "x") is False

    async def test_long_text_truncated(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        await TelegramClient(client, "t").send_message(1, "x" * 5000)
        assert len(json.loads(seen[0].content)["text"]) == 4096


class TestRedisUpdateDeduplicator:
    async def test_first_delivery_claims_key(self) -> None:
        redis = AsyncMock()
        redis.set = AsyncMock(return_value=True)
        dedup = RedisUpdateDeduplicator(redis, ttl_seconds=60)

        assert await dedup.first_delivery(10) is True
        redis.set.assert_awaited_once_with("tg:update:10", "1", nx=True, ex=60)

    async def test_redelivery_detected(self) -> None:
        redis = AsyncMock()
        redis.set = AsyncMock(return_value=None)
        assert await RedisUpdateDeduplicator(redis).first_delivery(10) is False

    async def test_redis_down_processes_update(self) -> None:
        redis = AsyncMock()
        redis.set = AsyncMock(side_effect=RedisConnectionError("down"))
        assert await RedisUpdateDeduplicator(redis).first_delivery(10) is True
