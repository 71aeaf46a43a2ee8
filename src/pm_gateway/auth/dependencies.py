"""FastAPI dependencies guarding the non-public endpoints.

Usage:
    @router.post("/cron/daily", dependencies=[Depends(require_cron_secret)])

The maintenance trigger and admin endpoints share one secret passed as the
`secret` query parameter; the Telegram webhook optionally checks the
X-Telegram-Bot-Api-Secret-Token header set when the webhook was registered.
"""

import hmac
import logging
from typing import Annotated

from fastapi import Depends, Header, Query

from src.container import ServiceContainer, get_container
from src.pm_common.errors import ForbiddenError

logger = logging.getLogger(__name__)


def _matches(provided: str | None, expected: str) -> bool:
    if provided is None:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


async def require_cron_secret(
    container: Annotated[ServiceContainer, Depends(get_container)],
    secret: str | None = Query(None, description="Shared maintenance secret"),
) -> None:
    """Raise ForbiddenError (HTTP 403) unless `secret` matches CRON_SECRET."""
    if not _matches(secret, container.cron_secret):
        logger.warning("Rejected maintenance call: secret mismatch")
        raise ForbiddenError()


async def require_telegram_secret(
    container: Annotated[ServiceContainer, Depends(get_container)],
    x_telegram_bot_api_secret_token: Annotated[str | None, Header()] = None,
) -> None:
    """No-op when TELEGRAM_WEBHOOK_SECRET is unset."""
    expected = container.telegram_webhook_secret
    if expected is None:
        return
    if not _matches(x_telegram_bot_api_secret_token, expected):
        logger.warning("Rejected Telegram webhook call: secret token mismatch")
        raise ForbiddenError()
