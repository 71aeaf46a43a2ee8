"""Telegram webhook intake.

POST /telegram/webhook  one Bot API update per call

Always answers 200 once the update parsed: failures are reported to the user
in the chat, and a non-2xx would make Telegram redeliver the same update.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.container import ServiceContainer, get_container, get_db_session
from src.pm_chat.application.schemas import TelegramUpdate
from src.pm_gateway.auth.dependencies import require_telegram_secret

router = APIRouter(prefix="/telegram", tags=["telegram"])


@router.post("/webhook", dependencies=[Depends(require_telegram_secret)])
async def telegram_webhook(
    update: TelegramUpdate,
    container: Annotated[ServiceContainer, Depends(get_container)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> dict[str, bool]:
    await container.chat.handle_update(db, update)
    return {"ok": True}
