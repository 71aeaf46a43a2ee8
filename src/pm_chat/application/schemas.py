"""Pydantic models for the subset of the Telegram Bot API update we consume.

Unknown fields are ignored so Bot API additions never break intake.
"""

from pydantic import BaseModel, ConfigDict, Field


class _TelegramModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TelegramUser(_TelegramModel):
    id: int
    username: str | None = None
    first_name: str | None = None


class TelegramChat(_TelegramModel):
    id: int


class WebAppData(_TelegramModel):
    data: str


class TelegramMessage(_TelegramModel):
    message_id: int
    chat: TelegramChat
    from_user: TelegramUser | None = Field(default=None, alias="from")
    text: str | None = None
    web_app_data: WebAppData | None = None


class TelegramUpdate(_TelegramModel):
    update_id: int
    message: TelegramMessage | None = None
