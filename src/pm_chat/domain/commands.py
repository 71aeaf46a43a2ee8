"""Parsing of chat input into commands: pure, no I/O.

Two kinds of input arrive from the chat transport:
  * slash commands typed by the user: /start, /status, /resolve_up, /resolve_down
  * Web-App payloads (JSON): {"type": "BET", "side": "UP"|"DOWN", "stake": number}
"""

import json
from dataclasses import dataclass
from enum import Enum

from src.pm_common.amounts import is_valid_stake
from src.pm_common.enums import Side
from src.pm_common.errors import InvalidSideError, InvalidStakeError

DEFAULT_STAKE = 1.0


class Command(str, Enum):
    START = "start"
    STATUS = "status"
    RESOLVE_UP = "resolve_up"
    RESOLVE_DOWN = "resolve_down"

    @property
    def resolution_side(self) -> Side | None:
        if self is Command.RESOLVE_UP:
            return Side.UP
        if self is Command.RESOLVE_DOWN:
            return Side.DOWN
        return None


@dataclass(frozen=True)
class BetIntent:
    side: str
    stake: float


def parse_command(text: str | None) -> Command | None:
    """'/status@MyBot extra' -> Command.STATUS; unknown or plain text -> None."""
    if not text or not text.startswith("/"):
        return None
    parts = text[1:].split(maxsplit=1)
    if not parts:
        return None
    name = parts[0].split("@", 1)[0].lower()
    try:
        return Command(name)
    except ValueError:
        return None


def parse_side(raw: object) -> str:
    """Accept 'UP'/'DOWN' and prefixed legacy forms such as 'TESLA_UP'."""
    if isinstance(raw, str):
        candidate = raw.strip().upper().rsplit("_", 1)[-1]
        if candidate in (Side.UP.value, Side.DOWN.value):
            return candidate
    raise InvalidSideError(raw)


def parse_bet_payload(raw: str) -> BetIntent | None:
    """Decode a Web-App payload; None for payloads that are not bets."""
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidStakeError("payload is not valid JSON") from exc
    if not isinstance(payload, dict) or payload.get("type") != "BET":
        return None

    side = parse_side(payload.get("side"))
    stake = payload.get("stake")
    if stake is None:
        stake = DEFAULT_STAKE
    elif isinstance(stake, str):
        try:
            stake = float(stake)
        except ValueError:
            raise InvalidStakeError(f"stake is not a number: {stake!r}") from None
    if not is_valid_stake(stake):
        raise InvalidStakeError(f"stake must be positive, got {stake!r}")
    return BetIntent(side=side, stake=float(stake))
