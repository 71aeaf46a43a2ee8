"""Unified error codes and custom exceptions.

Error code ranges:
  3xxx: Market lifecycle
  4xxx: Stake intake
  9xxx: System / infrastructure
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)
        self.market_id = market_id


class MarketNotOpenError(AppError):
    def __init__(self, market_id: str, status: str) -> None:
        super().__init__(3002, f"Market {market_id} is not open (status={status})", 409)
        self.market_id = market_id
        self.status = status


class AlreadyResolvedError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3003, f"Market already resolved: {market_id}", 409)
        self.market_id = market_id


# --- 4xxx: Stake ---

class InvalidStakeError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Invalid stake: {detail}", 422)


class InvalidSideError(AppError):
    def __init__(self, side: object) -> None:
        super().__init__(4002, f"Invalid side: {side!r} (expected UP or DOWN)", 422)


class UnknownUserError(AppError):
    def __init__(self, user_id: int) -> None:
        super().__init__(4003, f"Unknown user: {user_id}", 422)
        self.user_id = user_id


# --- 9xxx: System ---

class ForbiddenError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "forbidden", 403)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class StoreUnavailableError(AppError):
    def __init__(self) -> None:
        super().__init__(9003, "Store unavailable", 503)


class PriceFeedUnavailableError(AppError):
    """Non-fatal: callers log it and carry on with an unknown price."""

    def __init__(self, symbol: str, detail: str) -> None:
        super().__init__(9004, f"Price feed unavailable for {symbol}: {detail}", 502)
        self.symbol = symbol
