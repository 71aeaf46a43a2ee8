"""Price feed contract consumed by the lifecycle service.

Best effort: implementations return None instead of raising, so a feed
outage never blocks opening, locking or resolving a market.
"""

from typing import Protocol


class PriceFeedProtocol(Protocol):
    async def fetch_price(self, symbol: str) -> float | None: ...
