"""HTTP price feed backed by Yahoo's chart endpoint.

Reads `chart.result[0].meta.regularMarketPrice`. Every failure (timeout,
non-200, malformed body) is logged as PriceFeedUnavailableError and reported
as an unknown price (None).
"""

import logging
import math

import httpx

from src.pm_common.errors import PriceFeedUnavailableError

logger = logging.getLogger(__name__)


class YahooPriceFeed:
    def __init__(
        self,
        client: httpx.AsyncClient,
        url_template: str,
        timeout_seconds: float = 5.0,
    ) -> None:
        self._client = client
        self._url_template = url_template
        self._timeout = timeout_seconds

    async def fetch_price(self, symbol: str) -> float | None:
        try:
            return await self._fetch(symbol)
        except PriceFeedUnavailableError as exc:
            logger.warning("%s", exc.message)
            return None

    async def _fetch(self, symbol: str) -> float:
        try:
            resp = await self._client.get(
                self._url_template.format(symbol=symbol),
                params={"interval": "1m", "range": "1d"},
                headers={"User-Agent": "Mozilla/5.0"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise PriceFeedUnavailableError(symbol, f"{type(exc).__name__}") from exc

        if resp.status_code != 200:
            raise PriceFeedUnavailableError(symbol, f"HTTP {resp.status_code}")

        try:
            price = float(resp.json()["chart"]["result"][0]["meta"]["regularMarketPrice"])
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise PriceFeedUnavailableError(symbol, "malformed response") from exc

        if not math.isfinite(price) or price <= 0:
            raise PriceFeedUnavailableError(symbol, f"implausible price {price}")
        return price
