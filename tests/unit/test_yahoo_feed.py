# tests/unit/test_yahoo_feed.py
"""YahooPriceFeed over httpx.MockTransport."""
import httpx
import pytest

from src.pm_feed.infrastructure.yahoo_client import YahooPriceFeed

URL = "https://feed.test/v8/finance/chart/{symbol}"


def _feed(handler) -> YahooPriceFeed:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return YahooPriceFeed(client, URL, timeout_seconds=1.0)


def _chart(price) -> dict:
    return {"chart": {"result": [{"meta": {"regularMarketPrice": price}}], "error": None}}


async def test_returns_price() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_chart(251.37))

    assert await _feed(handler).fetch_price("TSLA") == 251.37
    assert seen[0].url.path == "/v8/finance/chart/TSLA"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="oops"),
        httpx.Response(200, text="<html>"),
        httpx.Response(200, json={"chart": {"result": []}}),
        httpx.Response(200, json=_chart(None)),
        httpx.Response(200, json=_chart(-1)),
    ],
)
async def test_bad_responses_yield_none(response: httpx.Response) -> None:
    assert await _feed(lambda request: response).fetch_price("TSLA") is None


async def test_transport_error_yields_none(caplog) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    assert await _feed(handler).fetch_price("TSLA") is None
    assert "Price feed unavailable for TSLA" in caplog.text
