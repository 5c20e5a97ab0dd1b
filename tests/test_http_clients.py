"""Tests for HTTP-based adapters."""

import asyncio
import json

import httpx
import pytest

from nutrition_aggregator.adapters.fdc_client import HttpxFdcClient
from nutrition_aggregator.adapters.off_client import HttpxOpenFoodFactsClient


def test_fdc_client_search_and_get() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path.endswith("/foods/search"):
            return httpx.Response(200, json={"foods": []})
        return httpx.Response(200, json={"fdcId": 1, "foodNutrients": []})

    transport = httpx.MockTransport(handler)
    async_client = httpx.AsyncClient(transport=transport)
    client = HttpxFdcClient(
        api_key="key",
        base_url="https://api.test",
        http_client=async_client,
    )

    search = asyncio.run(client.search_foods("rice", page_size=15))
    food = asyncio.run(client.get_food("1"))

    assert search == {"foods": []}
    assert food["fdcId"] == 1
    assert seen[0].method == "POST"
    assert json.loads(seen[0].content.decode()) == {"query": "rice", "pageSize": 15}
    assert seen[0].url.params["api_key"] == "key"
    assert seen[1].url.path == "/food/1"


def test_fdc_client_raises_on_error_status() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(500))
    client = HttpxFdcClient(
        api_key="key",
        base_url="https://api.test",
        http_client=httpx.AsyncClient(transport=transport),
    )

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.get_food("1"))


def test_off_client_search_and_get() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/cgi/search.pl":
            return httpx.Response(200, json={"products": []})
        return httpx.Response(200, json={"status": 1, "product": {}})

    transport = httpx.MockTransport(handler)
    client = HttpxOpenFoodFactsClient(
        base_url="https://off.test",
        http_client=httpx.AsyncClient(transport=transport),
    )

    search = asyncio.run(client.search_products("granola", page_size=10))
    product = asyncio.run(client.get_product("737628064502"))

    assert search == {"products": []}
    assert product["status"] == 1
    assert seen[0].url.params["search_terms"] == "granola"
    assert seen[0].url.params["json"] == "1"
    assert seen[0].url.params["page_size"] == "10"
    assert seen[1].url.path == "/api/v2/product/737628064502.json"


def test_off_client_sends_user_agent() -> None:
    client = HttpxOpenFoodFactsClient.create(
        base_url="https://off.test", user_agent="TestAgent/1.0"
    )

    assert client.http_client.headers["User-Agent"] == "TestAgent/1.0"
    asyncio.run(client.close())
