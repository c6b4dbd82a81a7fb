from __future__ import annotations

import asyncio
import json
from collections.abc import Callable  # noqa: TC003

import httpx
import pytest

from compwise.adapters.http_resilience import (
    CacheConfig,
    RateLimit,
    ResilienceConfig,
    ResilientClient,
)
from compwise.adapters.http_transport import HttpDocumentTransport, encode_path
from compwise.config import RetryPolicy
from compwise.domain.catalog import CatalogLoader
from compwise.domain.entities import EntityLoader

BASE_URL = "https://example.org/repo/"
SHEET = (
    "category,title,frequencyScore,acceptanceRatio,link,tags\n"
    "EASY,Two Sum,90,0.5,https://leetcode.com/problems/two-sum,Array\n"
)


def _make_transport(
    handler: Callable[[httpx.Request], httpx.Response],
    *,
    ratelimit: RateLimit | None = None,
) -> HttpDocumentTransport:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    config = ResilienceConfig(name="test", base_url=BASE_URL, ratelimit=ratelimit, cache=None)
    return HttpDocumentTransport.from_config(
        config, transport=httpx.MockTransport(async_handler)
    )


def _serve(documents: dict[str, str]) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/repo/")
        if path not in documents:
            return httpx.Response(404)
        body = documents[path] if request.method == "GET" else ""
        return httpx.Response(200, text=body)

    return handler


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("data/companies.json", "data/companies.json"),
        (
            "company-wise-problems/Goldman Sachs/5. All.csv",
            "company-wise-problems/Goldman%20Sachs/5.%20All.csv",
        ),
        ("https://cdn.example.org/a b.csv", "https://cdn.example.org/a b.csv"),
    ],
)
def test_encode_path(path: str, expected: str) -> None:
    assert encode_path(path) == expected


def test_fetch_returns_body_and_status() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, text=SHEET)

    transport = _make_transport(handler)

    async def run() -> None:
        async with transport:
            response = await transport.fetch("company-wise-problems/Goldman Sachs/5. All.csv")
        assert response.ok
        assert response.body == SHEET
        assert response.path == "company-wise-problems/Goldman Sachs/5. All.csv"

    asyncio.run(run())

    assert seen == [f"{BASE_URL}company-wise-problems/Goldman%20Sachs/5.%20All.csv"]


def test_fetch_reports_error_status_without_raising() -> None:
    transport = _make_transport(lambda request: httpx.Response(503))

    async def run() -> None:
        async with transport:
            response = await transport.fetch("data/companies.json")
        assert response.status_code == 503
        assert not response.ok

    asyncio.run(run())


def test_exists_uses_head_requests() -> None:
    methods: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return _serve({"a.csv": "x"})(request)

    transport = _make_transport(handler)

    async def run() -> None:
        async with transport:
            assert await transport.exists("a.csv") is True
            assert await transport.exists("b.csv") is False

    asyncio.run(run())

    assert methods == ["HEAD", "HEAD"]


def test_exists_treats_network_errors_as_absent() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    transport = _make_transport(handler)

    async def run() -> None:
        async with transport:
            assert await transport.exists("a.csv") is False

    asyncio.run(run())


def test_rate_limited_client_still_serves_requests() -> None:
    transport = _make_transport(_serve({"a.csv": "x"}), ratelimit=RateLimit(100, 1.0))

    async def run() -> None:
        async with transport:
            responses = await asyncio.gather(*(transport.fetch("a.csv") for _ in range(5)))
        assert all(response.body == "x" for response in responses)

    asyncio.run(run())


def test_resilient_client_rejects_unknown_cache_backend() -> None:
    cache = CacheConfig(backend="redis")  # type: ignore[arg-type]
    config = ResilienceConfig(name="bad", cache=cache)

    with pytest.raises(ValueError, match="Unsupported cache backend"):
        ResilientClient(config)


def test_pipeline_over_http() -> None:
    catalog = json.dumps({"entities": [{"name": "Google", "recordCount": 1}]})
    handler = _serve(
        {
            "data/companies.json": catalog,
            "company-wise-problems/Google/5. All.csv": SHEET,
        }
    )
    transport = _make_transport(handler)
    retry = RetryPolicy(max_attempts=2, base_delay_seconds=0.0)

    async def run() -> None:
        async with transport:
            result = await CatalogLoader(transport, retry=retry).load()
            records = await EntityLoader(transport, retry=retry).load("Google")
        assert result.names() == ["Google"]
        assert [record.title for record in records.records] == ["Two Sum"]

    asyncio.run(run())
