"""Tests for the HTTP search adapter."""

import json

import httpx
import pytest
import pytest_asyncio

from claim_checker.domain.ports.search_provider import SearchUnavailableError
from claim_checker.infrastructure.search.http_search_adapter import HttpSearchAdapter, HttpSearchConfig

RESULTS = {
    "results": [
        {
            "link": "https://www.sec.gov/news/press-release/2026-41",
            "site": "sec.gov",
            "snippet": "The Commission approved the rule changes.",
            "publishedAt": "2026-03-02T10:00:00Z",
        },
        {"snippet": "missing a url"},
        "not a hit",
    ]
}


@pytest_asyncio.fixture
async def adapter():
    """Adapter whose HTTP client answers from a recorded handler."""
    search = HttpSearchAdapter(HttpSearchConfig(base_url="https://search.example", api_key="token"))
    await search.initialize()
    search.requests = []
    search.status_code = 200

    def handler(request: httpx.Request) -> httpx.Response:
        search.requests.append(request)
        return httpx.Response(search.status_code, json=RESULTS)

    await search._client.aclose()
    search._client = httpx.AsyncClient(
        base_url="https://search.example",
        headers={"Authorization": "Bearer token"},
        transport=httpx.MockTransport(handler),
    )
    yield search
    await search.shutdown()


@pytest.mark.asyncio
async def test_search_parses_hits(adapter):
    hits = await adapter.search("SEC approves ETF", ["ETH"])

    assert len(hits) == 1
    assert hits[0].url == "https://www.sec.gov/news/press-release/2026-41"
    assert hits[0].publisher == "sec.gov"
    assert hits[0].published_at.hour == 10
    body = json.loads(adapter.requests[0].content)
    assert body == {"query": "SEC approves ETF", "assets": ["ETH"], "max_results": 10}
    assert adapter.requests[0].url.path == "/search"


@pytest.mark.asyncio
async def test_repeated_queries_use_cache(adapter):
    await adapter.search("SEC approves ETF", ["ETH", "BTC"])
    await adapter.search("SEC approves ETF", ["BTC", "ETH"])

    assert len(adapter.requests) == 1


@pytest.mark.asyncio
async def test_error_status_is_unavailable(adapter):
    adapter.status_code = 503

    with pytest.raises(SearchUnavailableError, match="503"):
        await adapter.search("SEC approves ETF", [])


@pytest.mark.asyncio
async def test_transport_failure_is_unavailable():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    search = HttpSearchAdapter(HttpSearchConfig(base_url="https://search.example"))
    search._client = httpx.AsyncClient(base_url="https://search.example", transport=httpx.MockTransport(refuse))

    with pytest.raises(SearchUnavailableError, match="unreachable"):
        await search.search("anything", [])
    await search.shutdown()
    assert not search.is_available


def test_bare_list_payload():
    assert HttpSearchAdapter._parse_hits([{"url": "https://a.example/x"}])[0].url == "https://a.example/x"
