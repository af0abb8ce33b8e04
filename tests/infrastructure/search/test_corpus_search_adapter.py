"""Tests for the corpus search adapter."""

import json

import pytest

from claim_checker.infrastructure.search.corpus_search_adapter import CorpusSearchAdapter


@pytest.mark.asyncio
async def test_ranks_documents_by_overlap(corpus):
    hits = await corpus.search("SEC approves spot Ether ETF", ["ETH"])

    urls = [hit.url for hit in hits]
    assert len(urls) == 3
    assert "https://www.example-mining.net/hashrate" not in urls
    assert urls[0] == "https://www.coindesk.com/policy/ether-etf-approved"
    relevance = [hit.metadata["relevance"] for hit in hits]
    assert relevance == sorted(relevance, reverse=True)
    assert all(0 < hit.metadata["relevance"] <= 1.0 for hit in hits)


@pytest.mark.asyncio
async def test_unrelated_query_finds_nothing(corpus):
    assert await corpus.search("Binance lists PEPE", ["PEPE"]) == []


@pytest.mark.asyncio
async def test_stopword_only_query(corpus):
    assert await corpus.search("the of and", []) == []


@pytest.mark.asyncio
async def test_search_requires_initialize():
    with pytest.raises(RuntimeError):
        await CorpusSearchAdapter().search("anything", [])


@pytest.mark.asyncio
async def test_load_json_skips_invalid_entries(tmp_path):
    path = tmp_path / "corpus.json"
    path.write_text(
        json.dumps(
            [
                {"link": "https://www.theblock.co/post/1", "source": "theblock.co", "snippet": "Protocol drained"},
                {"title": "no url"},
            ]
        )
    )
    adapter = CorpusSearchAdapter()
    await adapter.initialize()

    loaded = adapter.load_json(str(path))

    assert loaded == 1
    assert adapter.document_count == 1
    [hit] = await adapter.search("protocol drained", [])
    assert hit.publisher == "theblock.co"
