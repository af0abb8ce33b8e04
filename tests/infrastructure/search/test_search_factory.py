"""Tests for the search provider factory."""

import json

import pytest

from claim_checker.infrastructure.config import Settings
from claim_checker.infrastructure.search.corpus_search_adapter import CorpusSearchAdapter
from claim_checker.infrastructure.search.factory import SearchProviderFactory
from claim_checker.infrastructure.search.http_search_adapter import HttpSearchAdapter


class FailingSearch:
    """Search backend that cannot start."""

    def __init__(self, **config):
        pass

    async def initialize(self) -> None:
        raise ConnectionError("DNS failure")

    async def shutdown(self) -> None:
        pass


@pytest.mark.asyncio
async def test_default_without_url_uses_corpus(tmp_path):
    path = tmp_path / "corpus.json"
    path.write_text(json.dumps([{"url": "https://www.coindesk.com/a", "excerpt": "ETF approved"}]))
    factory = SearchProviderFactory()

    provider = await factory.create_default(Settings(corpus_path=str(path)))

    assert isinstance(provider, CorpusSearchAdapter)
    assert provider.document_count == 1
    assert factory.available_providers == {"http": False, "corpus": True}
    await factory.shutdown()
    assert factory.get_provider("corpus") is None


@pytest.mark.asyncio
async def test_default_with_url_uses_http():
    factory = SearchProviderFactory()

    provider = await factory.create_default(Settings(search_url="https://search.example"))

    assert isinstance(provider, HttpSearchAdapter)
    assert provider.is_available
    await factory.shutdown()


@pytest.mark.asyncio
async def test_unknown_provider():
    with pytest.raises(ValueError):
        await SearchProviderFactory().create_provider("bing")


@pytest.mark.asyncio
async def test_failed_initialization_is_wrapped():
    factory = SearchProviderFactory()
    factory.register_provider("failing", FailingSearch)

    with pytest.raises(RuntimeError, match="DNS failure"):
        await factory.create_provider("failing")
    assert factory.get_provider("failing") is None


def test_duplicate_registration_is_rejected():
    with pytest.raises(ValueError):
        SearchProviderFactory().register_provider("corpus", CorpusSearchAdapter)
