"""In-memory corpus implementation of the search provider interface."""

import json
import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field, ValidationError

from ...domain.ports.search_provider import SearchHit

logger = logging.getLogger(__name__)

STOPWORDS = {
    "the", "a", "an", "and", "or", "of", "to", "in", "on", "for", "is", "are", "was",
    "were", "be", "by", "with", "that", "this", "it", "as", "at", "from", "has", "have",
    "will", "its", "their", "after", "about",
}


def _terms(text: str) -> set:
    return {t for t in re.findall(r"\w+", text.lower()) if t not in STOPWORDS and len(t) > 1}


class CorpusSearchConfig(BaseModel):
    """Configuration for the corpus search adapter."""

    max_results: int = Field(default=10, description="Maximum hits per search")
    min_score: float = Field(default=0.25, description="Minimum relevance score")
    title_weight: float = Field(default=0.4, description="Weight of title term matches")
    body_weight: float = Field(default=0.6, description="Weight of excerpt term matches")
    asset_boost: float = Field(default=0.2, description="Bonus when a claimed asset is mentioned")


class CorpusSearchAdapter:
    """Keyword search over a local corpus of documents.

    Used offline, in tests, and wherever a curated evidence set stands in
    for a search service.
    """

    def __init__(
        self,
        documents: Optional[Iterable[SearchHit]] = None,
        config: Optional[CorpusSearchConfig] = None,
        provider_name: str = "Corpus",
    ):
        """Initialize the adapter.

        Args:
            documents: Initial corpus
            config: Adapter configuration
            provider_name: Name of the provider
        """
        self._config = config or CorpusSearchConfig()
        self._name = provider_name
        self._documents: List[SearchHit] = list(documents or [])
        self._initialized = False

    async def initialize(self) -> None:
        """Mark the corpus ready."""
        self._initialized = True

    async def shutdown(self) -> None:
        """Release the corpus."""
        self._initialized = False

    def add_documents(self, documents: Iterable[SearchHit]) -> None:
        """Append documents to the corpus."""
        self._documents.extend(documents)

    def load_json(self, path: str) -> int:
        """Load documents from a JSON array file, skipping invalid entries.

        Returns:
            Number of documents loaded
        """
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        loaded = 0
        for index, entry in enumerate(raw if isinstance(raw, list) else []):
            try:
                self._documents.append(SearchHit.model_validate(entry))
                loaded += 1
            except ValidationError as e:
                logger.warning(f"⚠️ Skipping corpus entry {index}: {e.errors()[0]['msg']}")
        logger.info(f"📚 Loaded {loaded} corpus documents from {path}")
        return loaded

    async def search(self, claim_text: str, asset_symbols: List[str]) -> List[SearchHit]:
        """Rank corpus documents by term overlap with the query."""
        if not self._initialized:
            raise RuntimeError("Provider not initialized")

        query_terms = _terms(claim_text)
        if not query_terms:
            return []
        assets = {symbol.lower() for symbol in asset_symbols}

        scored = []
        for document in self._documents:
            score = self._calculate_relevance(query_terms, assets, document)
            if score >= self._config.min_score:
                scored.append((score, document))

        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [
            document.model_copy(update={"metadata": {**document.metadata, "relevance": round(score, 3)}})
            for score, document in scored[: self._config.max_results]
        ]

    def _calculate_relevance(self, query_terms: set, assets: set, document: SearchHit) -> float:
        """Weighted share of query terms found in the title and excerpt."""
        title_terms = _terms(document.title or "")
        body_terms = _terms(document.excerpt)
        score = (
            self._config.title_weight * len(query_terms & title_terms)
            + self._config.body_weight * len(query_terms & body_terms)
        ) / len(query_terms)
        if assets and assets & (title_terms | body_terms):
            score += self._config.asset_boost
        return min(1.0, score)

    @property
    def provider_name(self) -> str:
        """Get the provider name."""
        return self._name

    @property
    def is_available(self) -> bool:
        """Check if the corpus is ready."""
        return self._initialized

    @property
    def document_count(self) -> int:
        return len(self._documents)
