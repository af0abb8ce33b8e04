"""Test configuration and common fixtures."""

import itertools
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence, Tuple

import pytest
import pytest_asyncio

from claim_checker.domain.models.claim import Claim, ClaimType, ResolutionType
from claim_checker.domain.models.evidence import EvidenceGrade, EvidenceItem, EvidenceStance
from claim_checker.domain.models.item import Item, Source, SourceType
from claim_checker.domain.models.policy import PipelinePolicy, RetryPolicy
from claim_checker.domain.ports.completion_provider import CompletionError
from claim_checker.domain.ports.search_provider import SearchHit
from claim_checker.domain.services.claim_extractor import ClaimExtractor
from claim_checker.domain.services.credibility_scorer import CredibilityScorer
from claim_checker.domain.services.evidence_retriever import EvidenceRetriever
from claim_checker.domain.services.pipeline_orchestrator import PipelineOrchestrator
from claim_checker.domain.services.resolution_engine import ResolutionEngine
from claim_checker.domain.services.verdict_synthesizer import VerdictSynthesizer
from claim_checker.infrastructure.ai.rule_based_provider import RuleBasedCompletionProvider
from claim_checker.infrastructure.search.corpus_search_adapter import CorpusSearchAdapter
from claim_checker.infrastructure.storage.memory_storage import InMemoryStorage

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class ScriptedCompletionProvider:
    """Completion provider answering from a queue of responses or errors."""

    def __init__(self, responses: Optional[Sequence] = None, model_name: str = "scripted-model"):
        self.responses = list(responses or [])
        self.calls: List[Tuple[str, str]] = []
        self._model_name = model_name

    async def initialize(self) -> None:
        pass

    async def shutdown(self) -> None:
        pass

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        if not self.responses:
            raise CompletionError("No scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    @property
    def provider_name(self) -> str:
        return "Scripted"

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def is_available(self) -> bool:
        return True


ETF_CORPUS = [
    SearchHit(
        url="https://www.sec.gov/news/press-release/2026-41",
        publisher="sec.gov",
        title="SEC approves spot Ether ETF listings",
        excerpt="The Commission confirmed approval of spot Ether ETF rule changes.",
        published_at=NOW - timedelta(hours=2),
    ),
    SearchHit(
        url="https://www.reuters.com/markets/us/sec-approves-ether-etfs",
        publisher="reuters.com",
        title="US SEC approves Ether ETFs",
        excerpt="Reuters reported the SEC approved spot Ether ETFs, according to the agency.",
        published_at=NOW - timedelta(hours=1),
    ),
    SearchHit(
        url="https://www.coindesk.com/policy/ether-etf-approved",
        publisher="coindesk.com",
        title="SEC officially approves spot Ether ETF applications",
        excerpt="CoinDesk confirms the SEC approval of spot Ether ETF applications.",
        published_at=NOW - timedelta(hours=3),
    ),
    SearchHit(
        url="https://www.example-mining.net/hashrate",
        publisher="example-mining.net",
        title="Bitcoin hashrate climbs",
        excerpt="Miners expanded capacity during the quarter.",
    ),
]


@pytest.fixture
def fast_retry() -> RetryPolicy:
    """Retry policy without backoff delays."""
    return RetryPolicy(max_attempts=2, base_delay=0.0, max_delay=0.0, timeout=5.0)


@pytest.fixture
def storage() -> InMemoryStorage:
    """Provide an empty in-memory store."""
    return InMemoryStorage()


@pytest_asyncio.fixture
async def source(storage: InMemoryStorage) -> Source:
    """A registered news source."""
    return await storage.create_source(
        Source(type=SourceType.PUBLISHER, handle_or_domain="cryptowire.example", display_name="Crypto Wire")
    )


@pytest.fixture
def etf_item(source: Source) -> Item:
    """An item announcing an ETF approval."""
    return Item(
        source_id=source.id,
        title="SEC approves spot Ether ETF applications",
        raw_text="The SEC approved the spot Ether ETF applications on Thursday, according to a filing.",
        url="https://cryptowire.example/etf",
        published_at=NOW - timedelta(hours=6),
    )


@pytest.fixture
def make_claim(storage: InMemoryStorage, source: Source):
    """Factory storing an item and one claim on it."""
    counter = itertools.count(1)

    async def factory(
        claim_text: str = "Exchange X lists token Y",
        claim_type: ClaimType = ClaimType.LISTING_ANNOUNCED,
        resolution_type: ResolutionType = ResolutionType.IMMEDIATE,
        resolve_by: Optional[datetime] = None,
        falsifiability_score: float = 0.8,
        asserted_at: datetime = NOW - timedelta(days=1),
    ) -> Claim:
        item = await storage.create_item(Item(source_id=source.id, raw_text=f"{claim_text} #{next(counter)}"))
        return await storage.create_claim(
            Claim(
                source_id=source.id,
                item_id=item.id,
                claim_text=claim_text,
                claim_type=claim_type,
                resolution_type=resolution_type,
                resolve_by=resolve_by,
                falsifiability_score=falsifiability_score,
                asserted_at=asserted_at,
            )
        )

    return factory


@pytest.fixture
def make_evidence():
    """Factory building evidence items from (grade, stance) pairs."""

    def factory(claim_id: str, specs: Sequence[Tuple[str, str]], verification_round: int = 1) -> List[EvidenceItem]:
        return [
            EvidenceItem(
                claim_id=claim_id,
                url=f"https://evidence.example/{verification_round}/{index}",
                publisher="evidence.example",
                excerpt=f"Evidence {index}",
                grade=EvidenceGrade(grade),
                stance=EvidenceStance(stance),
                primary_flag=index == 0,
                verification_round=verification_round,
            )
            for index, (grade, stance) in enumerate(specs)
        ]

    return factory


@pytest_asyncio.fixture
async def corpus() -> CorpusSearchAdapter:
    """Initialized corpus search over the ETF documents."""
    adapter = CorpusSearchAdapter(ETF_CORPUS)
    await adapter.initialize()
    yield adapter
    await adapter.shutdown()


@pytest.fixture
def build_orchestrator(storage: InMemoryStorage, fast_retry: RetryPolicy):
    """Factory wiring a pipeline over the shared store."""

    def factory(
        search_provider,
        completion_provider=None,
        policy: Optional[PipelinePolicy] = None,
        pipeline_storage=None,
    ) -> PipelineOrchestrator:
        store = pipeline_storage or storage
        completion = completion_provider or RuleBasedCompletionProvider()
        scorer = CredibilityScorer()
        return PipelineOrchestrator(
            storage=store,
            extractor=ClaimExtractor(completion, retry_policy=fast_retry),
            retriever=EvidenceRetriever(search_provider, retry_policy=fast_retry),
            synthesizer=VerdictSynthesizer(completion, retry_policy=fast_retry),
            resolution_engine=ResolutionEngine(store, scorer),
            scorer=scorer,
            policy=policy,
        )

    return factory


@pytest.fixture
def scripted_provider():
    """Class of the queue-driven completion provider."""
    return ScriptedCompletionProvider


@pytest.fixture
def now() -> datetime:
    """Fixed reference time."""
    return NOW
