"""End-to-end tests of the claim pipeline through the service container."""

import json

import pytest
import pytest_asyncio

from claim_checker.domain.models.claim import ClaimStatus, ClaimType, ReviewState
from claim_checker.domain.models.ingest import IngestBatch
from claim_checker.domain.models.resolution import ResolutionOutcome
from claim_checker.domain.models.verdict import VerdictLabel
from claim_checker.domain.ports.search_provider import SearchHit
from claim_checker.infrastructure.config import Settings
from claim_checker.infrastructure.dependencies import ServiceContainer
from claim_checker.infrastructure.storage.memory_storage import InMemoryStorage
from claim_checker.main import main

from conftest import ETF_CORPUS

DENIALS = [
    SearchHit(
        url="https://www.binance.com/en/support/announcement/pepe-clarification",
        publisher="binance.com",
        title="Binance denies reports of PEPE listing",
        excerpt="Binance support says the PEPE listing rumor is false.",
    ),
    SearchHit(
        url="https://www.reuters.com/technology/binance-pepe",
        publisher="reuters.com",
        title="Binance denies PEPE listing reports",
        excerpt="Binance denied it lists PEPE, a spokesperson said.",
    ),
]

BATCH = {
    "sources": [
        {"type": "publisher", "handle_or_domain": "cryptowire.example", "display_name": "Crypto Wire"},
        {"type": "x_handle", "handle_or_domain": "@moonshill", "display_name": "Moon Shill"},
    ],
    "items": [
        {
            "source": "cryptowire.example",
            "title": "SEC approves spot Ether ETF applications",
            "raw_text": "The SEC approved the spot Ether ETF applications on Thursday, according to a filing.",
            "published_at": "2026-03-02T06:00:00Z",
        },
        {"source": "@moonshill", "raw_text": "Binance lists $PEPE tomorrow, trust me.", "item_type": "tweet"},
        {"source": "@moonshill", "raw_text": "Something big is coming for $DOGE.", "item_type": "tweet"},
    ],
}


def _write_corpus(path):
    path.write_text(json.dumps([hit.model_dump(mode="json") for hit in ETF_CORPUS + DENIALS]))
    return str(path)


@pytest_asyncio.fixture
async def container(tmp_path):
    """Initialized container over a local evidence corpus."""
    services = ServiceContainer(
        Settings(corpus_path=_write_corpus(tmp_path / "corpus.json")),
        storage=InMemoryStorage(),
    )
    await services.initialize()
    yield services
    await services.shutdown()


async def _claims_by_type(storage):
    return {claim.claim_type: claim for claim in await storage.list_claims()}


@pytest.mark.asyncio
async def test_batch_to_source_scores(container):
    """Test a batch flowing through verdicts, resolutions and scores."""
    orchestrator = container.get_orchestrator()
    storage = container.get("storage")

    summary = await orchestrator.ingest(IngestBatch.model_validate(BATCH))

    assert (summary.processed, summary.failed) == (3, 0)
    assert summary.claims_created == 3
    assert summary.resolutions_created == 2

    claims = await _claims_by_type(storage)
    etf = claims[ClaimType.FILING_APPROVED_OR_DENIED]
    listing = claims[ClaimType.LISTING_ANNOUNCED]
    rumor = claims[ClaimType.RUMOR]

    assert (await storage.get_resolution(etf.id)).outcome == ResolutionOutcome.TRUE
    assert (await storage.get_current_verdict(listing.id)).label == VerdictLabel.MISLEADING
    assert (await storage.get_resolution(listing.id)).outcome == ResolutionOutcome.FALSE
    assert rumor.status == ClaimStatus.REVIEWED
    assert rumor.review_state == ReviewState.SETTLED_INDEFINITE
    assert await storage.get_recheck(rumor.id) is None

    await orchestrator.record_resolution(rumor.id, ResolutionOutcome.FALSE, notes="Nothing happened")
    rescore = await orchestrator.rescore_sources()
    assert rescore.scores_created == 2

    wire = await storage.get_source_by_handle("cryptowire.example")
    shill = await storage.get_source_by_handle("@moonshill")
    wire_score = await storage.get_current_source_score(wire.id)
    shill_score = await storage.get_current_source_score(shill.id)
    assert shill_score.sample_size == 2
    assert wire_score.track_record > shill_score.track_record
    assert wire_score.metadata["raw_accuracy"] == 1.0
    assert shill_score.metadata["raw_accuracy"] == 0.0

    recheck = await orchestrator.run_recheck_batch()
    assert recheck.processed == 0


@pytest.mark.asyncio
async def test_rerunning_a_batch_changes_nothing(container):
    """Test that a repeated batch only counts duplicates."""
    orchestrator = container.get_orchestrator()
    await orchestrator.ingest(IngestBatch.model_validate(BATCH))
    before = await orchestrator.get_stats()

    summary = await orchestrator.ingest(IngestBatch.model_validate(BATCH))

    assert summary.skipped_duplicates == 3
    assert await orchestrator.get_stats() == before


def test_cli_run_with_rescore(tmp_path, monkeypatch, capsys):
    """Test the command line run with a rescore."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("CLAIM_CHECKER_SEARCH_URL", raising=False)
    monkeypatch.setenv("CLAIM_CHECKER_CORPUS", _write_corpus(tmp_path / "corpus.json"))
    batch_path = tmp_path / "batch.json"
    batch_path.write_text(json.dumps(BATCH))

    code = main(["run", str(batch_path), "--rescore"])

    assert code == 0
    output = capsys.readouterr().out
    assert '"kind": "ingest"' in output
    assert '"kind": "rescore"' in output
    assert "Track record" in output


def test_cli_reports_unreadable_batch(tmp_path, monkeypatch):
    """Test that a missing batch file exits with a usage error."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("CLAIM_CHECKER_SEARCH_URL", raising=False)
    monkeypatch.delenv("CLAIM_CHECKER_CORPUS", raising=False)

    assert main(["run", str(tmp_path / "missing.json")]) == 2


def test_cli_run_with_recheck_and_rescore(tmp_path, monkeypatch, capsys):
    """Test that re-checks and rescoring see the claims of the same run."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("CLAIM_CHECKER_SEARCH_URL", raising=False)
    monkeypatch.setenv("CLAIM_CHECKER_CORPUS", _write_corpus(tmp_path / "corpus.json"))
    batch_path = tmp_path / "batch.json"
    batch_path.write_text(json.dumps(BATCH))

    assert main(["run", str(batch_path), "--recheck", "--rescore"]) == 0

    output = capsys.readouterr().out
    assert '"kind": "recheck"' in output
    assert '"scores_created": 2' in output


@pytest.mark.parametrize("command", ["recheck", "rescore"])
def test_cli_has_no_standalone_maintenance_commands(command):
    """Test that maintenance runs need a batch in the same invocation."""
    with pytest.raises(SystemExit) as exc_info:
        main([command])
    assert exc_info.value.code == 2
