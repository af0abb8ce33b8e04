"""Tests for the FastAPI application."""

import json

import pytest
from fastapi.testclient import TestClient

from claim_checker.api.app import create_app
from claim_checker.infrastructure.config import Settings
from claim_checker.infrastructure.dependencies import ServiceContainer
from claim_checker.infrastructure.storage.memory_storage import InMemoryStorage

from conftest import ETF_CORPUS, NOW

ETF_BATCH = {
    "sources": [{"type": "publisher", "handle_or_domain": "cryptowire.example", "display_name": "Crypto Wire"}],
    "items": [
        {
            "source": "cryptowire.example",
            "title": "SEC approves spot Ether ETF applications",
            "raw_text": "The SEC approved the spot Ether ETF applications on Thursday, according to a filing.",
            "url": "https://cryptowire.example/etf",
            "published_at": "2026-03-02T06:00:00Z",
        }
    ],
}


@pytest.fixture
def client(tmp_path):
    """Test client over a container with the ETF corpus and rule-based completions."""
    corpus_path = tmp_path / "corpus.json"
    corpus_path.write_text(json.dumps([hit.model_dump(mode="json") for hit in ETF_CORPUS]))
    container = ServiceContainer(Settings(corpus_path=str(corpus_path)), storage=InMemoryStorage())
    with TestClient(create_app(container)) as test_client:
        yield test_client


@pytest.fixture
def resolved_claim(client):
    """Run the ETF batch and return its single claim."""
    response = client.post("/pipeline/runs", json=ETF_BATCH)
    assert response.status_code == 200
    [claim] = client.get("/claims").json()
    return claim


def test_health_check(client):
    """Test the health check endpoint."""
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["completion_providers"] == {"chatgpt": False, "rule_based": True}
    assert data["search_providers"] == {"http": False, "corpus": True}


def test_run_batch(client):
    """Test running an ingest batch."""
    response = client.post("/pipeline/runs", json=ETF_BATCH)

    assert response.status_code == 200
    summary = response.json()
    assert summary["processed"] == 1
    assert summary["claims_created"] == 1
    assert summary["resolutions_created"] == 1
    assert summary["aborted"] is False

    again = client.post("/pipeline/runs", json=ETF_BATCH).json()
    assert again["skipped_duplicates"] == 1

    status = client.get("/pipeline/status").json()
    assert status["items_processed"] == 1
    assert status["is_running"] is False


def test_invalid_batch(client):
    """Test that malformed payloads are rejected."""
    response = client.post("/pipeline/runs", json={"items": [{"title": "no source or text"}]})

    assert response.status_code == 422


def test_claim_detail(client, resolved_claim):
    """Test reading a claim with its verdict history."""
    response = client.get(f"/claims/{resolved_claim['id']}")

    assert response.status_code == 200
    detail = response.json()
    assert detail["claim"]["status"] == "resolved"
    assert detail["current_verdict"]["label"] == "verified"
    assert len(detail["verdict_history"]) == 1
    assert detail["resolution"]["outcome"] == "true"
    assert len(detail["evidence"]) == 3
    assert 0 < detail["score"]["accuracy_score"] <= 1


def test_claim_filters(client, resolved_claim):
    """Test listing claims by status."""
    assert client.get("/claims", params={"status": "reviewed"}).json() == []
    assert len(client.get("/claims", params={"source_id": resolved_claim["source_id"]}).json()) == 1


def test_unknown_claim(client):
    """Test that a missing claim is reported."""
    assert client.get("/claims/missing").status_code == 404
    assert client.post("/claims/missing/resolution", json={"outcome": "true"}).status_code == 404


def test_resolved_claim_cannot_be_resolved_again(client, resolved_claim):
    """Test that resolutions are terminal."""
    response = client.post(f"/claims/{resolved_claim['id']}/resolution", json={"outcome": "false"})

    assert response.status_code == 409


def test_correction_of_resolved_claim(client, resolved_claim):
    """Test correcting a resolved claim."""
    response = client.post(
        f"/claims/{resolved_claim['id']}/corrections",
        json={"reason": "Only two issuers were approved", "claim_text": "SEC approves two spot Ether ETFs"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["claim"]["corrects_claim_id"] == resolved_claim["id"]
    assert body["claim"]["claim_text"] == "SEC approves two spot Ether ETFs"
    assert body["verdict"]["claim_id"] == body["claim"]["id"]
    assert client.get(f"/claims/{resolved_claim['id']}").json()["claim"]["status"] == "resolved"


def test_correction_requires_reason(client, resolved_claim):
    """Test that a correction without a reason is rejected."""
    response = client.post(f"/claims/{resolved_claim['id']}/corrections", json={"reason": ""})

    assert response.status_code == 422


def test_source_scores(client, resolved_claim):
    """Test rescoring and reading a source's credibility."""
    source_id = resolved_claim["source_id"]
    empty = client.get(f"/sources/{source_id}/score").json()
    assert empty["current"] is None

    summary = client.post("/pipeline/rescore").json()
    assert summary["scores_created"] == 1

    score = client.get(f"/sources/{source_id}/score").json()
    assert score["source"]["handle_or_domain"] == "cryptowire.example"
    assert score["current"]["sample_size"] == 1
    assert score["explanation"]
    assert len(score["history"]) == 1
    assert client.get("/sources/missing/score").status_code == 404


def test_recheck_run_without_due_claims(client, resolved_claim):
    """Test a re-check run with nothing due."""
    response = client.post("/pipeline/rechecks", json={"now": NOW.isoformat()})

    assert response.status_code == 200
    assert response.json()["processed"] == 0


def test_stats(client, resolved_claim):
    """Test storage statistics."""
    stats = client.get("/stats").json()

    assert stats["sources"] == 1
    assert stats["claims"] == 1
    assert stats["claims_by_status"]["resolved"] == 1
    assert stats["resolutions"] == 1
