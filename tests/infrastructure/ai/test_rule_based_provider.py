"""Tests for the rule-based completion provider."""

import json
from datetime import timedelta

import pytest
import pytest_asyncio

from claim_checker.domain.models.claim import ClaimType, ResolutionType
from claim_checker.domain.models.common import parse_timestamp
from claim_checker.domain.models.item import Item
from claim_checker.domain.ports.completion_provider import CompletionError
from claim_checker.domain.services.claim_extractor import RUMOR_FALSIFIABILITY, rumor_candidate
from claim_checker.domain.services.prompts import build_extraction_prompt, build_verdict_prompt
from claim_checker.infrastructure.ai.rule_based_provider import RuleBasedCompletionProvider, extract_asset_symbols


@pytest_asyncio.fixture
async def provider():
    """Initialized rule-based provider."""
    rules = RuleBasedCompletionProvider()
    await rules.initialize()
    return rules


async def _extract(provider, item):
    return json.loads(await provider.complete("system", build_extraction_prompt(item)))["claims"]


@pytest.mark.asyncio
async def test_headline_and_restatement_yield_one_claim(provider, etf_item):
    claims = await _extract(provider, etf_item)

    assert len(claims) == 1
    assert claims[0]["claim_type"] == ClaimType.FILING_APPROVED_OR_DENIED.value
    assert claims[0]["claim_text"] == etf_item.title
    assert claims[0]["asset_symbols"] == ["ETH"]


@pytest.mark.asyncio
async def test_scheduled_claims_get_a_deadline(provider, now):
    item = Item(source_id="s", raw_text="The mainnet goes live next quarter.", published_at=now)

    [claim] = await _extract(provider, item)

    assert claim["resolution_type"] == ResolutionType.SCHEDULED.value
    assert parse_timestamp(claim["resolve_by"]) == now + timedelta(days=30)


@pytest.mark.asyncio
async def test_unmatched_content_becomes_rumor(provider):
    item = Item(source_id="s", raw_text="Something big is coming. Stay tuned.")

    [claim] = await _extract(provider, item)

    assert claim["claim_type"] == ClaimType.RUMOR.value
    assert claim["resolution_type"] == ResolutionType.INDEFINITE.value
    assert claim["claim_text"] == "Something big is coming."
    # Same low scores as the rumor the extractor records for an empty answer
    assert claim["falsifiability_score"] == RUMOR_FALSIFIABILITY == rumor_candidate(item).falsifiability_score


@pytest.mark.asyncio
async def test_narrative_follows_the_decision(provider, make_claim, make_evidence):
    claim = await make_claim()
    evidence = make_evidence(claim.id, [("A", "supports"), ("C", "mentions")])
    prompt = build_verdict_prompt(claim, evidence, {"label": "verified", "probability_true": 0.9})

    result = json.loads(await provider.complete("system", prompt))

    assert result["verdict_label"] == "verified"
    assert "1 support" in result["reasoning_summary"]
    assert result["invalidation_triggers"]
    assert result["key_evidence_urls"][0] == evidence[0].url


@pytest.mark.asyncio
async def test_unrecognized_prompt_is_rejected(provider):
    with pytest.raises(CompletionError):
        await provider.complete("system", "Tell me a joke")


def test_asset_symbols_from_cashtags_and_names():
    assert extract_asset_symbols("$sol pumps while Bitcoin and BTC stall") == ["SOL", "BTC"]
