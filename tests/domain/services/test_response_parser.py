"""Tests for parsing untrusted model output."""

import json

from claim_checker.domain.models.claim import ClaimType
from claim_checker.domain.models.verdict import VerdictLabel
from claim_checker.domain.services.response_parser import (
    parse_claim_candidates,
    parse_json,
    parse_verdict_narrative,
    strip_code_fences,
)


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


def test_parse_json_recovers_object_wrapped_in_prose():
    assert parse_json('Sure! Here it is: {"claims": []} Hope that helps.') == {"claims": []}
    assert parse_json("no json here") is None
    assert parse_json(None) is None


def test_claim_candidates_drop_invalid_entries():
    text = json.dumps({
        "claims": [
            {"claim_text": "Coinbase lists SOL", "claim_type": "listing_announced"},
            {"claim_type": "rumor"},
            "not an object",
            {"claimText": "Ethereum mainnet upgrade ships", "claimType": "upgrade_released"},
        ]
    })
    candidates = parse_claim_candidates(text)

    assert [c.claim_text for c in candidates] == ["Coinbase lists SOL", "Ethereum mainnet upgrade ships"]
    assert candidates[1].claim_type == ClaimType.UPGRADE_RELEASED


def test_claim_candidates_accept_bare_list():
    candidates = parse_claim_candidates('[{"claim": "Whale moved 10,000 BTC"}]')
    assert len(candidates) == 1


def test_claim_candidates_reject_non_payload():
    assert parse_claim_candidates("I could not find any claims.") is None
    assert parse_claim_candidates('{"result": "nothing"}') is None
    assert parse_claim_candidates('{"claims": []}') == []


def test_verdict_narrative_validation():
    narrative = parse_verdict_narrative(json.dumps({
        "verdictLabel": "VERIFIED",
        "reasoningSummary": "The regulator's release confirms it.",
        "invalidationTriggers": ["Release is withdrawn"],
        "keyEvidenceUrls": ["https://sec.gov/x"],
    }))
    assert narrative.verdict_label == VerdictLabel.VERIFIED
    assert narrative.key_evidence_urls == ["https://sec.gov/x"]

    assert parse_verdict_narrative('{"reasoning_summary": "missing triggers"}') is None
    assert parse_verdict_narrative("[1, 2]") is None
