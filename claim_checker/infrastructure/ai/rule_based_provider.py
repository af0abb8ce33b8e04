"""Rule-based implementation of the completion provider interface.

Answers the pipeline's prompts deterministically, from keyword rules for
extraction and from grade/stance counts for verdict narratives. This is
the degraded mode used without a model, not a test double.
"""

import json
import logging
import re
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ...domain.models.claim import ClaimType, ResolutionType
from ...domain.models.common import parse_timestamp, utc_now
from ...domain.models.evidence import EvidenceCandidate
from ...domain.models.verdict import VerdictLabel
from ...domain.ports.completion_provider import CompletionError
from ...domain.services.claim_extractor import RUMOR_CONFIDENCE, RUMOR_FALSIFIABILITY
from ...domain.services.prompts import TASK_CLAIM_EXTRACTION, TASK_VERDICT_SYNTHESIS, read_task_payload
from ...domain.services.verdict_synthesizer import assess_evidence, rule_based_narrative, select_key_evidence

logger = logging.getLogger(__name__)

MAX_CLAIMS_PER_ITEM = 5
PREDICTION_HORIZON_DAYS = 30

# (pattern, claim type, resolution type, falsifiability, confidence); first match wins per sentence
CLAIM_RULES = [
    (r"\betfs?\b.*\b(approv\w*|reject\w*|denie[sd]|deny)\b|\b(approv\w*|reject\w*|denie[sd])\b.*\betfs?\b",
     ClaimType.FILING_APPROVED_OR_DENIED, ResolutionType.IMMEDIATE, 0.9, 0.6),
    (r"\b(files?|filed|filing|s-1|19b-4)\b", ClaimType.FILING_SUBMITTED, ResolutionType.IMMEDIATE, 0.85, 0.6),
    (r"\b(hack\w*|exploit\w*|drain\w*|breach\w*|stolen)\b", ClaimType.EXPLOIT_OR_HACK, ResolutionType.IMMEDIATE, 0.85, 0.7),
    (r"\b(halt\w*|paus\w*|suspend\w*)\b.*\b(trading|withdrawals|deposits)\b", ClaimType.TRADING_HALT, ResolutionType.IMMEDIATE, 0.85, 0.6),
    (r"\bdelist\w*\b", ClaimType.DELISTING_ANNOUNCED, ResolutionType.IMMEDIATE, 0.85, 0.6),
    (r"\b(lists?|listing|listed)\b", ClaimType.LISTING_ANNOUNCED, ResolutionType.IMMEDIATE, 0.85, 0.6),
    (r"\b(sec|cftc|regulators?|lawsuit|sued|charges|charged|enforcement|subpoena\w*)\b",
     ClaimType.REGULATORY_ACTION, ResolutionType.IMMEDIATE, 0.8, 0.6),
    (r"\bmainnet\b", ClaimType.MAINNET_LAUNCH, ResolutionType.SCHEDULED, 0.8, 0.5),
    (r"\btestnet\b", ClaimType.TESTNET_LAUNCH, ResolutionType.SCHEDULED, 0.8, 0.5),
    (r"\b(upgrade|hard fork|release[sd]?)\b", ClaimType.UPGRADE_RELEASED, ResolutionType.IMMEDIATE, 0.75, 0.5),
    (r"\baudit\w*\b", ClaimType.AUDIT_RESULT, ResolutionType.IMMEDIATE, 0.75, 0.5),
    (r"\bpartner\w*\b", ClaimType.PARTNERSHIP_ANNOUNCED, ResolutionType.IMMEDIATE, 0.7, 0.5),
    (r"\b(acquir\w*|acquisition|raised|raises|funding round|invest\w*)\b",
     ClaimType.INVESTMENT_OR_ACQUISITION, ResolutionType.IMMEDIATE, 0.75, 0.5),
    (r"\b(whale|moved|transferred|transfer)\b.*\b(\d[\d,.]*|million|billion)\b",
     ClaimType.LARGE_TRANSFER_OR_WHALE, ResolutionType.IMMEDIATE, 0.8, 0.6),
    (r"\b(minted|burned|burns?|mint)\b", ClaimType.MINT_OR_BURN, ResolutionType.IMMEDIATE, 0.8, 0.6),
    (r"\b(price target|will (reach|hit|surpass)|to \$\d|moon)\b", ClaimType.PRICE_PREDICTION, ResolutionType.SCHEDULED, 0.6, 0.4),
]

KNOWN_ASSETS = {
    "bitcoin": "BTC", "btc": "BTC", "ethereum": "ETH", "ether": "ETH", "eth": "ETH",
    "solana": "SOL", "sol": "SOL", "xrp": "XRP", "ripple": "XRP", "cardano": "ADA",
    "dogecoin": "DOGE", "doge": "DOGE", "bnb": "BNB", "usdt": "USDT", "tether": "USDT",
    "usdc": "USDC", "avalanche": "AVAX", "avax": "AVAX", "polygon": "POL", "chainlink": "LINK",
}


def extract_asset_symbols(text: str) -> List[str]:
    """Cashtags and well-known asset names mentioned in the text."""
    symbols = [s.upper() for s in re.findall(r"\$([A-Za-z]{2,10})\b", text)]
    for word in re.findall(r"[a-z]+", text.lower()):
        symbol = KNOWN_ASSETS.get(word)
        if symbol:
            symbols.append(symbol)
    return list(dict.fromkeys(symbols))


def _sentences(text: str) -> List[str]:
    body = re.sub(r"\s+", " ", text).strip()
    return [s.strip() for s in re.split(r"(?<=[.!?])\s+", body) if s.strip()]


class RuleBasedCompletionProvider:
    """Deterministic completion provider for the pipeline's own prompts."""

    def __init__(self, model_name: str = "rule-based-v1"):
        """Initialize the provider."""
        self._model_name = model_name
        self._initialized = False

    async def initialize(self) -> None:
        """Nothing to connect to."""
        self._initialized = True

    async def shutdown(self) -> None:
        """Nothing to release."""
        self._initialized = False

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Answer an extraction or verdict prompt with JSON."""
        task, payload = read_task_payload(user_prompt)
        if task == TASK_CLAIM_EXTRACTION:
            return json.dumps({"claims": self._extract_claims(payload)})
        if task == TASK_VERDICT_SYNTHESIS:
            return json.dumps(self._write_narrative(payload))
        raise CompletionError("Rule-based provider cannot answer an unrecognized prompt")

    def _extract_claims(self, payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        content = payload.get("content") or ""
        title = payload.get("title") or ""
        published = parse_timestamp(payload.get("published_at")) or utc_now()

        sentences = ([title] if title else []) + _sentences(content)
        claims: List[Dict[str, Any]] = []
        seen_types = set()
        for sentence in sentences:
            rule = self._match(sentence)
            if rule is None:
                continue
            claim_type, resolution_type, falsifiability, confidence = rule
            # One claim per type keeps a headline and its restatement in the body together
            if claim_type in seen_types:
                continue
            seen_types.add(claim_type)
            claims.append(self._claim(sentence, content, claim_type, resolution_type, falsifiability, confidence, published))
            if len(claims) >= MAX_CLAIMS_PER_ITEM:
                break

        if not claims and sentences:
            claims.append(
                self._claim(sentences[0], content, ClaimType.RUMOR, ResolutionType.INDEFINITE,
                            RUMOR_FALSIFIABILITY, RUMOR_CONFIDENCE, published)
            )
        logger.debug(f"🎭 Rule-based extraction produced {len(claims)} claims")
        return claims

    @staticmethod
    def _match(sentence: str) -> Optional[tuple]:
        lowered = sentence.lower()
        for pattern, claim_type, resolution_type, falsifiability, confidence in CLAIM_RULES:
            if re.search(pattern, lowered):
                return claim_type, resolution_type, falsifiability, confidence
        return None

    @staticmethod
    def _claim(
        sentence: str,
        content: str,
        claim_type: ClaimType,
        resolution_type: ResolutionType,
        falsifiability: float,
        confidence: float,
        published: datetime,
    ) -> Dict[str, Any]:
        resolve_by = None
        if resolution_type == ResolutionType.SCHEDULED:
            resolve_by = (published + timedelta(days=PREDICTION_HORIZON_DAYS)).isoformat()
        return {
            "claim_text": sentence[:500],
            "claim_type": claim_type.value,
            "asset_symbols": extract_asset_symbols(f"{sentence} {content}"),
            "asserted_at": published.isoformat(),
            "resolution_type": resolution_type.value,
            "resolve_by": resolve_by,
            "falsifiability_score": falsifiability,
            "llm_confidence": confidence,
            "notes": "Extracted by keyword rules",
        }

    def _write_narrative(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        evidence = []
        for raw in payload.get("evidence") or []:
            try:
                evidence.append(
                    EvidenceCandidate(
                        url=raw.get("url", ""),
                        publisher=raw.get("publisher") or "",
                        excerpt=raw.get("excerpt") or "",
                        stance=raw.get("stance"),
                        grade=raw.get("grade"),
                        primary_flag=bool(raw.get("primary")),
                    )
                )
            except (ValidationError, AttributeError) as e:
                logger.warning(f"⚠️ Skipping unreadable evidence entry: {e}")

        decision = payload.get("decision") or {}
        label = VerdictLabel.coerce(decision.get("label"))
        narrative = rule_based_narrative(assess_evidence(evidence), label)
        key_urls = [e.url for e in select_key_evidence(evidence)]
        return {
            "verdict_label": label.value,
            "reasoning_summary": narrative.reasoning_summary,
            "invalidation_triggers": narrative.invalidation_triggers,
            "key_evidence_urls": key_urls,
        }

    @property
    def provider_name(self) -> str:
        """Get the provider name."""
        return "RuleBased"

    @property
    def model_name(self) -> str:
        """Get the model identifier."""
        return self._model_name

    @property
    def is_available(self) -> bool:
        """Always usable once initialized."""
        return self._initialized
