"""Prompt templates shared by the model-backed and rule-based providers.

User prompts end with a fenced JSON payload carrying a ``task`` marker so a
provider can answer without parsing prose.
"""

import json
import re
from typing import Any, Dict, List, Optional, Tuple

from ..models.claim import Claim, ClaimType
from ..models.evidence import EvidenceItem
from ..models.item import Item, Source

EXTRACTION_PROMPT_VERSION = "extract-v1.1"

TASK_CLAIM_EXTRACTION = "claim_extraction"
TASK_VERDICT_SYNTHESIS = "verdict_synthesis"

EXTRACTION_SYSTEM_PROMPT = f"""You extract atomic, falsifiable claims from crypto news and social posts.

Rules:
- One claim per distinct assertion. Rewrite each as a standalone sentence.
- Skip opinions, questions and marketing language that asserts nothing checkable.
- claim_type must be one of: {", ".join(t.value for t in ClaimType)}.
- resolution_type is "immediate" (checkable now), "scheduled" (checkable at a known date, set resolve_by) or "indefinite".
- falsifiability_score and llm_confidence are numbers between 0 and 1.
- asset_symbols are ticker symbols without "$".

Respond with JSON only:
{{"claims": [{{"claim_text": "...", "claim_type": "...", "asset_symbols": ["BTC"], "asserted_at": "ISO-8601 or null", "resolution_type": "immediate", "resolve_by": "ISO-8601 or null", "falsifiability_score": 0.8, "llm_confidence": 0.7, "notes": "optional"}}]}}"""

VERDICT_SYSTEM_PROMPT = """You are a due-diligence analyst writing the rationale for a crypto claim verdict.

The verdict label, probability and evidence strength have already been computed from the graded evidence (A = primary/authoritative, B = reputable secondary, C = aggregator, D = rumor-tier). Explain them; do not invent evidence.

Respond with JSON only:
{"verdict_label": "...", "reasoning_summary": "2-4 sentences citing the strongest evidence", "invalidation_triggers": ["specific new evidence that would flip this verdict"], "key_evidence_urls": ["urls from the evidence list"]}"""


def _fenced(payload: Dict[str, Any]) -> str:
    return "```json\n" + json.dumps(payload, indent=2, default=str) + "\n```"


def build_extraction_prompt(item: Item, source: Optional[Source] = None) -> str:
    """User prompt carrying item metadata and raw text."""
    payload = {
        "task": TASK_CLAIM_EXTRACTION,
        "title": item.title,
        "url": item.url,
        "item_type": item.item_type.value,
        "published_at": item.published_at.isoformat() if item.published_at else None,
        "source": source.display_name if source else None,
        "source_type": source.type.value if source else None,
        "content": item.raw_text,
    }
    return f"Extract the claims from this content item.\n\n{_fenced(payload)}"


def build_verdict_prompt(
    claim: Claim,
    evidence: List[EvidenceItem],
    decision: Dict[str, Any],
) -> str:
    """User prompt carrying the claim, its graded evidence and the computed decision."""
    payload = {
        "task": TASK_VERDICT_SYNTHESIS,
        "claim": {
            "text": claim.claim_text,
            "type": claim.claim_type.value,
            "assets": claim.asset_symbols,
            "asserted_at": claim.asserted_at.isoformat(),
            "resolution_type": claim.resolution_type.value,
        },
        "evidence": [
            {
                "url": e.url,
                "publisher": e.publisher,
                "grade": e.grade.value,
                "stance": e.stance.value,
                "primary": e.primary_flag,
                "excerpt": e.excerpt[:300],
            }
            for e in evidence
        ],
        "decision": decision,
    }
    return f"Write the rationale for this verdict.\n\n{_fenced(payload)}"


_PAYLOAD_PATTERN = re.compile(r"```json\s*(\{.*\})\s*```", re.DOTALL)


def read_task_payload(user_prompt: str) -> Tuple[Optional[str], Dict[str, Any]]:
    """Recover the task marker and payload from a user prompt."""
    match = _PAYLOAD_PATTERN.search(user_prompt)
    if not match:
        return None, {}
    try:
        payload = json.loads(match.group(1))
    except json.JSONDecodeError:
        return None, {}
    if not isinstance(payload, dict):
        return None, {}
    return payload.get("task"), payload
