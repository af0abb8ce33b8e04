"""Schema-validating parse step for untrusted model output.

Every completion response passes through here exactly once. Failures are
closed: callers receive ``None`` (or an empty list) and never a partially
validated structure.
"""

import json
import logging
import re
from typing import Any, List, Optional

from pydantic import ValidationError

from ..models.claim import ClaimCandidate
from ..models.verdict import VerdictNarrative

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?\s*(.*?)\s*```", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Return the content of the first fenced block, or the trimmed text."""
    match = _FENCE_PATTERN.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def parse_json(text: Optional[str]) -> Optional[Any]:
    """Decode JSON from a model response.

    Falls back to the outermost ``{...}`` span when the model wraps the JSON
    in prose.
    """
    if not text:
        return None
    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        return json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError:
        return None


def parse_claim_candidates(text: Optional[str]) -> Optional[List[ClaimCandidate]]:
    """Parse an extraction response.

    Returns:
        Validated candidates (possibly empty), or None if the response is
        not a recognizable extraction payload
    """
    payload = parse_json(text)
    if isinstance(payload, dict):
        raw_claims = payload.get("claims")
    elif isinstance(payload, list):
        raw_claims = payload
    else:
        raw_claims = None

    if not isinstance(raw_claims, list):
        logger.error(f"❌ Extraction response is not a claims payload: {str(text)[:200]!r}")
        return None

    candidates = []
    for index, raw in enumerate(raw_claims):
        if not isinstance(raw, dict):
            logger.warning(f"⚠️ Dropping non-object claim at index {index}")
            continue
        try:
            candidates.append(ClaimCandidate.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"⚠️ Dropping invalid claim at index {index}: {e.errors()[0]['msg']}")
    return candidates


def parse_verdict_narrative(text: Optional[str]) -> Optional[VerdictNarrative]:
    """Parse a verdict response, or return None if it does not validate."""
    payload = parse_json(text)
    if not isinstance(payload, dict):
        logger.error(f"❌ Verdict response is not a JSON object: {str(text)[:200]!r}")
        return None
    try:
        return VerdictNarrative.model_validate(payload)
    except ValidationError as e:
        logger.error(f"❌ Verdict response failed validation: {e.errors()[0]['msg']}")
        return None
