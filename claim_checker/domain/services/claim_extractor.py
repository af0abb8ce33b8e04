"""Service for turning content items into claim candidates."""

import logging
import re
from typing import List, Optional

from ..models.claim import ClaimCandidate, ClaimType, ResolutionType, claim_fingerprint
from ..models.item import Item, Source
from ..models.policy import RetryPolicy
from ..ports.completion_provider import CompletionProvider
from .prompts import EXTRACTION_SYSTEM_PROMPT, build_extraction_prompt
from .response_parser import parse_claim_candidates
from .retry import RetryExhaustedError, call_with_retry

logger = logging.getLogger(__name__)

RUMOR_FALSIFIABILITY = 0.4
RUMOR_CONFIDENCE = 0.3


def summarize_content(item: Item, limit: int = 280) -> str:
    """Headline, or the first sentence of the body, trimmed to ``limit``."""
    if item.title and item.title.strip():
        text = item.title.strip()
    else:
        body = re.sub(r"\s+", " ", item.raw_text).strip()
        text = re.split(r"(?<=[.!?])\s", body, maxsplit=1)[0]
    return text if len(text) <= limit else text[: limit - 3].rstrip() + "..."


def rumor_candidate(item: Item) -> ClaimCandidate:
    """Generic low-confidence claim recorded when nothing typed matches."""
    return ClaimCandidate(
        claim_text=summarize_content(item),
        claim_type=ClaimType.RUMOR,
        asserted_at=item.published_at or item.ingested_at,
        resolution_type=ResolutionType.INDEFINITE,
        falsifiability_score=RUMOR_FALSIFIABILITY,
        llm_confidence=RUMOR_CONFIDENCE,
        notes="No typed claim matched the content",
    )


class ClaimExtractor:
    """Extracts structured claims from one item via a completion provider."""

    def __init__(
        self,
        provider: CompletionProvider,
        fallback_provider: Optional[CompletionProvider] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        """Initialize the extractor.

        Args:
            provider: Primary completion provider
            fallback_provider: Used when the primary provider keeps failing
            retry_policy: Retry/backoff for provider calls
        """
        self._provider = provider
        self._fallback = fallback_provider
        self._retry_policy = retry_policy or RetryPolicy()

    async def extract(self, item: Item, source: Optional[Source] = None) -> List[ClaimCandidate]:
        """Extract claim candidates from an item.

        Never raises for provider or parse failures; those yield an empty list.
        """
        if not item.raw_text.strip():
            logger.info(f"⏭️ item={item.id} has no content, nothing to extract")
            return []

        logger.info(f"🔍 Extracting claims from item={item.id}")
        response = await self._complete(item, build_extraction_prompt(item, source))
        if response is None:
            return []

        candidates = parse_claim_candidates(response)
        if candidates is None:
            logger.error(f"❌ Malformed extraction output for item={item.id}, no claims extracted")
            return []

        candidates = self._deduplicate(candidates)
        if not candidates:
            logger.info(f"📝 No typed claim in item={item.id}, recording a rumor claim")
            return [rumor_candidate(item)]

        default_time = item.published_at or item.ingested_at
        candidates = [
            c if c.asserted_at else c.model_copy(update={"asserted_at": default_time})
            for c in candidates
        ]
        logger.info(f"📝 Extracted {len(candidates)} claims from item={item.id}")
        return candidates

    async def _complete(self, item: Item, user_prompt: str) -> Optional[str]:
        try:
            return await call_with_retry(
                f"claim extraction item={item.id}",
                lambda: self._provider.complete(EXTRACTION_SYSTEM_PROMPT, user_prompt),
                self._retry_policy,
            )
        except RetryExhaustedError as e:
            logger.warning(f"⚠️ {e}")
        except Exception as e:
            logger.error(f"❌ {self._provider.provider_name} failed for item={item.id}: {e}")

        if self._fallback is None or self._fallback is self._provider:
            logger.error(f"❌ No fallback provider, no claims extracted for item={item.id}")
            return None
        try:
            logger.info(f"🎭 Using {self._fallback.provider_name} for item={item.id}")
            return await self._fallback.complete(EXTRACTION_SYSTEM_PROMPT, user_prompt)
        except Exception as e:
            logger.error(f"❌ Fallback extraction failed for item={item.id}: {e}")
            return None

    @staticmethod
    def _deduplicate(candidates: List[ClaimCandidate]) -> List[ClaimCandidate]:
        seen = set()
        unique = []
        for candidate in candidates:
            key = claim_fingerprint(candidate.claim_text)
            if key in seen:
                continue
            seen.add(key)
            unique.append(candidate)
        return unique
