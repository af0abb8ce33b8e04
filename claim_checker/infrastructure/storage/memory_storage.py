"""In-memory implementation of the storage provider interface."""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from ...domain.models.claim import Claim, ClaimStatus
from ...domain.models.evidence import EvidenceItem
from ...domain.models.item import Item, Source
from ...domain.models.pipeline import StorageStats
from ...domain.models.resolution import RecheckSchedule, Resolution
from ...domain.models.score import ClaimScore, CredibilitySignal, SourceScore
from ...domain.models.verdict import Verdict
from ...domain.ports.storage_provider import (
    ConflictError,
    EntityNotFoundError,
    StorageProvider,
)

logger = logging.getLogger(__name__)


class InMemoryStorage(StorageProvider):
    """Dictionary-backed storage for tests, the CLI and single-process deployments.

    Verdicts and source scores are kept as ordered logs per owner, so the
    current entry is always the last one appended.
    """

    def __init__(self):
        """Initialize empty tables."""
        self._sources: Dict[str, Source] = {}
        self._items: Dict[str, Item] = {}
        self._items_by_hash: Dict[str, str] = {}
        self._claims: Dict[str, Claim] = {}
        self._claim_keys: Dict[Tuple[str, str], str] = {}
        self._evidence: Dict[str, List[EvidenceItem]] = defaultdict(list)
        self._verdicts: Dict[str, List[Verdict]] = defaultdict(list)
        self._resolutions: Dict[str, Resolution] = {}
        self._rechecks: Dict[str, RecheckSchedule] = {}
        self._signals: Dict[str, CredibilitySignal] = {}
        self._claim_scores: Dict[str, ClaimScore] = {}
        self._source_scores: Dict[str, List[SourceScore]] = defaultdict(list)

    # Sources

    async def create_source(self, source: Source) -> Source:
        if await self.get_source_by_handle(source.handle_or_domain) is not None:
            raise ConflictError("Source", source.handle_or_domain)
        self._sources[source.id] = source
        return source

    async def get_source(self, source_id: str) -> Source:
        if source_id not in self._sources:
            raise EntityNotFoundError("Source", source_id)
        return self._sources[source_id]

    async def get_source_by_handle(self, handle_or_domain: str) -> Optional[Source]:
        wanted = handle_or_domain.lower()
        for source in self._sources.values():
            if source.handle_or_domain.lower() == wanted:
                return source
        return None

    async def list_sources(self) -> List[Source]:
        return list(self._sources.values())

    # Items

    async def create_item(self, item: Item) -> Item:
        await self.get_source(item.source_id)
        if item.content_hash in self._items_by_hash:
            raise ConflictError("Item", item.content_hash, f"Item with content hash {item.content_hash[:12]} already exists")
        self._items[item.id] = item
        self._items_by_hash[item.content_hash] = item.id
        return item

    async def get_item(self, item_id: str) -> Item:
        if item_id not in self._items:
            raise EntityNotFoundError("Item", item_id)
        return self._items[item_id]

    async def get_item_by_hash(self, content_hash: str) -> Optional[Item]:
        item_id = self._items_by_hash.get(content_hash)
        return self._items.get(item_id) if item_id else None

    # Claims

    async def create_claim(self, claim: Claim) -> Claim:
        item = await self.get_item(claim.item_id)
        if item.source_id != claim.source_id:
            raise ValueError(f"Claim source {claim.source_id} does not match item source {item.source_id}")
        key = (claim.item_id, claim.fingerprint)
        if claim.fingerprint and key in self._claim_keys:
            raise ConflictError("Claim", claim.fingerprint, f"Item {claim.item_id} already has this claim")
        self._claims[claim.id] = claim
        if claim.fingerprint:
            self._claim_keys[key] = claim.id
        return claim

    async def get_claim(self, claim_id: str) -> Claim:
        if claim_id not in self._claims:
            raise EntityNotFoundError("Claim", claim_id)
        return self._claims[claim_id]

    async def update_claim(self, claim: Claim) -> Claim:
        await self.get_claim(claim.id)
        self._claims[claim.id] = claim
        return claim

    async def list_claims(
        self,
        source_id: Optional[str] = None,
        status: Optional[ClaimStatus] = None,
    ) -> List[Claim]:
        claims = [
            c for c in self._claims.values()
            if (source_id is None or c.source_id == source_id) and (status is None or c.status == status)
        ]
        return sorted(claims, key=lambda c: c.created_at)

    async def list_claims_by_item(self, item_id: str) -> List[Claim]:
        return [c for c in self._claims.values() if c.item_id == item_id]

    async def delete_claim(self, claim_id: str) -> None:
        claim = await self.get_claim(claim_id)
        del self._claims[claim_id]
        self._claim_keys.pop((claim.item_id, claim.fingerprint), None)
        self._evidence.pop(claim_id, None)
        self._verdicts.pop(claim_id, None)
        self._resolutions.pop(claim_id, None)
        self._claim_scores.pop(claim_id, None)
        self._signals.pop(claim_id, None)
        self._rechecks.pop(claim_id, None)
        logger.info(f"🗑️ Deleted claim={claim_id} with its evidence and verdicts")

    # Evidence

    async def add_evidence(self, evidence: List[EvidenceItem]) -> List[EvidenceItem]:
        for entry in evidence:
            await self.get_claim(entry.claim_id)
        for entry in evidence:
            self._evidence[entry.claim_id].append(entry)
        return list(evidence)

    async def list_evidence(self, claim_id: str, verification_round: Optional[int] = None) -> List[EvidenceItem]:
        evidence = self._evidence.get(claim_id, [])
        if verification_round is not None:
            evidence = [e for e in evidence if e.verification_round == verification_round]
        return list(evidence)

    # Verdicts

    async def append_verdict(self, verdict: Verdict) -> Verdict:
        await self.get_claim(verdict.claim_id)
        self._verdicts[verdict.claim_id].append(verdict)
        return verdict

    async def get_current_verdict(self, claim_id: str) -> Optional[Verdict]:
        log = self._verdicts.get(claim_id)
        return log[-1] if log else None

    async def get_verdict_history(self, claim_id: str) -> List[Verdict]:
        return list(self._verdicts.get(claim_id, []))

    # Resolutions

    async def create_resolution(self, resolution: Resolution) -> Resolution:
        await self.get_claim(resolution.claim_id)
        if resolution.claim_id in self._resolutions:
            raise ConflictError("Resolution", resolution.claim_id, f"Claim {resolution.claim_id} is already resolved")
        self._resolutions[resolution.claim_id] = resolution
        return resolution

    async def get_resolution(self, claim_id: str) -> Optional[Resolution]:
        return self._resolutions.get(claim_id)

    # Re-check schedule

    async def save_recheck(self, schedule: RecheckSchedule) -> RecheckSchedule:
        await self.get_claim(schedule.claim_id)
        self._rechecks[schedule.claim_id] = schedule
        return schedule

    async def get_recheck(self, claim_id: str) -> Optional[RecheckSchedule]:
        return self._rechecks.get(claim_id)

    async def list_due_rechecks(self, now: datetime) -> List[RecheckSchedule]:
        due = [s for s in self._rechecks.values() if s.next_run_at <= now]
        return sorted(due, key=lambda s: s.next_run_at)

    async def delete_recheck(self, claim_id: str) -> None:
        self._rechecks.pop(claim_id, None)

    # Credibility history

    async def append_credibility_signal(self, signal: CredibilitySignal) -> CredibilitySignal:
        if signal.claim_id in self._signals:
            raise ConflictError("CredibilitySignal", signal.claim_id)
        self._signals[signal.claim_id] = signal
        return signal

    async def list_credibility_signals(self, source_id: Optional[str] = None) -> List[CredibilitySignal]:
        return [s for s in self._signals.values() if source_id is None or s.source_id == source_id]

    async def save_claim_score(self, score: ClaimScore) -> ClaimScore:
        self._claim_scores[score.claim_id] = score
        return score

    async def get_claim_score(self, claim_id: str) -> Optional[ClaimScore]:
        return self._claim_scores.get(claim_id)

    # Source scores

    async def append_source_score(self, score: SourceScore) -> SourceScore:
        await self.get_source(score.source_id)
        self._source_scores[score.source_id].append(score)
        return score

    async def get_current_source_score(self, source_id: str) -> Optional[SourceScore]:
        history = self._source_scores.get(source_id)
        if not history:
            return None
        return max(reversed(history), key=lambda s: s.computed_at)

    async def get_source_score_history(self, source_id: str) -> List[SourceScore]:
        return sorted(self._source_scores.get(source_id, []), key=lambda s: s.computed_at)

    async def get_stats(self) -> StorageStats:
        by_status: Dict[str, int] = {status.value: 0 for status in ClaimStatus}
        for claim in self._claims.values():
            by_status[claim.status.value] += 1
        return StorageStats(
            sources=len(self._sources),
            items=len(self._items),
            claims=len(self._claims),
            claims_by_status=by_status,
            evidence=sum(len(v) for v in self._evidence.values()),
            verdicts=sum(len(v) for v in self._verdicts.values()),
            resolutions=len(self._resolutions),
            source_scores=sum(len(v) for v in self._source_scores.values()),
        )
