"""Port interface for pipeline storage."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from ..models.claim import Claim, ClaimStatus
from ..models.evidence import EvidenceItem
from ..models.item import Item, Source
from ..models.pipeline import StorageStats
from ..models.resolution import RecheckSchedule, Resolution
from ..models.score import ClaimScore, CredibilitySignal, SourceScore
from ..models.verdict import Verdict


class StorageError(Exception):
    """Base class for storage failures."""


class EntityNotFoundError(StorageError, LookupError):
    """A referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} '{entity_id}' not found")


class ConflictError(StorageError):
    """A write would violate a uniqueness rule."""

    def __init__(self, entity: str, key: str, message: Optional[str] = None):
        self.entity = entity
        self.key = key
        super().__init__(message or f"{entity} '{key}' already exists")


class StorageUnavailableError(StorageError, ConnectionError):
    """The storage backend cannot be reached at all."""


class StorageProvider(ABC):
    """Abstract storage contract the pipeline depends on.

    Verdicts form an ordered log per claim: ``get_current_verdict`` is the
    last entry and ``get_verdict_history`` the full log, oldest first.
    """

    # Sources

    @abstractmethod
    async def create_source(self, source: Source) -> Source:
        """Store a source. Raises ConflictError on a duplicate handle."""
        pass

    @abstractmethod
    async def get_source(self, source_id: str) -> Source:
        """Get a source. Raises EntityNotFoundError."""
        pass

    @abstractmethod
    async def get_source_by_handle(self, handle_or_domain: str) -> Optional[Source]:
        """Find a source by handle or domain."""
        pass

    @abstractmethod
    async def list_sources(self) -> List[Source]:
        """List all sources."""
        pass

    # Items

    @abstractmethod
    async def create_item(self, item: Item) -> Item:
        """Store an item. Raises ConflictError on a duplicate content hash."""
        pass

    @abstractmethod
    async def get_item(self, item_id: str) -> Item:
        """Get an item. Raises EntityNotFoundError."""
        pass

    @abstractmethod
    async def get_item_by_hash(self, content_hash: str) -> Optional[Item]:
        """Find an item by content hash."""
        pass

    # Claims

    @abstractmethod
    async def create_claim(self, claim: Claim) -> Claim:
        """Store a claim.

        Raises:
            EntityNotFoundError: If the item or source does not exist
            ConflictError: If the item already has a claim with the same fingerprint
        """
        pass

    @abstractmethod
    async def get_claim(self, claim_id: str) -> Claim:
        """Get a claim. Raises EntityNotFoundError."""
        pass

    @abstractmethod
    async def update_claim(self, claim: Claim) -> Claim:
        """Replace a stored claim with an updated copy. Raises EntityNotFoundError."""
        pass

    @abstractmethod
    async def list_claims(
        self,
        source_id: Optional[str] = None,
        status: Optional[ClaimStatus] = None,
    ) -> List[Claim]:
        """List claims, oldest first."""
        pass

    @abstractmethod
    async def list_claims_by_item(self, item_id: str) -> List[Claim]:
        """List claims extracted from an item."""
        pass

    @abstractmethod
    async def delete_claim(self, claim_id: str) -> None:
        """Delete a claim with everything recorded against it, credibility signal included."""
        pass

    # Evidence

    @abstractmethod
    async def add_evidence(self, evidence: List[EvidenceItem]) -> List[EvidenceItem]:
        """Append evidence. Raises EntityNotFoundError for an unknown claim."""
        pass

    @abstractmethod
    async def list_evidence(self, claim_id: str, verification_round: Optional[int] = None) -> List[EvidenceItem]:
        """List evidence for a claim, optionally for one round."""
        pass

    # Verdicts

    @abstractmethod
    async def append_verdict(self, verdict: Verdict) -> Verdict:
        """Append to the claim's verdict log. Raises EntityNotFoundError."""
        pass

    @abstractmethod
    async def get_current_verdict(self, claim_id: str) -> Optional[Verdict]:
        """Last verdict in the claim's log."""
        pass

    @abstractmethod
    async def get_verdict_history(self, claim_id: str) -> List[Verdict]:
        """Full verdict log, oldest first."""
        pass

    # Resolutions

    @abstractmethod
    async def create_resolution(self, resolution: Resolution) -> Resolution:
        """Store the claim's resolution. Raises ConflictError if one exists."""
        pass

    @abstractmethod
    async def get_resolution(self, claim_id: str) -> Optional[Resolution]:
        """Get the claim's resolution."""
        pass

    # Re-check schedule

    @abstractmethod
    async def save_recheck(self, schedule: RecheckSchedule) -> RecheckSchedule:
        """Create or replace a claim's re-check schedule."""
        pass

    @abstractmethod
    async def get_recheck(self, claim_id: str) -> Optional[RecheckSchedule]:
        """Get a claim's re-check schedule."""
        pass

    @abstractmethod
    async def list_due_rechecks(self, now: datetime) -> List[RecheckSchedule]:
        """Schedules due at or before ``now``, earliest first."""
        pass

    @abstractmethod
    async def delete_recheck(self, claim_id: str) -> None:
        """Remove a claim's re-check schedule, if any."""
        pass

    # Credibility history

    @abstractmethod
    async def append_credibility_signal(self, signal: CredibilitySignal) -> CredibilitySignal:
        """Record a resolved claim's signal. Raises ConflictError on a second one."""
        pass

    @abstractmethod
    async def list_credibility_signals(self, source_id: Optional[str] = None) -> List[CredibilitySignal]:
        """List recorded signals."""
        pass

    @abstractmethod
    async def save_claim_score(self, score: ClaimScore) -> ClaimScore:
        """Store a claim score."""
        pass

    @abstractmethod
    async def get_claim_score(self, claim_id: str) -> Optional[ClaimScore]:
        """Get a claim score."""
        pass

    # Source scores

    @abstractmethod
    async def append_source_score(self, score: SourceScore) -> SourceScore:
        """Append a source score snapshot. Raises EntityNotFoundError."""
        pass

    @abstractmethod
    async def get_current_source_score(self, source_id: str) -> Optional[SourceScore]:
        """Latest snapshot by computation time."""
        pass

    @abstractmethod
    async def get_source_score_history(self, source_id: str) -> List[SourceScore]:
        """All snapshots, oldest first."""
        pass

    @abstractmethod
    async def get_stats(self) -> StorageStats:
        """Entity counts."""
        pass
