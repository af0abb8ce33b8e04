"""Service sequencing extraction, evidence, verdicts and resolution in batches."""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from ..models.claim import Claim, ClaimStatus, ClaimType, ResolutionType
from ..models.common import utc_now
from ..models.evidence import EvidenceItem
from ..models.ingest import IngestBatch
from ..models.item import Item, Source
from ..models.pipeline import (
    BatchSummary,
    PipelineEvent,
    PipelineEventType,
    PipelineStatus,
    RunKind,
    StorageStats,
    UnitFailure,
)
from ..models.policy import PipelinePolicy
from ..models.resolution import Resolution, ResolutionOutcome
from ..models.score import SourceScore
from ..models.verdict import Verdict
from ..ports.storage_provider import (
    ConflictError,
    EntityNotFoundError,
    StorageProvider,
    StorageUnavailableError,
)
from .claim_extractor import ClaimExtractor
from .credibility_scorer import CredibilityScorer
from .evidence_retriever import EvidenceRetriever
from .resolution_engine import ResolutionEngine
from .verdict_synthesizer import VerdictSynthesizer

logger = logging.getLogger(__name__)

EventHandler = Callable[[PipelineEvent], Awaitable[None]]


@dataclass
class UnitProgress:
    """Work committed by one unit, and the stage it reached."""

    unit_id: str
    stage: str = "queued"
    claims_created: int = 0
    verdicts_created: int = 0
    resolutions_created: int = 0
    duplicate: bool = False


class PipelineOrchestrator:
    """Runs the claim pipeline over items and due re-checks.

    Items are independent units of work processed concurrently up to the
    policy limit; the stages of one claim run strictly in order. A failing
    unit is logged with its id and stage and skipped. Only an unreachable
    storage backend stops a batch.
    """

    def __init__(
        self,
        storage: StorageProvider,
        extractor: ClaimExtractor,
        retriever: EvidenceRetriever,
        synthesizer: VerdictSynthesizer,
        resolution_engine: ResolutionEngine,
        scorer: CredibilityScorer,
        policy: Optional[PipelinePolicy] = None,
    ):
        self._storage = storage
        self._extractor = extractor
        self._retriever = retriever
        self._synthesizer = synthesizer
        self._engine = resolution_engine
        self._scorer = scorer
        self._policy = policy or PipelinePolicy()
        self._handlers: List[EventHandler] = []
        self._running: Dict[RunKind, bool] = defaultdict(bool)
        self._status = PipelineStatus()
        logger.info("🔧 PipelineOrchestrator initialized")

    @property
    def storage(self) -> StorageProvider:
        return self._storage

    @property
    def scorer(self) -> CredibilityScorer:
        return self._scorer

    def on_event(self, handler: EventHandler) -> None:
        """Register an async handler for pipeline events."""
        self._handlers.append(handler)

    async def _emit(self, event_type: PipelineEventType, **payload) -> None:
        event = PipelineEvent(type=event_type, payload=payload)
        for handler in self._handlers:
            try:
                await handler(event)
            except Exception as e:
                logger.error(f"❌ Event handler failed for {event_type.value}: {e}")

    def get_status(self) -> PipelineStatus:
        """Current run status."""
        return self._status.model_copy(update={"is_running": any(self._running.values())})

    async def get_stats(self) -> StorageStats:
        return await self._storage.get_stats()

    # Units of work

    async def _process_item(self, item: Item, progress: UnitProgress) -> None:
        progress.stage = "dedup"
        existing = await self._storage.get_item_by_hash(item.content_hash)
        if existing is not None:
            claims = await self._storage.list_claims_by_item(existing.id)
            pending = [c for c in claims if c.status == ClaimStatus.UNREVIEWED]
            if claims and not pending:
                logger.info(f"⏭️ item={item.id} duplicates item={existing.id}, skipping")
                progress.duplicate = True
                return
            if pending:
                logger.info(f"🔁 Resuming {len(pending)} unreviewed claims of item={existing.id}")
                for claim in pending:
                    await self._verify(claim, progress)
                return
            item = existing
        else:
            progress.stage = "ingest"
            await self._storage.get_source(item.source_id)
            try:
                item = await self._storage.create_item(item)
            except ConflictError:
                progress.duplicate = True
                return
            await self._emit(PipelineEventType.ITEM_INGESTED, item_id=item.id, source_id=item.source_id)

        progress.stage = "extraction"
        source = await self._storage.get_source(item.source_id)
        candidates = await self._extractor.extract(item, source)

        progress.stage = "claim_storage"
        default_time = item.published_at or item.ingested_at
        claims = []
        for candidate in candidates:
            claim = Claim.from_candidate(candidate, item.id, item.source_id, default_time)
            try:
                claims.append(await self._storage.create_claim(claim))
            except ConflictError:
                logger.info(f"⏭️ Claim already recorded for item={item.id}: {claim.claim_text[:60]!r}")
                continue
            progress.claims_created += 1
        await self._emit(PipelineEventType.CLAIMS_EXTRACTED, item_id=item.id, claim_ids=[c.id for c in claims])

        for claim in claims:
            if self._engine.requires_human_review(claim):
                await self._emit(
                    PipelineEventType.HUMAN_REVIEW_REQUIRED,
                    claim_id=claim.id,
                    claim_type=claim.claim_type.value,
                )
            await self._verify(claim, progress)

    async def _verify(
        self,
        claim: Claim,
        progress: UnitProgress,
        correction_reason: Optional[str] = None,
    ) -> Tuple[Verdict, Optional[Resolution]]:
        progress.stage = f"retrieval claim={claim.id}"
        candidates = await self._retriever.retrieve(claim)

        progress.stage = f"evidence_storage claim={claim.id}"
        previous = await self._storage.list_evidence(claim.id)
        verification_round = max((e.verification_round for e in previous), default=0) + 1
        evidence = await self._storage.add_evidence(
            [EvidenceItem.from_candidate(c, claim.id, verification_round) for c in candidates]
        )
        await self._emit(
            PipelineEventType.EVIDENCE_COLLECTED,
            claim_id=claim.id,
            count=len(evidence),
            verification_round=verification_round,
        )

        progress.stage = f"synthesis claim={claim.id}"
        verdict = await self._synthesizer.synthesize(claim, evidence)
        if correction_reason:
            verdict = verdict.model_copy(
                update={"metadata": {**verdict.metadata, "correction_reason": correction_reason}}
            )

        progress.stage = f"verdict_storage claim={claim.id}"
        verdict = await self._storage.append_verdict(verdict)
        progress.verdicts_created += 1
        await self._emit(
            PipelineEventType.VERDICT_CREATED,
            claim_id=claim.id,
            verdict_id=verdict.id,
            label=verdict.label.value,
        )

        progress.stage = f"resolution claim={claim.id}"
        _, resolution = await self._engine.on_verdict(claim.id, verdict, evidence)
        if resolution is not None:
            progress.resolutions_created += 1
            await self._emit(
                PipelineEventType.CLAIM_RESOLVED,
                claim_id=claim.id,
                outcome=resolution.outcome.value,
            )
        return verdict, resolution

    # Batches

    async def _run_units(
        self,
        summary: BatchSummary,
        units: Sequence[Tuple[str, Callable[[UnitProgress], Awaitable[None]]]],
    ) -> None:
        semaphore = asyncio.Semaphore(self._policy.max_concurrency)
        abort = asyncio.Event()

        async def run(unit_id: str, work: Callable[[UnitProgress], Awaitable[None]]) -> None:
            async with semaphore:
                if abort.is_set():
                    return
                progress = UnitProgress(unit_id)
                try:
                    await asyncio.wait_for(work(progress), timeout=self._policy.unit_timeout)
                except StorageUnavailableError as e:
                    abort.set()
                    self._record_failure(summary, progress, f"storage unavailable: {e}")
                except (asyncio.TimeoutError, TimeoutError):
                    self._record_failure(summary, progress, f"timed out after {self._policy.unit_timeout}s")
                except Exception as e:
                    self._record_failure(summary, progress, f"{type(e).__name__}: {e}")
                else:
                    if progress.duplicate:
                        summary.skipped_duplicates += 1
                    else:
                        summary.processed += 1
                finally:
                    summary.claims_created += progress.claims_created
                    summary.verdicts_created += progress.verdicts_created
                    summary.resolutions_created += progress.resolutions_created

        await asyncio.gather(*(run(unit_id, work) for unit_id, work in units))
        if abort.is_set():
            summary.aborted = True
            logger.error(f"❌ Storage unreachable, {summary.kind.value} run {summary.run_id} aborted")

    @staticmethod
    def _record_failure(summary: BatchSummary, progress: UnitProgress, error: str) -> None:
        logger.error(f"❌ Unit {progress.unit_id} failed at stage={progress.stage}: {error}")
        summary.failed += 1
        summary.failures.append(UnitFailure(unit_id=progress.unit_id, stage=progress.stage, error=error))

    def _begin(self, kind: RunKind) -> Optional[BatchSummary]:
        if self._running[kind]:
            logger.warning(f"⚠️ A {kind.value} run is already in progress, skipping")
            now = utc_now()
            return BatchSummary(kind=kind, started_at=now, finished_at=now, skipped=True)
        self._running[kind] = True
        return None

    def _finish(self, summary: BatchSummary) -> BatchSummary:
        summary.finished_at = utc_now()
        self._running[summary.kind] = False
        status = self._status
        status.last_run_at = summary.finished_at
        status.claims_extracted += summary.claims_created
        status.verdicts_created += summary.verdicts_created
        if summary.kind == RunKind.INGEST:
            status.items_processed += summary.processed
        status.last_summary = summary
        logger.info(
            f"✅ {summary.kind.value} run {summary.run_id}: processed={summary.processed} "
            f"duplicates={summary.skipped_duplicates} failed={summary.failed} "
            f"claims={summary.claims_created} verdicts={summary.verdicts_created} "
            f"resolutions={summary.resolutions_created} aborted={summary.aborted}"
        )
        return summary

    async def register_source(self, source: Source) -> Source:
        """Store a source, returning the existing record when the handle is known."""
        existing = await self._storage.get_source_by_handle(source.handle_or_domain)
        if existing is not None:
            return existing
        try:
            return await self._storage.create_source(source)
        except ConflictError:
            return await self._storage.get_source_by_handle(source.handle_or_domain)

    async def _resolve_source(self, reference: str) -> Source:
        try:
            return await self._storage.get_source(reference)
        except EntityNotFoundError:
            pass
        source = await self._storage.get_source_by_handle(reference)
        if source is None:
            logger.info(f"📝 Registering unknown source {reference!r}")
            source = await self.register_source(Source(handle_or_domain=reference, display_name=reference))
        return source

    async def ingest(self, batch: IngestBatch) -> BatchSummary:
        """Register the batch's sources, then run its items through the pipeline."""
        try:
            for source in batch.sources:
                await self.register_source(source)
            items = []
            for entry in batch.items:
                source = await self._resolve_source(entry.source)
                items.append(entry.to_item(source.id))
        except StorageUnavailableError as e:
            logger.error(f"❌ Cannot register sources: {e}")
            now = utc_now()
            return BatchSummary(kind=RunKind.INGEST, started_at=now, finished_at=now, aborted=True)
        return await self.run_batch(items)

    async def run_batch(self, items: Sequence[Item]) -> BatchSummary:
        """Process newly ingested items. Always returns a summary."""
        skipped = self._begin(RunKind.INGEST)
        if skipped:
            return skipped
        summary = BatchSummary(kind=RunKind.INGEST)
        try:
            logger.info(f"🚀 Ingest run {summary.run_id} over {len(items)} items")
            seen = set()
            units = []
            for item in items:
                if item.content_hash in seen:
                    summary.skipped_duplicates += 1
                    continue
                seen.add(item.content_hash)
                units.append((item.id, lambda progress, item=item: self._process_item(item, progress)))
            await self._run_units(summary, units)
        finally:
            self._finish(summary)
        return summary

    async def run_recheck_batch(self, now: Optional[datetime] = None) -> BatchSummary:
        """Re-verify reviewed claims whose re-check time has come."""
        skipped = self._begin(RunKind.RECHECK)
        if skipped:
            return skipped
        now = now or utc_now()
        summary = BatchSummary(kind=RunKind.RECHECK)
        try:
            try:
                claims = await self._engine.due_rechecks(now)
            except StorageUnavailableError as e:
                logger.error(f"❌ Cannot list due re-checks: {e}")
                summary.aborted = True
                return summary
            logger.info(f"🔁 Re-check run {summary.run_id} over {len(claims)} claims")

            async def recheck(claim: Claim, progress: UnitProgress) -> None:
                progress.stage = "recheck_schedule"
                await self._engine.record_recheck_attempt(claim.id, now)
                await self._verify(claim, progress)

            units = [(c.id, lambda progress, c=c: recheck(c, progress)) for c in claims]
            await self._run_units(summary, units)
        finally:
            self._finish(summary)
        return summary

    async def rescore_sources(self) -> BatchSummary:
        """Append a fresh score snapshot for every source.

        Reads credibility history only; safe to run alongside claim batches.
        """
        skipped = self._begin(RunKind.RESCORE)
        if skipped:
            return skipped
        summary = BatchSummary(kind=RunKind.RESCORE)
        try:
            try:
                signals = await self._storage.list_credibility_signals()
                sources = await self._storage.list_sources()
            except StorageUnavailableError as e:
                logger.error(f"❌ Cannot read credibility history: {e}")
                summary.aborted = True
                return summary

            prior = self._scorer.prior_mean(signals)
            by_source = defaultdict(list)
            for signal in signals:
                by_source[signal.source_id].append(signal)
            logger.info(f"📊 Rescoring {len(sources)} sources against prior {prior:.3f}")

            async def rescore(source_id: str, progress: UnitProgress) -> None:
                progress.stage = "scoring"
                score = self._scorer.score(source_id, by_source.get(source_id, []), prior)
                await self._storage.append_source_score(score)
                summary.scores_created += 1

            units = [(s.id, lambda progress, s=s: rescore(s.id, progress)) for s in sources]
            await self._run_units(summary, units)
            await self._emit(PipelineEventType.SCORES_UPDATED, sources=summary.scores_created, prior_mean=prior)
        finally:
            self._finish(summary)
        return summary

    # Single-claim operations

    async def verify_claim(self, claim_id: str) -> Verdict:
        """Re-run evidence retrieval and synthesis for one claim, appending a verdict."""
        claim = await self._storage.get_claim(claim_id)
        verdict, _ = await self._verify(claim, UnitProgress(claim.id))
        return verdict

    async def record_resolution(
        self,
        claim_id: str,
        outcome: ResolutionOutcome,
        evidence_url: Optional[str] = None,
        notes: str = "",
    ) -> Resolution:
        """Record explicit ground truth for a claim."""
        resolution = await self._engine.record_resolution(claim_id, outcome, evidence_url, notes)
        await self._emit(
            PipelineEventType.CLAIM_RESOLVED,
            claim_id=claim_id,
            outcome=resolution.outcome.value,
            resolved_by=resolution.resolved_by,
        )
        return resolution

    async def correct_claim(
        self,
        claim_id: str,
        reason: str,
        claim_text: Optional[str] = None,
        claim_type: Optional[ClaimType] = None,
        resolution_type: Optional[ResolutionType] = None,
        resolve_by: Optional[datetime] = None,
    ) -> Tuple[Claim, Verdict]:
        """Correct a claim without rewriting history.

        A resolved claim gets a new claim record referencing it; any other
        claim is re-verified and the new verdict carries the reason.
        """
        claim = await self._storage.get_claim(claim_id)
        if claim.status == ClaimStatus.RESOLVED:
            claim = await self._engine.create_correction(
                claim_id, reason, claim_text, claim_type, resolution_type, resolve_by
            )
            verdict, _ = await self._verify(claim, UnitProgress(claim.id))
        else:
            verdict, _ = await self._verify(claim, UnitProgress(claim.id), correction_reason=reason)
        return await self._storage.get_claim(claim.id), verdict

    async def current_scores(self) -> List[SourceScore]:
        """Latest snapshot of every scored source."""
        scores = []
        for source in await self._storage.list_sources():
            score = await self._storage.get_current_source_score(source.id)
            if score is not None:
                scores.append(score)
        return scores
