"""Command line entry point for running the claim pipeline."""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from .domain.models.ingest import IngestBatch
from .domain.models.pipeline import BatchSummary
from .infrastructure.config import Settings
from .infrastructure.dependencies import ServiceContainer

logger = logging.getLogger(__name__)


def load_batch(path: str) -> IngestBatch:
    """Read an ingest batch from a JSON file.

    The file holds either ``{"sources": [...], "items": [...]}`` or a bare
    list of items.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        data = {"items": data}
    return IngestBatch.model_validate(data)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="claim-checker",
        description="Verify crypto claims and score source credibility",
    )
    parser.add_argument("--log-level", default=None, help="Override CLAIM_CHECKER_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run a batch of items through the pipeline")
    run.add_argument("items", help="JSON file with sources and items")
    run.add_argument("--rescore", action="store_true", help="Rescore sources after the batch")
    run.add_argument("--recheck", action="store_true", help="Run due re-checks after the batch")

    return parser


def print_summary(summary: BatchSummary) -> None:
    print(json.dumps(summary.model_dump(mode="json"), indent=2))


async def run_command(args: argparse.Namespace, container: ServiceContainer) -> int:
    """Execute one CLI command against an initialized container.

    Storage lives only as long as the container, so re-checks and rescoring
    run inside the same invocation as the batch they follow.
    """
    orchestrator = container.get_orchestrator()
    summaries: List[BatchSummary] = []

    try:
        batch = load_batch(args.items)
    except (OSError, ValueError, ValidationError) as e:
        logger.error(f"❌ Cannot read {args.items}: {e}")
        return 2
    summaries.append(await orchestrator.ingest(batch))
    if args.recheck:
        summaries.append(await orchestrator.run_recheck_batch())
    if args.rescore:
        summaries.append(await orchestrator.rescore_sources())

    for summary in summaries:
        print_summary(summary)

    if args.rescore:
        for score in await orchestrator.current_scores():
            print(f"{score.source_id}: {orchestrator.scorer.explain(score)}")
    return 1 if any(s.aborted for s in summaries) else 0


async def _main(args: argparse.Namespace, settings: Settings) -> int:
    container = ServiceContainer(settings)
    await container.initialize()
    try:
        return await run_command(args, container)
    finally:
        await container.shutdown()


def main(argv: Optional[List[str]] = None) -> int:
    """Run the claim checker CLI."""
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    return asyncio.run(_main(args, settings))


if __name__ == "__main__":
    sys.exit(main())
