"""Runtime configuration loaded from the environment."""

import logging
import os
from typing import Optional

from pydantic import BaseModel, Field

from ..domain.models.policy import (
    GradingRules,
    PipelinePolicy,
    ResolutionPolicy,
    RetryPolicy,
    ScoringPolicy,
    VerdictPolicy,
)

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"⚠️ {name}={value!r} is not a number, using {default}")
        return default


def env_log_level() -> str:
    """Logging level named by CLAIM_CHECKER_LOG_LEVEL, INFO when unset."""
    return (os.getenv("CLAIM_CHECKER_LOG_LEVEL") or "INFO").upper()


class Settings(BaseModel):
    """Service configuration: collaborators plus tunable policies."""

    openai_api_key: str = Field(default="", description="Enables the ChatGPT provider when set")
    openai_model: str = Field(default="gpt-4o-mini")
    openai_base_url: Optional[str] = None
    search_url: Optional[str] = Field(default=None, description="JSON search endpoint; unset uses the local corpus")
    search_api_key: Optional[str] = None
    corpus_path: Optional[str] = Field(default=None, description="JSON file seeding the local corpus")
    log_level: str = Field(default="INFO")

    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    pipeline: PipelinePolicy = Field(default_factory=PipelinePolicy)
    verdict: VerdictPolicy = Field(default_factory=VerdictPolicy)
    scoring: ScoringPolicy = Field(default_factory=ScoringPolicy)
    resolution: ResolutionPolicy = Field(default_factory=ResolutionPolicy)
    grading: GradingRules = Field(default_factory=GradingRules)

    @classmethod
    def from_env(cls) -> "Settings":
        """Create configuration from environment variables."""
        api_key = os.getenv("OPENAI_API_KEY", "")
        search_url = os.getenv("CLAIM_CHECKER_SEARCH_URL") or None

        if api_key:
            logger.info("🤖 OpenAI API key found, model-backed completions enabled")
        else:
            logger.warning("⚠️ OPENAI_API_KEY not set, using rule-based completions")
        if not search_url:
            logger.info("📚 CLAIM_CHECKER_SEARCH_URL not set, using the local corpus search")

        scoring = ScoringPolicy(
            prior_strength=_env_float("CLAIM_CHECKER_PRIOR_STRENGTH", ScoringPolicy().prior_strength),
            prior_mean=_env_float("CLAIM_CHECKER_PRIOR_MEAN", ScoringPolicy().prior_mean),
        )
        retry = RetryPolicy(
            max_attempts=int(_env_float("CLAIM_CHECKER_MAX_RETRIES", RetryPolicy().max_attempts)),
            timeout=_env_float("CLAIM_CHECKER_CALL_TIMEOUT", RetryPolicy().timeout),
        )
        pipeline = PipelinePolicy(
            max_concurrency=int(_env_float("CLAIM_CHECKER_MAX_CONCURRENCY", PipelinePolicy().max_concurrency)),
            unit_timeout=_env_float("CLAIM_CHECKER_UNIT_TIMEOUT", PipelinePolicy().unit_timeout),
        )
        official = os.getenv("CLAIM_CHECKER_OFFICIAL_ACCOUNTS", "")
        grading = GradingRules(
            official_accounts=[account.strip() for account in official.split(",") if account.strip()]
        )

        return cls(
            openai_api_key=api_key,
            openai_model=os.getenv("CLAIM_CHECKER_MODEL", "gpt-4o-mini"),
            openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            search_url=search_url,
            search_api_key=os.getenv("CLAIM_CHECKER_SEARCH_API_KEY") or None,
            corpus_path=os.getenv("CLAIM_CHECKER_CORPUS") or None,
            log_level=env_log_level(),
            retry=retry,
            pipeline=pipeline,
            scoring=scoring,
            grading=grading,
        )
