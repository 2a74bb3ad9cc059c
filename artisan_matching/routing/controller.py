"""Routing controller: walks the tier chain for each matching request.

``ArtisanMatchingService`` is built once at process start and shared by
request handlers. It owns the tier strategies, the AI health tracker and the
worker pool used for AI calls. ``find_matches`` is total: whatever the
inputs, it returns a MatchRunResult and never raises.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from pydantic import ValidationError

from artisan_matching.config.environment import EnvironmentConfig
from artisan_matching.config.models import AppConfig
from artisan_matching.domain.models import CandidateProfile, MatchFeedback, MatchOptions
from artisan_matching.logging import get_logger
from artisan_matching.logging.context import log_context, new_request_id
from artisan_matching.matching.analyzer import QueryAnalyzer
from artisan_matching.matching.assembler import ResultAssembler, elapsed_ms
from artisan_matching.matching.emergency import EmergencyScorer
from artisan_matching.matching.explanation import ExplanationBuilder
from artisan_matching.matching.models import MatchRunResult, MatchTier, Query, QueryAnalysis
from artisan_matching.matching.scorer import CandidateScorer
from artisan_matching.matching.utils import fallback_capabilities
from artisan_matching.semantic.base import SemanticMatcher
from artisan_matching.semantic.http_client import HttpSemanticMatcher
from artisan_matching.taxonomy.loader import default_taxonomy, load_taxonomy
from artisan_matching.taxonomy.models import SynonymTable

from .health import AIHealthTracker
from .strategies import (
    AITierStrategy,
    DeterministicStrategy,
    EmergencyStrategy,
    Fallthrough,
    Fatal,
    MatchRequest,
    Ok,
    TierStrategy,
)

logger = get_logger(__name__, component="routing")


class ArtisanMatchingService:
    """Matches buyer queries to artisan profiles through the tier cascade.

    Tiers are attempted in order (AI, deterministic, emergency) until one
    returns Ok. A Fatal outcome, or every tier falling through, yields a
    safe empty result with ``fallback_used=True``.

    Example:
        >>> with ArtisanMatchingService(default_taxonomy()) as service:
        ...     run = service.find_matches("teak wood table", candidates)
    """

    def __init__(
        self,
        taxonomy: SynonymTable,
        config: Optional[AppConfig] = None,
        semantic_matcher: Optional[SemanticMatcher] = None,
        health_tracker: Optional[AIHealthTracker] = None,
        analyzer: Optional[QueryAnalyzer] = None,
        scorer: Optional[CandidateScorer] = None,
        explainer: Optional[ExplanationBuilder] = None,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Initialize the service.

        Args:
            taxonomy: Synonym/product tables shared by all requests
            config: Application configuration (defaults when omitted)
            semantic_matcher: AI collaborator for tier 1, if any
            health_tracker: Tracker consulted when callers pass no health flag
            analyzer: Query analyzer override
            scorer: Deterministic scorer override
            explainer: Explanation builder override
            logger_instance: Optional logger (defaults to module logger)
        """
        self.config = config or AppConfig()
        self.taxonomy = taxonomy
        self.semantic_matcher = semantic_matcher
        self.logger = logger_instance or logger

        matching = self.config.matching
        ai = self.config.ai
        self.health_tracker = health_tracker or AIHealthTracker(
            failure_threshold=ai.failure_threshold,
            cooldown_seconds=ai.cooldown_seconds,
        )
        self.analyzer = analyzer or QueryAnalyzer(
            taxonomy,
            min_query_length=matching.min_query_length,
            fuzzy_threshold=matching.fuzzy_threshold,
        )
        self.scorer = scorer or CandidateScorer(
            taxonomy, cancellation_check_interval=matching.cancellation_check_interval
        )
        self.explainer = explainer or ExplanationBuilder()

        self._executor = ThreadPoolExecutor(
            max_workers=ai.max_workers, thread_name_prefix="semantic-matcher"
        )
        assembler = ResultAssembler()
        self.strategies: List[TierStrategy] = [
            AITierStrategy(
                self.analyzer,
                assembler,
                matching.deterministic,
                executor=self._executor,
                matcher=semantic_matcher if ai.enabled else None,
                health_tracker=self.health_tracker,
                timeout_seconds=ai.timeout_seconds,
                max_in_flight=ai.max_workers,
            ),
            DeterministicStrategy(
                self.analyzer, self.scorer, self.explainer, assembler, matching.deterministic
            ),
            EmergencyStrategy(EmergencyScorer(), assembler, matching.emergency),
        ]

    @classmethod
    def from_config(
        cls, config: AppConfig, env_config: Optional[EnvironmentConfig] = None
    ) -> "ArtisanMatchingService":
        """Build a service from loaded configuration.

        Raises:
            TaxonomyError: If the configured taxonomy file is missing or invalid
        """
        if config.taxonomy.path:
            taxonomy = load_taxonomy(config.taxonomy.path)
        else:
            taxonomy = default_taxonomy()

        matcher = None
        if env_config is not None and env_config.semantic_matcher_configured and config.ai.enabled:
            matcher = HttpSemanticMatcher(
                env_config.semantic_matcher_url,
                api_key=env_config.semantic_matcher_api_key,
                timeout=config.ai.timeout_seconds,
            )

        return cls(taxonomy, config=config, semantic_matcher=matcher)

    def close(self) -> None:
        """Shut down the AI worker pool and the matcher's resources."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        if self.semantic_matcher is not None:
            self.semantic_matcher.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def find_matches(
        self,
        query: Union[str, Query, None],
        candidates: Optional[Iterable[Any]],
        options: Union[MatchOptions, Dict[str, Any], None] = None,
        ai_service_healthy: Optional[bool] = None,
        primary_result: Any = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> MatchRunResult:
        """Match a query against candidate profiles.

        Args:
            query: Buyer query text
            candidates: Profiles, flat dicts or nested user documents
            options: MatchOptions or a dict of its fields
            ai_service_healthy: Health flag from the AI collaborator; when
                None the service's health tracker decides
            primary_result: Output the AI collaborator already produced
                (SemanticMatchOutcome or its dict form)
            cancel_event: Set by the caller to abort scoring early

        Returns:
            MatchRunResult; never raises
        """
        request_id = new_request_id()
        with log_context(request_id=request_id):
            started_at = time.perf_counter()
            try:
                request = MatchRequest(
                    query=query if isinstance(query, Query) else Query.from_text(query),
                    candidates=self._coerce_candidates(candidates),
                    options=self._coerce_options(options),
                    ai_healthy=self._resolve_health(ai_service_healthy),
                    request_id=request_id,
                    primary_result=primary_result,
                    cancel_event=cancel_event,
                )
                result = self._run_chain(request)
            except Exception as e:
                self.logger.error(
                    f"Matching request failed: {e}",
                    exc_info=True,
                    extra={"event": "matching.run.failed", "error_type": type(e).__name__},
                )
                result = None

            if result is None:
                result = self._empty_result(request_id, started_at)

            self.logger.info(
                "Matching completed",
                extra={
                    "event": "matching.run.completed",
                    "tier": result.tier,
                    "fallback_used": result.fallback_used,
                    "total_found": result.total_found,
                    "confidence": result.confidence,
                    "processing_time_ms": elapsed_ms(started_at),
                },
            )
            return result

    def _run_chain(self, request: MatchRequest) -> Optional[MatchRunResult]:
        """Walk the strategies; None means no tier produced a result."""
        for strategy in self.strategies:
            try:
                outcome = strategy.attempt(request)
            except Exception as e:
                self.logger.error(
                    f"Tier {strategy.tier.value} raised: {e}",
                    exc_info=True,
                    extra={"event": "matching.tier.error", "tier": strategy.tier},
                )
                outcome = Fallthrough(f"{type(e).__name__}: {e}", e)

            if isinstance(outcome, Ok):
                self.logger.debug(
                    "Tier produced result",
                    extra={"event": "matching.tier.selected", "tier": strategy.tier},
                )
                return outcome.result

            if isinstance(outcome, Fatal):
                self.logger.warning(
                    f"Matching aborted: {outcome.error}",
                    extra={
                        "event": "matching.run.aborted",
                        "tier": strategy.tier,
                        "error_type": type(outcome.error).__name__,
                    },
                )
                return None

            log_level = logging.WARNING if outcome.error is not None else logging.INFO
            self.logger.log(
                log_level,
                f"Tier {strategy.tier.value} fell through: {outcome.reason}",
                extra={
                    "event": "matching.tier.fallthrough",
                    "tier": strategy.tier,
                    "reason": outcome.reason,
                },
            )

        self.logger.error(
            "Every matching tier failed",
            extra={"event": "matching.run.exhausted"},
        )
        return None

    def _coerce_candidates(self, candidates: Optional[Iterable[Any]]) -> List[CandidateProfile]:
        if candidates is None:
            return []
        profiles = []
        for index, item in enumerate(candidates):
            try:
                profiles.append(CandidateProfile.coerce(item))
            except (TypeError, ValueError, ValidationError) as e:
                self.logger.warning(
                    f"Skipping malformed candidate at index {index}: {e}",
                    extra={"event": "matching.candidate.skipped", "index": index},
                )
        return profiles

    def _coerce_options(self, options: Union[MatchOptions, Dict[str, Any], None]) -> MatchOptions:
        if isinstance(options, MatchOptions):
            return options
        if not options:
            return MatchOptions()
        try:
            return MatchOptions.model_validate(options)
        except ValidationError as e:
            self.logger.warning(
                f"Ignoring invalid match options: {e.error_count()} error(s)",
                extra={"event": "matching.options.invalid"},
            )
            return MatchOptions()

    def _resolve_health(self, ai_service_healthy: Optional[bool]) -> bool:
        if not self.config.ai.enabled:
            return False
        if ai_service_healthy is None:
            return self.health_tracker.allows_attempt()
        return bool(ai_service_healthy)

    @staticmethod
    def _empty_result(request_id: str, started_at: float) -> MatchRunResult:
        return MatchRunResult(
            matches=[],
            total_found=0,
            query_analysis=QueryAnalysis.empty(),
            processing_time_ms=elapsed_ms(started_at),
            confidence=0.0,
            fallback_used=True,
            tier=MatchTier.NONE,
            request_id=request_id,
        )

    def analyze_query(
        self, query: Union[str, Query, None], options: Optional[MatchOptions] = None
    ) -> QueryAnalysis:
        """Run only the query analysis step."""
        return self.analyzer.analyze(query, options)

    def get_fallback_capabilities(self) -> Dict[str, Any]:
        return fallback_capabilities(self.taxonomy)

    def get_system_status(self) -> Dict[str, Any]:
        """Health and configuration summary for status endpoints."""
        matching = self.config.matching
        return {
            "ai_service_healthy": self.health_tracker.is_healthy,
            "ai_enabled": self.config.ai.enabled,
            "semantic_matcher_configured": self.semantic_matcher is not None,
            "health": self.health_tracker.snapshot(),
            "taxonomy": {"version": self.taxonomy.version, "size": self.taxonomy.size},
            "defaults": {
                "deterministic": matching.deterministic.model_dump(),
                "emergency": matching.emergency.model_dump(),
                "min_query_length": matching.min_query_length,
            },
            "tiers": [strategy.tier.value for strategy in self.strategies],
        }

    def learn_from_successful_matches(
        self,
        query: str,
        candidate: Any,
        feedback: Union[MatchFeedback, str],
    ) -> None:
        """Record buyer feedback on a suggested artisan.

        Only logs the event; scoring is unaffected.

        Raises:
            ValueError: If feedback is not "positive" or "negative"
            TypeError: If candidate cannot be read as a profile
        """
        feedback = MatchFeedback(feedback.lower() if isinstance(feedback, str) else feedback)
        profile = CandidateProfile.coerce(candidate)

        self.logger.info(
            "Match feedback recorded",
            extra={
                "event": "matching.feedback.recorded",
                "query": query,
                "candidate_id": profile.id,
                "profession": profile.profession,
                "feedback": feedback,
            },
        )


def build_candidates(documents: Sequence[Any]) -> List[CandidateProfile]:
    """Coerce raw documents, raising on the first one that is not a profile."""
    return [CandidateProfile.coerce(doc) for doc in documents]
