"""Matching tiers as strategies returning tagged outcomes.

Each strategy's ``attempt(request)`` returns exactly one of:
- Ok(result): the tier produced the final MatchRunResult
- Fallthrough(reason): the next tier should be tried
- Fatal(error): stop walking the chain (caller cancelled the request)
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import Executor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from artisan_matching.config.models import TierDefaults
from artisan_matching.domain.models import CandidateProfile, MatchOptions
from artisan_matching.logging import get_logger
from artisan_matching.matching.analyzer import QueryAnalyzer
from artisan_matching.matching.assembler import ResultAssembler
from artisan_matching.matching.emergency import (
    EMERGENCY_CONFIDENCE,
    EmergencyScorer,
    query_keywords,
)
from artisan_matching.matching.explanation import ExplanationBuilder, confidence_level_for
from artisan_matching.matching.models import (
    MatchExplanation,
    MatchField,
    MatchRunResult,
    MatchTier,
    Query,
    QueryAnalysis,
    ScoredCandidate,
)
from artisan_matching.matching.scorer import (
    CandidateScorer,
    MatchingCancelledError,
    location_matches,
)
from artisan_matching.semantic.base import SemanticMatcher, SemanticMatchOutcome
from artisan_matching.semantic.exceptions import SemanticMatcherError

from .health import AIHealthTracker, should_use_fallback

logger = get_logger(__name__, component="routing")

SEMANTIC_PRIMARY_REASON = "Semantic match"


@dataclass(frozen=True)
class Ok:
    result: MatchRunResult


@dataclass(frozen=True)
class Fallthrough:
    reason: str
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class Fatal:
    error: BaseException


Outcome = Union[Ok, Fallthrough, Fatal]


@dataclass
class MatchRequest:
    """Everything a tier needs to serve one find_matches() call."""

    query: Query
    candidates: List[CandidateProfile]
    options: MatchOptions
    ai_healthy: bool
    request_id: str
    primary_result: Any = None
    cancel_event: Optional[threading.Event] = None


class TierStrategy(ABC):
    """One tier of the fallback cascade."""

    tier: MatchTier = MatchTier.NONE

    @abstractmethod
    def attempt(self, request: MatchRequest) -> Outcome:
        pass


class AITierStrategy(TierStrategy):
    """Tier 1: rank with the AI/semantic matcher when it is healthy.

    A result the caller already obtained from the matcher is used as-is;
    otherwise the matcher is called on a worker thread and the wait is
    bounded by ``timeout_seconds``. Timeouts and matcher errors are recorded
    on the health tracker and fall through. A call that timed out keeps its
    worker until the matcher returns; when ``max_in_flight`` calls are still
    running the tier falls through without queueing another one.
    """

    tier = MatchTier.AI

    def __init__(
        self,
        analyzer: QueryAnalyzer,
        assembler: ResultAssembler,
        defaults: TierDefaults,
        executor: Optional[Executor] = None,
        matcher: Optional[SemanticMatcher] = None,
        health_tracker: Optional[AIHealthTracker] = None,
        timeout_seconds: float = 5.0,
        max_in_flight: Optional[int] = None,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.analyzer = analyzer
        self.assembler = assembler
        self.defaults = defaults
        self.executor = executor
        self.matcher = matcher
        self.health_tracker = health_tracker
        self.timeout_seconds = timeout_seconds
        self._slots = threading.BoundedSemaphore(max_in_flight) if max_in_flight else None
        self.logger = logger_instance or logger

    def attempt(self, request: MatchRequest) -> Outcome:
        if should_use_fallback(request.ai_healthy):
            return Fallthrough("AI service reported unhealthy")

        started_at = time.perf_counter()
        if request.primary_result is not None:
            try:
                outcome = SemanticMatchOutcome.from_payload(request.primary_result)
            except SemanticMatcherError as e:
                return Fallthrough(f"Unusable primary matcher result: {e}", e)
        elif self.matcher is None or self.executor is None:
            return Fallthrough("No semantic matcher configured")
        elif self._slots is not None and not self._slots.acquire(blocking=False):
            self.logger.warning(
                "All semantic matcher workers are busy",
                extra={"event": "semantic.request.saturated"},
            )
            return Fallthrough("Semantic matcher workers busy")
        else:
            try:
                outcome = self._call_matcher(request)
            except FuturesTimeoutError as e:
                self._record_failure("timeout")
                return Fallthrough(
                    f"Semantic matcher timed out after {self.timeout_seconds} seconds", e
                )
            except Exception as e:
                self._record_failure(type(e).__name__)
                return Fallthrough(f"Semantic matcher failed: {e}", e)
            self._record_success()

        scored = self._to_scored(outcome, request)
        min_score = request.options.min_score if request.options.min_score is not None else 0.0
        max_results = request.options.max_results or self.defaults.max_results

        result = self.assembler.assemble(
            scored,
            self.analyzer.analyze(request.query, request.options),
            explain=_semantic_explanation,
            min_score=min_score,
            max_results=max_results,
            confidence=outcome.confidence,
            fallback_used=False,
            tier=self.tier,
            started_at=started_at,
            request_id=request.request_id,
        )
        return Ok(result)

    def _call_matcher(self, request: MatchRequest) -> SemanticMatchOutcome:
        try:
            future = self.executor.submit(self._run_matcher, request)
        except Exception:
            self._release_slot()
            raise
        # a future cancelled before it started never runs _run_matcher
        future.add_done_callback(lambda f: self._release_slot() if f.cancelled() else None)

        try:
            return SemanticMatchOutcome.from_payload(future.result(timeout=self.timeout_seconds))
        except FuturesTimeoutError:
            future.cancel()
            self.logger.warning(
                "Semantic matcher call timed out",
                extra={
                    "event": "semantic.request.timeout",
                    "timeout": self.timeout_seconds,
                },
            )
            raise

    def _to_scored(
        self, outcome: SemanticMatchOutcome, request: MatchRequest
    ) -> List[ScoredCandidate]:
        """Map matcher scores back onto candidates, dropping bad indices."""
        scored: List[ScoredCandidate] = []
        seen = set()
        for item in outcome.matches:
            index = item.candidate_index
            if index >= len(request.candidates) or index in seen:
                self.logger.warning(
                    "Ignoring semantic match with unknown or repeated candidate index",
                    extra={"event": "semantic.response.bad_index", "candidate_index": index},
                )
                continue
            seen.add(index)

            candidate = request.candidates[index]
            reasons = item.reasons
            scored.append(
                ScoredCandidate(
                    candidate=candidate,
                    position=index,
                    score=item.score,
                    location_match=location_matches(candidate, request.options.location),
                    explanation=MatchExplanation(
                        primary_reason=reasons[0] if reasons else SEMANTIC_PRIMARY_REASON,
                        detailed_reasons=reasons,
                        confidence_level=confidence_level_for(item.score),
                    ),
                    flags=_parse_flags(item.flags),
                )
            )
        return scored

    def _run_matcher(self, request: MatchRequest) -> Any:
        try:
            return self.matcher.match(request.query.raw, request.candidates, request.options)
        finally:
            self._release_slot()

    def _release_slot(self) -> None:
        if self._slots is not None:
            self._slots.release()

    def _record_success(self) -> None:
        if self.health_tracker is not None:
            self.health_tracker.record_success()

    def _record_failure(self, reason: str) -> None:
        if self.health_tracker is not None:
            self.health_tracker.record_failure(reason)


def _parse_flags(flags: Dict[str, bool]) -> Dict[MatchField, bool]:
    parsed = {}
    for key, value in flags.items():
        try:
            parsed[MatchField(key.lower())] = bool(value)
        except ValueError:
            continue
    return parsed


def _semantic_explanation(scored: ScoredCandidate) -> MatchExplanation:
    return MatchExplanation(
        primary_reason=SEMANTIC_PRIMARY_REASON,
        confidence_level=confidence_level_for(scored.score),
    )


class DeterministicStrategy(TierStrategy):
    """Tier 2: keyword/synonym analysis, weighted scoring, explanations.

    Queries shorter than the analyzer's minimum length end here with an
    empty result. Cancellation is Fatal; any other exception is logged and
    falls through to the emergency tier.
    """

    tier = MatchTier.DETERMINISTIC

    def __init__(
        self,
        analyzer: QueryAnalyzer,
        scorer: CandidateScorer,
        explainer: ExplanationBuilder,
        assembler: ResultAssembler,
        defaults: TierDefaults,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.analyzer = analyzer
        self.scorer = scorer
        self.explainer = explainer
        self.assembler = assembler
        self.defaults = defaults
        self.logger = logger_instance or logger

    def attempt(self, request: MatchRequest) -> Outcome:
        started_at = time.perf_counter()
        options = request.options

        try:
            analysis = self.analyzer.analyze(request.query, options)
            if len(request.query.normalized) < self.analyzer.min_query_length:
                scored: List[ScoredCandidate] = []
            else:
                scored = self.scorer.score_all(
                    analysis, request.candidates, options, request.cancel_event
                )

            result = self.assembler.assemble(
                scored,
                analysis,
                explain=lambda s: self.explainer.build(s.matches, s.score),
                min_score=options.min_score if options.min_score is not None else self.defaults.min_score,
                max_results=options.max_results or self.defaults.max_results,
                confidence=analysis.confidence,
                fallback_used=True,
                tier=self.tier,
                started_at=started_at,
                request_id=request.request_id,
            )
        except MatchingCancelledError as e:
            return Fatal(e)
        except Exception as e:
            self.logger.error(
                f"Deterministic matching failed: {e}",
                exc_info=True,
                extra={
                    "event": "matching.deterministic.failed",
                    "error_type": type(e).__name__,
                    "candidate_count": len(request.candidates),
                },
            )
            return Fallthrough(f"Deterministic tier failed: {e}", e)

        return Ok(result)


class EmergencyStrategy(TierStrategy):
    """Tier 3: plain substring scoring over profession, name and description."""

    tier = MatchTier.EMERGENCY

    def __init__(
        self,
        scorer: EmergencyScorer,
        assembler: ResultAssembler,
        defaults: TierDefaults,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.scorer = scorer
        self.assembler = assembler
        self.defaults = defaults
        self.logger = logger_instance or logger

    def attempt(self, request: MatchRequest) -> Outcome:
        started_at = time.perf_counter()
        options = request.options
        try:
            scored = self.scorer.score_all(request.query.raw, request.candidates, options)
            analysis = QueryAnalysis(
                detected_keywords=tuple(query_keywords(request.query.raw)),
                confidence=EMERGENCY_CONFIDENCE,
            )
            result = self.assembler.assemble(
                scored,
                analysis,
                explain=self.scorer.explain,
                min_score=options.min_score if options.min_score is not None else self.defaults.min_score,
                max_results=options.max_results or self.defaults.max_results,
                confidence=EMERGENCY_CONFIDENCE,
                fallback_used=True,
                tier=self.tier,
                started_at=started_at,
                request_id=request.request_id,
            )
        except Exception as e:
            self.logger.error(
                f"Emergency matching failed: {e}",
                exc_info=True,
                extra={"event": "matching.emergency.failed", "error_type": type(e).__name__},
            )
            return Fallthrough(f"Emergency tier failed: {e}", e)

        return Ok(result)
