"""Result assembly: filter, rank, truncate and package a run result."""

import time
from typing import Callable, List, Optional, Sequence

from .models import (
    MatchExplanation,
    MatchField,
    MatchResult,
    MatchRunResult,
    MatchTier,
    QueryAnalysis,
    ScoredCandidate,
)

Explainer = Callable[[ScoredCandidate], MatchExplanation]


def elapsed_ms(started_at: float) -> int:
    """Milliseconds since a time.perf_counter() reading."""
    return int((time.perf_counter() - started_at) * 1000)


class ResultAssembler:
    """Turns scored candidates into a ranked MatchRunResult.

    Ordering is by descending score; equal scores keep the caller's original
    candidate order (by ``ScoredCandidate.position``), never a secondary
    attribute such as popularity.
    """

    @staticmethod
    def select(
        scored: Sequence[ScoredCandidate], min_score: float, max_results: int
    ) -> List[ScoredCandidate]:
        """Drop candidates below min_score, sort and keep the top max_results."""
        kept = [s for s in scored if s.score >= min_score]
        kept.sort(key=lambda s: (-s.score, s.position))
        return kept[: max(0, max_results)]

    @staticmethod
    def to_match_results(
        selected: Sequence[ScoredCandidate], explain: Explainer
    ) -> List[MatchResult]:
        """Build MatchResults with dense ranks 1..N in the given order."""
        results = []
        for index, scored in enumerate(selected):
            results.append(
                MatchResult(
                    candidate=scored.candidate,
                    relevance_score=scored.score,
                    explanation=scored.explanation or explain(scored),
                    rank=index + 1,
                    profession_match=scored.has_match(MatchField.PROFESSION),
                    material_match=scored.has_match(MatchField.MATERIAL),
                    technique_match=scored.has_match(MatchField.TECHNIQUE),
                    specialization_match=scored.has_match(MatchField.SPECIALIZATION),
                    location_match=scored.location_match,
                )
            )
        return results

    def assemble(
        self,
        scored: Sequence[ScoredCandidate],
        analysis: QueryAnalysis,
        *,
        explain: Explainer,
        min_score: float,
        max_results: int,
        confidence: float,
        fallback_used: bool,
        tier: MatchTier,
        started_at: float,
        request_id: Optional[str] = None,
    ) -> MatchRunResult:
        """Package a complete run result.

        Args:
            scored: Scored candidates in original order
            analysis: Query analysis used by the tier
            explain: Builds an explanation for a scored candidate
            min_score: Inclusive lower bound on relevance
            max_results: Maximum number of matches
            confidence: Result-set confidence
            fallback_used: Whether a fallback tier produced the result
            tier: Tier that produced the result
            started_at: time.perf_counter() reading taken at tier entry
            request_id: Request identifier for correlation

        Returns:
            MatchRunResult
        """
        matches = self.to_match_results(self.select(scored, min_score, max_results), explain)
        return MatchRunResult(
            matches=matches,
            total_found=len(matches),
            query_analysis=analysis,
            processing_time_ms=elapsed_ms(started_at),
            confidence=confidence,
            fallback_used=fallback_used,
            tier=tier,
            request_id=request_id,
        )
