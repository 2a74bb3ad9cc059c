"""Deterministic multi-signal candidate scoring.

Each candidate is tested against the QueryAnalysis with fixed per-signal
weights; the signals that fire are recorded as KeywordMatch entries for the
explanation builder. Scores are summed and rounded, optionally boosted for
exact profession hits, and clamped to 1.0.
"""

import logging
import threading
from typing import Iterable, List, Optional, Sequence

from artisan_matching.domain.models import CandidateProfile, MatchOptions
from artisan_matching.logging import get_logger
from artisan_matching.taxonomy.models import SynonymTable

from .models import KeywordMatch, MatchField, MatchType, QueryAnalysis, ScoredCandidate

logger = get_logger(__name__, component="scorer")

PROFESSION_EXACT_WEIGHT = 0.40
PROFESSION_SYNONYM_WEIGHT = 0.30
MATERIAL_WEIGHT = 0.20
TECHNIQUE_WEIGHT = 0.20
SKILL_WEIGHT = 0.15
SPECIALIZATION_WEIGHT = 0.10
DESCRIPTION_WEIGHT = 0.05
EXACT_PROFESSION_BOOST = 1.2

# Weighted sums are rounded to this many places so equal totals compare equal
SCORE_PRECISION = 6


class MatchingCancelledError(Exception):
    """Raised when a caller's cancel signal is observed mid-scoring."""

    def __init__(self, scored: int, total: int) -> None:
        super().__init__(f"Scoring cancelled after {scored} of {total} candidates")
        self.scored = scored
        self.total = total


def sum_scores(matches: Iterable[KeywordMatch], multiplier: float = 1.0) -> float:
    """Sum match weights, apply a multiplier, and clamp to 1.0."""
    total = round(sum(m.score for m in matches), SCORE_PRECISION)
    if multiplier != 1.0:
        total = round(total * multiplier, SCORE_PRECISION)
    return min(1.0, total)


def _lowered(values: Iterable[str]) -> List[str]:
    return [v.lower() for v in values if v and v.strip()]


def _overlaps(term: str, values: Sequence[str]) -> bool:
    """Bidirectional substring test: term within a value, or a value within term."""
    return any(term in value or value in term for value in values)


def location_matches(candidate: CandidateProfile, requested: Optional[str]) -> bool:
    """Boolean "in range" check for the requested location.

    No requested location means every candidate is in range. Otherwise the
    caller's in_range flag wins when set, then a case-insensitive containment
    test against the candidate's location and service areas.
    """
    if not requested:
        return True
    if candidate.in_range is not None:
        return candidate.in_range
    wanted = requested.lower().strip()
    places = _lowered([candidate.location, *candidate.service_areas])
    return any(wanted in place or place in wanted for place in places)


class CandidateScorer:
    """Scores candidates for the deterministic tier.

    Missing candidate fields are already normalized to empty values by
    CandidateProfile, so scoring never fails on incomplete profiles; it
    simply has fewer signals to fire.
    """

    def __init__(
        self,
        taxonomy: SynonymTable,
        cancellation_check_interval: int = 256,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Initialize CandidateScorer.

        Args:
            taxonomy: Synonym tables used for the profession-synonym signal
            cancellation_check_interval: Candidates scored between cancel checks
            logger_instance: Optional logger (defaults to module logger)
        """
        self.taxonomy = taxonomy
        self.cancellation_check_interval = max(1, cancellation_check_interval)
        self.logger = logger_instance or logger

    def score_all(
        self,
        analysis: QueryAnalysis,
        candidates: Sequence[CandidateProfile],
        options: Optional[MatchOptions] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[ScoredCandidate]:
        """Score every candidate, preserving input order.

        Raises:
            MatchingCancelledError: If cancel_event is set at a check point
        """
        options = options or MatchOptions()
        scored: List[ScoredCandidate] = []
        total = len(candidates)

        for position, candidate in enumerate(candidates):
            if (
                cancel_event is not None
                and position % self.cancellation_check_interval == 0
                and cancel_event.is_set()
            ):
                self.logger.warning(
                    "Scoring cancelled by caller",
                    extra={
                        "event": "matching.scoring.cancelled",
                        "scored": position,
                        "total": total,
                    },
                )
                raise MatchingCancelledError(position, total)

            scored.append(self.score(analysis, candidate, options, position))

        return scored

    def score(
        self,
        analysis: QueryAnalysis,
        candidate: CandidateProfile,
        options: Optional[MatchOptions] = None,
        position: int = 0,
    ) -> ScoredCandidate:
        """Score a single candidate against the analysis."""
        options = options or MatchOptions()
        matches: List[KeywordMatch] = []

        matches.extend(self._profession_matches(analysis, candidate, options))
        matches.extend(
            self._list_matches(
                analysis.extracted_materials, candidate.materials,
                MatchField.MATERIAL, MATERIAL_WEIGHT, MatchType.EXACT,
            )
        )
        matches.extend(
            self._list_matches(
                analysis.extracted_techniques, candidate.techniques,
                MatchField.TECHNIQUE, TECHNIQUE_WEIGHT, MatchType.EXACT,
            )
        )
        matches.extend(
            self._list_matches(
                analysis.detected_keywords, candidate.skills,
                MatchField.SKILL, SKILL_WEIGHT, MatchType.PARTIAL,
            )
        )
        matches.extend(
            self._list_matches(
                analysis.detected_keywords, candidate.specializations,
                MatchField.SPECIALIZATION, SPECIALIZATION_WEIGHT, MatchType.PARTIAL,
            )
        )

        description = candidate.description.lower()
        if description:
            for keyword in analysis.detected_keywords:
                if keyword in description:
                    matches.append(
                        KeywordMatch(keyword, MatchField.DESCRIPTION, DESCRIPTION_WEIGHT, MatchType.PARTIAL)
                    )

        boosted = options.boost_exact_matches and any(
            m.field == MatchField.PROFESSION and m.match_type == MatchType.EXACT for m in matches
        )
        total = sum_scores(matches, EXACT_PROFESSION_BOOST if boosted else 1.0)

        return ScoredCandidate(
            candidate=candidate,
            position=position,
            score=total,
            matches=matches,
            location_match=location_matches(candidate, options.location),
        )

    def _profession_matches(
        self, analysis: QueryAnalysis, candidate: CandidateProfile, options: MatchOptions
    ) -> List[KeywordMatch]:
        """Profession signals, at most one per possible profession.

        The full exact weight only applies when the query itself named the
        canonical profession; professions reached through a synonym or a
        product word score at the synonym weight even when the candidate's
        profession spells out the canonical term.
        """
        profession = candidate.profession.lower()
        if not profession:
            return []

        matches = []
        for canonical in analysis.possible_professions:
            if canonical in profession:
                if canonical in analysis.exact_professions:
                    matches.append(
                        KeywordMatch(canonical, MatchField.PROFESSION, PROFESSION_EXACT_WEIGHT, MatchType.EXACT)
                    )
                else:
                    matches.append(
                        KeywordMatch(canonical, MatchField.PROFESSION, PROFESSION_SYNONYM_WEIGHT, MatchType.SYNONYM)
                    )
                continue

            if not options.enable_synonym_matching:
                continue

            for synonym in self.taxonomy.professions.get(canonical, ()):
                if synonym in profession:
                    matches.append(
                        KeywordMatch(synonym, MatchField.PROFESSION, PROFESSION_SYNONYM_WEIGHT, MatchType.SYNONYM)
                    )
                    break

        return matches

    @staticmethod
    def _list_matches(
        terms: Sequence[str],
        values: Sequence[str],
        match_field: MatchField,
        weight: float,
        match_type: MatchType,
    ) -> List[KeywordMatch]:
        lowered = _lowered(values)
        if not lowered:
            return []
        return [
            KeywordMatch(term, match_field, weight, match_type)
            for term in terms
            if _overlaps(term, lowered)
        ]
