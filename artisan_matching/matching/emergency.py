"""Plain-text scoring used when the keyword/synonym tier fails.

Only substring tests against profession, name and description; no taxonomy,
no analysis. Must not raise for any coercible candidate list.
"""

from typing import List, Sequence

from artisan_matching.domain.models import CandidateProfile, MatchOptions

from .models import (
    ConfidenceLevel,
    KeywordMatch,
    MatchExplanation,
    MatchField,
    MatchType,
    ScoredCandidate,
    empty_score_breakdown,
)
from .scorer import location_matches, sum_scores

EMERGENCY_PRIMARY_REASON = "Simple text matching (emergency fallback)"
EMERGENCY_CONFIDENCE = 0.1

PROFESSION_WEIGHT = 0.30
NAME_WEIGHT = 0.10
DESCRIPTION_WEIGHT = 0.10

# Query words this short (articles, "a", "of") are ignored
MIN_KEYWORD_LENGTH = 3

_FIELD_LABELS = {
    MatchField.PROFESSION: "Profession",
    MatchField.NAME: "Name",
    MatchField.DESCRIPTION: "Description",
}


def query_keywords(query: str) -> List[str]:
    """Split a query into lowercase words worth matching on."""
    words: List[str] = []
    for word in (query or "").lower().split():
        if len(word) >= MIN_KEYWORD_LENGTH and word not in words:
            words.append(word)
    return words


class EmergencyScorer:
    """Last-resort scorer for the emergency tier."""

    def score_all(
        self,
        query: str,
        candidates: Sequence[CandidateProfile],
        options: MatchOptions,
    ) -> List[ScoredCandidate]:
        keywords = query_keywords(query)
        return [
            self.score(keywords, candidate, options, position)
            for position, candidate in enumerate(candidates)
        ]

    def score(
        self,
        keywords: List[str],
        candidate: CandidateProfile,
        options: MatchOptions,
        position: int = 0,
    ) -> ScoredCandidate:
        fields = (
            (MatchField.PROFESSION, candidate.profession.lower(), PROFESSION_WEIGHT),
            (MatchField.NAME, candidate.name.lower(), NAME_WEIGHT),
            (MatchField.DESCRIPTION, candidate.description.lower(), DESCRIPTION_WEIGHT),
        )

        matches = []
        for keyword in keywords:
            for match_field, text, weight in fields:
                if text and keyword in text:
                    matches.append(KeywordMatch(keyword, match_field, weight, MatchType.PARTIAL))

        return ScoredCandidate(
            candidate=candidate,
            position=position,
            score=sum_scores(matches),
            matches=matches,
            location_match=location_matches(candidate, options.location),
        )

    @staticmethod
    def explain(scored: ScoredCandidate) -> MatchExplanation:
        """Low-confidence explanation listing which fields contained which words."""
        breakdown = empty_score_breakdown()
        breakdown["profession"] = sum(
            m.score for m in scored.matches if m.field == MatchField.PROFESSION
        )
        return MatchExplanation(
            primary_reason=EMERGENCY_PRIMARY_REASON,
            detailed_reasons=[
                f'{_FIELD_LABELS[m.field]} contains "{m.keyword}"' for m in scored.matches
            ],
            confidence_level=ConfidenceLevel.LOW,
            score_breakdown=breakdown,
        )
