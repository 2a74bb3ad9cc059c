"""Turns triggered keyword signals into a MatchExplanation."""

from typing import Dict, Iterable, List

from .models import (
    ConfidenceLevel,
    KeywordMatch,
    MatchExplanation,
    MatchField,
    empty_score_breakdown,
)

FALLBACK_PRIMARY_REASON = "Basic keyword matching (fallback mode)"
MAX_DETAILED_REASONS = 5

HIGH_CONFIDENCE_THRESHOLD = 0.8
MEDIUM_CONFIDENCE_THRESHOLD = 0.6

# Reason templates in the order they are listed; the first four also decide
# the primary reason.
_REASON_TEMPLATES = [
    (MatchField.PROFESSION, "Profession matches: {}"),
    (MatchField.MATERIAL, "Material expertise: {}"),
    (MatchField.TECHNIQUE, "Technique skills: {}"),
    (MatchField.SKILL, "Relevant skills: {}"),
    (MatchField.SPECIALIZATION, "Specializations: {}"),
    (MatchField.DESCRIPTION, "Mentioned in description: {}"),
]
_PRIMARY_FIELDS = (
    MatchField.PROFESSION,
    MatchField.MATERIAL,
    MatchField.TECHNIQUE,
    MatchField.SKILL,
)
_BREAKDOWN_BUCKETS = {
    MatchField.PROFESSION: "profession",
    MatchField.SKILL: "skill",
    MatchField.MATERIAL: "material",
    MatchField.TECHNIQUE: "technique",
}


def confidence_level_for(score: float) -> ConfidenceLevel:
    """Map a relevance score onto a confidence tier."""
    if score > HIGH_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.HIGH
    if score > MEDIUM_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def _unique_keywords(matches: Iterable[KeywordMatch]) -> List[str]:
    keywords: List[str] = []
    for match in matches:
        if match.keyword not in keywords:
            keywords.append(match.keyword)
    return keywords


class ExplanationBuilder:
    """Builds explanations for deterministic-tier matches."""

    def build(self, matches: List[KeywordMatch], score: float) -> MatchExplanation:
        """Group signals by field and describe them.

        Args:
            matches: Signals that fired for the candidate
            score: Final (clamped) relevance score

        Returns:
            MatchExplanation; experience, location and performance buckets
            stay at 0 because this tier has no such signals
        """
        grouped: Dict[MatchField, List[KeywordMatch]] = {}
        for match in matches:
            grouped.setdefault(match.field, []).append(match)

        reasons_by_field: Dict[MatchField, str] = {}
        for match_field, template in _REASON_TEMPLATES:
            if grouped.get(match_field):
                reasons_by_field[match_field] = template.format(
                    ", ".join(_unique_keywords(grouped[match_field]))
                )

        primary_reason = next(
            (reasons_by_field[f] for f in _PRIMARY_FIELDS if f in reasons_by_field),
            FALLBACK_PRIMARY_REASON,
        )

        breakdown = empty_score_breakdown()
        for match_field, bucket in _BREAKDOWN_BUCKETS.items():
            breakdown[bucket] = sum(m.score for m in grouped.get(match_field, []))

        return MatchExplanation(
            primary_reason=primary_reason,
            detailed_reasons=list(reasons_by_field.values())[:MAX_DETAILED_REASONS],
            matched_skills=set(_unique_keywords(grouped.get(MatchField.SKILL, []))),
            matched_materials=set(_unique_keywords(grouped.get(MatchField.MATERIAL, []))),
            matched_techniques=set(_unique_keywords(grouped.get(MatchField.TECHNIQUE, []))),
            confidence_level=confidence_level_for(score),
            score_breakdown=breakdown,
        )
