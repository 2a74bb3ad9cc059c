"""Helpers for presenting match results to downstream consumers.

This module provides:
- run_result_to_dict: JSON-safe serialization of a MatchRunResult
- build_run_analytics: aggregate numbers about one run
- build_user_summary: short buyer-facing explanation for one match
- fallback_capabilities: what the keyword fallback can recognize
"""

from typing import Any, Dict, List

from artisan_matching.taxonomy.models import SynonymTable

from .models import (
    ExtractionMethod,
    MatchExplanation,
    MatchResult,
    MatchRunResult,
    QueryAnalysis,
)

# Confidence reported for the keyword fallback as a whole
FALLBACK_CAPABILITY_CONFIDENCE = 0.6

NEXT_STEPS = [
    "View their profile and portfolio",
    "Send a message about your project",
    "Request a quote or consultation",
]


def analysis_to_dict(analysis: QueryAnalysis) -> Dict[str, Any]:
    return {
        "detected_keywords": list(analysis.detected_keywords),
        "possible_professions": list(analysis.possible_professions),
        "extracted_materials": list(analysis.extracted_materials),
        "extracted_techniques": list(analysis.extracted_techniques),
        "confidence": round(analysis.confidence, 4),
        "method": analysis.method.value,
    }


def explanation_to_dict(explanation: MatchExplanation) -> Dict[str, Any]:
    return {
        "primary_reason": explanation.primary_reason,
        "detailed_reasons": list(explanation.detailed_reasons),
        "matched_skills": sorted(explanation.matched_skills),
        "matched_materials": sorted(explanation.matched_materials),
        "matched_techniques": sorted(explanation.matched_techniques),
        "confidence_level": explanation.confidence_level.value,
        "score_breakdown": {k: round(v, 4) for k, v in explanation.score_breakdown.items()},
    }


def match_to_dict(match: MatchResult) -> Dict[str, Any]:
    return {
        "rank": match.rank,
        "relevance_score": round(match.relevance_score, 4),
        "candidate": match.candidate.model_dump(),
        "profession_match": match.profession_match,
        "material_match": match.material_match,
        "technique_match": match.technique_match,
        "specialization_match": match.specialization_match,
        "location_match": match.location_match,
        "explanation": explanation_to_dict(match.explanation),
    }


def run_result_to_dict(run: MatchRunResult) -> Dict[str, Any]:
    """Serialize a run result into plain JSON-compatible types.

    Sets become sorted lists and enums become their string values.
    """
    return {
        "request_id": run.request_id,
        "tier": run.tier.value,
        "fallback_used": run.fallback_used,
        "confidence": round(run.confidence, 4),
        "total_found": run.total_found,
        "processing_time_ms": run.processing_time_ms,
        "query_analysis": analysis_to_dict(run.query_analysis),
        "matches": [match_to_dict(m) for m in run.matches],
    }


def build_run_analytics(run: MatchRunResult, total_evaluated: int) -> Dict[str, Any]:
    """Aggregate statistics for one run.

    Query complexity counts extracted requirements (professions, materials,
    techniques): up to 3 is "simple", up to 6 "moderate", above that "complex".

    Args:
        run: Completed run result
        total_evaluated: Number of candidates the engine was given

    Returns:
        Dict with query_complexity, profession_confidence,
        total_candidates_evaluated and average_relevance_score
    """
    requirements = run.query_analysis.requirement_count
    if requirements > 6:
        complexity = "complex"
    elif requirements > 3:
        complexity = "moderate"
    else:
        complexity = "simple"

    scores = [m.relevance_score for m in run.matches]
    return {
        "query_complexity": complexity,
        "profession_confidence": run.query_analysis.confidence,
        "total_candidates_evaluated": total_evaluated,
        "average_relevance_score": sum(scores) / len(scores) if scores else 0.0,
    }


def build_user_summary(match: MatchResult) -> Dict[str, Any]:
    """Short buyer-facing explanation of a single match."""
    candidate = match.candidate
    percentage = round(match.relevance_score * 100)
    name = candidate.name or "This artisan"
    profession = candidate.profession or "artisan"
    level = match.explanation.confidence_level.value

    return {
        "summary": f"{name} is a {profession} with a {percentage}% match score.",
        "key_strengths": [match.explanation.primary_reason],
        "highlights": {
            "profession": candidate.profession if match.profession_match else None,
            "skills": sorted(match.explanation.matched_skills),
            "materials": sorted(match.explanation.matched_materials),
            "techniques": sorted(match.explanation.matched_techniques),
        },
        "confidence_indicator": {
            "level": level,
            "percentage": percentage,
            "description": f"This is a {level} confidence match based on available information.",
        },
        "next_steps": list(NEXT_STEPS),
    }


def fallback_capabilities(taxonomy: SynonymTable) -> Dict[str, Any]:
    """Describe what the keyword fallback can recognize."""
    methods: List[str] = [method.value for method in ExtractionMethod]
    return {
        "taxonomy_version": taxonomy.version,
        "supported_professions": list(taxonomy.professions),
        "supported_materials": list(taxonomy.materials),
        "supported_techniques": list(taxonomy.techniques),
        "matching_methods": methods,
        "confidence": FALLBACK_CAPABILITY_CONFIDENCE,
    }
