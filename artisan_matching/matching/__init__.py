"""Keyword/synonym matching for artisan profiles.

This package provides:
- QueryAnalyzer: extracts professions, materials, techniques from a query
- CandidateScorer: weighted multi-signal scoring of candidate profiles
- ExplanationBuilder: human-readable explanations for scored candidates
- EmergencyScorer: plain-text scoring used as the last fallback
- ResultAssembler: filtering, stable ranking and result packaging
- Result models and presentation helpers
"""

from .analyzer import QueryAnalyzer
from .assembler import ResultAssembler
from .emergency import EmergencyScorer
from .explanation import ExplanationBuilder, confidence_level_for
from .models import (
    ConfidenceLevel,
    ExtractionMethod,
    KeywordMatch,
    MatchExplanation,
    MatchField,
    MatchResult,
    MatchRunResult,
    MatchTier,
    MatchType,
    Query,
    QueryAnalysis,
    ScoredCandidate,
)
from .scorer import CandidateScorer, MatchingCancelledError
from .utils import (
    build_run_analytics,
    build_user_summary,
    fallback_capabilities,
    run_result_to_dict,
)

__all__ = [
    "QueryAnalyzer",
    "CandidateScorer",
    "ExplanationBuilder",
    "EmergencyScorer",
    "ResultAssembler",
    "MatchingCancelledError",
    "confidence_level_for",
    "ConfidenceLevel",
    "ExtractionMethod",
    "KeywordMatch",
    "MatchExplanation",
    "MatchField",
    "MatchResult",
    "MatchRunResult",
    "MatchTier",
    "MatchType",
    "Query",
    "QueryAnalysis",
    "ScoredCandidate",
    "build_run_analytics",
    "build_user_summary",
    "fallback_capabilities",
    "run_result_to_dict",
]
