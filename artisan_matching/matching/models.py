"""Data models for query analysis, scoring and ranked results.

All of these live for a single request only. QueryAnalysis and KeywordMatch
are frozen; the result containers are plain dataclasses that clamp their
scores on construction so no caller can observe a value outside [0, 1].
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from artisan_matching.domain.models import CandidateProfile

# Buckets reported in MatchExplanation.score_breakdown, in display order
SIGNAL_NAMES: Tuple[str, ...] = (
    "profession",
    "skill",
    "material",
    "technique",
    "experience",
    "location",
    "performance",
)


def clamp_unit(value: float) -> float:
    """Clamp a score into [0, 1]."""
    if value != value:  # NaN
        return 0.0
    return max(0.0, min(1.0, float(value)))


def empty_score_breakdown() -> Dict[str, float]:
    return {name: 0.0 for name in SIGNAL_NAMES}


class ExtractionMethod(str, Enum):
    """How the query analyzer recognized terms."""

    KEYWORD = "keyword"
    FUZZY = "fuzzy"
    SYNONYM = "synonym"
    HYBRID = "hybrid"


class ConfidenceLevel(str, Enum):
    """Coarse confidence tier shown next to a match."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MatchField(str, Enum):
    """Candidate field a keyword signal fired on."""

    PROFESSION = "profession"
    MATERIAL = "material"
    TECHNIQUE = "technique"
    SKILL = "skill"
    SPECIALIZATION = "specialization"
    DESCRIPTION = "description"
    NAME = "name"


class MatchType(str, Enum):
    """How a keyword signal matched."""

    EXACT = "exact"
    PARTIAL = "partial"
    FUZZY = "fuzzy"
    SYNONYM = "synonym"


class MatchTier(str, Enum):
    """Matching strategy that produced a run result."""

    AI = "ai"
    DETERMINISTIC = "deterministic"
    EMERGENCY = "emergency"
    NONE = "none"


@dataclass(frozen=True)
class Query:
    """Buyer query as received plus its normalized form."""

    raw: str
    normalized: str

    @classmethod
    def from_text(cls, text: Optional[str]) -> "Query":
        raw = text if isinstance(text, str) else ""
        return cls(raw=raw, normalized=" ".join(raw.lower().split()))


@dataclass(frozen=True)
class QueryAnalysis:
    """Structured view of a query, derived once and never mutated.

    The term collections are insertion-ordered and de-duplicated, so scoring
    and explanations come out in the order terms were detected.

    Attributes:
        detected_keywords: Every table term or synonym found in the query
        possible_professions: Canonical professions named, implied by synonyms
            or inferred from product words
        extracted_materials: Canonical materials found
        extracted_techniques: Canonical techniques found
        confidence: Trust in the extraction itself, in [0, 1]
        method: Extraction method tag
        exact_professions: Subset of possible_professions the query named
            by their canonical term
    """

    detected_keywords: Tuple[str, ...] = ()
    possible_professions: Tuple[str, ...] = ()
    extracted_materials: Tuple[str, ...] = ()
    extracted_techniques: Tuple[str, ...] = ()
    confidence: float = 0.0
    method: ExtractionMethod = ExtractionMethod.KEYWORD
    exact_professions: FrozenSet[str] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "confidence", clamp_unit(self.confidence))

    @classmethod
    def empty(cls) -> "QueryAnalysis":
        """Analysis for queries too short to analyze."""
        return cls()

    @property
    def is_empty(self) -> bool:
        return not (
            self.detected_keywords
            or self.possible_professions
            or self.extracted_materials
            or self.extracted_techniques
        )

    @property
    def requirement_count(self) -> int:
        """Number of extracted materials, techniques and professions."""
        return (
            len(self.possible_professions)
            + len(self.extracted_materials)
            + len(self.extracted_techniques)
        )


@dataclass(frozen=True)
class KeywordMatch:
    """One triggered scoring signal."""

    keyword: str
    field: MatchField
    score: float
    match_type: MatchType


@dataclass
class ScoredCandidate:
    """Intermediate scorer output for one candidate.

    ``position`` is the candidate's index in the caller's list; the result
    assembler uses it to keep equal scores in their original order.
    Tiers that do not work from keyword signals (the AI tier) supply
    ``explanation`` and ``flags`` directly.
    """

    candidate: CandidateProfile
    position: int
    score: float
    matches: List[KeywordMatch] = field(default_factory=list)
    location_match: bool = True
    explanation: Optional["MatchExplanation"] = None
    flags: Optional[Dict[MatchField, bool]] = None

    def __post_init__(self):
        self.score = clamp_unit(self.score)

    def has_match(self, match_field: MatchField) -> bool:
        if self.flags is not None and match_field in self.flags:
            return bool(self.flags[match_field])
        return any(m.field == match_field for m in self.matches)


@dataclass
class MatchExplanation:
    """Human-readable account of why a candidate scored what it did."""

    primary_reason: str
    detailed_reasons: List[str] = field(default_factory=list)
    matched_skills: Set[str] = field(default_factory=set)
    matched_materials: Set[str] = field(default_factory=set)
    matched_techniques: Set[str] = field(default_factory=set)
    confidence_level: ConfidenceLevel = ConfidenceLevel.LOW
    score_breakdown: Dict[str, float] = field(default_factory=empty_score_breakdown)

    def __post_init__(self):
        self.detailed_reasons = list(self.detailed_reasons)[:5]
        breakdown = empty_score_breakdown()
        breakdown.update(self.score_breakdown or {})
        self.score_breakdown = breakdown


@dataclass
class MatchResult:
    """One ranked candidate in a run result."""

    candidate: CandidateProfile
    relevance_score: float
    explanation: MatchExplanation
    rank: int = 1
    profession_match: bool = False
    material_match: bool = False
    technique_match: bool = False
    specialization_match: bool = False
    location_match: bool = True

    def __post_init__(self):
        self.relevance_score = clamp_unit(self.relevance_score)
        if self.rank < 1:
            raise ValueError(f"rank must be >= 1, got {self.rank}")


@dataclass
class MatchRunResult:
    """Response for one matching request.

    Attributes:
        matches: Ranked matches, best first
        total_found: Number of matches returned
        query_analysis: Analysis of the query used by the tier
        processing_time_ms: Time from tier entry to assembly completion
        confidence: Trust in this result set, in [0, 1]
        fallback_used: True unless the AI tier produced the result
        tier: Strategy that produced the result
        request_id: Identifier shared with the request's log records
    """

    matches: List[MatchResult] = field(default_factory=list)
    total_found: int = 0
    query_analysis: QueryAnalysis = field(default_factory=QueryAnalysis.empty)
    processing_time_ms: int = 0
    confidence: float = 0.0
    fallback_used: bool = True
    tier: MatchTier = MatchTier.NONE
    request_id: Optional[str] = None

    def __post_init__(self):
        self.confidence = clamp_unit(self.confidence)
        self.processing_time_ms = max(0, int(self.processing_time_ms))

    @property
    def is_empty(self) -> bool:
        return not self.matches
