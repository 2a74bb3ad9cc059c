"""Semantic matcher interface and response models.

A semantic matcher is the AI collaborator consulted by the first matching
tier. It receives the query and the candidate list and returns a relevance
score per candidate index. Implementations must be safe to call from a
worker thread; the routing layer bounds each call with a timeout.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence

from pydantic import BaseModel, Field, ValidationError, field_validator

from artisan_matching.domain.models import CandidateProfile, MatchOptions

from .exceptions import SemanticMatcherResponseError


class SemanticCandidateScore(BaseModel):
    """Score the matcher assigned to one candidate.

    Attributes:
        candidate_index: Index into the candidate list that was sent
        score: Relevance in [0, 1] (out-of-range values are clamped)
        reasons: Human-readable reasons, best first
        flags: Field flags such as {"profession": true, "material": false}
    """

    candidate_index: int = Field(..., ge=0)
    score: float
    reasons: List[str] = Field(default_factory=list)
    flags: Dict[str, bool] = Field(default_factory=dict)

    model_config = {"frozen": True, "extra": "ignore"}

    @field_validator("score")
    @classmethod
    def clamp_score(cls, v: float) -> float:
        if v != v:  # NaN
            return 0.0
        return max(0.0, min(1.0, v))

    @field_validator("reasons", mode="before")
    @classmethod
    def coerce_reasons(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return [str(item) for item in v if item]


class SemanticMatchOutcome(BaseModel):
    """Ranked output of one semantic matcher call."""

    matches: List[SemanticCandidateScore] = Field(default_factory=list)
    confidence: float = Field(0.0)

    model_config = {"frozen": True, "extra": "ignore"}

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, v: float) -> float:
        if v != v:
            return 0.0
        return max(0.0, min(1.0, v))

    @classmethod
    def from_payload(cls, payload: Any) -> "SemanticMatchOutcome":
        """Validate a decoded response body.

        Raises:
            SemanticMatcherResponseError: If the payload does not have the
                expected {matches: [...], confidence} shape
        """
        if isinstance(payload, cls):
            return payload
        if not isinstance(payload, dict):
            raise SemanticMatcherResponseError(
                f"Expected a JSON object from the semantic matcher, got {type(payload).__name__}"
            )
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise SemanticMatcherResponseError(
                f"Invalid semantic matcher response: {e.error_count()} validation error(s)"
            ) from e


class SemanticMatcher(ABC):
    """Base class for AI/semantic matcher collaborators."""

    @abstractmethod
    def match(
        self,
        query: str,
        candidates: Sequence[CandidateProfile],
        options: MatchOptions,
    ) -> SemanticMatchOutcome:
        """Score candidates for a query.

        Raises:
            SemanticMatcherError: On any transport or response failure
        """
        pass

    def close(self) -> None:
        """Release any held resources."""
        pass
