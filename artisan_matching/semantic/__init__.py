"""AI/semantic matcher collaborators for the first matching tier.

Interface:
    from artisan_matching.semantic import SemanticMatcher, SemanticMatchOutcome

HTTP implementation:
    matcher = HttpSemanticMatcher(url, api_key=..., timeout=5.0)
    outcome = matcher.match(query, candidates, options)

Exception handling:
    from artisan_matching.semantic import SemanticMatcherError
"""

from .base import SemanticCandidateScore, SemanticMatcher, SemanticMatchOutcome
from .exceptions import (
    SemanticMatcherError,
    SemanticMatcherHTTPError,
    SemanticMatcherResponseError,
    SemanticMatcherTimeoutError,
)
from .http_client import HttpSemanticMatcher

__all__ = [
    # Interface and models
    "SemanticMatcher",
    "SemanticMatchOutcome",
    "SemanticCandidateScore",
    # Implementations
    "HttpSemanticMatcher",
    # Exceptions
    "SemanticMatcherError",
    "SemanticMatcherHTTPError",
    "SemanticMatcherTimeoutError",
    "SemanticMatcherResponseError",
]
