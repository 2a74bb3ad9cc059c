"""Domain models for the artisan matching engine."""

from .models import CandidateProfile, MatchFeedback, MatchOptions

__all__ = [
    "CandidateProfile",
    "MatchFeedback",
    "MatchOptions",
]
