"""Tier routing for matching requests.

    from artisan_matching.routing import ArtisanMatchingService
    service = ArtisanMatchingService.from_config(config, env_config)
    run = service.find_matches(query, candidates, options, ai_service_healthy=False)
"""

from .controller import ArtisanMatchingService, build_candidates
from .health import AIHealthTracker, should_use_fallback
from .strategies import (
    AITierStrategy,
    DeterministicStrategy,
    EmergencyStrategy,
    Fallthrough,
    Fatal,
    MatchRequest,
    Ok,
    Outcome,
    TierStrategy,
)

__all__ = [
    "ArtisanMatchingService",
    "build_candidates",
    "AIHealthTracker",
    "should_use_fallback",
    "TierStrategy",
    "AITierStrategy",
    "DeterministicStrategy",
    "EmergencyStrategy",
    "MatchRequest",
    "Ok",
    "Fallthrough",
    "Fatal",
    "Outcome",
]
