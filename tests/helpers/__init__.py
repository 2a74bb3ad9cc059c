"""Test helper utilities for artisan matching engine tests."""

from .fake_matchers import (
    FIXTURES_DIR,
    FailingSemanticMatcher,
    FakeSemanticMatcher,
    SlowSemanticMatcher,
    load_fixture_candidates,
)

__all__ = [
    "FIXTURES_DIR",
    "FakeSemanticMatcher",
    "FailingSemanticMatcher",
    "SlowSemanticMatcher",
    "load_fixture_candidates",
]
