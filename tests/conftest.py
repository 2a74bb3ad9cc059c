"""Shared pytest fixtures."""

import pytest

from artisan_matching.domain.models import CandidateProfile
from artisan_matching.logging.context import clear_log_context
from artisan_matching.taxonomy import default_taxonomy

from tests.helpers import load_fixture_candidates


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Isolate tests from the developer's environment variables."""
    for name in ("SEMANTIC_MATCHER_URL", "SEMANTIC_MATCHER_API_KEY", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ENVIRONMENT", "test")


@pytest.fixture
def taxonomy():
    """The packaged taxonomy."""
    return default_taxonomy()


@pytest.fixture
def candidate_documents():
    """Raw candidate documents from fixtures/candidates.yaml."""
    return load_fixture_candidates()


@pytest.fixture
def candidates(candidate_documents):
    """Fixture candidates coerced into profiles."""
    return [CandidateProfile.coerce(doc) for doc in candidate_documents]


@pytest.fixture
def pottery_candidate():
    """Minimal candidate whose only signal is the profession."""
    return CandidateProfile(id="p1", name="Asha", profession="Pottery")


@pytest.fixture(autouse=True)
def clean_log_context():
    """Clear logging context before and after each test."""
    clear_log_context()
    yield
    clear_log_context()
