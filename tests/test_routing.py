"""Unit tests for tier routing and the matching service.

Tests the ArtisanMatchingService for:
- Health-gated AI tier and fall-through to the deterministic tier
- AI timeouts and failures
- Caller-supplied primary matcher results
- Deterministic tier failure handled by the emergency tier
- Cancellation and the never-raises contract
"""

import logging
import threading
from unittest.mock import MagicMock

import pytest

from artisan_matching.config.models import AIConfig, AppConfig
from artisan_matching.domain.models import CandidateProfile, MatchOptions
from artisan_matching.matching import MatchTier, Query
from artisan_matching.matching.emergency import EMERGENCY_PRIMARY_REASON
from artisan_matching.routing import (
    AIHealthTracker,
    ArtisanMatchingService,
    DeterministicStrategy,
    EmergencyStrategy,
    Fallthrough,
    Fatal,
    MatchRequest,
    Ok,
)
from tests.helpers import FailingSemanticMatcher, FakeSemanticMatcher, SlowSemanticMatcher

AI_PAYLOAD = {
    "matches": [
        {"candidate_index": 2, "score": 0.91, "reasons": ["Strong semantic fit"], "flags": {"profession": True}},
        {"candidate_index": 0, "score": 0.55},
    ],
    "confidence": 0.85,
}


@pytest.fixture
def service(taxonomy):
    """Service without an AI matcher."""
    with ArtisanMatchingService(taxonomy) as svc:
        yield svc


@pytest.fixture
def ai_service(taxonomy):
    """Service backed by a fake AI matcher."""
    matcher = FakeSemanticMatcher(AI_PAYLOAD)
    with ArtisanMatchingService(taxonomy, semantic_matcher=matcher) as svc:
        yield svc


class TestAITier:
    """Tests for the AI tier and its health gate."""

    def test_unhealthy_flag_uses_fallback(self, ai_service, candidates):
        """Test an unhealthy AI always yields fallback_used=True."""
        run = ai_service.find_matches("pottery", candidates, ai_service_healthy=False)

        assert run.fallback_used is True
        assert run.tier == MatchTier.DETERMINISTIC
        assert ai_service.semantic_matcher.calls == []

    def test_healthy_ai_result_used(self, ai_service, candidates):
        """Test a healthy AI's ranking and confidence are used directly."""
        run = ai_service.find_matches("pottery", candidates, ai_service_healthy=True)

        assert run.fallback_used is False
        assert run.tier == MatchTier.AI
        assert run.confidence == pytest.approx(0.85)
        assert [m.candidate.id for m in run.matches] == [candidates[2].id, candidates[0].id]
        assert [m.rank for m in run.matches] == [1, 2]
        assert run.matches[0].profession_match is True
        assert run.matches[0].explanation.primary_reason == "Strong semantic fit"
        assert ai_service.semantic_matcher.calls == [("pottery", len(candidates))]

    def test_ai_results_respect_options(self, ai_service, candidates):
        """Test min_score and max_results also bound AI results."""
        run = ai_service.find_matches(
            "pottery", candidates, MatchOptions(min_score=0.6), ai_service_healthy=True
        )
        assert [m.candidate.id for m in run.matches] == [candidates[2].id]

    def test_no_matcher_falls_through(self, service, candidates):
        """Test a healthy flag without a matcher still falls through."""
        run = service.find_matches("pottery", candidates, ai_service_healthy=True)

        assert run.fallback_used is True
        assert run.tier == MatchTier.DETERMINISTIC

    def test_primary_result_used_without_calling_matcher(self, ai_service, candidates):
        """Test a caller-supplied AI result is used as-is."""
        primary = {"matches": [{"candidate_index": 1, "score": 0.7}], "confidence": 0.6}
        run = ai_service.find_matches(
            "pottery", candidates, ai_service_healthy=True, primary_result=primary
        )

        assert run.tier == MatchTier.AI
        assert [m.candidate.id for m in run.matches] == [candidates[1].id]
        assert ai_service.semantic_matcher.calls == []

    def test_invalid_primary_result_falls_through(self, service, candidates):
        """Test a malformed primary result is ignored."""
        run = service.find_matches(
            "pottery", candidates, ai_service_healthy=True, primary_result=["not", "a", "dict"]
        )
        assert run.tier == MatchTier.DETERMINISTIC

    def test_bad_candidate_indices_ignored(self, service, candidates):
        """Test out-of-range and repeated indices are dropped."""
        primary = {
            "matches": [
                {"candidate_index": 99, "score": 0.9},
                {"candidate_index": 0, "score": 0.8},
                {"candidate_index": 0, "score": 0.7},
            ],
            "confidence": 0.9,
        }
        run = service.find_matches(
            "pottery", candidates, ai_service_healthy=True, primary_result=primary
        )
        assert [m.candidate.id for m in run.matches] == [candidates[0].id]

    def test_matcher_failure_falls_through_and_marks_unhealthy(self, taxonomy, candidates):
        """Test a failing matcher routes to tier 2 and is recorded."""
        matcher = FailingSemanticMatcher()
        with ArtisanMatchingService(taxonomy, semantic_matcher=matcher) as service:
            run = service.find_matches("pottery", candidates)

            assert run.tier == MatchTier.DETERMINISTIC
            assert matcher.calls == 1
            assert service.health_tracker.is_healthy is False

    def test_matcher_timeout_falls_through(self, taxonomy, candidates):
        """Test a slow matcher is abandoned after the timeout."""
        matcher = SlowSemanticMatcher()
        config = AppConfig(ai=AIConfig(timeout_seconds=0.05))
        service = ArtisanMatchingService(taxonomy, config=config, semantic_matcher=matcher)
        try:
            run = service.find_matches("pottery", candidates)

            assert run.tier == MatchTier.DETERMINISTIC
            assert run.fallback_used is True
            assert service.health_tracker.snapshot()["last_failure_reason"] == "timeout"
        finally:
            matcher.release()
            service.close()

    def test_busy_workers_fall_through(self, taxonomy, candidates):
        """Test a hung matcher holding every worker is not queued behind."""
        matcher = SlowSemanticMatcher()
        config = AppConfig(ai=AIConfig(timeout_seconds=0.05, max_workers=1))
        service = ArtisanMatchingService(taxonomy, config=config, semantic_matcher=matcher)
        try:
            first = service.find_matches("pottery", candidates, ai_service_healthy=True)
            second = service.find_matches("pottery", candidates, ai_service_healthy=True)

            assert first.tier == MatchTier.DETERMINISTIC
            assert second.tier == MatchTier.DETERMINISTIC
            assert matcher.calls == 1
            assert service.health_tracker.snapshot()["total_failures"] == 1
        finally:
            matcher.release()
            service.close()

    def test_worker_released_after_each_call(self, taxonomy, candidates):
        """Test sequential calls reuse a single worker slot."""
        matcher = FakeSemanticMatcher(AI_PAYLOAD)
        config = AppConfig(ai=AIConfig(max_workers=1))

        with ArtisanMatchingService(taxonomy, config=config, semantic_matcher=matcher) as service:
            runs = [
                service.find_matches("pottery", candidates, ai_service_healthy=True) for _ in range(3)
            ]

        assert [run.tier for run in runs] == [MatchTier.AI] * 3
        assert len(matcher.calls) == 3

    def test_tracker_gates_when_no_flag(self, taxonomy, candidates):
        """Test the tracker decides when the caller passes no health flag."""
        matcher = FakeSemanticMatcher(AI_PAYLOAD)
        tracker = AIHealthTracker(failure_threshold=1, cooldown_seconds=3600)
        tracker.record_failure("earlier outage")

        with ArtisanMatchingService(taxonomy, semantic_matcher=matcher, health_tracker=tracker) as service:
            run = service.find_matches("pottery", candidates)

        assert run.tier == MatchTier.DETERMINISTIC
        assert matcher.calls == []

    def test_ai_disabled_in_config(self, taxonomy, candidates):
        """Test ai.enabled=false skips the AI even with a healthy flag."""
        matcher = FakeSemanticMatcher(AI_PAYLOAD)
        config = AppConfig(ai=AIConfig(enabled=False))
        with ArtisanMatchingService(taxonomy, config=config, semantic_matcher=matcher) as service:
            run = service.find_matches("pottery", candidates, ai_service_healthy=True)

        assert run.tier == MatchTier.DETERMINISTIC
        assert matcher.calls == []


class TestDeterministicTier:
    """Tests for results produced by the deterministic tier."""

    def test_scenario_pottery(self, service, pottery_candidate):
        """Test an exact profession query against a matching candidate."""
        run = service.find_matches("pottery", [pottery_candidate], ai_service_healthy=False)

        match = run.matches[0]
        assert match.profession_match is True
        assert match.relevance_score == pytest.approx(0.40)
        assert match.explanation.confidence_level.value == "low"
        assert match.explanation.score_breakdown["profession"] == pytest.approx(0.40)

    def test_defaults_applied(self, service):
        """Test default max_results (20) when options omit it."""
        candidates = [CandidateProfile(id=str(i), profession="pottery") for i in range(30)]
        run = service.find_matches("pottery", candidates, ai_service_healthy=False)

        assert run.total_found == 20
        assert [m.candidate.id for m in run.matches] == [str(i) for i in range(20)]

    def test_min_score_above_all(self, service, pottery_candidate):
        """Test min_score=0.5 above a 0.40 candidate gives an empty result."""
        run = service.find_matches(
            "pottery", [pottery_candidate], {"min_score": 0.5}, ai_service_healthy=False
        )

        assert run.matches == []
        assert run.total_found == 0
        assert run.tier == MatchTier.DETERMINISTIC

    def test_equal_totals_keep_input_order(self, service):
        """Test candidates with the same weighted total stay in input order."""
        candidates = [
            {"id": "a", "skills": ["teak"], "specializations": ["teak"], "description": "teak"},
            {"id": "b", "materials": ["wood"], "specializations": ["teak"]},
        ]
        run = service.find_matches("teak", candidates, ai_service_healthy=False)

        assert [(m.rank, m.candidate.id) for m in run.matches] == [(1, "a"), (2, "b")]
        assert run.matches[0].relevance_score == run.matches[1].relevance_score == 0.3

    def test_min_score_boundary_inclusive(self, service):
        """Test a score equal to min_score is kept."""
        candidates = [{"id": "p1", "profession": "Pottery", "skills": ["ceramic"]}]
        run = service.find_matches(
            "ceramic work", candidates, {"min_score": 0.45}, ai_service_healthy=False
        )

        assert run.total_found == 1
        assert run.matches[0].relevance_score == 0.45

    def test_short_query(self, service, candidates):
        """Test a too-short query returns an empty successful result."""
        run = service.find_matches("a", candidates, ai_service_healthy=False)

        assert run.total_found == 0
        assert run.query_analysis.confidence == 0.0
        assert run.tier == MatchTier.DETERMINISTIC

    def test_empty_candidates(self, service):
        """Test an empty candidate list is not an error."""
        run = service.find_matches("pottery", [], ai_service_healthy=False)

        assert run.matches == []
        assert run.total_found == 0
        assert run.fallback_used is True


class TestFallbackCascade:
    """Tests for emergency fallback and the never-raises contract."""

    def test_scorer_failure_uses_emergency_tier(self, taxonomy, pottery_candidate):
        """Test a throwing deterministic scorer is replaced by emergency results."""
        scorer = MagicMock()
        scorer.score_all.side_effect = RuntimeError("scorer exploded")

        with ArtisanMatchingService(taxonomy, scorer=scorer) as service:
            run = service.find_matches("pottery", [pottery_candidate], ai_service_healthy=False)

        assert run.fallback_used is True
        assert run.tier == MatchTier.EMERGENCY
        assert run.confidence == pytest.approx(0.1)
        assert run.matches[0].explanation.primary_reason == EMERGENCY_PRIMARY_REASON
        assert run.matches[0].relevance_score == pytest.approx(0.30)

    def test_scorer_failure_is_logged(self, taxonomy, pottery_candidate, caplog):
        """Test the deterministic failure is logged with its event name."""
        scorer = MagicMock()
        scorer.score_all.side_effect = RuntimeError("scorer exploded")
        caplog.set_level(logging.INFO)

        with ArtisanMatchingService(taxonomy, scorer=scorer) as service:
            service.find_matches("pottery", [pottery_candidate], ai_service_healthy=False)

        events = [getattr(r, "event", None) for r in caplog.records]
        assert "matching.deterministic.failed" in events
        assert "matching.run.completed" in events

    def test_every_tier_failing_returns_empty_result(self, service, candidates):
        """Test the safe empty result when no tier succeeds."""
        broken = MagicMock()
        broken.attempt.side_effect = RuntimeError("boom")
        broken.tier = MatchTier.EMERGENCY
        service.strategies = [broken]

        run = service.find_matches("pottery", candidates)

        assert run.matches == []
        assert run.fallback_used is True
        assert run.tier == MatchTier.NONE
        assert run.request_id

    def test_cancellation_returns_empty_result(self, service, candidates):
        """Test a cancelled request stops without trying the emergency tier."""
        cancel = threading.Event()
        cancel.set()

        run = service.find_matches("pottery", candidates, ai_service_healthy=False, cancel_event=cancel)

        assert run.matches == []
        assert run.fallback_used is True
        assert run.tier == MatchTier.NONE

    @pytest.mark.parametrize(
        "query,candidates,options",
        [
            (None, None, None),
            (42, [None, "junk", 7], {"max_results": 0}),
            ("pottery", [{"profession": None, "skills": None}], {"min_score": "high"}),
            ("", [{}], MatchOptions()),
        ],
    )
    def test_never_raises(self, service, query, candidates, options):
        """Test malformed inputs still produce a result."""
        run = service.find_matches(query, candidates, options)

        assert run is not None
        assert 0.0 <= run.confidence <= 1.0
        assert all(0.0 <= m.relevance_score <= 1.0 for m in run.matches)

    def test_request_id_set(self, service, candidates):
        """Test every result carries a request id."""
        first = service.find_matches("pottery", candidates, ai_service_healthy=False)
        second = service.find_matches("pottery", candidates, ai_service_healthy=False)

        assert first.request_id and second.request_id
        assert first.request_id != second.request_id


class TestStrategies:
    """Tests for individual strategies."""

    def test_deterministic_cancel_is_fatal(self, service, candidates):
        """Test cancellation maps to Fatal, not Fallthrough."""
        cancel = threading.Event()
        cancel.set()
        request = MatchRequest(
            query=Query.from_text("pottery"),
            candidates=candidates,
            options=MatchOptions(),
            ai_healthy=False,
            request_id="r1",
            cancel_event=cancel,
        )
        strategy = next(s for s in service.strategies if isinstance(s, DeterministicStrategy))

        assert isinstance(strategy.attempt(request), Fatal)

    def test_ai_unhealthy_is_fallthrough(self, ai_service, candidates):
        """Test the AI strategy falls through without a healthy flag."""
        request = MatchRequest(
            query=Query.from_text("pottery"),
            candidates=candidates,
            options=MatchOptions(),
            ai_healthy=False,
            request_id="r1",
        )
        outcome = ai_service.strategies[0].attempt(request)

        assert isinstance(outcome, Fallthrough)
        assert outcome.error is None

    def test_emergency_always_ok(self, service):
        """Test the emergency strategy succeeds on an empty request."""
        request = MatchRequest(
            query=Query.from_text(""),
            candidates=[],
            options=MatchOptions(),
            ai_healthy=False,
            request_id="r1",
        )
        strategy = next(s for s in service.strategies if isinstance(s, EmergencyStrategy))
        outcome = strategy.attempt(request)

        assert isinstance(outcome, Ok)
        assert outcome.result.matches == []
