"""Tests for the rate limiting engine facade."""

from unittest.mock import patch

import pytest

from session_guard.clock import ManualClock
from session_guard.config import Settings
from session_guard.errors import InvalidPolicyError
from session_guard.limits.service import (
    RateLimitPolicy,
    RateLimitService,
    get_rate_limit_service_instance,
)


def _submit(service: RateLimitService, n: int, participant: str = "p1") -> None:
    for _ in range(n):
        service.check_idea_submission(participant)


class TestIdeaSubmission:
    def test_window_quota_and_recovery(
        self, service: RateLimitService, clock: ManualClock
    ) -> None:
        """Six ideas pass, the seventh is rejected, the next window is fresh."""
        remaining = [service.check_idea_submission("p1").remaining for _ in range(6)]
        assert remaining == [5, 4, 3, 2, 1, 0]

        rejected = service.check_idea_submission("p1")
        assert rejected.allowed is False
        assert rejected.reason is not None
        assert "Rate limit exceeded" in rejected.reason

        clock.advance(61_000)

        decision = service.check_idea_submission("p1")
        assert decision.allowed is True
        assert decision.remaining == 5

    def test_three_strikes_then_temporary_block(
        self, service: RateLimitService, clock: ManualClock
    ) -> None:
        """Breach twice across windows, third breach blocks for 5 minutes."""
        for _ in range(2):
            _submit(service, 6)
            assert service.check_idea_submission("p1").allowed is False
            clock.advance(61_000)

        _submit(service, 6)
        blocked = service.check_idea_submission("p1")
        assert blocked.reason is not None
        assert "Too many violations" in blocked.reason
        assert "5 minutes" in blocked.reason

        clock.advance(61_000)
        still_blocked = service.check_idea_submission("p1")
        assert still_blocked.allowed is False
        assert still_blocked.reason is not None
        assert "Temporary block" in still_blocked.reason

        clock.advance(240_000)
        assert service.check_idea_submission("p1").remaining == 5

    def test_block_holds_for_full_duration(
        self, service: RateLimitService, clock: ManualClock
    ) -> None:
        _submit(service, 9)

        clock.advance(4 * 60_000)
        assert service.check_idea_submission("p1").allowed is False

        clock.advance(2 * 60_000)
        assert service.check_idea_submission("p1").allowed is True

    def test_participants_independent(self, service: RateLimitService) -> None:
        _submit(service, 7)
        decision = service.check_idea_submission("p2")
        assert decision.allowed is True
        assert decision.remaining == 5


class TestParticipantJoin:
    def test_capacity_of_fifty(self, service: RateLimitService) -> None:
        for i in range(50):
            assert service.check_participant_join("s1", f"participant-{i}").allowed

        decision = service.check_participant_join("s1", "participant-50")
        assert decision.allowed is False
        assert decision.reason is not None
        assert "maximum capacity" in decision.reason

    def test_remove_participant(self, service: RateLimitService) -> None:
        service.check_participant_join("s1", "participant-1")
        service.check_participant_join("s1", "participant-2")

        service.remove_participant("s1", "participant-1")

        assert service.session_occupancy("s1") == 1
        assert service.check_participant_join("s1", "participant-3").remaining == 48


class TestStatus:
    def test_status_reflects_submissions(self, service: RateLimitService) -> None:
        _submit(service, 3)
        status = service.get_status("p1")
        assert status.allowed is True
        assert status.remaining == 3
        assert status.reset_in_ms > 0

    def test_status_during_block(self, service: RateLimitService) -> None:
        _submit(service, 9)
        status = service.get_status("p1")
        assert status.allowed is False
        assert status.remaining == 0
        assert status.reason is not None
        assert "Temporary block" in status.reason

    def test_status_does_not_consume(self, service: RateLimitService) -> None:
        for _ in range(10):
            service.get_status("p1")
        assert service.check_idea_submission("p1").remaining == 5


class TestAdministration:
    def test_reset_restores_fresh_quota(self, service: RateLimitService) -> None:
        """Reset after a rejection behaves as a brand new participant."""
        _submit(service, 6)
        assert service.check_idea_submission("p1").allowed is False

        service.reset("p1")

        assert service.get_status("p1").remaining == 6
        decision = service.check_idea_submission("p1")
        assert decision.allowed is True
        assert decision.remaining == 5

    def test_reset_lifts_block(self, service: RateLimitService) -> None:
        _submit(service, 9)
        assert service.check_idea_submission("p1").allowed is False

        service.reset("p1")

        assert service.check_idea_submission("p1").allowed is True

    def test_reset_clears_violation_history(
        self, service: RateLimitService, clock: ManualClock
    ) -> None:
        """Two strikes, reset, then a single breach only warns."""
        _submit(service, 8)
        service.reset("p1")
        clock.advance(1_000)

        _submit(service, 6)
        decision = service.check_idea_submission("p1")
        assert decision.reason is not None
        assert "Rate limit exceeded" in decision.reason

    def test_reset_unknown_is_noop(self, service: RateLimitService) -> None:
        with patch("session_guard.limits.service.logger") as mock_logger:
            service.reset("nobody")
        mock_logger.info.assert_not_called()

    def test_reset_logs(self, service: RateLimitService) -> None:
        _submit(service, 1)
        with patch("session_guard.limits.service.logger") as mock_logger:
            service.reset("p1")
        mock_logger.info.assert_called_once_with(
            "rate_state_reset", participant_id="p1"
        )

    def test_clear_session(self, service: RateLimitService) -> None:
        service.check_participant_join("s1", "participant-1")
        service.check_participant_join("s1", "participant-2")

        service.clear_session("s1")
        service.clear_session("s1")

        assert service.check_participant_join("s1", "participant-1").remaining == 49

    def test_destroy_releases_state(self, service: RateLimitService) -> None:
        _submit(service, 6)
        service.check_participant_join("s1", "participant-1")

        service.destroy()
        service.destroy()

        assert service.get_status("p1").remaining == 6
        assert service.session_occupancy("s1") == 0

    async def test_destroy_stops_reaper(self, service: RateLimitService) -> None:
        service.start()
        assert service.reaper.running is True

        service.destroy()

        assert service.reaper.running is False

    async def test_aclose_stops_reaper_and_clears_state(
        self, service: RateLimitService
    ) -> None:
        service.start()
        task = service.reaper._task
        service.check_idea_submission("p1")

        await service.aclose()

        assert service.reaper.running is False
        assert task is not None and task.done()
        assert service.get_status("p1").remaining == 6


class TestDisabled:
    @pytest.fixture()
    def disabled(self, clock: ManualClock) -> RateLimitService:
        return RateLimitService(RateLimitPolicy(enabled=False), clock=clock)

    def test_ideas_unlimited(self, disabled: RateLimitService) -> None:
        for _ in range(20):
            decision = disabled.check_idea_submission("p1")
            assert decision.allowed is True
            assert decision.remaining == 6
            assert decision.reset_in_ms == 0

    def test_joins_unlimited(self, disabled: RateLimitService) -> None:
        for i in range(60):
            decision = disabled.check_participant_join("s1", f"participant-{i}")
            assert decision.allowed is True
            assert decision.remaining == 50
        assert disabled.session_occupancy("s1") == 0

    def test_status(self, disabled: RateLimitService) -> None:
        assert disabled.get_status("p1").remaining == 6


class TestPolicy:
    def test_defaults(self) -> None:
        policy = RateLimitPolicy()
        assert policy.idea_limit == 6
        assert policy.idea_window_ms == 60_000
        assert policy.session_capacity == 50
        assert policy.violations_before_block == 3
        assert policy.block_duration_ms == 300_000
        assert policy.staleness_multiplier == 10

    @pytest.mark.parametrize(
        "field",
        ["idea_limit", "idea_window_ms", "session_capacity", "block_duration_ms"],
    )
    def test_rejects_non_positive(self, field: str) -> None:
        with pytest.raises(InvalidPolicyError) as exc_info:
            RateLimitPolicy(**{field: 0})
        assert exc_info.value.field == field
        assert isinstance(exc_info.value, ValueError)

    def test_from_settings(self) -> None:
        s = Settings(
            idea_limit=10,
            session_capacity=5,
            rate_limit_enabled=False,
            _env_file=None,
        )
        policy = RateLimitPolicy.from_settings(s)
        assert policy.idea_limit == 10
        assert policy.session_capacity == 5
        assert policy.enabled is False

    def test_custom_policy_applies(self, clock: ManualClock) -> None:
        svc = RateLimitService(
            RateLimitPolicy(idea_limit=2, session_capacity=1), clock=clock
        )
        assert svc.check_idea_submission("p1").remaining == 1
        assert svc.check_idea_submission("p1").remaining == 0
        assert svc.check_idea_submission("p1").allowed is False
        assert svc.check_participant_join("s1", "a").allowed is True
        assert svc.check_participant_join("s1", "b").allowed is False


class TestSharedInstance:
    def test_returns_same_instance(self) -> None:
        get_rate_limit_service_instance.cache_clear()
        try:
            first = get_rate_limit_service_instance()
            assert get_rate_limit_service_instance() is first
        finally:
            get_rate_limit_service_instance().destroy()
            get_rate_limit_service_instance.cache_clear()
