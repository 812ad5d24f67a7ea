"""Tests for the token threshold policy."""

import pytest

from ralph.exceptions import ConfigError
from ralph.orchestrator.policy import ThresholdPolicy, TokenAction


class TestThresholdPolicy:
    """Tests for ThresholdPolicy.decide."""

    @pytest.fixture
    def policy(self):
        return ThresholdPolicy(warning_threshold=45_000, token_threshold=50_000)

    def test_defaults(self):
        policy = ThresholdPolicy()
        assert policy.warning_threshold == 45_000
        assert policy.token_threshold == 50_000

    def test_invalid_thresholds(self):
        """The warning must come before the forced rotation."""
        with pytest.raises(ConfigError):
            ThresholdPolicy(warning_threshold=50_000, token_threshold=50_000)
        with pytest.raises(ConfigError):
            ThresholdPolicy(warning_threshold=60_000, token_threshold=50_000)

    @pytest.mark.parametrize("estimate", [0, 1, 10_000, 44_999])
    def test_below_warning_continues(self, policy, estimate):
        assert policy.decide(estimate, warning_sent=False) is TokenAction.CONTINUE

    @pytest.mark.parametrize("estimate", [45_000, 47_500, 49_999])
    def test_warning_band(self, policy, estimate):
        assert policy.decide(estimate, warning_sent=False) is TokenAction.SEND_WARNING

    @pytest.mark.parametrize("estimate", [45_000, 49_999])
    def test_warning_not_repeated(self, policy, estimate):
        """Once sent, the warning band is just CONTINUE."""
        assert policy.decide(estimate, warning_sent=True) is TokenAction.CONTINUE

    @pytest.mark.parametrize("warning_sent", [False, True])
    @pytest.mark.parametrize("estimate", [50_000, 51_000, 1_000_000])
    def test_force_rotate_regardless_of_warning(self, policy, estimate, warning_sent):
        """Force threshold wins even when both are crossed in one jump."""
        assert policy.decide(estimate, warning_sent) is TokenAction.FORCE_ROTATE

    def test_pure_and_idempotent(self, policy):
        """Same input, same output."""
        results = {policy.decide(51_000, False) for _ in range(5)}
        assert results == {TokenAction.FORCE_ROTATE}

    def test_single_warning_over_rising_sequence(self, policy):
        """Latching warning_sent yields exactly one SEND_WARNING."""
        warning_sent = False
        actions = []
        for estimate in [40_000, 45_500, 46_000, 47_000, 48_000]:
            action = policy.decide(estimate, warning_sent)
            if action is TokenAction.SEND_WARNING:
                warning_sent = True
            actions.append(action)

        assert actions.count(TokenAction.SEND_WARNING) == 1
        assert actions[1] is TokenAction.SEND_WARNING
