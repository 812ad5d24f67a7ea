"""Tests for the exception hierarchy."""

import pytest

from ralph.exceptions import (
    ChainDepthExceededError,
    CloudAgentConnectionError,
    CloudAgentError,
    CloudAgentRateLimitError,
    CloudAgentResponseError,
    ConfigError,
    GitError,
    RalphError,
    SpawnError,
    StateTransitionError,
    WatcherInterrupted,
)


class TestRalphError:
    """Tests for the base exception."""

    def test_message_only(self):
        error = RalphError("Something failed")
        assert str(error) == "Something failed"
        assert error.details == {}

    def test_with_details(self):
        error = RalphError("Something failed", {"agent": "bc-1"})
        assert str(error) == "Something failed | Details: {'agent': 'bc-1'}"


class TestHierarchy:
    """Every error is catchable as RalphError."""

    @pytest.mark.parametrize("exc_class", [
            ConfigError,
        CloudAgentError,
        CloudAgentConnectionError,
        SpawnError,
        WatcherInterrupted,
        GitError,
    ])
    def test_simple_subclasses(self, exc_class):
        with pytest.raises(RalphError):
            raise exc_class("boom")

    def test_api_errors_share_base(self):
        assert issubclass(CloudAgentConnectionError, CloudAgentError)
        assert issubclass(CloudAgentResponseError, CloudAgentError)
        assert issubclass(CloudAgentRateLimitError, CloudAgentResponseError)


class TestStructuredErrors:
    """Errors that carry extra attributes."""

    def test_response_error(self):
        error = CloudAgentResponseError("bad", status_code=500, body="oops")
        assert error.status_code == 500
        assert error.details == {"status_code": 500, "body": "oops"}

    def test_rate_limit(self):
        error = CloudAgentRateLimitError("slow down", retry_after=30)
        assert error.status_code == 429
        assert error.retry_after == 30
        assert error.details["retry_after"] == 30

    def test_chain_depth(self):
        error = ChainDepthExceededError("done", chain_depth=10, max_depth=10)
        assert error.max_depth == 10
        assert error.details == {"chain_depth": 10, "max_depth": 10}

    def test_state_transition(self):
        error = StateTransitionError("nope", from_state="a", to_state="b")
        assert error.from_state == "a"
        assert error.to_state == "b"
