"""
Ralph Watcher - Exception Hierarchy

All Ralph-specific exceptions inherit from RalphError.
"""

from typing import Any


class RalphError(Exception):
    """Base exception for all Ralph-related errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# Configuration Errors
class ConfigError(RalphError):
    """Raised when configuration is invalid or missing."""

    pass


# Cloud Agent API Errors
class CloudAgentError(RalphError):
    """Base exception for Cloud Agent API errors."""

    pass


class CloudAgentConnectionError(CloudAgentError):
    """Raised when the Cloud Agent API cannot be reached."""

    pass


class CloudAgentResponseError(CloudAgentError):
    """Raised when the API returns an error status or an unparseable body."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message, {"status_code": status_code, "body": body})
        self.status_code = status_code
        self.body = body


class CloudAgentRateLimitError(CloudAgentResponseError):
    """Raised when the API rate limit is hit."""

    def __init__(self, message: str, retry_after: int | None = None):
        super().__init__(message, status_code=429)
        self.details["retry_after"] = retry_after
        self.retry_after = retry_after


# Chaining Errors
class SpawnError(RalphError):
    """Raised when a continuation agent cannot be spawned."""

    pass


class ChainDepthExceededError(RalphError):
    """Raised when another handoff would exceed the maximum chain depth."""

    def __init__(self, message: str, chain_depth: int, max_depth: int):
        super().__init__(message, {"chain_depth": chain_depth, "max_depth": max_depth})
        self.chain_depth = chain_depth
        self.max_depth = max_depth


class WatcherInterrupted(RalphError):
    """Raised when the operator stops the watcher between ticks."""

    pass


# Integration Errors
class GitError(RalphError):
    """Raised when a git command fails."""

    pass


# State Errors
class StateTransitionError(RalphError):
    """Raised when an invalid session state transition is attempted."""

    def __init__(self, message: str, from_state: str, to_state: str):
        super().__init__(message, {"from_state": from_state, "to_state": to_state})
        self.from_state = from_state
        self.to_state = to_state
