"""
Log Entry Data Structures for Ralph Watcher.

Structured entries for Cloud Agent API calls and watcher lifecycle events.
"""

import json
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any


@dataclass
class ApiLogEntry:
    """Log entry for a single Cloud Agent API call."""

    timestamp: str  # ISO 8601
    request_id: str  # UUID
    method: str  # HTTP verb
    path: str  # e.g. "/agents/bc-123/conversation"
    agent_id: str = ""

    status_code: int | None = None
    latency_ms: int = 0

    error: str | None = None
    error_type: str | None = None

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(asdict(self), default=str)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ApiLogEntry":
        """Create from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class WatchLogEntry:
    """Log entry for watcher lifecycle events."""

    timestamp: str  # ISO 8601
    event_type: str  # "start", "warning", "rotate", "nudge", "handoff", "end", "error"
    agent_id: str
    chain_depth: int = 1
    workspace: str = ""

    status: str | None = None
    token_estimate: int | None = None
    reason: str | None = None

    # Handoff events
    new_agent_id: str | None = None

    # End events
    exit_code: int | None = None
    message: str = ""

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(asdict(self), default=str)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WatchLogEntry":
        """Create from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


def now_iso() -> str:
    """Get current time as ISO 8601 string."""
    return datetime.now().isoformat()
