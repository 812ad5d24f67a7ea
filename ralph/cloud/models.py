"""
Cloud Agent response models.

Parsers are tolerant: a malformed payload degrades to a neutral value
(UNKNOWN status, empty transcript) rather than raising, so a single bad
response never stops the watcher.
"""

from dataclasses import dataclass, field
from typing import Any

from ralph.state import WorkerStatus

ASSISTANT_MESSAGE = "assistant_message"
USER_MESSAGE = "user_message"


@dataclass(frozen=True)
class AgentInfo:
    """Snapshot of GET /agents/{id}."""

    agent_id: str
    status: WorkerStatus
    summary: str = ""
    target_branch: str = ""
    url: str = ""

    @classmethod
    def from_api(cls, agent_id: str, data: Any) -> "AgentInfo":
        if not isinstance(data, dict):
            return cls(agent_id=agent_id, status=WorkerStatus.UNKNOWN)

        target = data.get("target")
        if not isinstance(target, dict):
            target = {}

        return cls(
            agent_id=str(data.get("id") or agent_id),
            status=WorkerStatus.from_api(data.get("status")),
            summary=_as_text(data.get("summary")),
            target_branch=_as_text(target.get("branchName")),
            url=_as_text(target.get("url")),
        )

    @classmethod
    def unknown(cls, agent_id: str) -> "AgentInfo":
        return cls(agent_id=agent_id, status=WorkerStatus.UNKNOWN)


@dataclass(frozen=True)
class Message:
    """A single conversation message."""

    role: str
    text: str

    @property
    def is_assistant(self) -> bool:
        return self.role == ASSISTANT_MESSAGE


@dataclass(frozen=True)
class Transcript:
    """Ordered snapshot of an agent's conversation."""

    messages: tuple[Message, ...] = field(default_factory=tuple)

    @classmethod
    def from_api(cls, data: Any) -> "Transcript":
        if not isinstance(data, dict):
            return cls()
        raw_messages = data.get("messages")
        if not isinstance(raw_messages, list):
            return cls()

        messages = []
        for raw in raw_messages:
            if not isinstance(raw, dict):
                continue
            messages.append(Message(role=_as_text(raw.get("type")), text=_as_text(raw.get("text"))))
        return cls(messages=tuple(messages))

    def __len__(self) -> int:
        return len(self.messages)

    @property
    def is_empty(self) -> bool:
        return not self.messages

    @property
    def total_chars(self) -> int:
        """Sum of the character length of every message body."""
        return sum(len(m.text) for m in self.messages)

    @property
    def last_message(self) -> Message | None:
        return self.messages[-1] if self.messages else None

    def assistant_messages(self) -> list[Message]:
        return [m for m in self.messages if m.is_assistant]


@dataclass(frozen=True)
class AgentLaunch:
    """Result of POST /agents."""

    agent_id: str
    url: str = ""
    branch: str = ""


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""
