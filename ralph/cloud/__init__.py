"""Cursor Cloud Agents API client and response models."""

from ralph.cloud.client import CloudAgentClient, monitor_url
from ralph.cloud.models import AgentInfo, AgentLaunch, Message, Transcript

__all__ = [
    "CloudAgentClient",
    "monitor_url",
    "AgentInfo",
    "AgentLaunch",
    "Message",
    "Transcript",
]
