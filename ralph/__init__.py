"""
Ralph Watcher - context-rotating supervisor for Cursor Cloud Agents.

Polls a Cloud Agent, warns it before its context window fills, rotates it
to a fresh agent with a summary of where it left off, nudges it when it
stalls, and stops once the task checklist is complete or the chain budget
is spent.
"""

__version__ = "0.1.0"

from ralph.exceptions import (
    ChainDepthExceededError,
    CloudAgentError,
    ConfigError,
    RalphError,
    SpawnError,
)

__all__ = [
    "__version__",
    "RalphError",
    "ConfigError",
    "CloudAgentError",
    "SpawnError",
    "ChainDepthExceededError",
]
