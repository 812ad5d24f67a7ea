"""
Threshold policy for context rotation.

decide() is a pure function of (estimate, warning_sent). Force-rotate wins
over the warning when a single observation jumps past both thresholds.
"""

from dataclasses import dataclass
from enum import Enum

from ralph.exceptions import ConfigError

DEFAULT_WARNING_THRESHOLD = 45_000
DEFAULT_TOKEN_THRESHOLD = 50_000


class TokenAction(Enum):
    """What the watcher should do after a token observation."""

    CONTINUE = "continue"
    SEND_WARNING = "send_warning"
    FORCE_ROTATE = "force_rotate"


@dataclass(frozen=True)
class ThresholdPolicy:
    """Warn at warning_threshold, force a rotation at token_threshold."""

    warning_threshold: int = DEFAULT_WARNING_THRESHOLD
    token_threshold: int = DEFAULT_TOKEN_THRESHOLD

    def __post_init__(self) -> None:
        if self.warning_threshold >= self.token_threshold:
            raise ConfigError(
                "warning_threshold must be lower than token_threshold",
                {
                    "warning_threshold": self.warning_threshold,
                    "token_threshold": self.token_threshold,
                },
            )

    def decide(self, estimate: int, warning_sent: bool) -> TokenAction:
        if estimate >= self.token_threshold:
            return TokenAction.FORCE_ROTATE
        if estimate >= self.warning_threshold and not warning_sent:
            return TokenAction.SEND_WARNING
        return TokenAction.CONTINUE
