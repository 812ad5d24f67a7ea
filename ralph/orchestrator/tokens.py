"""
Token estimation for Cloud Agent transcripts.

There is no tokenizer on this side of the API, so consumption is estimated
from the visible message text: characters / 4, then x1.3 for what the
transcript does not show (tool payloads, system prompt, attached files).
The estimate is biased upward on purpose.

A result of 0 means "no data", not "empty context".
"""

from ralph.cloud.models import Transcript

CHARS_PER_TOKEN = 4
TOKEN_MULTIPLIER = 1.3
BAR_WIDTH = 10


def estimate_tokens(
    transcript: Transcript | None,
    chars_per_token: int = CHARS_PER_TOKEN,
    multiplier: float = TOKEN_MULTIPLIER,
) -> int:
    """
    Estimate consumed context units for a transcript.

    Returns floor(floor(total_chars / chars_per_token) * multiplier),
    or 0 for a missing or empty transcript.
    """
    if transcript is None or transcript.is_empty:
        return 0
    base_tokens = transcript.total_chars // chars_per_token
    return max(0, int(base_tokens * multiplier))


def usage_percent(estimate: int, threshold: int) -> int:
    """Integer percentage of the force threshold consumed."""
    if threshold <= 0:
        return 0
    return estimate * 100 // threshold


def token_bar(percent: int, width: int = BAR_WIDTH) -> str:
    """Render a fixed-width usage bar, one cell per 100/width percent."""
    step = 100 // width
    return "".join("█" if (i * step) <= percent else "░" for i in range(1, width + 1))


def extract_context_summary(
    transcript: Transcript,
    num_messages: int = 3,
    max_chars: int = 200,
) -> str:
    """
    Condense the last assistant messages into a handoff summary.

    Each message contributes one "- " line made of its first three lines
    joined by spaces, cut to max_chars.
    """
    recent = transcript.assistant_messages()[-num_messages:] if num_messages > 0 else []
    if not recent:
        return "No context available"

    lines = []
    for message in recent:
        head = " ".join(message.text.split("\n")[:3])
        lines.append(f"- {head[:max_chars]}")
    return "\n".join(lines)
