"""
Messages sent to Cloud Agents.

Kept in one place so the wording the agents see can be reviewed together.
"""

# Sent once per agent when the token estimate crosses the warning threshold.
WRAPUP_WARNING_PROMPT = """⚠️ CONTEXT LIMIT APPROACHING - You are at ~{percent}% of your context window.

REQUIRED ACTIONS:
1. Finish your current file edit
2. Commit with descriptive message: git add -A && git commit -m 'ralph: [what you did]'
3. Push your changes: git push
4. Update .ralph/progress.md with:
   - What you accomplished
   - What's next (the immediate next step)
   - Any blockers or notes

After these steps, you may be rotated to a fresh agent with clean context. Leave the codebase in a working state."""

# Sent to a STOPPED agent, at most followup_attempts times per session.
NUDGE_PROMPT = (
    "Continue working on the Ralph task. Check {task_file} for remaining criteria marked [ ]. "
    "Run tests after changes. Say RALPH_COMPLETE when all criteria are satisfied."
)

# Initial instructions for a continuation agent.
CONTINUATION_PROMPT = """# Ralph Iteration {iteration} (Cloud Agent - Fresh Context)

You are continuing an autonomous development task using the Ralph Wiggum methodology.

## CRITICAL: Read State Files First

1.  **Task Definition**: Read `{task_file}` for the full task and completion criteria.
2.  **Progress**: Read `.ralph/progress.md` to see what has been accomplished.
3.  **Guardrails**: Read `.ralph/guardrails.md` for lessons learned from past failures.

## Your Mission

Continue from where the previous iteration left off. {reason_text} You have been spawned with FRESH CONTEXT.
{previous_context}
## Ralph Protocol

1.  Analyze `progress.md` to determine the next step.
2.  Execute the NEXT incomplete item from `{task_file}`.
3.  Update `.ralph/progress.md` with your accomplishments.
4.  Commit changes to the current branch (`{branch}`).
5.  If ALL criteria are met, add `RALPH_COMPLETE: All criteria satisfied` to progress.md.
6.  If stuck after 3+ attempts, add `RALPH_GUTTER: Need human intervention`.

Begin by reading the state files."""

PREVIOUS_CONTEXT_SECTION = """
## Context From The Previous Agent

The previous agent was stopped ({reason}). Its last messages were:

{summary}
"""

# One line per handoff reason, used in the continuation prompt.
REASON_TEXT = {
    "context_limit": "The previous agent's context was full, so it was rotated out.",
    "stalled": "The previous agent stopped responding to follow-ups.",
    "continue": "The previous agent finished but criteria remain unchecked.",
    "expired": "The previous agent expired before completing the task.",
    "failed": "The previous agent failed.",
    "manual": "A fresh agent was requested manually.",
}
