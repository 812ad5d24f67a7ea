"""Tests for worker status and session state."""

from pathlib import Path

import pytest

from ralph.exceptions import StateTransitionError
from ralph.state import HandoffReason, Session, WorkerStatus


class TestWorkerStatus:
    """Tests for WorkerStatus.from_api."""

    @pytest.mark.parametrize("raw,expected", [
        ("CREATING", WorkerStatus.CREATING),
        ("RUNNING", WorkerStatus.RUNNING),
        ("STOPPED", WorkerStatus.STOPPED),
        ("FINISHED", WorkerStatus.FINISHED),
        ("EXPIRED", WorkerStatus.EXPIRED),
        ("FAILED", WorkerStatus.FAILED),
        ("running", WorkerStatus.RUNNING),
        (" FINISHED ", WorkerStatus.FINISHED),
    ])
    def test_known_statuses(self, raw, expected):
        assert WorkerStatus.from_api(raw) is expected

    def test_error_maps_to_failed(self):
        assert WorkerStatus.from_api("ERROR") is WorkerStatus.FAILED

    @pytest.mark.parametrize("raw", ["PAUSED", "", None, 42, {"status": "RUNNING"}])
    def test_unrecognised_is_unknown(self, raw):
        assert WorkerStatus.from_api(raw) is WorkerStatus.UNKNOWN


class TestHandoffReason:
    """Tests for HandoffReason values used in prompts and logs."""

    def test_values(self):
        assert [r.value for r in HandoffReason] == [
            "context_limit",
            "stalled",
            "continue",
            "expired",
            "failed",
        ]


class TestSession:
    """Tests for Session."""

    def test_defaults(self):
        session = Session(agent_id="bc-1", workspace="/tmp/project")

        assert session.workspace == Path("/tmp/project")
        assert session.chain_depth == 1
        assert session.followup_count == 0
        assert not session.warning_sent
        assert session.last_status is WorkerStatus.UNKNOWN

    def test_depth_must_be_positive(self):
        with pytest.raises(ValueError):
            Session(agent_id="bc-1", workspace=".", chain_depth=0)

    def test_warning_latches_once(self):
        session = Session(agent_id="bc-1", workspace=".")
        session.mark_warning_sent()

        assert session.warning_sent
        with pytest.raises(StateTransitionError):
            session.mark_warning_sent()

    def test_successor_has_fresh_counters(self):
        session = Session(agent_id="bc-1", workspace="/tmp/project", chain_depth=2)
        session.followup_count = 3
        session.mark_warning_sent()
        session.target_branch = "ralph-iteration-2"

        nxt = session.successor("bc-2")

        assert nxt.agent_id == "bc-2"
        assert nxt.chain_depth == 3
        assert nxt.workspace == session.workspace
        assert nxt.followup_count == 0
        assert not nxt.warning_sent
        assert nxt.target_branch == ""

    def test_successor_leaves_original_untouched(self):
        session = Session(agent_id="bc-1", workspace=".")
        session.successor("bc-2")
        assert session.agent_id == "bc-1"
        assert session.chain_depth == 1
