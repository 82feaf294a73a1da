#!/usr/bin/env python3
"""
Tests for codex call correlation and subagent status inference.

Tests cover:
- Pairing function_call and function_call_output by call_id
- Folding lifecycle tools into per-agent timelines
- Status precedence independent of event order
- Detail-view fallback to the child rollout
"""

import json

from threadfinder.subagents.correlator import CallCorrelator, decode_arguments, decode_output
from threadfinder.subagents.timeline import (
    AgentTimeline,
    build_codex_timelines,
    infer_codex_child_status,
    infer_state_from_status_payload,
    infer_status_for_detail,
    infer_status_from_timeline,
)

AGENT = "019c8720-0000-7000-8000-000000000001"


def call(call_id, name, arguments, ts="2026-02-23T10:00:00Z"):
    return {
        "timestamp": ts,
        "type": "response_item",
        "payload": {
            "type": "function_call",
            "call_id": call_id,
            "name": name,
            "arguments": json.dumps(arguments),
        },
    }


def output(call_id, value, ts="2026-02-23T10:00:01Z"):
    return {
        "timestamp": ts,
        "type": "response_item",
        "payload": {
            "type": "function_call_output",
            "call_id": call_id,
            "output": value if isinstance(value, str) else json.dumps(value),
        },
    }


def rollout(*records):
    return "\n".join(r if isinstance(r, str) else json.dumps(r) for r in records) + "\n"


class TestCallCorrelator:
    """Calls are paired with outputs only on exact call_id equality."""

    def test_pairs_call_with_output(self):
        correlator = CallCorrelator()
        assert correlator.observe(call("c1", "spawn_agent", {"message": "go"})) is None
        assert correlator.pending_count == 1

        invocation = correlator.observe(output("c1", {"agent_id": AGENT}))

        assert invocation.name == "spawn_agent"
        assert invocation.arguments == {"message": "go"}
        assert invocation.output == {"agent_id": AGENT}
        assert invocation.timestamp == "2026-02-23T10:00:00Z"
        assert correlator.pending_count == 0

    def test_mismatched_call_id_is_ignored(self):
        correlator = CallCorrelator()
        correlator.observe(call("c1", "wait", {"ids": [AGENT]}))
        assert correlator.observe(output("C1", {})) is None
        assert correlator.pending_count == 1

    def test_output_without_call_is_ignored(self):
        correlator = CallCorrelator()
        assert correlator.observe(output("orphan", {})) is None

    def test_non_response_items_ignored(self):
        correlator = CallCorrelator()
        assert correlator.observe({"type": "event_msg", "payload": {}}) is None
        assert correlator.observe([1, 2]) is None
        assert correlator.pending_count == 0

    def test_decoders(self):
        assert decode_arguments("{bad") == {}
        assert decode_arguments(None) == {}
        assert decode_output("plain text") == "plain text"
        assert decode_output('{"a": 1}') == {"a": 1}


class TestStatusPayload:
    def test_flat_form(self):
        assert infer_state_from_status_payload({"status": {"completed": "done"}}) == "completed"

    def test_per_agent_form(self):
        output_value = {"status": {AGENT: {"errored": "boom"}}}
        assert infer_state_from_status_payload(output_value, AGENT) == "errored"

    def test_unknown_state(self):
        assert infer_state_from_status_payload({"status": {"weird": 1}}) is None
        assert infer_state_from_status_payload("text") is None


class TestBuildTimelines:
    def test_spawn_only_is_pending_init(self):
        """A spawned agent that is never touched again stays pendingInit."""
        raw = rollout(call("c1", "spawn_agent", {}), output("c1", {"agent_id": AGENT}))
        warnings = []

        timelines = build_codex_timelines(raw, warnings)

        timeline = timelines[AGENT]
        assert timeline.has_spawn is True
        assert timeline.has_activity is False
        assert [e.event for e in timeline.events] == ["spawn_agent"]
        assert infer_status_from_timeline(timeline, False) == ("pendingInit", "parent_rollout")
        assert warnings == []

    def test_spawn_without_agent_id_warns(self):
        raw = rollout(call("c1", "spawn_agent", {}), output("c1", "not json"))
        warnings = []

        timelines = build_codex_timelines(raw, warnings)

        assert timelines == {}
        assert warnings == [
            "spawn_agent output did not include agent_id; skipping subagent mapping"
        ]

    def test_wait_states_and_timeout(self):
        raw = rollout(
            call("c1", "spawn_agent", {}),
            output("c1", {"agent_id": AGENT}),
            call("c2", "wait", {"ids": [AGENT]}, ts="2026-02-23T10:01:00Z"),
            output("c2", {"timed_out": True, "status": {}}),
        )
        timeline = build_codex_timelines(raw, [])[AGENT]

        assert timeline.states == ["running"]
        assert timeline.events[-1].detail == "wait timed out"
        assert timeline.last_update == "2026-02-23T10:01:00Z"
        assert infer_status_from_timeline(timeline, False) == ("running", "parent_rollout")

    def test_close_without_state_is_shutdown(self):
        raw = rollout(call("c9", "close_agent", {"id": AGENT}), output("c9", "closed"))
        timeline = build_codex_timelines(raw, [])[AGENT]
        assert timeline.states == ["shutdown"]
        assert infer_status_from_timeline(timeline, True) == ("shutdown", "parent_rollout")

    def test_send_input_counts_as_activity(self):
        raw = rollout(call("c3", "send_input", {"id": AGENT, "message": "x"}), output("c3", {}))
        timeline = build_codex_timelines(raw, [])[AGENT]
        assert timeline.has_activity is True
        assert timeline.events[0].detail == "agent lifecycle event"

    def test_non_lifecycle_tools_ignored(self):
        raw = rollout(call("c4", "shell", {"cmd": "ls"}), output("c4", "ok"))
        assert build_codex_timelines(raw, []) == {}

    def test_malformed_lines_warn(self):
        raw = rollout("{broken", call("c1", "spawn_agent", {}), "also broken",
                      output("c1", {"agent_id": AGENT}))
        warnings = []

        timelines = build_codex_timelines(raw, warnings)

        assert AGENT in timelines
        assert len(warnings) == 2
        assert warnings[0].startswith("failed to parse parent rollout line 1:")


class TestStatusPrecedence:
    def timeline_with_states(self, states):
        timeline = AgentTimeline()
        timeline.has_spawn = True
        timeline.has_activity = True
        timeline.states = list(states)
        return timeline

    def test_completed_beats_running_in_either_order(self):
        for states in (["running", "completed"], ["completed", "running"]):
            timeline = self.timeline_with_states(states)
            assert infer_status_from_timeline(timeline, False)[0] == "completed"

    def test_errored_beats_everything(self):
        timeline = self.timeline_with_states(["completed", "shutdown", "errored"])
        assert infer_status_from_timeline(timeline, False)[0] == "errored"

    def test_shutdown_beats_completed(self):
        timeline = self.timeline_with_states(["completed", "shutdown"])
        assert infer_status_from_timeline(timeline, False)[0] == "shutdown"

    def test_child_rollout_only(self):
        assert infer_status_from_timeline(AgentTimeline(), True) == ("running", "child_rollout")

    def test_nothing_known(self):
        assert infer_status_from_timeline(AgentTimeline(), False) == ("notFound", "inferred")


class TestDetailStatus:
    """Child status is consulted only when the parent says nothing."""

    def test_parent_evidence_wins_over_child(self):
        timeline = AgentTimeline()
        timeline.has_spawn = True
        assert infer_status_for_detail(timeline, "completed", True) == (
            "pendingInit",
            "parent_rollout",
        )

    def test_child_status_used_when_parent_silent(self):
        assert infer_status_for_detail(AgentTimeline(), "errored", True) == (
            "errored",
            "child_rollout",
        )

    def test_inconclusive_child_reads_running(self):
        assert infer_status_for_detail(AgentTimeline(), None, True) == (
            "running",
            "child_rollout",
        )

    def test_no_child(self):
        assert infer_status_for_detail(AgentTimeline(), None, False) == (
            "notFound",
            "inferred",
        )


class TestChildStatus:
    def test_assistant_message_completes(self):
        raw = rollout(
            {"type": "event_msg", "payload": {"type": "agent_message", "message": "done"}}
        )
        assert infer_codex_child_status(raw) == "completed"

    def test_aborted_turn_errors(self):
        raw = rollout(
            {"type": "event_msg", "payload": {"type": "agent_message", "message": "partial"}},
            {"type": "event_msg", "payload": {"type": "turn_aborted"}},
        )
        assert infer_codex_child_status(raw) == "errored"

    def test_inconclusive(self):
        raw = rollout({"type": "session_meta", "payload": {}})
        assert infer_codex_child_status(raw) is None
