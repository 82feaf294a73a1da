#!/usr/bin/env python3
"""
Subagent lifecycle timelines and status inference for codex.

A parent rollout is scanned once; lifecycle tool invocations are folded
into one AgentTimeline per subagent id. Status is then computed under a
fixed precedence:

    errored > shutdown > completed > running/activity > pendingInit
    > child rollout exists (running) > notFound
"""

from typing import Any, Dict, List, Optional, Tuple

from ..constants import (
    KNOWN_STATUSES,
    LIFECYCLE_TOOLS,
    SOURCE_CHILD_ROLLOUT,
    SOURCE_INFERRED,
    SOURCE_PARENT_ROLLOUT,
    STATUS_COMPLETED,
    STATUS_ERRORED,
    STATUS_NOT_FOUND,
    STATUS_PENDING_INIT,
    STATUS_RUNNING,
    STATUS_SHUTDOWN,
    TOOL_CLOSE_AGENT,
    TOOL_SPAWN_AGENT,
    TOOL_WAIT,
)
from ..jsonl import get_str, iter_json_lines
from ..logger import log_debug
from ..messages import extract_codex_message
from ..models import MessageRole, SubagentLifecycleEvent
from .correlator import CallCorrelator, ToolInvocation


class AgentTimeline:
    """Lifecycle observations for one subagent, in parent rollout order."""

    def __init__(self):
        self.events: List[SubagentLifecycleEvent] = []
        self.states: List[str] = []
        self.has_spawn = False
        self.has_activity = False
        self.last_update: Optional[str] = None

    def record_event(self, timestamp: Optional[str], event: str, detail: str) -> None:
        if timestamp is not None:
            self.last_update = timestamp
        self.events.append(
            SubagentLifecycleEvent(timestamp=timestamp, event=event, detail=detail)
        )


def infer_state_from_status_payload(
    output: Any, agent_id: Optional[str] = None
) -> Optional[str]:
    """
    Discrete state named by an output ``status`` object.

    Accepts both ``{"status": {"completed": ...}}`` and the per-agent
    form ``{"status": {"<agent_id>": {"completed": ...}}}``.
    """
    status = output.get("status") if isinstance(output, dict) else None
    if not isinstance(status, dict):
        return None

    if agent_id is not None:
        per_agent = status.get(agent_id)
        if isinstance(per_agent, str) and per_agent in KNOWN_STATUSES:
            return per_agent
        if isinstance(per_agent, dict):
            for key in per_agent:
                if key in KNOWN_STATUSES:
                    return key

    for key in status:
        if key in KNOWN_STATUSES:
            return key
    return None


def _apply_invocation(
    invocation: ToolInvocation,
    timelines: Dict[str, AgentTimeline],
    warnings: List[str],
) -> None:
    """Fold one lifecycle call into its subagent's timeline. Spawns do not count as activity."""
    name = invocation.name
    arguments = invocation.arguments if isinstance(invocation.arguments, dict) else {}
    output = invocation.output
    timestamp = invocation.timestamp

    if name == TOOL_SPAWN_AGENT:
        agent_id = get_str(output, "agent_id")
        if agent_id is None:
            warnings.append(
                "spawn_agent output did not include agent_id; skipping subagent mapping"
            )
            return
        timeline = timelines.setdefault(agent_id, AgentTimeline())
        timeline.has_spawn = True
        timeline.record_event(timestamp, TOOL_SPAWN_AGENT, "subagent spawned")
        return

    if name == TOOL_WAIT:
        ids = arguments.get("ids")
        timed_out = isinstance(output, dict) and output.get("timed_out") is True
        for agent_id in ids if isinstance(ids, list) else []:
            if not isinstance(agent_id, str):
                continue
            timeline = timelines.setdefault(agent_id, AgentTimeline())
            timeline.has_activity = True
            state = infer_state_from_status_payload(output, agent_id)
            if state is not None:
                timeline.states.append(state)
                detail = f"wait state={state}"
            elif timed_out:
                timeline.states.append(STATUS_RUNNING)
                detail = "wait timed out"
            else:
                detail = "wait returned"
            timeline.record_event(timestamp, TOOL_WAIT, detail)
        return

    # send_input, resume_agent, close_agent
    agent_id = arguments.get("id")
    if not isinstance(agent_id, str):
        return
    timeline = timelines.setdefault(agent_id, AgentTimeline())
    timeline.has_activity = True
    if name == TOOL_CLOSE_AGENT:
        state = infer_state_from_status_payload(output, agent_id)
        timeline.states.append(state if state is not None else STATUS_SHUTDOWN)
    timeline.record_event(timestamp, name, "agent lifecycle event")


def build_codex_timelines(raw: str, warnings: List[str]) -> Dict[str, AgentTimeline]:
    """
    Fold a parent rollout into per-subagent timelines.

    Args:
        raw: Parent rollout contents
        warnings: Accumulator for malformed lines and unusable outputs

    Returns:
        Mapping of subagent id to timeline
    """
    timelines: Dict[str, AgentTimeline] = {}
    correlator = CallCorrelator()

    for _, record in iter_json_lines(raw, "<codex:parent>", warnings, "parent rollout"):
        invocation = correlator.observe(record)
        if invocation is None or invocation.name not in LIFECYCLE_TOOLS:
            continue
        _apply_invocation(invocation, timelines, warnings)

    if correlator.pending_count:
        log_debug(
            "timeline",
            f"{correlator.pending_count} tool calls never received output",
        )
    return timelines


def infer_status_from_timeline(
    timeline: AgentTimeline, child_exists: bool
) -> Tuple[str, str]:
    """
    Status and status source from parent-side evidence.

    Returns:
        (status, status_source)
    """
    for state in (STATUS_ERRORED, STATUS_SHUTDOWN, STATUS_COMPLETED):
        if state in timeline.states:
            return state, SOURCE_PARENT_ROLLOUT
    if STATUS_RUNNING in timeline.states or timeline.has_activity:
        return STATUS_RUNNING, SOURCE_PARENT_ROLLOUT
    if timeline.has_spawn:
        return STATUS_PENDING_INIT, SOURCE_PARENT_ROLLOUT
    if child_exists:
        return STATUS_RUNNING, SOURCE_CHILD_ROLLOUT
    return STATUS_NOT_FOUND, SOURCE_INFERRED


def infer_status_for_detail(
    timeline: AgentTimeline, child_status: Optional[str], child_exists: bool
) -> Tuple[str, str]:
    """
    Status for a detail view.

    Parent evidence always wins. Only when the parent rollout says nothing
    about the subagent does the child's own status (errored/completed)
    take over; a child with no conclusive status still reads as running.
    """
    status, source = infer_status_from_timeline(timeline, False)
    if status != STATUS_NOT_FOUND:
        return status, source
    if child_status is not None:
        return child_status, SOURCE_CHILD_ROLLOUT
    return infer_status_from_timeline(timeline, child_exists)


def infer_codex_child_status(raw: str) -> Optional[str]:
    """
    Status from a child rollout alone.

    An aborted turn means errored; any assistant message means completed;
    otherwise the child says nothing conclusive.
    """
    has_error = False
    has_assistant = False
    ignored: List[str] = []

    for _, record in iter_json_lines(raw, "<codex:child>", ignored, "child rollout"):
        if (
            get_str(record, "type") == "event_msg"
            and get_str(record, "payload", "type") == "turn_aborted"
        ):
            has_error = True
        if isinstance(record, dict):
            message = extract_codex_message(record)
            if message is not None and message.role == MessageRole.ASSISTANT:
                has_assistant = True

    if has_error:
        return STATUS_ERRORED
    if has_assistant:
        return STATUS_COMPLETED
    return None
