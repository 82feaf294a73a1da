#!/usr/bin/env python3
"""
Codex subagent views.

Subagents are known from two independent sources:
- lifecycle tool calls in the parent rollout (spawn_agent, wait, ...)
- child rollouts whose session_meta points back at the parent thread

The list view covers the union of both.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..config import ProviderRoots
from ..errors import ThreadFinderError
from ..jsonl import extract_last_timestamp, first_record, get_str, read_thread_raw
from ..logger import log_debug
from ..messages import extract_messages
from ..models import (
    ProviderKind,
    SubagentDetailView,
    SubagentListItem,
    SubagentListView,
    SubagentRelation,
    SubagentThreadRef,
    ThreadUri,
)
from ..providers import codex as codex_provider
from ..providers import resolve_thread
from ..uri import parse_session_id_like
from .relation import dedupe, excerpt_from_messages, make_query, thread_ref
from .timeline import (
    AgentTimeline,
    build_codex_timelines,
    infer_codex_child_status,
    infer_status_for_detail,
    infer_status_from_timeline,
)

SPAWN_EVIDENCE = "parent rollout contains spawn_agent output"
BACKLINK_EVIDENCE = "child session_meta points to main thread"
MISSING_CHILD_EVIDENCE = "child session could not be materialized to a rollout file"


def extract_codex_parent_thread_id(raw: str) -> Optional[str]:
    """Parent thread id named by a rollout's first record, if any."""
    return get_str(
        first_record(raw),
        "payload",
        "source",
        "subagent",
        "thread_spawn",
        "parent_thread_id",
    )


def _read_first_line(path: Path) -> Optional[dict]:
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            for line in f:
                if line.strip():
                    value = json.loads(line)
                    return value if isinstance(value, dict) else None
    except (OSError, json.JSONDecodeError):
        return None
    return None


def discover_backlinked_children(root: Path, main_thread_id: str) -> Dict[str, Path]:
    """
    Child rollouts whose session_meta names ``main_thread_id`` as parent.

    Returns:
        Mapping of child thread id to rollout path (newest file per id)
    """
    children: Dict[str, Path] = {}
    for path in codex_provider.iter_rollout_files(root):
        header = _read_first_line(path)
        parent = get_str(
            header, "payload", "source", "subagent", "thread_spawn", "parent_thread_id"
        )
        if parent != main_thread_id:
            continue
        child_id = parse_session_id_like(get_str(header, "payload", "id") or "")
        if child_id is None:
            child_id = parse_session_id_like(path.stem[-36:])
        if child_id is None or child_id == main_thread_id:
            continue
        existing = children.get(child_id)
        if existing is None or codex_provider.modified_time(
            path
        ) > codex_provider.modified_time(existing):
            children[child_id] = path
    log_debug("codex", f"Found {len(children)} backlinked children of {main_thread_id}")
    return children


class ChildRollout:
    """A resolved child rollout and what it says about the parent."""

    def __init__(self, path: Path, raw: str, points_to_main: bool):
        self.path = path
        self.raw = raw
        self.points_to_main = points_to_main
        self.last_update = extract_last_timestamp(raw)

    def ref(self, agent_id: str) -> SubagentThreadRef:
        return thread_ref(agent_id, self.path, self.last_update)


def load_child_rollout(
    agent_id: str, main_thread_id: str, roots: ProviderRoots, warnings: List[str]
) -> Optional[ChildRollout]:
    try:
        resolved = codex_provider.resolve(roots.codex_root, agent_id)
    except ThreadFinderError as e:
        log_debug("codex", f"Child rollout for {agent_id} not resolvable: {e}")
        return None
    try:
        raw = read_thread_raw(resolved.path)
    except ThreadFinderError as e:
        warnings.append(f"failed reading child thread for agent_id={agent_id}: {e}")
        return None
    points_to_main = extract_codex_parent_thread_id(raw) == main_thread_id
    return ChildRollout(resolved.path, raw, points_to_main)


def _relation(timeline: AgentTimeline, child: Optional[ChildRollout]) -> SubagentRelation:
    relation = SubagentRelation()
    if timeline.has_spawn:
        relation.mark_validated(SPAWN_EVIDENCE)
    if child is not None and child.points_to_main:
        relation.mark_validated(BACKLINK_EVIDENCE)
    if child is None and relation.evidence:
        relation.add_evidence(MISSING_CHILD_EVIDENCE)
    return relation


def _load_parent(
    uri: ThreadUri, roots: ProviderRoots
) -> Tuple[Dict[str, AgentTimeline], List[str]]:
    resolved_main = resolve_thread(uri.main_thread(), roots)
    main_raw = read_thread_raw(resolved_main.path)
    warnings = list(resolved_main.metadata.warnings)
    timelines = build_codex_timelines(main_raw, warnings)
    return timelines, warnings


def build_list(uri: ThreadUri, roots: ProviderRoots) -> SubagentListView:
    timelines, warnings = _load_parent(uri, roots)
    backlinked = discover_backlinked_children(roots.codex_root, uri.session_id)

    agents = []
    for agent_id in sorted(set(timelines) | set(backlinked)):
        timeline = timelines.get(agent_id, AgentTimeline())
        child = load_child_rollout(agent_id, uri.session_id, roots, warnings)
        status, status_source = infer_status_from_timeline(timeline, child is not None)
        last_update = timeline.last_update
        if last_update is None and child is not None:
            last_update = child.last_update
        agents.append(
            SubagentListItem(
                agent_id=agent_id,
                status=status,
                status_source=status_source,
                last_update=last_update,
                relation=_relation(timeline, child),
                child_thread=child.ref(agent_id) if child is not None else None,
            )
        )

    return SubagentListView(
        query=make_query(uri, None, True), agents=agents, warnings=dedupe(warnings)
    )


def build_detail(uri: ThreadUri, agent_id: str, roots: ProviderRoots) -> SubagentDetailView:
    timelines, warnings = _load_parent(uri, roots)
    timeline = timelines.get(agent_id, AgentTimeline())
    child = load_child_rollout(agent_id, uri.session_id, roots, warnings)

    child_status = None
    excerpt = []
    if child is not None:
        child_status = infer_codex_child_status(child.raw)
        try:
            messages = extract_messages(ProviderKind.CODEX, child.path, child.raw)
            excerpt = excerpt_from_messages(messages)
        except ThreadFinderError as e:
            warnings.append(f"failed extracting child messages from {child.path}: {e}")

    status, status_source = infer_status_for_detail(
        timeline, child_status, child is not None
    )

    return SubagentDetailView(
        query=make_query(uri, agent_id, False),
        relation=_relation(timeline, child),
        lifecycle=timeline.events,
        status=status,
        status_source=status_source,
        child_thread=child.ref(agent_id) if child is not None else None,
        excerpt=excerpt,
        warnings=dedupe(warnings),
    )
