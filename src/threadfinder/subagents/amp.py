#!/usr/bin/env python3
"""
Amp subagent views.

Amp threads record handoffs in a ``relationships`` array:

    {"type": "handoff", "threadID": "T-...", "role": "parent", ...}

A ``role=parent`` handoff in the main thread names a child; the child
thread usually carries a matching ``role=child`` handoff back.
"""

import json
from typing import Any, Dict, List, Optional

from ..config import ProviderRoots
from ..constants import (
    KNOWN_STATUSES,
    SOURCE_CHILD_THREAD,
    SOURCE_INFERRED,
    STATUS_COMPLETED,
    STATUS_NOT_FOUND,
    STATUS_PENDING_INIT,
    STATUS_RUNNING,
)
from ..errors import InvalidJsonLineError, ThreadFinderError
from ..jsonl import get_str, read_thread_raw
from ..messages import extract_messages
from ..models import (
    MessageRole,
    ProviderKind,
    SubagentDetailView,
    SubagentExcerptMessage,
    SubagentLifecycleEvent,
    SubagentListItem,
    SubagentListView,
    SubagentRelation,
    SubagentThreadRef,
    ThreadUri,
)
from ..providers import amp as amp_provider
from ..providers import resolve_thread
from ..uri import normalize_amp_thread_id
from .relation import (
    dedupe,
    excerpt_from_messages,
    make_query,
    modified_timestamp_string,
    thread_ref,
)


MISSING_CHILD_EVIDENCE = "child thread could not be materialized to a thread file"

class AmpHandoff:
    def __init__(self, thread_id: str, role: Optional[str], timestamp: Optional[str]):
        self.thread_id = thread_id
        self.role = role
        self.timestamp = timestamp

    @property
    def role_label(self) -> str:
        return f"role={self.role}" if self.role is not None else "role missing"


class AmpChildAnalysis:
    def __init__(
        self,
        thread: SubagentThreadRef,
        status: str,
        status_source: str,
        excerpt: List[SubagentExcerptMessage],
        lifecycle: List[SubagentLifecycleEvent],
        evidence: List[str],
    ):
        self.thread = thread
        self.status = status
        self.status_source = status_source
        self.excerpt = excerpt
        self.lifecycle = lifecycle
        self.evidence = evidence


def extract_handoffs(value: Any, source: str, warnings: List[str]) -> List[AmpHandoff]:
    """
    Handoff relationships of a thread document.

    Args:
        value: Parsed thread JSON
        source: "main" or "child", used in warnings
        warnings: Accumulator for malformed relationships
    """
    relationships = value.get("relationships") if isinstance(value, dict) else None
    handoffs = []
    for relationship in relationships if isinstance(relationships, list) else []:
        if get_str(relationship, "type") != "handoff":
            continue
        raw_id = get_str(relationship, "threadID")
        if raw_id is None:
            warnings.append(f"{source} thread handoff relationship missing threadID field")
            continue
        thread_id = normalize_amp_thread_id(raw_id)
        if thread_id is None:
            warnings.append(
                f"{source} thread handoff relationship has invalid threadID={raw_id}"
            )
            continue
        role = get_str(relationship, "role")
        timestamp = None
        for key in ("timestamp", "updatedAt", "createdAt"):
            timestamp = get_str(relationship, key)
            if timestamp is not None:
                break
        handoffs.append(
            AmpHandoff(thread_id, role.lower() if role is not None else None, timestamp)
        )
    return handoffs


def extract_status(value: Any) -> Optional[str]:
    """Explicit status of a child thread document."""
    status = value.get("status") if isinstance(value, dict) else None
    if isinstance(status, str):
        return status
    if isinstance(status, dict):
        for key in KNOWN_STATUSES:
            if key in status:
                return key
    return get_str(value, "state")


def extract_last_update(value: Any) -> Optional[str]:
    for key in ("lastUpdated", "updatedAt", "timestamp", "createdAt"):
        stamp = get_str(value, key)
        if stamp is not None:
            return stamp
    messages = value.get("messages") if isinstance(value, dict) else None
    for message in reversed(messages if isinstance(messages, list) else []):
        stamp = get_str(message, "timestamp")
        if stamp is not None:
            return stamp
    return None


def analyze_child_thread(
    child_id: str, main_thread_id: str, roots: ProviderRoots, warnings: List[str]
) -> Optional[AmpChildAnalysis]:
    try:
        resolved = amp_provider.resolve(roots.amp_root, child_id)
    except ThreadFinderError as e:
        warnings.append(
            f"failed resolving amp child thread child_thread_id={child_id}: {e}"
        )
        return None
    try:
        raw = read_thread_raw(resolved.path)
    except ThreadFinderError as e:
        warnings.append(f"failed reading amp child thread child_thread_id={child_id}: {e}")
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        warnings.append(f"failed parsing amp child thread {resolved.path}: {e}")
        return None

    evidence: List[str] = []
    lifecycle = []
    for handoff in extract_handoffs(value, "child", warnings):
        if handoff.thread_id != main_thread_id:
            continue
        text = (
            f"child relationships includes handoff({handoff.role_label}) "
            "back to main thread"
        )
        if text not in evidence:
            evidence.append(text)
        lifecycle.append(
            SubagentLifecycleEvent(
                timestamp=handoff.timestamp,
                event="handoff_backlink",
                detail=f"child handoff relationship discovered ({handoff.role_label})",
            )
        )

    try:
        messages = extract_messages(ProviderKind.AMP, resolved.path, raw)
    except InvalidJsonLineError as e:
        warnings.append(
            f"failed extracting amp child messages from {resolved.path}: {e}"
        )
        messages = []

    status = extract_status(value)
    if status is not None:
        status_source = SOURCE_CHILD_THREAD
    else:
        status_source = SOURCE_INFERRED
        roles = {message.role for message in messages}
        if MessageRole.ASSISTANT in roles:
            status = STATUS_COMPLETED
        elif MessageRole.USER in roles:
            status = STATUS_RUNNING
        else:
            status = STATUS_PENDING_INIT

    last_update = extract_last_update(value) or modified_timestamp_string(resolved.path)
    return AmpChildAnalysis(
        thread=thread_ref(child_id, resolved.path, last_update),
        status=status,
        status_source=status_source,
        excerpt=excerpt_from_messages(messages),
        lifecycle=lifecycle,
        evidence=evidence,
    )


def _main_evidence(handoff: AmpHandoff) -> str:
    return f"main relationships includes handoff({handoff.role_label}) to child thread"


def _relation_from_handoffs(handoffs: List[AmpHandoff]) -> SubagentRelation:
    relation = SubagentRelation()
    for handoff in handoffs:
        if handoff.role == "parent":
            relation.mark_validated(_main_evidence(handoff))
        else:
            relation.add_evidence(_main_evidence(handoff))
    return relation


def _apply_child(relation: SubagentRelation, analysis: AmpChildAnalysis) -> None:
    for evidence in analysis.evidence:
        relation.add_evidence(evidence)
    if relation.evidence:
        relation.mark_validated()


def _load_main(uri: ThreadUri, roots: ProviderRoots):
    resolved_main = resolve_thread(uri.main_thread(), roots)
    raw = read_thread_raw(resolved_main.path)
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidJsonLineError(resolved_main.path, 1, e) from e
    warnings = list(resolved_main.metadata.warnings)
    handoffs = extract_handoffs(value, "main", warnings)
    return handoffs, warnings


def build_list(uri: ThreadUri, roots: ProviderRoots) -> SubagentListView:
    handoffs, warnings = _load_main(uri, roots)

    grouped: Dict[str, List[AmpHandoff]] = {}
    for handoff in handoffs:
        # role=child in the main thread points at the main thread's own parent
        if handoff.thread_id == uri.session_id or handoff.role == "child":
            continue
        grouped.setdefault(handoff.thread_id, []).append(handoff)

    agents = []
    for agent_id in sorted(grouped):
        relation = _relation_from_handoffs(grouped[agent_id])
        status = STATUS_PENDING_INIT if relation.validated else STATUS_NOT_FOUND
        status_source = SOURCE_INFERRED
        last_update = None
        child_thread = None

        analysis = analyze_child_thread(agent_id, uri.session_id, roots, warnings)
        if analysis is not None:
            _apply_child(relation, analysis)
            status, status_source = analysis.status, analysis.status_source
            last_update = analysis.thread.last_updated_at
            child_thread = analysis.thread
        elif relation.evidence:
            relation.add_evidence(MISSING_CHILD_EVIDENCE)

        agents.append(
            SubagentListItem(
                agent_id=agent_id,
                status=status,
                status_source=status_source,
                last_update=last_update,
                relation=relation,
                child_thread=child_thread,
            )
        )

    return SubagentListView(
        query=make_query(uri, None, True), agents=agents, warnings=dedupe(warnings)
    )


def build_detail(uri: ThreadUri, agent_id: str, roots: ProviderRoots) -> SubagentDetailView:
    handoffs, warnings = _load_main(uri, roots)

    matches = [handoff for handoff in handoffs if handoff.thread_id == agent_id]
    if not matches:
        warnings.append(
            f"no handoff relationship found in main thread for child_thread_id={agent_id}"
        )

    relation = _relation_from_handoffs(matches)
    lifecycle = [
        SubagentLifecycleEvent(
            timestamp=handoff.timestamp,
            event="handoff",
            detail=f"main handoff relationship discovered ({handoff.role_label})",
        )
        for handoff in matches
    ]

    status = STATUS_PENDING_INIT if relation.validated else STATUS_NOT_FOUND
    status_source = SOURCE_INFERRED
    child_thread = None
    excerpt: List[SubagentExcerptMessage] = []

    analysis = analyze_child_thread(agent_id, uri.session_id, roots, warnings)
    if analysis is not None:
        _apply_child(relation, analysis)
        lifecycle.extend(analysis.lifecycle)
        status, status_source = analysis.status, analysis.status_source
        child_thread = analysis.thread
        excerpt = analysis.excerpt
    elif relation.evidence:
        relation.add_evidence(MISSING_CHILD_EVIDENCE)

    return SubagentDetailView(
        query=make_query(uri, agent_id, False),
        relation=relation,
        lifecycle=lifecycle,
        status=status,
        status_source=status_source,
        child_thread=child_thread,
        excerpt=excerpt,
        warnings=dedupe(warnings),
    )
