#!/usr/bin/env python3
"""
Claude subagent views.

Claude writes each subagent (Task tool) transcript as an ``agent-*.jsonl``
sidechain file, either beside the main transcript or under
``<project>/<main_session_id>/subagents/``. A file belongs to the main
thread when its first record is a sidechain carrying the main sessionId.
"""

from pathlib import Path
from typing import Dict, List, Optional

from ..config import ProviderRoots
from ..constants import (
    SOURCE_INFERRED,
    STATUS_COMPLETED,
    STATUS_ERRORED,
    STATUS_NOT_FOUND,
    STATUS_PENDING_INIT,
    STATUS_RUNNING,
)
from ..errors import ThreadFinderError
from ..jsonl import iter_json_lines, read_thread_raw
from ..messages import extract_messages
from ..models import (
    ProviderKind,
    SubagentDetailView,
    SubagentExcerptMessage,
    SubagentLifecycleEvent,
    SubagentListItem,
    SubagentListView,
    SubagentRelation,
    ThreadUri,
)
from ..providers import resolve_thread
from ..providers.base import modified_time
from .relation import (
    dedupe,
    excerpt_from_messages,
    make_query,
    modified_timestamp_string,
    thread_ref,
)

SIDECHAIN_EVIDENCE = "agent transcript is sidechain and sessionId matches main thread"
NESTED_DIR_EVIDENCE = "agent transcript stored under main thread subagents directory"


class ClaudeAgentRecord:
    """Analysis of one sidechain transcript."""

    def __init__(
        self,
        agent_id: str,
        path: Path,
        status: str,
        last_update: Optional[str],
        relation: SubagentRelation,
        excerpt: List[SubagentExcerptMessage],
    ):
        self.agent_id = agent_id
        self.path = path
        self.status = status
        self.last_update = last_update
        self.relation = relation
        self.excerpt = excerpt


def normalize_agent_id(agent_id: str) -> str:
    return agent_id[len("agent-") :] if agent_id.startswith("agent-") else agent_id


def is_agent_transcript(path: Path) -> bool:
    return path.is_file() and path.suffix == ".jsonl" and path.name.startswith("agent-")


def _agent_files(directory: Path) -> List[Path]:
    if not directory.is_dir():
        return []
    return sorted(path for path in directory.iterdir() if is_agent_transcript(path))


def analyze_agent_file(
    path: Path, main_session_id: str, nested: bool, warnings: List[str]
) -> Optional[ClaudeAgentRecord]:
    """
    Analyze a candidate agent transcript.

    Returns None when the file is unreadable, not a sidechain, or belongs
    to another session.
    """
    try:
        raw = read_thread_raw(path)
    except ThreadFinderError as e:
        warnings.append(f"failed to read Claude agent transcript {path}: {e}")
        return None

    agent_id = None
    is_sidechain = False
    session_matches = False
    has_error = False
    has_assistant = False
    has_user = False
    last_update = None
    first = True

    for _, value in iter_json_lines(
        raw, path, warnings, f"Claude agent transcript {path}"
    ):
        if not isinstance(value, dict):
            first = False
            continue
        if first:
            first = False
            if isinstance(value.get("agentId"), str):
                agent_id = value["agentId"]
            is_sidechain = value.get("isSidechain") is True
            session_matches = value.get("sessionId") == main_session_id

        if isinstance(value.get("timestamp"), str):
            last_update = value["timestamp"]
        if value.get("isApiErrorMessage") is True or value.get("error") is not None:
            has_error = True
        if value.get("type") == "assistant":
            has_assistant = True
        elif value.get("type") == "user":
            has_user = True

    if not is_sidechain or not session_matches:
        return None
    if agent_id is None:
        warnings.append(f"missing agentId in Claude sidechain transcript: {path}")
        return None

    if has_error:
        status = STATUS_ERRORED
    elif has_assistant:
        status = STATUS_COMPLETED
    elif has_user:
        status = STATUS_RUNNING
    else:
        status = STATUS_PENDING_INIT

    try:
        excerpt = excerpt_from_messages(extract_messages(ProviderKind.CLAUDE, path, raw))
    except ThreadFinderError as e:
        warnings.append(f"failed extracting child messages from {path}: {e}")
        excerpt = []

    relation = SubagentRelation()
    relation.mark_validated(SIDECHAIN_EVIDENCE)
    if nested:
        relation.add_evidence(NESTED_DIR_EVIDENCE)

    return ClaudeAgentRecord(
        agent_id=agent_id,
        path=path,
        status=status,
        last_update=last_update or modified_timestamp_string(path),
        relation=relation,
        excerpt=excerpt,
    )


def discover_agents(
    main_path: Path, main_session_id: str, warnings: List[str]
) -> List[ClaudeAgentRecord]:
    """Sidechain transcripts of the main thread, newest file per agent id."""
    project_dir = main_path.parent
    nested_dir = project_dir / main_session_id / "subagents"

    candidates = [(path, True) for path in _agent_files(nested_dir)]
    candidates += [(path, False) for path in _agent_files(project_dir)]

    latest: Dict[str, ClaudeAgentRecord] = {}
    for path, nested in candidates:
        record = analyze_agent_file(path, main_session_id, nested, warnings)
        if record is None:
            continue
        existing = latest.get(record.agent_id)
        if existing is None or modified_time(record.path) > modified_time(existing.path):
            latest[record.agent_id] = record

    return [latest[agent_id] for agent_id in sorted(latest)]


def _discover(uri: ThreadUri, roots: ProviderRoots):
    resolved_main = resolve_thread(uri.main_thread(), roots)
    warnings = list(resolved_main.metadata.warnings)
    records = discover_agents(resolved_main.path, uri.session_id, warnings)
    return records, warnings


def build_list(uri: ThreadUri, roots: ProviderRoots) -> SubagentListView:
    records, warnings = _discover(uri, roots)
    agents = [
        SubagentListItem(
            agent_id=record.agent_id,
            status=record.status,
            status_source=SOURCE_INFERRED,
            last_update=record.last_update,
            relation=record.relation,
            child_thread=thread_ref(record.agent_id, record.path, record.last_update),
        )
        for record in records
    ]
    return SubagentListView(
        query=make_query(uri, None, True), agents=agents, warnings=dedupe(warnings)
    )


def build_detail(uri: ThreadUri, agent_id: str, roots: ProviderRoots) -> SubagentDetailView:
    records, warnings = _discover(uri, roots)
    wanted = normalize_agent_id(agent_id)
    record = next(
        (r for r in records if normalize_agent_id(r.agent_id) == wanted), None
    )

    if record is None:
        warnings.append(
            f"agent not found for main_session_id={uri.session_id} agent_id={agent_id}"
        )
        return SubagentDetailView(
            query=make_query(uri, agent_id, False),
            status=STATUS_NOT_FOUND,
            status_source=SOURCE_INFERRED,
            warnings=dedupe(warnings),
        )

    return SubagentDetailView(
        query=make_query(uri, agent_id, False),
        relation=record.relation,
        lifecycle=[
            SubagentLifecycleEvent(
                timestamp=record.last_update,
                event="discovered_agent_file",
                detail="agent transcript discovered and analyzed",
            )
        ],
        status=record.status,
        status_source=SOURCE_INFERRED,
        child_thread=thread_ref(record.agent_id, record.path, record.last_update),
        excerpt=record.excerpt,
        warnings=dedupe(warnings),
    )
