#!/usr/bin/env python3
"""
Gemini subagent views.

Gemini has no spawn records. Child sessions are recognised from:
- explicit parent references inside a chat file or a logs.json entry
- a weak temporal pattern in logs.json: a session whose first user entry
  starts with ``/resume`` right after another session's entry

The temporal pattern is only recorded while no explicit evidence exists
for the pair, and never changes a validated relation.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from ..config import ProviderRoots
from ..constants import (
    SOURCE_CHILD_ROLLOUT,
    SOURCE_INFERRED,
    STATUS_COMPLETED,
    STATUS_ERRORED,
    STATUS_NOT_FOUND,
    STATUS_PENDING_INIT,
    STATUS_RUNNING,
)
from ..errors import ThreadFinderError
from ..jsonl import get_str, read_thread_raw, split_lines
from ..logger import log_debug
from ..models import (
    ProviderKind,
    SubagentDetailView,
    SubagentLifecycleEvent,
    SubagentListItem,
    SubagentListView,
    SubagentRelation,
    ThreadUri,
)
from ..providers import resolve_thread
from ..providers.base import modified_time
from ..providers.gemini import is_chat_file
from ..uri import parse_session_id_like
from .relation import (
    dedupe,
    extract_child_excerpt,
    make_query,
    modified_timestamp_string,
    thread_ref,
)

CHAT_PARENT_EVIDENCE = "child chat payload includes explicit parent session reference"
LOG_PARENT_EVIDENCE = "logs.json entry includes explicit parent session reference"
RESUME_EVIDENCE = (
    "logs.json shows child session starts with /resume after main session activity"
)
MISSING_CHAT_EVIDENCE = "child session could not be materialized to a chat file"

PARENT_OBJECT_KEYS = ("sessionId", "session_id", "threadId", "thread_id", "id")


class GeminiChat:
    def __init__(
        self,
        session_id: str,
        path: Path,
        last_update: Optional[str],
        status: str,
        parent_ids: List[str],
    ):
        self.session_id = session_id
        self.path = path
        self.last_update = last_update
        self.status = status
        self.parent_ids = parent_ids


class GeminiLogEntry:
    def __init__(
        self,
        session_id: str,
        message: Optional[str],
        timestamp: Optional[str],
        entry_type: Optional[str],
        parent_ids: List[str],
    ):
        self.session_id = session_id
        self.message = message
        self.timestamp = timestamp
        self.entry_type = entry_type
        self.parent_ids = parent_ids


class GeminiChild:
    """Relation evidence gathered for one child session."""

    def __init__(self):
        self.relation = SubagentRelation()
        self.timestamp: Optional[str] = None

    def add_explicit(self, evidence: str, timestamp: Optional[str]) -> None:
        self.relation.mark_validated(evidence)
        if self.timestamp is None:
            self.timestamp = timestamp

    def add_inferred(self, evidence: str, timestamp: Optional[str]) -> None:
        if self.relation.validated:
            return
        self.relation.add_evidence(evidence)
        if self.timestamp is None:
            self.timestamp = timestamp


def _collect_session_id(value: Any, found: Set[str]) -> None:
    if isinstance(value, str):
        session_id = parse_session_id_like(value)
        if session_id is not None:
            found.add(session_id)
    elif isinstance(value, dict):
        for key in PARENT_OBJECT_KEYS:
            nested = value.get(key)
            if isinstance(nested, str):
                session_id = parse_session_id_like(nested)
                if session_id is not None:
                    found.add(session_id)


def _collect_parent_ids(value: Any, found: Set[str]) -> None:
    if isinstance(value, dict):
        for key, nested in value.items():
            lowered = key.lower()
            if lowered == "parent" or (
                "parent" in lowered
                and ("session" in lowered or "thread" in lowered or "id" in lowered)
            ):
                _collect_session_id(nested, found)
            _collect_parent_ids(nested, found)
    elif isinstance(value, list):
        for nested in value:
            _collect_parent_ids(nested, found)


def parse_parent_session_ids(value: Any) -> List[str]:
    """Every session id referenced under a parent-ish key, at any depth."""
    found: Set[str] = set()
    _collect_parent_ids(value, found)
    return sorted(found)


def infer_chat_status(value: Any) -> str:
    messages = value.get("messages") if isinstance(value, dict) else None
    if not isinstance(messages, list):
        return STATUS_PENDING_INIT

    has_error = has_assistant = has_user = False
    for message in messages:
        if not isinstance(message, dict):
            continue
        message_type = message.get("type")
        if message_type == "error" or message.get("error") is not None:
            has_error = True
        if message_type in ("gemini", "assistant"):
            has_assistant = True
        if message_type == "user":
            has_user = True

    if has_error:
        return STATUS_ERRORED
    if has_assistant:
        return STATUS_COMPLETED
    if has_user:
        return STATUS_RUNNING
    return STATUS_PENDING_INIT


def parse_chat_file(path: Path, warnings: List[str]) -> Optional[GeminiChat]:
    try:
        raw = read_thread_raw(path)
    except ThreadFinderError as e:
        warnings.append(f"failed to read Gemini chat {path}: {e}")
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        warnings.append(f"failed to parse Gemini chat JSON {path}: {e}")
        return None

    session_id = parse_session_id_like(get_str(value, "sessionId") or "")
    if session_id is None:
        warnings.append(f"Gemini chat missing valid sessionId: {path}")
        return None

    last_update = (
        get_str(value, "lastUpdated")
        or get_str(value, "startTime")
        or modified_timestamp_string(path)
    )
    return GeminiChat(
        session_id=session_id,
        path=path,
        last_update=last_update,
        status=infer_chat_status(value),
        parent_ids=parse_parent_session_ids(value),
    )


def load_project_chats(project_dir: Path, warnings: List[str]) -> Dict[str, GeminiChat]:
    """Chats of one project keyed by session id, newest file per id."""
    chats_dir = project_dir / "chats"
    if not chats_dir.is_dir():
        warnings.append(f"Gemini project chats directory not found: {chats_dir}")
        return {}

    chats: Dict[str, GeminiChat] = {}
    for path in sorted(chats_dir.iterdir()):
        if not path.is_file() or not is_chat_file(path):
            continue
        chat = parse_chat_file(path, warnings)
        if chat is None:
            continue
        existing = chats.get(chat.session_id)
        if existing is None or modified_time(chat.path) > modified_time(existing.path):
            chats[chat.session_id] = chat
    return chats


def parse_log_entry(
    logs_path: Path, line: int, value: Any, warnings: List[str]
) -> Optional[GeminiLogEntry]:
    if not isinstance(value, dict):
        warnings.append(
            f"invalid Gemini log entry at {logs_path} line {line}: expected JSON object"
        )
        return None
    raw_id = get_str(value, "sessionId") or get_str(value, "session_id") or ""
    session_id = parse_session_id_like(raw_id)
    if session_id is None:
        return None
    return GeminiLogEntry(
        session_id=session_id,
        message=get_str(value, "message"),
        timestamp=get_str(value, "timestamp"),
        entry_type=get_str(value, "type"),
        parent_ids=parse_parent_session_ids(value),
    )


def read_log_entries(project_dir: Path, warnings: List[str]) -> List[GeminiLogEntry]:
    """
    Entries of ``logs.json``.

    Accepts a JSON array, an object with an ``entries`` array, a single
    entry object, or JSON lines.
    """
    logs_path = project_dir / "logs.json"
    if not logs_path.exists():
        return []
    try:
        raw = read_thread_raw(logs_path)
    except ThreadFinderError as e:
        warnings.append(f"failed to read Gemini logs file {logs_path}: {e}")
        return []
    if not raw.strip():
        return []

    try:
        document = json.loads(raw)
    except json.JSONDecodeError:
        document = None
    else:
        if isinstance(document, dict) and isinstance(document.get("entries"), list):
            values = document["entries"]
        elif isinstance(document, dict):
            values = [document]
        elif isinstance(document, list):
            values = document
        else:
            warnings.append(
                f"unsupported Gemini logs format in {logs_path}: "
                "expected JSON array or object"
            )
            return []
        entries = []
        for index, value in enumerate(values):
            entry = parse_log_entry(logs_path, index + 1, value, warnings)
            if entry is not None:
                entries.append(entry)
        return entries

    entries = []
    for index, line in enumerate(split_lines(raw)):
        if not line.strip():
            continue
        try:
            value = json.loads(line)
        except json.JSONDecodeError as e:
            warnings.append(
                f"failed to parse Gemini logs line {index + 1} in {logs_path}: {e}"
            )
            continue
        entry = parse_log_entry(logs_path, index + 1, value, warnings)
        if entry is not None:
            entries.append(entry)
    return entries


def infer_resume_relations(
    logs: List[GeminiLogEntry],
) -> List[Tuple[str, str, Optional[str]]]:
    """
    (child, parent, timestamp) triples from the ``/resume`` pattern.

    A child binds to whichever session's entry immediately precedes its
    first user entry.
    """
    first_user_seen: Set[str] = set()
    latest_session: Optional[str] = None
    relations = []

    for entry in logs:
        is_user_like = entry.entry_type is None or entry.entry_type == "user"
        if is_user_like and entry.session_id not in first_user_seen:
            first_user_seen.add(entry.session_id)
            message = (entry.message or "").lstrip()
            if (
                message.startswith("/resume")
                and latest_session is not None
                and latest_session != entry.session_id
            ):
                relations.append((entry.session_id, latest_session, entry.timestamp))
        latest_session = entry.session_id

    return relations


def discover_children(
    main_path: Path, main_session_id: str, warnings: List[str]
) -> Tuple[Dict[str, GeminiChat], Dict[str, GeminiChild]]:
    # Chats live at <project>/chats/session-*.json
    project_dir = main_path.parent.parent
    chats = load_project_chats(project_dir, warnings)
    logs = read_log_entries(project_dir, warnings)

    children: Dict[str, GeminiChild] = {}
    for chat in chats.values():
        if chat.session_id != main_session_id and main_session_id in chat.parent_ids:
            children.setdefault(chat.session_id, GeminiChild()).add_explicit(
                CHAT_PARENT_EVIDENCE, chat.last_update
            )

    for entry in logs:
        if entry.session_id != main_session_id and main_session_id in entry.parent_ids:
            children.setdefault(entry.session_id, GeminiChild()).add_explicit(
                LOG_PARENT_EVIDENCE, entry.timestamp
            )

    for child_id, parent_id, timestamp in infer_resume_relations(logs):
        if child_id == main_session_id or parent_id != main_session_id:
            continue
        children.setdefault(child_id, GeminiChild()).add_inferred(
            RESUME_EVIDENCE, timestamp
        )

    log_debug("gemini", f"Found {len(children)} children of {main_session_id}")
    return chats, children


def _missing_chat_warning(child_id: str) -> str:
    return (
        f"child session {child_id} discovered from local Gemini data "
        "but chat file was not found in project chats"
    )


def _discover(uri: ThreadUri, roots: ProviderRoots):
    resolved_main = resolve_thread(uri.main_thread(), roots)
    warnings = list(resolved_main.metadata.warnings)
    chats, children = discover_children(resolved_main.path, uri.session_id, warnings)
    return chats, children, warnings


def build_list(uri: ThreadUri, roots: ProviderRoots) -> SubagentListView:
    chats, children, warnings = _discover(uri, roots)

    agents = []
    for child_id in sorted(children):
        child = children[child_id]
        chat = chats.get(child_id)
        if chat is not None:
            agents.append(
                SubagentListItem(
                    agent_id=child_id,
                    status=chat.status,
                    status_source=SOURCE_CHILD_ROLLOUT,
                    last_update=chat.last_update,
                    relation=child.relation,
                    child_thread=thread_ref(child_id, chat.path, chat.last_update),
                )
            )
            continue

        warnings.append(_missing_chat_warning(child_id))
        child.relation.add_evidence(MISSING_CHAT_EVIDENCE)
        agents.append(
            SubagentListItem(
                agent_id=child_id,
                status=STATUS_NOT_FOUND,
                status_source=SOURCE_INFERRED,
                last_update=child.timestamp,
                relation=child.relation,
                child_thread=None,
            )
        )

    return SubagentListView(
        query=make_query(uri, None, True), agents=agents, warnings=dedupe(warnings)
    )


def build_detail(uri: ThreadUri, agent_id: str, roots: ProviderRoots) -> SubagentDetailView:
    chats, children, warnings = _discover(uri, roots)
    child = children.get(agent_id)
    chat = chats.get(agent_id)

    relation = SubagentRelation()
    lifecycle = []
    status, status_source = STATUS_NOT_FOUND, SOURCE_INFERRED
    child_thread = None
    excerpt = []

    if child is not None:
        relation = child.relation
        if relation.evidence:
            lifecycle.append(
                SubagentLifecycleEvent(
                    timestamp=child.timestamp,
                    event="discover_child",
                    detail="child relation validated from local Gemini payload"
                    if relation.validated
                    else "child relation inferred from logs.json /resume sequence",
                )
            )
        if chat is None:
            warnings.append(_missing_chat_warning(agent_id))
            relation.add_evidence(MISSING_CHAT_EVIDENCE)
    elif chat is not None:
        warnings.append(
            "unable to validate Gemini parent-child relation for "
            f"main_session_id={uri.session_id} child_session_id={agent_id}"
        )
        lifecycle.append(
            SubagentLifecycleEvent(
                timestamp=chat.last_update,
                event="discover_child_chat",
                detail="child chat exists but relation to main thread is unknown",
            )
        )
    else:
        warnings.append(
            f"child session not found for main_session_id={uri.session_id} "
            f"child_session_id={agent_id}"
        )

    if chat is not None:
        status, status_source = chat.status, SOURCE_CHILD_ROLLOUT
        child_thread = thread_ref(agent_id, chat.path, chat.last_update)
        excerpt = extract_child_excerpt(ProviderKind.GEMINI, chat.path, warnings)

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
