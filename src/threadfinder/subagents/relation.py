#!/usr/bin/env python3
"""Helpers shared by the per-provider subagent view builders."""

from pathlib import Path
from typing import List, Optional

from ..constants import EXCERPT_MESSAGE_COUNT
from ..errors import ThreadFinderError
from ..jsonl import read_thread_raw
from ..messages import extract_messages
from ..models import (
    ProviderKind,
    SubagentExcerptMessage,
    SubagentQuery,
    SubagentThreadRef,
    ThreadMessage,
    ThreadUri,
)


def make_query(uri: ThreadUri, agent_id: Optional[str], list_mode: bool) -> SubagentQuery:
    return SubagentQuery(
        provider=str(uri.provider),
        main_thread_id=uri.session_id,
        agent_id=agent_id,
        list=list_mode,
    )


def excerpt_from_messages(messages: List[ThreadMessage]) -> List[SubagentExcerptMessage]:
    """Last few messages, oldest first."""
    tail = messages[-EXCERPT_MESSAGE_COUNT:] if messages else []
    return [SubagentExcerptMessage(role=m.role, text=m.text) for m in tail]


def extract_child_excerpt(
    provider: ProviderKind, path: Path, warnings: List[str]
) -> List[SubagentExcerptMessage]:
    try:
        raw = read_thread_raw(path)
    except ThreadFinderError as e:
        warnings.append(f"failed reading child thread {path}: {e}")
        return []
    try:
        messages = extract_messages(provider, path, raw)
    except ThreadFinderError as e:
        warnings.append(f"failed extracting child messages from {path}: {e}")
        return []
    return excerpt_from_messages(messages)


def modified_timestamp_string(path: Path) -> Optional[str]:
    """File mtime as whole epoch seconds, used when a log carries no timestamps."""
    try:
        return str(int(path.stat().st_mtime))
    except OSError:
        return None


def thread_ref(
    thread_id: str, path: Optional[Path], last_updated_at: Optional[str]
) -> SubagentThreadRef:
    return SubagentThreadRef(
        thread_id=thread_id,
        path=str(path) if path is not None else None,
        last_updated_at=last_updated_at,
    )


def dedupe(values: List[str]) -> List[str]:
    seen = set()
    unique = []
    for value in values:
        if value not in seen:
            seen.add(value)
            unique.append(value)
    return unique
