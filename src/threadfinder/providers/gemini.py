#!/usr/bin/env python3
"""Gemini chat resolver: sniffs ``tmp/**/chats/session-*.json`` for the session id."""

import json
from pathlib import Path
from typing import List, Optional

from ..models import ProviderKind, ResolvedThread
from .base import Strategy, run_strategies, walk_files


def tmp_root(root: Path) -> Path:
    return root / "tmp"


def is_chat_file(path: Path) -> bool:
    return (
        path.name.startswith("session-")
        and path.name.endswith(".json")
        and path.parent.name == "chats"
    )


def read_chat_session_id(path: Path) -> Optional[str]:
    """``sessionId`` of a chat file, or None when unreadable."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            value = json.load(f)
    except (OSError, ValueError):
        return None
    if not isinstance(value, dict):
        return None
    session_id = value.get("sessionId")
    return session_id if isinstance(session_id, str) else None


def find_chats(tmp: Path, session_id: str) -> List[Path]:
    hits = []
    for path in walk_files(tmp):
        if not is_chat_file(path):
            continue
        found = read_chat_session_id(path)
        if found is not None and found.lower() == session_id.lower():
            hits.append(path)
    return hits


def resolve(root: Path, session_id: str) -> ResolvedThread:
    tmp = tmp_root(root)
    return run_strategies(
        ProviderKind.GEMINI,
        session_id,
        [Strategy("gemini:chats", lambda warnings: find_chats(tmp, session_id))],
        [tmp],
    )
