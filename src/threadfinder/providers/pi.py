#!/usr/bin/env python3
"""Pi session resolver: first record of each session file is its header."""

import json
from itertools import islice
from pathlib import Path
from typing import List

from ..constants import PI_HEADER_SCAN_LINES
from ..models import ProviderKind, ResolvedThread
from .base import Strategy, run_strategies, walk_files


def sessions_root(root: Path) -> Path:
    return root / "sessions"


def has_session_header(path: Path, session_id: str) -> bool:
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            first = next(
                (line for line in islice(f, PI_HEADER_SCAN_LINES) if line.strip()),
                None,
            )
    except OSError:
        return False
    if first is None:
        return False
    try:
        header = json.loads(first)
    except json.JSONDecodeError:
        return False
    if not isinstance(header, dict) or header.get("type") != "session":
        return False
    header_id = header.get("id")
    return isinstance(header_id, str) and header_id.lower() == session_id.lower()


def find_sessions(sessions: Path, session_id: str) -> List[Path]:
    return [
        path
        for path in walk_files(sessions)
        if path.suffix == ".jsonl" and has_session_header(path, session_id)
    ]


def resolve(root: Path, session_id: str) -> ResolvedThread:
    sessions = sessions_root(root)
    return run_strategies(
        ProviderKind.PI,
        session_id,
        [Strategy("pi:sessions", lambda warnings: find_sessions(sessions, session_id))],
        [sessions],
    )
