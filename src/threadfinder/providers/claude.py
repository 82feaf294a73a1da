#!/usr/bin/env python3
"""
Claude transcript resolver.

Strategies, in order:
- ``sessions-index.json`` files mapping sessionId to fullPath
- transcript file named ``<session_id>.jsonl``
- header scan of every ``*.jsonl`` for a matching ``sessionId``
"""

import json
from itertools import islice
from pathlib import Path
from typing import List

from ..constants import CLAUDE_HEADER_SCAN_LINES
from ..logger import log_debug
from ..models import ProviderKind, ResolvedThread
from .base import Strategy, run_strategies, walk_files


def projects_root(root: Path) -> Path:
    return root / "projects"


def find_from_sessions_index(
    projects: Path, session_id: str, found_warnings: List[str]
) -> List[Path]:
    hits = []
    for path in walk_files(projects):
        if path.name != "sessions-index.json":
            continue
        try:
            with open(path, "r", encoding="utf-8") as f:
                index = json.load(f)
        except (OSError, ValueError) as e:
            log_debug("claude", f"Skipping unreadable sessions index {path}: {e}")
            continue
        if not isinstance(index, dict):
            continue
        entries = index.get("entries", [])
        if not isinstance(entries, list):
            continue
        for entry in entries:
            if not isinstance(entry, dict) or entry.get("sessionId") != session_id:
                continue
            full_path = entry.get("fullPath")
            if not isinstance(full_path, str):
                continue
            if Path(full_path).exists():
                hits.append(Path(full_path))
            else:
                found_warnings.append(
                    "sessions index points to a missing transcript "
                    f"for session_id={session_id}: {full_path}"
                )
    return hits


def find_by_filename(projects: Path, session_id: str) -> List[Path]:
    needle = f"{session_id}.jsonl"
    return [path for path in walk_files(projects) if path.name == needle]


def file_contains_session_id(path: Path, session_id: str) -> bool:
    """Check the first lines of a transcript for a matching sessionId."""
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            for line in islice(f, CLAUDE_HEADER_SCAN_LINES):
                if not line.strip():
                    continue
                try:
                    value = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if isinstance(value, dict) and value.get("sessionId") == session_id:
                    return True
    except OSError:
        return False
    return False


def find_by_header_scan(projects: Path, session_id: str) -> List[Path]:
    return [
        path
        for path in walk_files(projects)
        if path.suffix == ".jsonl" and file_contains_session_id(path, session_id)
    ]


def resolve(root: Path, session_id: str) -> ResolvedThread:
    projects = projects_root(root)
    strategies = [
        Strategy(
            "claude:sessions-index",
            lambda warnings: find_from_sessions_index(projects, session_id, warnings),
        ),
        Strategy(
            "claude:filename", lambda warnings: find_by_filename(projects, session_id)
        ),
        Strategy(
            "claude:header-scan",
            lambda warnings: find_by_header_scan(projects, session_id),
        ),
    ]
    return run_strategies(ProviderKind.CLAUDE, session_id, strategies, [projects])
