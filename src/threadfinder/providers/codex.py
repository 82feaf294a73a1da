#!/usr/bin/env python3
"""
Codex rollout resolver.

Codex keeps a thread index in ``state.sqlite`` / ``state_<N>.sqlite``
(table ``threads(id, rollout_path, archived)``) and the rollouts
themselves as ``rollout-<stamp>-<id>.jsonl`` under ``sessions/`` and
``archived_sessions/``. The index is preferred, but a stale index entry
only warns and falls through to the filesystem.
"""

import re
import sqlite3
from pathlib import Path
from typing import List, Optional, Tuple

from ..logger import log_warning
from ..models import ProviderKind, ResolvedThread
from .base import Strategy, modified_time, run_strategies, walk_files

STATE_DB_RE = re.compile(r"^state(?:_(\d+))?\.sqlite$")


class ThreadRecord:
    """Row of the codex ``threads`` table."""

    def __init__(self, rollout_path: Path, archived: bool):
        self.rollout_path = rollout_path
        self.archived = archived


def sessions_root(root: Path) -> Path:
    return root / "sessions"


def archived_root(root: Path) -> Path:
    return root / "archived_sessions"


def state_db_paths(root: Path) -> List[Path]:
    """State databases ordered by version descending, then mtime descending."""
    if not root.is_dir():
        return []

    found: List[Tuple[int, float, Path]] = []
    for path in sorted(root.iterdir()):
        match = STATE_DB_RE.match(path.name)
        if not match or not path.is_file():
            continue
        version = int(match.group(1)) if match.group(1) else 0
        found.append((version, modified_time(path), path))

    found.sort(key=lambda item: (item[0], item[1]), reverse=True)
    return [path for _, _, path in found]


def query_thread_record(db_path: Path, session_id: str) -> Optional[ThreadRecord]:
    """
    Look up one thread in a state database, opened read-only.

    Raises:
        sqlite3.Error: Database unreadable or schema mismatch
    """
    conn = sqlite3.connect(f"{db_path.resolve().as_uri()}?mode=ro", uri=True)
    try:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT rollout_path, archived FROM threads WHERE id = ? LIMIT 1",
            (session_id,),
        )
        row = cursor.fetchone()
    finally:
        conn.close()

    if row is None:
        return None
    return ThreadRecord(Path(row[0]), bool(row[1]))


def lookup_thread_record(
    state_dbs: List[Path], session_id: str, warnings: List[str]
) -> Optional[ThreadRecord]:
    """First record found across state databases; read failures become warnings."""
    for db_path in state_dbs:
        try:
            record = query_thread_record(db_path, session_id)
        except sqlite3.Error as e:
            log_warning("codex", f"Failed reading thread index {db_path}", e)
            warnings.append(f"failed reading sqlite thread index {db_path}: {e}")
            continue
        if record is not None:
            return record
    return None


def is_rollout_file(path: Path) -> bool:
    return path.name.startswith("rollout-") and path.name.endswith(".jsonl")


def find_rollouts(root: Path, session_id: str) -> List[Path]:
    needle = f"{session_id}.jsonl"
    return [
        path
        for path in walk_files(root)
        if is_rollout_file(path) and path.name.endswith(needle)
    ]


def iter_rollout_files(root: Path) -> List[Path]:
    """Every rollout under the active and archived session trees."""
    rollouts = []
    for base in (sessions_root(root), archived_root(root)):
        rollouts.extend(path for path in walk_files(base) if is_rollout_file(path))
    return rollouts


def resolve(root: Path, session_id: str) -> ResolvedThread:
    sessions = sessions_root(root)
    archived = archived_root(root)
    state_dbs = state_db_paths(root)
    warnings: List[str] = []
    record = lookup_thread_record(state_dbs, session_id, warnings)

    def from_index(archived_flag: bool, missing_label: str):
        def find(found_warnings: List[str]) -> List[Path]:
            if record is None or record.archived != archived_flag:
                return []
            if record.rollout_path.exists():
                return [record.rollout_path]
            found_warnings.append(
                f"sqlite thread index points to a missing {missing_label} "
                f"for session_id={session_id}: {record.rollout_path}"
            )
            return []

        return find

    strategies = [
        Strategy("codex:sqlite:sessions", from_index(False, "rollout")),
        Strategy("codex:sessions", lambda w: find_rollouts(sessions, session_id)),
        Strategy(
            "codex:sqlite:archived_sessions", from_index(True, "archived rollout")
        ),
        Strategy(
            "codex:archived_sessions", lambda w: find_rollouts(archived, session_id)
        ),
    ]

    return run_strategies(
        ProviderKind.CODEX,
        session_id,
        strategies,
        [sessions, archived] + state_dbs,
        warnings,
    )
