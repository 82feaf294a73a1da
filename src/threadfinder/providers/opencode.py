#!/usr/bin/env python3
"""
Opencode session resolver.

Opencode stores sessions in ``opencode.db`` (tables ``session``,
``message`` and ``part``). The session is materialized into a flat JSONL
snapshot so downstream readers treat it like any other event log:

    {"type": "session", "sessionId": ...}
    {"type": "message", "id": ..., "sessionId": ..., "message": {...}, "parts": [...]}
"""

import json
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Tuple

from ..errors import IndexReadError, ThreadIOError, ThreadNotFoundError
from ..logger import log_info, log_warning
from ..models import ProviderKind, ResolutionMeta, ResolvedThread


def db_path(root: Path) -> Path:
    return root / "opencode.db"


def snapshot_path(snapshot_dir: Path, session_id: str) -> Path:
    return snapshot_dir / f"{session_id}.jsonl"


def session_exists(conn: sqlite3.Connection, session_id: str) -> bool:
    cursor = conn.cursor()
    cursor.execute("SELECT 1 FROM session WHERE id = ? LIMIT 1", (session_id,))
    return cursor.fetchone() is not None


def fetch_messages(
    conn: sqlite3.Connection, session_id: str, warnings: List[str]
) -> List[Tuple[str, Any]]:
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT id, data
        FROM message
        WHERE session_id = ?
        ORDER BY time_created ASC, id ASC
        """,
        (session_id,),
    )

    messages = []
    for message_id, data in cursor.fetchall():
        try:
            messages.append((message_id, json.loads(data)))
        except (TypeError, ValueError) as e:
            warnings.append(f"skipped message id={message_id}: invalid json payload ({e})")
    return messages


def fetch_parts(
    conn: sqlite3.Connection, session_id: str, warnings: List[str]
) -> Dict[str, List[Any]]:
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT message_id, data
        FROM part
        WHERE session_id = ?
        ORDER BY time_created ASC, id ASC
        """,
        (session_id,),
    )

    parts: Dict[str, List[Any]] = {}
    for message_id, data in cursor.fetchall():
        try:
            parts.setdefault(message_id, []).append(json.loads(data))
        except (TypeError, ValueError) as e:
            warnings.append(
                f"skipped part for message_id={message_id}: invalid json payload ({e})"
            )
    return parts


def render_snapshot(
    session_id: str, messages: List[Tuple[str, Any]], parts: Dict[str, List[Any]]
) -> str:
    lines = [{"type": "session", "sessionId": session_id}]
    for message_id, message in messages:
        lines.append(
            {
                "type": "message",
                "id": message_id,
                "sessionId": session_id,
                "message": message,
                "parts": parts.get(message_id, []),
            }
        )
    return "".join(json.dumps(line) + "\n" for line in lines)


def resolve(root: Path, session_id: str, snapshot_dir: Path) -> ResolvedThread:
    """
    Materialize an opencode session as a JSONL snapshot.

    Raises:
        ThreadNotFoundError: Database or session missing
        IndexReadError: Database could not be queried
        ThreadIOError: Snapshot could not be written
    """
    database = db_path(root)
    if not database.exists():
        raise ThreadNotFoundError(str(ProviderKind.OPENCODE), session_id, [database])

    warnings: List[str] = []
    try:
        conn = sqlite3.connect(f"{database.resolve().as_uri()}?mode=ro", uri=True)
        try:
            if not session_exists(conn, session_id):
                raise ThreadNotFoundError(
                    str(ProviderKind.OPENCODE), session_id, [database]
                )
            messages = fetch_messages(conn, session_id, warnings)
            parts = fetch_parts(conn, session_id, warnings)
        finally:
            conn.close()
    except sqlite3.Error as e:
        log_warning("opencode", f"Failed to read session database {database}", e)
        raise IndexReadError(database, e) from e

    path = snapshot_path(snapshot_dir, session_id)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_snapshot(session_id, messages, parts), encoding="utf-8")
    except OSError as e:
        raise ThreadIOError(path, e) from e

    log_info("opencode", f"Materialized {len(messages)} messages to {path}")
    return ResolvedThread(
        provider=ProviderKind.OPENCODE,
        session_id=session_id,
        path=path,
        metadata=ResolutionMeta(
            source="opencode:sqlite", candidate_count=1, warnings=warnings
        ),
    )
