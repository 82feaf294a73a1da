#!/usr/bin/env python3
"""
Entry index for pi sessions.

A pi session file is a tree of entries linked by ``parentId``. The index
lists every entry with a short preview and marks leaves (entries no
other entry names as parent), which are the branch tips a caller can
open with ``agents://pi/<session_id>/<entry_id>``.
"""

from typing import Any, List, Optional, Set

from .config import ProviderRoots
from .constants import PREVIEW_MAX_CHARS
from .errors import InvalidModeError
from .jsonl import get_path, get_str, iter_json_lines, read_thread_raw
from .models import PiEntryListItem, PiEntryListView, PiEntryQuery, ProviderKind, ThreadUri
from .providers import resolve_thread


def truncate_preview(text: str, max_chars: int = PREVIEW_MAX_CHARS) -> str:
    """Collapse whitespace and cut to ``max_chars`` with a trailing ellipsis."""
    normalized = " ".join(text.split())
    if len(normalized) <= max_chars:
        return normalized
    return normalized[: max(max_chars - 1, 0)] + "…"


def render_preview_text(content: Any, max_chars: int = PREVIEW_MAX_CHARS) -> str:
    if isinstance(content, str):
        text = content
    elif isinstance(content, list):
        chunks = []
        for item in content:
            if isinstance(item, dict) and isinstance(item.get("text"), str):
                chunks.append(item["text"])
            elif isinstance(item, str):
                chunks.append(item)
        text = " ".join(chunks)
    else:
        text = ""
    return truncate_preview(text, max_chars)


def _entry_preview(value: Any, entry_type: str) -> Optional[str]:
    if entry_type == "message":
        content = get_path(value, "message", "content")
        preview = render_preview_text(content) if content is not None else ""
    elif entry_type in ("compaction", "branch_summary"):
        summary = get_str(value, "summary")
        preview = truncate_preview(summary) if summary is not None else ""
    else:
        preview = ""
    return preview or None


def resolve_pi_entry_list_view(uri: ThreadUri, roots: ProviderRoots) -> PiEntryListView:
    """
    List the entries of a pi session.

    Args:
        uri: ``agents://pi/<session_id>`` (or legacy ``pi://<session_id>``)
        roots: Provider roots

    Returns:
        PiEntryListView in file order

    Raises:
        InvalidModeError: Not a pi URI, or URI names an entry
        ThreadNotFoundError: Session file not found
    """
    if uri.provider != ProviderKind.PI:
        raise InvalidModeError(
            "pi entry listing requires agents://pi/<session_id> "
            "(legacy pi://<session_id> is also supported)"
        )
    if uri.agent_id is not None:
        raise InvalidModeError("pi entry index mode requires agents://pi/<session_id>")

    resolved = resolve_thread(uri, roots)
    raw = read_thread_raw(resolved.path)
    warnings = list(resolved.metadata.warnings)

    entries: List[PiEntryListItem] = []
    parent_ids: Set[str] = set()

    for _, value in iter_json_lines(raw, resolved.path, warnings, "pi session"):
        if not isinstance(value, dict) or value.get("type") == "session":
            continue
        entry_id = get_str(value, "id")
        if entry_id is None:
            continue
        parent_id = get_str(value, "parentId")
        if parent_id is not None:
            parent_ids.add(parent_id)
        entry_type = get_str(value, "type") or "unknown"
        entries.append(
            PiEntryListItem(
                entry_id=entry_id,
                entry_type=entry_type,
                parent_id=parent_id,
                timestamp=get_str(value, "timestamp"),
                preview=_entry_preview(value, entry_type),
            )
        )

    for entry in entries:
        entry.is_leaf = entry.entry_id not in parent_ids

    return PiEntryListView(
        query=PiEntryQuery(provider=str(uri.provider), session_id=uri.session_id, list=True),
        entries=entries,
        warnings=warnings,
    )
