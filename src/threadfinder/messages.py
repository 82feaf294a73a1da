#!/usr/bin/env python3
"""
User/assistant message extraction for every provider format.

Tool traffic (tool_use, tool_result, function_call, ...) and compaction
markers are skipped; only conversational text is returned.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .errors import EntryNotFoundError, InvalidJsonLineError
from .jsonl import get_path, get_str, parse_json_line, split_lines
from .models import MessageRole, ProviderKind, ThreadMessage

TOOL_TYPES = frozenset(
    [
        "tool_call",
        "tool_result",
        "tool_use",
        "function_call",
        "function_result",
        "function_response",
    ]
)

PathLike = Union[str, Path]


def parse_role(role: Any) -> Optional[MessageRole]:
    if role == "user":
        return MessageRole.USER
    if role == "assistant":
        return MessageRole.ASSISTANT
    return None


def parse_gemini_role(role: Any) -> Optional[MessageRole]:
    if role == "user":
        return MessageRole.USER
    if role == "gemini":
        return MessageRole.ASSISTANT
    return None


def extract_text(content: Any) -> str:
    """
    Flatten message content into text.

    Accepts a plain string or a list of strings / content items; items
    of a tool type are skipped, other items contribute ``text``,
    ``input_text`` or ``output_text``.
    """
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""

    chunks = []
    for item in content:
        if isinstance(item, str):
            if item.strip():
                chunks.append(item.strip())
            continue
        if not isinstance(item, dict):
            continue
        if item.get("type") in TOOL_TYPES:
            continue
        for key in ("text", "input_text", "output_text"):
            text = item.get(key)
            if isinstance(text, str) and text.strip():
                chunks.append(text.strip())
                break

    return "\n\n".join(chunks)


def _message(role: Optional[MessageRole], text: str) -> Optional[ThreadMessage]:
    if role is None or not text.strip():
        return None
    return ThreadMessage(role=role, text=text)


def extract_codex_message(value: Any) -> Optional[ThreadMessage]:
    record_type = get_str(value, "type")
    if record_type == "response_item":
        payload = value.get("payload")
        if get_str(payload, "type") != "message":
            return None
        return _message(
            parse_role(payload.get("role")), extract_text(payload.get("content"))
        )

    if record_type == "event_msg" and get_str(value, "payload", "type") == "agent_message":
        return _message(MessageRole.ASSISTANT, get_str(value, "payload", "message") or "")

    return None


def extract_claude_message(value: Any) -> Optional[ThreadMessage]:
    record_type = get_str(value, "type")
    if record_type not in ("user", "assistant"):
        return None
    # Compact summaries are injected context, not conversation
    if record_type == "user" and value.get("isCompactSummary") is True:
        return None
    message = value.get("message")
    if not isinstance(message, dict):
        return None
    role = message.get("role") or record_type
    return _message(parse_role(role), extract_text(message.get("content")))


def extract_opencode_message(value: Any) -> Optional[ThreadMessage]:
    if get_str(value, "type") != "message":
        return None
    role = parse_role(get_path(value, "message", "role"))

    chunks = []
    parts = value.get("parts")
    for part in parts if isinstance(parts, list) else []:
        if not isinstance(part, dict) or part.get("type") not in ("text", "reasoning"):
            continue
        text = part.get("text")
        if isinstance(text, str) and text.strip():
            chunks.append(text.strip())

    return _message(role, "\n\n".join(chunks))


def extract_amp_text(content: Any) -> str:
    if not isinstance(content, list):
        return ""
    chunks = []
    for item in content:
        if not isinstance(item, dict):
            continue
        if item.get("type") == "text":
            text = item.get("text")
        elif item.get("type") == "thinking":
            text = item.get("thinking")
        else:
            continue
        if isinstance(text, str) and text.strip():
            chunks.append(text.strip())
    return "\n\n".join(chunks)


def _load_document(path: PathLike, raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidJsonLineError(path, 1, e) from e


def extract_amp_messages(path: PathLike, raw: str) -> List[ThreadMessage]:
    value = _load_document(path, raw)
    messages = []
    items = value.get("messages") if isinstance(value, dict) else None
    for item in items if isinstance(items, list) else []:
        if not isinstance(item, dict):
            continue
        message = _message(
            parse_role(item.get("role")), extract_amp_text(item.get("content"))
        )
        if message is not None:
            messages.append(message)
    return messages


def extract_gemini_messages(path: PathLike, raw: str) -> List[ThreadMessage]:
    value = _load_document(path, raw)
    messages = []
    items = value.get("messages") if isinstance(value, dict) else None
    for item in items if isinstance(items, list) else []:
        if not isinstance(item, dict):
            continue
        text = extract_text(item.get("displayContent"))
        if not text.strip():
            text = extract_text(item.get("content"))
        message = _message(parse_gemini_role(item.get("type")), text)
        if message is not None:
            messages.append(message)
    return messages


def extract_pi_messages(
    path: PathLike, raw: str, session_id: str, entry_id: Optional[str]
) -> List[ThreadMessage]:
    """
    Messages on the branch ending at ``entry_id`` (or the last entry).

    Pi sessions are trees: each entry names its ``parentId``. The branch
    is walked from the leaf to the root and returned root first.

    Raises:
        InvalidJsonLineError: Malformed line
        EntryNotFoundError: Requested entry is not in the session
    """
    entries: Dict[str, Dict[str, Any]] = {}
    last_entry_id: Optional[str] = None

    for index, line in enumerate(split_lines(raw)):
        value = parse_json_line(path, index + 1, line)
        if not isinstance(value, dict) or value.get("type") == "session":
            continue
        current_id = value.get("id")
        if not isinstance(current_id, str):
            continue
        entries[current_id] = value
        last_entry_id = current_id

    if not entries:
        return []

    leaf_id = entry_id if entry_id is not None else (last_entry_id or "")
    if leaf_id not in entries:
        raise EntryNotFoundError(str(ProviderKind.PI), session_id, leaf_id)

    branch: List[str] = []
    seen = set()
    current: Optional[str] = leaf_id
    while current is not None and current not in seen and current in entries:
        seen.add(current)
        branch.append(current)
        parent = entries[current].get("parentId")
        current = parent if isinstance(parent, str) else None

    messages = []
    for current_id in reversed(branch):
        entry = entries[current_id]
        if entry.get("type") != "message":
            continue
        payload = entry.get("message")
        if not isinstance(payload, dict):
            continue
        message = _message(
            parse_role(payload.get("role")), extract_text(payload.get("content"))
        )
        if message is not None:
            messages.append(message)
    return messages


LINE_EXTRACTORS = {
    ProviderKind.CODEX: extract_codex_message,
    ProviderKind.CLAUDE: extract_claude_message,
    ProviderKind.OPENCODE: extract_opencode_message,
}


def extract_messages(
    provider: ProviderKind,
    path: PathLike,
    raw: str,
    session_id: str = "",
    entry_id: Optional[str] = None,
) -> List[ThreadMessage]:
    """
    Extract user/assistant messages from a raw thread file.

    Args:
        provider: Provider that wrote the file
        path: Source path (used in error messages)
        raw: File contents
        session_id: Session id (pi only, for error messages)
        entry_id: Pi entry to end the branch at (defaults to the last entry)

    Returns:
        Messages in file order

    Raises:
        InvalidJsonLineError: Malformed line or document
        EntryNotFoundError: Unknown pi entry id
    """
    if provider == ProviderKind.AMP:
        return extract_amp_messages(path, raw)
    if provider == ProviderKind.GEMINI:
        return extract_gemini_messages(path, raw)
    if provider == ProviderKind.PI:
        return extract_pi_messages(path, raw, session_id, entry_id)

    extractor = LINE_EXTRACTORS[provider]
    messages = []
    for index, line in enumerate(split_lines(raw)):
        value = parse_json_line(path, index + 1, line)
        if not isinstance(value, dict):
            continue
        message = extractor(value)
        if message is not None:
            messages.append(message)
    return messages
