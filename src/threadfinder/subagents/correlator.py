#!/usr/bin/env python3
"""
Pairing of codex tool calls with their outputs.

Codex rollouts log ``function_call`` and ``function_call_output``
payloads as separate ``response_item`` records joined by ``call_id``.
The correlator buffers calls until their output arrives and emits one
ToolInvocation per completed pair. Its buffer lives for a single scan.
"""

import json
from typing import Any, Dict, Optional

from ..jsonl import get_str


class PendingCall:
    """A function call waiting for its output."""

    def __init__(self, name: str, arguments: Any, timestamp: Optional[str]):
        self.name = name
        self.arguments = arguments
        self.timestamp = timestamp


class ToolInvocation:
    """A completed call/output pair."""

    def __init__(
        self, name: str, arguments: Any, output: Any, timestamp: Optional[str]
    ):
        self.name = name
        self.arguments = arguments
        self.output = output
        self.timestamp = timestamp

    def __repr__(self) -> str:
        return f"ToolInvocation({self.name!r}, timestamp={self.timestamp!r})"


def decode_arguments(raw: Any) -> Any:
    """Decode a call's JSON argument string, falling back to an empty dict."""
    if not isinstance(raw, str):
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return {}


def decode_output(raw: Any) -> Any:
    """Decode a call output as JSON when possible, else keep the raw string."""
    text = raw if isinstance(raw, str) else ""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


class CallCorrelator:
    def __init__(self):
        self._pending: Dict[str, PendingCall] = {}

    @property
    def pending_count(self) -> int:
        """Calls still waiting for output."""
        return len(self._pending)

    def observe(self, record: Any) -> Optional[ToolInvocation]:
        """
        Feed one rollout record.

        Args:
            record: Parsed JSONL record

        Returns:
            ToolInvocation when the record completes a buffered call, else None
        """
        if get_str(record, "type") != "response_item":
            return None
        payload = record.get("payload")
        payload_type = get_str(payload, "type")

        if payload_type == "function_call":
            call_id = get_str(payload, "call_id")
            name = get_str(payload, "name")
            if not call_id or not name:
                return None
            self._pending[call_id] = PendingCall(
                name,
                decode_arguments(payload.get("arguments")),
                get_str(record, "timestamp"),
            )
            return None

        if payload_type == "function_call_output":
            call_id = get_str(payload, "call_id")
            if call_id is None:
                return None
            call = self._pending.pop(call_id, None)
            if call is None:
                return None
            return ToolInvocation(
                call.name,
                call.arguments,
                decode_output(payload.get("output")),
                call.timestamp,
            )

        return None
