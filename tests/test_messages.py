#!/usr/bin/env python3
"""
Tests for conversational message extraction.

Each provider format is exercised with a small transcript mixing real
messages with tool traffic that must be skipped.
"""

import json

import pytest

from threadfinder.errors import EntryNotFoundError, InvalidJsonLineError
from threadfinder.messages import extract_messages, extract_text
from threadfinder.models import MessageRole, ProviderKind

SESSION_ID = "019c871c-b1f9-7f60-9c4f-87ed09f13592"


def jsonl(*records):
    return "\n".join(json.dumps(r) for r in records) + "\n"


def pairs(messages):
    return [(str(m.role), m.text) for m in messages]


class TestExtractText:
    def test_string_content(self):
        assert extract_text("plain") == "plain"

    def test_skips_tool_items(self):
        content = [
            {"type": "input_text", "input_text": "ignored key order"},
            {"type": "tool_use", "text": "should not appear"},
            {"type": "output_text", "text": " answer "},
            "  loose  ",
        ]
        assert extract_text(content) == "ignored key order\n\nanswer\n\nloose"

    def test_unknown_shape(self):
        assert extract_text({"text": "x"}) == ""


class TestCodexMessages:
    def test_response_items_and_agent_messages(self):
        raw = jsonl(
            {"type": "session_meta", "payload": {"id": SESSION_ID}},
            {
                "type": "response_item",
                "payload": {
                    "type": "message",
                    "role": "user",
                    "content": [{"type": "input_text", "text": "fix the bug"}],
                },
            },
            {"type": "response_item", "payload": {"type": "function_call", "name": "shell"}},
            {
                "type": "response_item",
                "payload": {"type": "message", "role": "developer", "content": "rules"},
            },
            {"type": "event_msg", "payload": {"type": "agent_message", "message": "done"}},
        )
        messages = extract_messages(ProviderKind.CODEX, "r.jsonl", raw)
        assert pairs(messages) == [("user", "fix the bug"), ("assistant", "done")]

    def test_malformed_line_raises(self):
        with pytest.raises(InvalidJsonLineError) as exc_info:
            extract_messages(ProviderKind.CODEX, "r.jsonl", '{"type": "x"}\n{oops\n')
        assert exc_info.value.line == 2


class TestClaudeMessages:
    def test_skips_compact_summary_and_tool_results(self):
        raw = jsonl(
            {
                "type": "user",
                "isCompactSummary": True,
                "message": {"role": "user", "content": "summary of earlier work"},
            },
            {"type": "user", "message": {"role": "user", "content": "hello"}},
            {
                "type": "assistant",
                "message": {
                    "role": "assistant",
                    "content": [
                        {"type": "text", "text": "looking"},
                        {"type": "tool_use", "name": "Read"},
                    ],
                },
            },
            {
                "type": "user",
                "message": {"role": "user", "content": [{"type": "tool_result", "content": "x"}]},
            },
        )
        messages = extract_messages(ProviderKind.CLAUDE, "c.jsonl", raw)
        assert pairs(messages) == [("user", "hello"), ("assistant", "looking")]


class TestOpencodeMessages:
    def test_text_and_reasoning_parts(self):
        raw = jsonl(
            {"type": "session", "sessionId": "ses_x"},
            {
                "type": "message",
                "message": {"role": "assistant"},
                "parts": [
                    {"type": "reasoning", "text": "thinking"},
                    {"type": "tool", "text": "skip"},
                    {"type": "text", "text": "answer"},
                ],
            },
        )
        messages = extract_messages(ProviderKind.OPENCODE, "o.jsonl", raw)
        assert pairs(messages) == [("assistant", "thinking\n\nanswer")]


class TestAmpMessages:
    def test_document_messages(self):
        raw = json.dumps(
            {
                "messages": [
                    {"role": "user", "content": [{"type": "text", "text": "start"}]},
                    {
                        "role": "assistant",
                        "content": [
                            {"type": "thinking", "thinking": "plan"},
                            {"type": "tool_use", "name": "edit"},
                            {"type": "text", "text": "ok"},
                        ],
                    },
                ]
            }
        )
        messages = extract_messages(ProviderKind.AMP, "a.json", raw)
        assert pairs(messages) == [("user", "start"), ("assistant", "plan\n\nok")]

    def test_invalid_document(self):
        with pytest.raises(InvalidJsonLineError):
            extract_messages(ProviderKind.AMP, "a.json", "{not json")


class TestGeminiMessages:
    def test_display_content_preferred(self):
        raw = json.dumps(
            {
                "sessionId": SESSION_ID,
                "messages": [
                    {"type": "user", "content": "raw prompt", "displayContent": "shown prompt"},
                    {"type": "gemini", "content": [{"text": "reply"}]},
                    {"type": "info", "content": "banner"},
                ],
            }
        )
        messages = extract_messages(ProviderKind.GEMINI, "g.json", raw)
        assert pairs(messages) == [("user", "shown prompt"), ("assistant", "reply")]


class TestPiMessages:
    """Pi sessions are entry trees; extraction follows one branch."""

    RAW = jsonl(
        {"type": "session", "id": SESSION_ID},
        {"type": "message", "id": "aaaa0001", "parentId": None,
         "message": {"role": "user", "content": "root question"}},
        {"type": "message", "id": "aaaa0002", "parentId": "aaaa0001",
         "message": {"role": "assistant", "content": [{"type": "text", "text": "first answer"}]}},
        {"type": "message", "id": "aaaa0003", "parentId": "aaaa0001",
         "message": {"role": "assistant", "content": "second answer"}},
    )

    def test_defaults_to_last_entry_branch(self):
        messages = extract_messages(ProviderKind.PI, "p.jsonl", self.RAW, SESSION_ID)
        assert pairs(messages) == [("user", "root question"), ("assistant", "second answer")]

    def test_explicit_entry_branch(self):
        messages = extract_messages(
            ProviderKind.PI, "p.jsonl", self.RAW, SESSION_ID, entry_id="aaaa0002"
        )
        assert [m.text for m in messages] == ["root question", "first answer"]
        assert messages[1].role == MessageRole.ASSISTANT

    def test_unknown_entry(self):
        with pytest.raises(EntryNotFoundError, match="entry_id=ffffffff"):
            extract_messages(
                ProviderKind.PI, "p.jsonl", self.RAW, SESSION_ID, entry_id="ffffffff"
            )
