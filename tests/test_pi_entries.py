#!/usr/bin/env python3
"""Tests for the pi session entry index."""

import pytest

from threadfinder.errors import InvalidModeError
from threadfinder.models import ProviderKind, ThreadUri
from threadfinder.pi_entries import resolve_pi_entry_list_view, truncate_preview

SESSION_ID = "019c871c-b1f9-7f60-9c4f-87ed09f13592"


@pytest.fixture
def session_file(roots, write_jsonl):
    return write_jsonl(
        roots.pi_root / "sessions" / "--work--" / "2026-02-23_session.jsonl",
        [
            {"type": "session", "id": SESSION_ID},
            {"type": "message", "id": "aaaa0001", "parentId": None, "timestamp": "t1",
             "message": {"role": "user", "content": "  plan   the\nrelease "}},
            {"type": "message", "id": "aaaa0002", "parentId": "aaaa0001",
             "message": {"role": "assistant", "content": [{"type": "text", "text": "ok"}]}},
            {"type": "compaction", "id": "aaaa0003", "parentId": "aaaa0001",
             "summary": "earlier work"},
            "{broken",
            {"type": "model_change", "id": "aaaa0004", "parentId": "aaaa0003"},
        ],
    )


class TestPiEntryIndex:
    def test_lists_entries_with_leaves(self, roots, session_file):
        uri = ThreadUri(provider=ProviderKind.PI, session_id=SESSION_ID)

        view = resolve_pi_entry_list_view(uri, roots)

        assert view.query.list is True
        assert [e.entry_id for e in view.entries] == [
            "aaaa0001", "aaaa0002", "aaaa0003", "aaaa0004",
        ]
        leaves = {e.entry_id: e.is_leaf for e in view.entries}
        assert leaves == {
            "aaaa0001": False,
            "aaaa0002": True,
            "aaaa0003": False,
            "aaaa0004": True,
        }
        previews = {e.entry_id: e.preview for e in view.entries}
        assert previews["aaaa0001"] == "plan the release"
        assert previews["aaaa0002"] == "ok"
        assert previews["aaaa0003"] == "earlier work"
        assert previews["aaaa0004"] is None
        assert view.entries[0].timestamp == "t1"
        assert len(view.warnings) == 1
        assert view.warnings[0].startswith("failed to parse pi session line 5:")

    def test_rejects_entry_segment(self, roots, session_file):
        uri = ThreadUri(provider=ProviderKind.PI, session_id=SESSION_ID, agent_id="aaaa0001")
        with pytest.raises(InvalidModeError):
            resolve_pi_entry_list_view(uri, roots)

    def test_rejects_other_providers(self, roots):
        uri = ThreadUri(provider=ProviderKind.CODEX, session_id=SESSION_ID)
        with pytest.raises(InvalidModeError):
            resolve_pi_entry_list_view(uri, roots)


class TestTruncatePreview:
    def test_short_text_untouched(self):
        assert truncate_preview("a  b") == "a b"

    def test_long_text_gets_ellipsis(self):
        result = truncate_preview("x" * 200, max_chars=10)
        assert result == "x" * 9 + "…"
        assert len(result) == 10
