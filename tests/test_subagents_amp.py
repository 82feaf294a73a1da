#!/usr/bin/env python3
"""Tests for amp handoff-based subagent views."""

import pytest

from threadfinder.models import ProviderKind, ThreadUri
from threadfinder.subagents import build_detail, build_list
from threadfinder.subagents.amp import (
    MISSING_CHILD_EVIDENCE,
    extract_handoffs,
    extract_status,
)

MAIN = "T-019c0797-c402-7389-bd80-d785c98df295"
CHILD = "T-019c0797-c402-7389-bd80-d785c98df296"
GRANDPARENT = "T-019c0797-c402-7389-bd80-d785c98df297"


def handoff(thread_id, role=None, ts="2026-02-23T10:00:00Z"):
    relationship = {"type": "handoff", "threadID": thread_id, "timestamp": ts}
    if role is not None:
        relationship["role"] = role
    return relationship


def text(role, value):
    return {"role": role, "content": [{"type": "text", "text": value}]}


@pytest.fixture
def main_uri():
    return ThreadUri(provider=ProviderKind.AMP, session_id=MAIN)


@pytest.fixture
def write_thread(roots, write_json):
    def _write(thread_id, document):
        document = dict(document, id=thread_id)
        return write_json(roots.amp_root / "threads" / f"{thread_id}.json", document)

    return _write


class TestAmpListView:
    def test_parent_handoff_with_child_backlink(self, roots, main_uri, write_thread):
        write_thread(MAIN, {"relationships": [handoff(CHILD, "parent")]})
        child_path = write_thread(
            CHILD,
            {
                "relationships": [handoff(MAIN, "child")],
                "messages": [text("user", "do it"), text("assistant", "done")],
            },
        )

        view = build_list(main_uri, roots)

        assert [a.agent_id for a in view.agents] == [CHILD]
        item = view.agents[0]
        assert item.relation.validated is True
        assert item.relation.evidence == [
            "main relationships includes handoff(role=parent) to child thread",
            "child relationships includes handoff(role=child) back to main thread",
        ]
        assert item.status == "completed"
        assert item.status_source == "inferred"
        assert item.child_thread.path == str(child_path)

    def test_explicit_child_status(self, roots, main_uri, write_thread):
        write_thread(MAIN, {"relationships": [handoff(CHILD, "parent")]})
        write_thread(CHILD, {"status": "running", "updatedAt": "2026-02-23T11:00:00Z"})

        item = build_list(main_uri, roots).agents[0]

        assert item.status == "running"
        assert item.status_source == "child_thread"
        assert item.last_update == "2026-02-23T11:00:00Z"

    def test_missing_child_thread(self, roots, main_uri, write_thread):
        write_thread(MAIN, {"relationships": [handoff(CHILD)]})

        view = build_list(main_uri, roots)

        item = view.agents[0]
        assert item.relation.validated is False
        assert item.relation.evidence == [
            "main relationships includes handoff(role missing) to child thread",
            MISSING_CHILD_EVIDENCE,
        ]
        assert item.status == "notFound"
        assert item.child_thread is None
        assert view.warnings[0].startswith(
            f"failed resolving amp child thread child_thread_id={CHILD}"
        )

    def test_validated_handoff_without_child_is_pending(self, roots, main_uri, write_thread):
        write_thread(MAIN, {"relationships": [handoff(CHILD, "PARENT")]})
        item = build_list(main_uri, roots).agents[0]
        assert (item.status, item.status_source) == ("pendingInit", "inferred")
        assert item.relation.evidence[-1] == MISSING_CHILD_EVIDENCE
        assert item.child_thread is None

    def test_child_role_and_self_excluded(self, roots, main_uri, write_thread):
        write_thread(
            MAIN,
            {"relationships": [handoff(GRANDPARENT, "child"), handoff(MAIN, "parent")]},
        )
        assert build_list(main_uri, roots).agents == []


class TestAmpDetailView:
    def test_detail_lifecycle_and_excerpt(self, roots, main_uri, write_thread):
        write_thread(MAIN, {"relationships": [handoff(CHILD, "parent")]})
        write_thread(
            CHILD,
            {
                "relationships": [handoff(MAIN, "child", ts="2026-02-23T10:00:01Z")],
                "messages": [text("user", "a"), text("assistant", "b")],
            },
        )

        view = build_detail(main_uri, CHILD, roots)

        assert [e.event for e in view.lifecycle] == ["handoff", "handoff_backlink"]
        assert view.lifecycle[0].detail == "main handoff relationship discovered (role=parent)"
        assert [m.text for m in view.excerpt] == ["a", "b"]

    def test_detail_without_handoff(self, roots, main_uri, write_thread):
        write_thread(MAIN, {"relationships": []})

        view = build_detail(main_uri, CHILD, roots)

        assert view.status == "notFound"
        assert (
            f"no handoff relationship found in main thread for child_thread_id={CHILD}"
            in view.warnings
        )
        assert view.relation.evidence == []

    def test_detail_notes_unmaterialized_child(self, roots, main_uri, write_thread):
        write_thread(MAIN, {"relationships": [handoff(CHILD, "parent")]})

        view = build_detail(main_uri, CHILD, roots)

        assert view.relation.evidence == [
            "main relationships includes handoff(role=parent) to child thread",
            MISSING_CHILD_EVIDENCE,
        ]
        assert view.status == "pendingInit"
        assert view.child_thread is None


class TestHandoffParsing:
    def test_invalid_and_missing_thread_ids(self):
        warnings = []
        value = {
            "relationships": [
                {"type": "handoff"},
                {"type": "handoff", "threadID": "bogus"},
                {"type": "mention", "threadID": CHILD},
                handoff(CHILD.lower(), "Parent"),
            ]
        }

        handoffs = extract_handoffs(value, "main", warnings)

        assert [(h.thread_id, h.role) for h in handoffs] == [(CHILD, "parent")]
        assert warnings == [
            "main thread handoff relationship missing threadID field",
            "main thread handoff relationship has invalid threadID=bogus",
        ]

    def test_status_object(self):
        assert extract_status({"status": {"errored": {"message": "x"}}}) == "errored"
        assert extract_status({"state": "shutdown"}) == "shutdown"
        assert extract_status({}) is None
