#!/usr/bin/env python3
"""Tests for thread file reading and line-level JSON parsing."""

import pytest

from threadfinder.errors import (
    EmptyThreadFileError,
    InvalidJsonLineError,
    NonUtf8ThreadFileError,
    ThreadIOError,
)
from threadfinder.jsonl import (
    extract_last_timestamp,
    first_record,
    get_str,
    iter_json_lines,
    parse_json_line,
    read_thread_raw,
    split_lines,
)


class TestReadThreadRaw:
    def test_reads_utf8(self, tmp_path):
        path = tmp_path / "t.jsonl"
        path.write_text('{"text": "héllo"}\n', encoding="utf-8")
        assert read_thread_raw(path) == '{"text": "héllo"}\n'

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.jsonl"
        path.write_bytes(b"")
        with pytest.raises(EmptyThreadFileError, match="thread file is empty"):
            read_thread_raw(path)

    def test_non_utf8(self, tmp_path):
        path = tmp_path / "latin1.jsonl"
        path.write_bytes(b'{"text": "\xff\xfe"}\n')
        with pytest.raises(NonUtf8ThreadFileError):
            read_thread_raw(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ThreadIOError):
            read_thread_raw(tmp_path / "missing.jsonl")


class TestLineParsing:
    def test_blank_line_is_none(self):
        assert parse_json_line("f", 1, "   ") is None

    def test_malformed_line_reports_line_number(self):
        with pytest.raises(InvalidJsonLineError) as exc_info:
            parse_json_line("f.jsonl", 7, "{oops")
        assert exc_info.value.line == 7

    def test_each_malformed_line_warns_once(self):
        """K malformed lines produce exactly K warnings and are skipped."""
        raw = '{"a": 1}\n{bad\n\n[1, 2]\nnope\n{"b": 2}\n'
        warnings = []

        values = list(iter_json_lines(raw, "f.jsonl", warnings, "parent rollout"))

        assert values == [(1, {"a": 1}), (4, [1, 2]), (6, {"b": 2})]
        assert len(warnings) == 2
        assert warnings[0].startswith("failed to parse parent rollout line 2:")
        assert warnings[1].startswith("failed to parse parent rollout line 5:")

    def test_unicode_line_separators_stay_inside_records(self):
        raw = '{"text": "a\u2028b\u2029c\x85d"}\r\n{"b": 2}\n'
        warnings = []

        values = list(iter_json_lines(raw, "f.jsonl", warnings, "parent rollout"))

        assert values == [(1, {"text": "a\u2028b\u2029c\x85d"}), (2, {"b": 2})]
        assert warnings == []

    def test_split_lines_on_line_feed_only(self):
        assert split_lines("a\u2028b\r\nc\n") == ["a\u2028b", "c"]
        assert split_lines("a\n\nb") == ["a", "", "b"]
        assert split_lines("") == []


class TestRecordHelpers:
    def test_last_timestamp_skips_trailing_garbage(self):
        raw = (
            '{"timestamp": "2026-01-01T00:00:00Z"}\n'
            '{"timestamp": "2026-01-02T00:00:00Z"}\n'
            '{"no": "ts"}\n'
            "garbage\n"
        )
        assert extract_last_timestamp(raw) == "2026-01-02T00:00:00Z"

    def test_first_record(self):
        assert first_record('\n{"type": "session_meta"}\n{}') == {"type": "session_meta"}
        assert first_record("{broken\n{}") is None

    def test_get_str(self):
        value = {"payload": {"source": {"name": "x", "n": 1}}}
        assert get_str(value, "payload", "source", "name") == "x"
        assert get_str(value, "payload", "source", "n") is None
        assert get_str(value, "payload", "missing", "name") is None
