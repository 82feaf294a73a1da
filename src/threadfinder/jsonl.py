#!/usr/bin/env python3
"""
Event log reading helpers.

Thread files are read whole into memory as UTF-8 text and then scanned
line by line. Helpers here never buffer more than one record at a time
beyond the raw text itself.
"""

import json
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple, Union

from .errors import (
    EmptyThreadFileError,
    InvalidJsonLineError,
    NonUtf8ThreadFileError,
    ThreadIOError,
)

PathLike = Union[str, Path]


def read_thread_raw(path: PathLike) -> str:
    """
    Read a thread file as UTF-8 text.

    Args:
        path: Path to the thread file

    Returns:
        File contents

    Raises:
        ThreadIOError: File could not be read
        EmptyThreadFileError: File has zero bytes
        NonUtf8ThreadFileError: File is not valid UTF-8
    """
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise ThreadIOError(path, e) from e

    if not data:
        raise EmptyThreadFileError(path)

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        raise NonUtf8ThreadFileError(path) from None


def split_lines(raw: str) -> List[str]:
    """
    Split on line feeds only, dropping one trailing carriage return per line.

    JSON strings may hold U+2028 and other characters that
    ``str.splitlines`` treats as line breaks.
    """
    lines = raw.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def parse_json_line(source: PathLike, line_no: int, line: str) -> Optional[Any]:
    """
    Parse one JSONL line.

    Returns None for blank lines. Raises InvalidJsonLineError with the
    1-based line number for anything that is not valid JSON.
    """
    stripped = line.strip()
    if not stripped:
        return None
    try:
        return json.loads(stripped)
    except json.JSONDecodeError as e:
        raise InvalidJsonLineError(source, line_no, e) from e


def iter_json_lines(
    raw: str, source: PathLike, warnings: List[str], label: str
) -> Iterator[Tuple[int, Any]]:
    """
    Yield ``(line_no, value)`` for every parseable non-blank line.

    Each malformed line appends exactly one warning of the form
    ``failed to parse <label> line <n>: <error>`` and is skipped.
    """
    for index, line in enumerate(split_lines(raw)):
        line_no = index + 1
        try:
            value = parse_json_line(source, line_no, line)
        except InvalidJsonLineError as e:
            warnings.append(f"failed to parse {label} line {line_no}: {e}")
            continue
        if value is None:
            continue
        yield line_no, value


def extract_last_timestamp(raw: str) -> Optional[str]:
    """Timestamp of the last record that carries one, scanning backwards."""
    for line in reversed(split_lines(raw)):
        try:
            value = parse_json_line("<timestamp>", 1, line)
        except InvalidJsonLineError:
            continue
        if isinstance(value, dict):
            timestamp = value.get("timestamp")
            if isinstance(timestamp, str):
                return timestamp
    return None


def first_record(raw: str) -> Optional[Any]:
    """First non-blank line parsed as JSON, or None if it is missing or malformed."""
    for line in split_lines(raw):
        if not line.strip():
            continue
        try:
            return parse_json_line("<first>", 1, line)
        except InvalidJsonLineError:
            return None
    return None


def get_path(value: Any, *keys: str) -> Any:
    """Walk nested dicts, returning None as soon as a key is missing."""
    current = value
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def get_str(value: Any, *keys: str) -> Optional[str]:
    result = get_path(value, *keys)
    if isinstance(result, str):
        return result
    return None
