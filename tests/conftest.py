#!/usr/bin/env python3
"""Shared fixtures: isolated logger paths and fake provider roots."""

import json
import os

import pytest

from threadfinder.config import ProviderRoots


@pytest.fixture(autouse=True)
def isolated_logger(tmp_path, monkeypatch):
    """Keep log output and log-level config inside the test's temp dir."""
    log_dir = tmp_path / "log"
    monkeypatch.setattr(
        "threadfinder.logger.DEFAULT_LOG_PATH", str(log_dir / "threadfinder.log")
    )
    monkeypatch.setattr(
        "threadfinder.logger.DEFAULT_CONFIG_PATH", str(log_dir / "config.yaml")
    )
    monkeypatch.delenv("THREADFINDER_LOG_LEVEL", raising=False)
    return log_dir


@pytest.fixture
def roots(tmp_path):
    """ProviderRoots pointing every provider at an empty temp directory."""
    base = tmp_path / "roots"
    return ProviderRoots(
        amp_root=base / "amp",
        codex_root=base / "codex",
        claude_root=base / "claude",
        gemini_root=base / "gemini",
        pi_root=base / "pi",
        opencode_root=base / "opencode",
        snapshot_dir=base / "snapshots",
    )


@pytest.fixture
def write_jsonl():
    """Write records (dicts or raw strings) as one JSON document per line."""

    def _write(path, records, mtime=None):
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = [r if isinstance(r, str) else json.dumps(r) for r in records]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path

    return _write


@pytest.fixture
def write_json():
    def _write(path, value, mtime=None):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(value), encoding="utf-8")
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path

    return _write
