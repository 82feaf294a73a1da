#!/usr/bin/env python3
"""Amp thread resolver: one JSON document per thread under ``threads/``."""

from pathlib import Path
from typing import List

from ..models import ProviderKind, ResolvedThread
from .base import Strategy, run_strategies


def threads_root(root: Path) -> Path:
    return root / "threads"


def resolve(root: Path, session_id: str) -> ResolvedThread:
    threads = threads_root(root)

    def find_thread_file(warnings: List[str]) -> List[Path]:
        path = threads / f"{session_id}.json"
        return [path] if path.exists() else []

    return run_strategies(
        ProviderKind.AMP,
        session_id,
        [Strategy("amp:threads", find_thread_file)],
        [threads],
    )
