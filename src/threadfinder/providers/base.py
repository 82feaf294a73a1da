#!/usr/bin/env python3
"""
Shared resolution machinery for provider resolvers.

A provider resolver is an ordered list of named strategies. Strategies
run in order; the first one that yields at least one candidate wins and
later strategies are never consulted. Candidates are never merged
across strategies.
"""

import os
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from ..errors import ThreadNotFoundError
from ..logger import log_debug
from ..models import ProviderKind, ResolutionMeta, ResolvedThread

# A finder receives the shared warnings list and returns candidate paths
Finder = Callable[[List[str]], List[Path]]


class Strategy:
    """Named candidate finder."""

    def __init__(self, name: str, find: Finder):
        self.name = name
        self.find = find

    def __repr__(self) -> str:
        return f"Strategy({self.name!r})"


def walk_files(root: Path) -> Iterator[Path]:
    """Yield every regular file under ``root`` in sorted, deterministic order."""
    if not root.exists():
        return
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in sorted(filenames):
            path = Path(dirpath) / filename
            if path.is_file():
                yield path


def modified_time(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except OSError:
        return 0.0


def choose_latest(paths: Sequence[Path]) -> Optional[Tuple[Path, List[Path]]]:
    """
    Pick the most recently modified candidate.

    Ties keep the input order.

    Returns:
        (selected, discarded) or None when there are no candidates
    """
    if not paths:
        return None
    ranked = sorted(paths, key=modified_time, reverse=True)
    return ranked[0], ranked[1:]


def multiple_matches_warnings(
    session_id: str, selected: Path, discarded: Sequence[Path]
) -> List[str]:
    """One warning per discarded candidate."""
    count = len(discarded) + 1
    return [
        f"multiple matches found ({count}) for session_id={session_id}; "
        f"selected latest: {selected}; discarded: {other}"
        for other in discarded
    ]


def run_strategies(
    provider: ProviderKind,
    session_id: str,
    strategies: Sequence[Strategy],
    searched_roots: Sequence[Path],
    warnings: Optional[List[str]] = None,
) -> ResolvedThread:
    """
    Run strategies in order and return the first hit.

    Args:
        provider: Provider being resolved
        session_id: Canonical session id
        strategies: Ordered strategies
        searched_roots: Roots reported when nothing is found
        warnings: Warnings gathered before the first strategy runs

    Returns:
        ResolvedThread for the newest candidate of the winning strategy

    Raises:
        ThreadNotFoundError: No strategy produced a candidate
    """
    if warnings is None:
        warnings = []

    for strategy in strategies:
        candidates = strategy.find(warnings)
        chosen = choose_latest(candidates)
        if chosen is None:
            log_debug("resolver", f"{strategy.name}: no candidates for {session_id}")
            continue

        selected, discarded = chosen
        warnings.extend(multiple_matches_warnings(session_id, selected, discarded))
        log_debug(
            "resolver",
            f"{strategy.name}: selected {selected} for {session_id} "
            f"({len(candidates)} candidates)",
        )
        return ResolvedThread(
            provider=provider,
            session_id=session_id,
            path=selected,
            metadata=ResolutionMeta(
                source=strategy.name,
                candidate_count=len(candidates),
                warnings=warnings,
            ),
        )

    raise ThreadNotFoundError(str(provider), session_id, searched_roots)
