#!/usr/bin/env python3
"""
Error taxonomy for threadfinder.

Input validation errors (URI, scheme, session id, mode) are terminal.
ThreadNotFoundError is raised only after every resolution strategy came
up empty and carries the roots that were searched. Malformed JSON lines
are raised as InvalidJsonLineError but callers scanning event logs
downgrade them to warnings.
"""

from pathlib import Path
from typing import List, Optional, Sequence, Union

PathLike = Union[str, Path]


class ThreadFinderError(Exception):
    """Base class for all threadfinder errors."""

    pass


class InvalidUriError(ThreadFinderError):
    """URI does not follow either supported spelling."""

    def __init__(self, uri: str):
        self.uri = uri
        super().__init__(f"invalid uri: {uri}")


class UnsupportedSchemeError(ThreadFinderError):
    """Scheme or provider name is not one of the known providers."""

    def __init__(self, scheme: str):
        self.scheme = scheme
        super().__init__(f"unsupported scheme: {scheme}")


class InvalidSessionIdError(ThreadFinderError):
    """Session or agent id does not match the provider's id grammar."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"invalid session id: {session_id}")


class InvalidModeError(ThreadFinderError):
    """Requested view does not fit the URI shape."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"invalid mode: {detail}")


class UnsupportedSubagentProviderError(ThreadFinderError):
    """Provider has no subagent model."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"provider does not support subagent queries: {provider}")


class HomeDirectoryNotFoundError(ThreadFinderError):
    def __init__(self):
        super().__init__("cannot determine home directory")


class ThreadNotFoundError(ThreadFinderError):
    """Every resolution strategy for a provider came up empty."""

    def __init__(
        self, provider: str, session_id: str, searched_roots: Sequence[PathLike]
    ):
        self.provider = provider
        self.session_id = session_id
        self.searched_roots: List[Path] = [Path(root) for root in searched_roots]
        super().__init__(
            f"thread not found for provider={provider} session_id={session_id}"
        )


class EntryNotFoundError(ThreadFinderError):
    def __init__(self, provider: str, session_id: str, entry_id: str):
        self.provider = provider
        self.session_id = session_id
        self.entry_id = entry_id
        super().__init__(
            f"entry not found for provider={provider} "
            f"session_id={session_id} entry_id={entry_id}"
        )


class EmptyThreadFileError(ThreadFinderError):
    def __init__(self, path: PathLike):
        self.path = Path(path)
        super().__init__(f"thread file is empty: {path}")


class NonUtf8ThreadFileError(ThreadFinderError):
    def __init__(self, path: PathLike):
        self.path = Path(path)
        super().__init__(f"thread file is not valid UTF-8: {path}")


class ThreadIOError(ThreadFinderError):
    def __init__(self, path: PathLike, source: OSError):
        self.path = Path(path)
        self.source = source
        super().__init__(f"i/o error on {path}: {source}")


class IndexReadError(ThreadFinderError):
    """A structured index (sqlite database) could not be read."""

    def __init__(self, path: PathLike, source: Exception):
        self.path = Path(path)
        self.source = source
        super().__init__(f"sqlite error on {path}: {source}")


class InvalidJsonLineError(ThreadFinderError):
    def __init__(self, path: PathLike, line: int, source: Optional[Exception]):
        self.path = Path(path)
        self.line = line
        self.source = source
        super().__init__(f"invalid json line in {path} at line {line}: {source}")
