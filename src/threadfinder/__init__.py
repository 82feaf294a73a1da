"""
threadfinder - locate coding-agent transcripts and reconstruct subagents.

Typical use:

    roots = ProviderRoots.from_env_or_home()
    uri = parse_thread_uri("agents://codex/<session_id>")
    resolved = resolve_thread(uri, roots)
    view = build_list(uri, roots)
"""

from .config import ProviderRoots
from .errors import (
    EmptyThreadFileError,
    EntryNotFoundError,
    HomeDirectoryNotFoundError,
    IndexReadError,
    InvalidJsonLineError,
    InvalidModeError,
    InvalidSessionIdError,
    InvalidUriError,
    NonUtf8ThreadFileError,
    ThreadFinderError,
    ThreadIOError,
    ThreadNotFoundError,
    UnsupportedSchemeError,
    UnsupportedSubagentProviderError,
)
from .jsonl import read_thread_raw
from .messages import extract_messages
from .models import (
    MessageRole,
    PiEntryListItem,
    PiEntryListView,
    PiEntryQuery,
    ProviderKind,
    ResolutionMeta,
    ResolvedThread,
    SubagentDetailView,
    SubagentExcerptMessage,
    SubagentLifecycleEvent,
    SubagentListItem,
    SubagentListView,
    SubagentQuery,
    SubagentRelation,
    SubagentThreadRef,
    SubagentView,
    ThreadMessage,
    ThreadUri,
)
from .pi_entries import resolve_pi_entry_list_view
from .providers import resolve_thread
from .subagents import (
    build_detail,
    build_list,
    resolve_subagent_view,
    subagent_view_to_raw_json,
)
from .uri import parse_thread_uri

__version__ = "1.0.0"

__all__ = [
    "EmptyThreadFileError",
    "EntryNotFoundError",
    "HomeDirectoryNotFoundError",
    "IndexReadError",
    "InvalidJsonLineError",
    "InvalidModeError",
    "InvalidSessionIdError",
    "InvalidUriError",
    "MessageRole",
    "NonUtf8ThreadFileError",
    "PiEntryListItem",
    "PiEntryListView",
    "PiEntryQuery",
    "ProviderKind",
    "ProviderRoots",
    "ResolutionMeta",
    "ResolvedThread",
    "SubagentDetailView",
    "SubagentExcerptMessage",
    "SubagentLifecycleEvent",
    "SubagentListItem",
    "SubagentListView",
    "SubagentQuery",
    "SubagentRelation",
    "SubagentThreadRef",
    "SubagentView",
    "ThreadFinderError",
    "ThreadIOError",
    "ThreadMessage",
    "ThreadNotFoundError",
    "ThreadUri",
    "UnsupportedSchemeError",
    "UnsupportedSubagentProviderError",
    "build_detail",
    "build_list",
    "extract_messages",
    "parse_thread_uri",
    "read_thread_raw",
    "resolve_pi_entry_list_view",
    "resolve_subagent_view",
    "resolve_thread",
    "subagent_view_to_raw_json",
]
