"""
Subagent relation and status reconstruction.

``build_list`` and ``build_detail`` dispatch over the providers that
have a subagent model (amp, codex, claude, gemini). Everything is
recomputed from the on-disk logs on every call.
"""

from typing import Optional

from ..config import ProviderRoots
from ..errors import InvalidModeError, UnsupportedSubagentProviderError
from ..logger import log_debug
from ..models import (
    ProviderKind,
    SubagentDetailView,
    SubagentListView,
    SubagentView,
    ThreadUri,
)
from . import amp, claude, codex, gemini

BUILDERS = {
    ProviderKind.AMP: amp,
    ProviderKind.CODEX: codex,
    ProviderKind.CLAUDE: claude,
    ProviderKind.GEMINI: gemini,
}


def _builder(uri: ThreadUri):
    builder = BUILDERS.get(uri.provider)
    if builder is None:
        raise UnsupportedSubagentProviderError(str(uri.provider))
    return builder


def build_list(main_uri: ThreadUri, roots: ProviderRoots) -> SubagentListView:
    """
    List every subagent known for a main thread.

    Raises:
        InvalidModeError: URI carries an agent segment
        UnsupportedSubagentProviderError: Provider has no subagent model
        ThreadNotFoundError: Main thread cannot be resolved
    """
    if main_uri.agent_id is not None:
        raise InvalidModeError(
            "subagent index mode requires agents://<provider>/<main_thread_id>"
        )
    builder = _builder(main_uri)
    log_debug("subagents", f"Building list view for {main_uri.as_agents_string()}")
    return builder.build_list(main_uri, roots)


def build_detail(
    main_uri: ThreadUri, agent_id: str, roots: ProviderRoots
) -> SubagentDetailView:
    """
    Drill down into a single subagent of a main thread.

    Raises:
        UnsupportedSubagentProviderError: Provider has no subagent model
        ThreadNotFoundError: Main thread cannot be resolved
    """
    builder = _builder(main_uri)
    main_uri = main_uri.main_thread()
    log_debug(
        "subagents",
        f"Building detail view for {main_uri.as_agents_string()} agent={agent_id}",
    )
    return builder.build_detail(main_uri, agent_id, roots)


def resolve_subagent_view(
    uri: ThreadUri, roots: ProviderRoots, list_mode: bool
) -> SubagentView:
    """
    Build the list or detail view the URI shape asks for.

    List mode requires a URI without agent segment; detail mode requires
    one. The shape is checked before anything is read from disk.
    """
    if list_mode and uri.agent_id is not None:
        raise InvalidModeError(
            "subagent index mode requires agents://<provider>/<main_thread_id>"
        )
    if not list_mode and uri.agent_id is None:
        raise InvalidModeError(
            "subagent drill-down requires "
            "agents://<provider>/<main_thread_id>/<agent_id>"
        )

    if list_mode:
        return build_list(uri, roots)
    return build_detail(uri.main_thread(), uri.agent_id, roots)


def subagent_view_to_raw_json(view: SubagentView, indent: Optional[int] = 2) -> str:
    """Serialize a view for machine consumers; warnings are not included."""
    return view.model_dump_json(indent=indent)


__all__ = [
    "BUILDERS",
    "build_detail",
    "build_list",
    "resolve_subagent_view",
    "subagent_view_to_raw_json",
]
