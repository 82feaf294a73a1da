"""Per-provider thread resolvers."""

from ..config import ProviderRoots
from ..models import ProviderKind, ResolvedThread, ThreadUri
from . import amp, claude, codex, gemini, opencode, pi

RESOLVERS = {
    ProviderKind.AMP: lambda roots, session_id: amp.resolve(roots.amp_root, session_id),
    ProviderKind.CODEX: lambda roots, session_id: codex.resolve(
        roots.codex_root, session_id
    ),
    ProviderKind.CLAUDE: lambda roots, session_id: claude.resolve(
        roots.claude_root, session_id
    ),
    ProviderKind.GEMINI: lambda roots, session_id: gemini.resolve(
        roots.gemini_root, session_id
    ),
    ProviderKind.PI: lambda roots, session_id: pi.resolve(roots.pi_root, session_id),
    ProviderKind.OPENCODE: lambda roots, session_id: opencode.resolve(
        roots.opencode_root, session_id, roots.snapshot_dir
    ),
}


def resolve_thread(uri: ThreadUri, roots: ProviderRoots) -> ResolvedThread:
    """
    Locate the transcript of the main thread addressed by ``uri``.

    Args:
        uri: Parsed thread URI (any agent segment is ignored)
        roots: Provider roots

    Returns:
        ResolvedThread with the winning strategy recorded in metadata

    Raises:
        ThreadNotFoundError: No strategy found the thread
    """
    return RESOLVERS[uri.provider](roots, uri.session_id)


__all__ = ["RESOLVERS", "resolve_thread"]
