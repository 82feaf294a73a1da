#!/usr/bin/env python3
"""
Thread URI parsing.

Two spellings address the same thread:
- legacy:  <provider>://<session_id>[/<agent_id>]
- unified: agents://<provider>/<session_id>[/<agent_id>]

Each provider validates its own id grammar and re-serializes ids
canonically, so both spellings always produce equal ThreadUri values.
"""

import re
from typing import Optional

from .errors import InvalidSessionIdError, InvalidUriError, UnsupportedSchemeError
from .models import ProviderKind, ThreadUri

UNIFIED_SCHEME = "agents"

SESSION_ID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
AMP_SESSION_ID_RE = re.compile(
    r"^t-[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
OPENCODE_SESSION_ID_RE = re.compile(r"^ses_[0-9A-Za-z]+$")
PI_SHORT_ENTRY_ID_RE = re.compile(r"^[0-9a-f]{8}$", re.IGNORECASE)

CODEX_DEEPLINK_PREFIX = "threads/"

_UUID_PROVIDERS = (
    ProviderKind.CODEX,
    ProviderKind.CLAUDE,
    ProviderKind.GEMINI,
    ProviderKind.PI,
)


def parse_provider(scheme: str) -> ProviderKind:
    try:
        return ProviderKind(scheme)
    except ValueError:
        raise UnsupportedSchemeError(scheme) from None


def parse_thread_uri(text: str) -> ThreadUri:
    """
    Parse a thread URI in either supported spelling.

    Args:
        text: URI such as ``codex://<uuid>`` or ``agents://claude/<uuid>/<agent>``

    Returns:
        Normalized ThreadUri

    Raises:
        InvalidUriError: Malformed URI or too many path segments
        UnsupportedSchemeError: Unknown provider
        InvalidSessionIdError: Id does not match the provider grammar
    """
    scheme, sep, target = text.partition("://")
    if not sep:
        raise InvalidUriError(text)

    if scheme == UNIFIED_SCHEME:
        provider_scheme, sep, provider_target = target.partition("/")
        if not sep or not provider_target:
            raise InvalidUriError(text)
        provider = parse_provider(provider_scheme)
    else:
        provider = parse_provider(scheme)
        provider_target = target

    if provider == ProviderKind.CODEX and provider_target.startswith(
        CODEX_DEEPLINK_PREFIX
    ):
        provider_target = provider_target[len(CODEX_DEEPLINK_PREFIX) :]

    if provider == ProviderKind.OPENCODE:
        if "/" in provider_target:
            raise InvalidUriError(text)
        main_id, agent_id = provider_target, None
    else:
        segments = provider_target.split("/")
        if len(segments) > 2:
            raise InvalidUriError(text)
        main_id = segments[0]
        agent_id = segments[1] if len(segments) == 2 else None
        if agent_id is not None and agent_id == "":
            raise InvalidUriError(text)

    _validate_session_id(provider, main_id)

    if provider == ProviderKind.AMP and agent_id is not None:
        if not AMP_SESSION_ID_RE.match(agent_id):
            raise InvalidSessionIdError(agent_id)

    return ThreadUri(
        provider=provider,
        session_id=_canonical_session_id(provider, main_id),
        agent_id=_canonical_agent_id(provider, agent_id),
    )


def _validate_session_id(provider: ProviderKind, session_id: str) -> None:
    if provider == ProviderKind.AMP:
        valid = AMP_SESSION_ID_RE.match(session_id)
    elif provider == ProviderKind.OPENCODE:
        valid = OPENCODE_SESSION_ID_RE.match(session_id)
    else:
        valid = SESSION_ID_RE.match(session_id)
    if not valid:
        raise InvalidSessionIdError(session_id)


def _canonical_amp_id(thread_id: str) -> str:
    return f"T-{thread_id[2:].lower()}"


def _canonical_session_id(provider: ProviderKind, session_id: str) -> str:
    if provider == ProviderKind.AMP:
        return _canonical_amp_id(session_id)
    if provider in _UUID_PROVIDERS:
        return session_id.lower()
    return session_id


def _canonical_agent_id(provider: ProviderKind, agent_id: Optional[str]) -> Optional[str]:
    if agent_id is None:
        return None
    if provider == ProviderKind.AMP:
        return _canonical_amp_id(agent_id)
    if provider in (ProviderKind.CODEX, ProviderKind.GEMINI) and SESSION_ID_RE.match(
        agent_id
    ):
        return agent_id.lower()
    if provider == ProviderKind.PI and (
        SESSION_ID_RE.match(agent_id) or PI_SHORT_ENTRY_ID_RE.match(agent_id)
    ):
        return agent_id.lower()
    return agent_id


def normalize_amp_thread_id(thread_id: str) -> Optional[str]:
    """Canonical amp thread id, or None when the id does not parse."""
    if not AMP_SESSION_ID_RE.match(thread_id):
        return None
    return _canonical_amp_id(thread_id)


def parse_session_id_like(raw: str) -> Optional[str]:
    """Lowercased canonical UUID if ``raw`` is one (surrounding space allowed)."""
    normalized = raw.strip().lower()
    if not SESSION_ID_RE.match(normalized):
        return None
    return normalized
