#!/usr/bin/env python3
"""
Pydantic models for resolved threads and subagent views.

These are the inert structures handed to renderers; they are rebuilt on
every query and never persisted.
"""

from enum import Enum
from pathlib import Path
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ProviderKind(str, Enum):
    AMP = "amp"
    CODEX = "codex"
    CLAUDE = "claude"
    GEMINI = "gemini"
    PI = "pi"
    OPENCODE = "opencode"

    def __str__(self) -> str:
        return self.value


class ThreadUri(BaseModel):
    """Parsed thread address. Use ``uri.parse_thread_uri`` to build one."""

    model_config = ConfigDict(frozen=True)

    provider: ProviderKind
    session_id: str
    agent_id: Optional[str] = None

    def as_agents_string(self) -> str:
        if self.agent_id is not None:
            return f"agents://{self.provider}/{self.session_id}/{self.agent_id}"
        return f"agents://{self.provider}/{self.session_id}"

    def as_string(self) -> str:
        if self.agent_id is not None:
            return f"{self.provider}://{self.session_id}/{self.agent_id}"
        return f"{self.provider}://{self.session_id}"

    def main_thread(self) -> "ThreadUri":
        return ThreadUri(provider=self.provider, session_id=self.session_id)


class ResolutionMeta(BaseModel):
    source: str
    candidate_count: int = 0
    warnings: List[str] = Field(default_factory=list)


class ResolvedThread(BaseModel):
    provider: ProviderKind
    session_id: str
    path: Path
    metadata: ResolutionMeta


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"

    def __str__(self) -> str:
        return self.value


class ThreadMessage(BaseModel):
    role: MessageRole
    text: str


class SubagentQuery(BaseModel):
    provider: str
    main_thread_id: str
    agent_id: Optional[str] = None
    list: bool


class SubagentRelation(BaseModel):
    """
    Accumulated evidence that a child session belongs to a main thread.

    ``validated`` only ever moves from False to True; evidence strings are
    kept in first-seen order without duplicates.
    """

    validated: bool = False
    evidence: List[str] = Field(default_factory=list)

    def add_evidence(self, evidence: str) -> None:
        if evidence not in self.evidence:
            self.evidence.append(evidence)

    def mark_validated(self, evidence: Optional[str] = None) -> None:
        self.validated = True
        if evidence:
            self.add_evidence(evidence)


class SubagentLifecycleEvent(BaseModel):
    timestamp: Optional[str] = None
    event: str
    detail: str


class SubagentExcerptMessage(BaseModel):
    role: MessageRole
    text: str


class SubagentThreadRef(BaseModel):
    thread_id: str
    path: Optional[str] = None
    last_updated_at: Optional[str] = None


class SubagentListItem(BaseModel):
    agent_id: str
    status: str
    status_source: str
    last_update: Optional[str] = None
    relation: SubagentRelation = Field(default_factory=SubagentRelation)
    child_thread: Optional[SubagentThreadRef] = None


class SubagentListView(BaseModel):
    kind: Literal["list"] = "list"
    query: SubagentQuery
    agents: List[SubagentListItem] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list, exclude=True)


class SubagentDetailView(BaseModel):
    kind: Literal["detail"] = "detail"
    query: SubagentQuery
    relation: SubagentRelation = Field(default_factory=SubagentRelation)
    lifecycle: List[SubagentLifecycleEvent] = Field(default_factory=list)
    status: str
    status_source: str
    child_thread: Optional[SubagentThreadRef] = None
    excerpt: List[SubagentExcerptMessage] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list, exclude=True)


SubagentView = Union[SubagentListView, SubagentDetailView]


class PiEntryQuery(BaseModel):
    provider: str
    session_id: str
    list: bool


class PiEntryListItem(BaseModel):
    entry_id: str
    entry_type: str
    parent_id: Optional[str] = None
    timestamp: Optional[str] = None
    is_leaf: bool = False
    preview: Optional[str] = None


class PiEntryListView(BaseModel):
    query: PiEntryQuery
    entries: List[PiEntryListItem] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list, exclude=True)
