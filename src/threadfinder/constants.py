#!/usr/bin/env python3
"""
Shared constants for threadfinder.

Centralizes status names, provenance tags and default file locations
so providers and view builders agree on the same vocabulary.
"""

import tempfile
from pathlib import Path
from typing import List

# Default file paths
DEFAULT_CONFIG_PATH = str(Path.home() / ".threadfinder" / "config.yaml")
DEFAULT_LOG_PATH = str(Path.home() / ".threadfinder" / "threadfinder.log")
DEFAULT_SNAPSHOT_DIR = str(Path(tempfile.gettempdir()) / "threadfinder-opencode")

# Log levels
LOG_LEVEL_OFF = 0
LOG_LEVEL_ERROR = 1
LOG_LEVEL_WARNING = 2
LOG_LEVEL_INFO = 3
LOG_LEVEL_DEBUG = 4

# Subagent status domain, highest precedence first
STATUS_ERRORED = "errored"
STATUS_SHUTDOWN = "shutdown"
STATUS_COMPLETED = "completed"
STATUS_RUNNING = "running"
STATUS_PENDING_INIT = "pendingInit"
STATUS_NOT_FOUND = "notFound"

KNOWN_STATUSES: List[str] = [
    STATUS_PENDING_INIT,
    STATUS_RUNNING,
    STATUS_COMPLETED,
    STATUS_ERRORED,
    STATUS_SHUTDOWN,
    STATUS_NOT_FOUND,
]

# Status provenance tags
SOURCE_PARENT_ROLLOUT = "parent_rollout"
SOURCE_CHILD_ROLLOUT = "child_rollout"
SOURCE_CHILD_THREAD = "child_thread"
SOURCE_INFERRED = "inferred"

# Codex tools that carry subagent lifecycle information
TOOL_SPAWN_AGENT = "spawn_agent"
TOOL_WAIT = "wait"
TOOL_SEND_INPUT = "send_input"
TOOL_RESUME_AGENT = "resume_agent"
TOOL_CLOSE_AGENT = "close_agent"

LIFECYCLE_TOOLS = frozenset(
    [TOOL_SPAWN_AGENT, TOOL_WAIT, TOOL_SEND_INPUT, TOOL_RESUME_AGENT, TOOL_CLOSE_AGENT]
)

# Number of trailing child messages shown in a detail view
EXCERPT_MESSAGE_COUNT = 3

# Scan limits for content sniffing
CLAUDE_HEADER_SCAN_LINES = 30
PI_HEADER_SCAN_LINES = 20

PREVIEW_MAX_CHARS = 96
