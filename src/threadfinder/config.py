#!/usr/bin/env python3
"""
Provider root configuration.

Roots are resolved once per process and passed explicitly into every
resolver and view builder. Precedence per provider:
- ``roots:`` mapping in the YAML config file
- provider environment variables
- home directory defaults
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict

from .constants import DEFAULT_CONFIG_PATH, DEFAULT_SNAPSHOT_DIR
from .errors import HomeDirectoryNotFoundError
from .logger import log_debug, log_warning

ROOT_KEYS = ("amp", "codex", "claude", "gemini", "pi", "opencode")


def load_root_overrides(config_path: str) -> Dict[str, str]:
    """
    Load per-provider root overrides from YAML config file.

    Returns an empty mapping when:
    - Config file doesn't exist
    - Config file is empty or has invalid YAML
    - ``roots`` is missing or not a mapping

    Args:
        config_path: Path to YAML config file

    Returns:
        Mapping of provider name (or ``snapshot_dir``) to path string
    """
    try:
        if not os.path.exists(config_path):
            return {}

        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            return {}

        if not isinstance(config_data, dict):
            log_warning("config", f"Ignoring non-mapping config file: {config_path}")
            return {}

        roots = config_data.get("roots", {})
        if roots is None:
            return {}
        if not isinstance(roots, dict):
            log_warning("config", f"Ignoring non-mapping 'roots' in {config_path}")
            return {}

        overrides = {}
        for key, value in roots.items():
            if key not in ROOT_KEYS and key != "snapshot_dir":
                log_warning("config", f"Ignoring unknown root '{key}' in {config_path}")
                continue
            if not isinstance(value, str) or not value:
                log_warning("config", f"Ignoring empty root '{key}' in {config_path}")
                continue
            overrides[key] = os.path.expanduser(value)

        return overrides

    except yaml.YAMLError as e:
        log_warning("config", f"Invalid YAML in {config_path}", e)
        return {}
    except OSError as e:
        log_warning("config", f"Failed to read config {config_path}", e)
        return {}


def _non_empty(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name)
    if value:
        return value
    return None


class ProviderRoots(BaseModel):
    """Filesystem roots for every provider plus the opencode snapshot dir."""

    model_config = ConfigDict(frozen=True)

    amp_root: Path
    codex_root: Path
    claude_root: Path
    gemini_root: Path
    pi_root: Path
    opencode_root: Path
    snapshot_dir: Path = Path(DEFAULT_SNAPSHOT_DIR)

    @classmethod
    def from_env_or_home(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        home: Optional[Path] = None,
        config_path: Optional[str] = None,
    ) -> "ProviderRoots":
        """
        Resolve roots from config file, environment and home directory.

        Args:
            environ: Environment mapping (defaults to os.environ)
            home: Home directory (defaults to the current user's home)
            config_path: YAML config file (defaults to DEFAULT_CONFIG_PATH)

        Returns:
            ProviderRoots

        Raises:
            HomeDirectoryNotFoundError: Home directory cannot be determined
        """
        if environ is None:
            environ = os.environ
        if home is None:
            try:
                home = Path.home()
            except RuntimeError:
                raise HomeDirectoryNotFoundError() from None
        home = Path(home)
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        overrides = load_root_overrides(config_path)

        xdg_data_home = _non_empty(environ, "XDG_DATA_HOME")
        codex_home = environ.get("CODEX_HOME")
        claude_config_dir = environ.get("CLAUDE_CONFIG_DIR")
        gemini_cli_home = environ.get("GEMINI_CLI_HOME")
        pi_dir = _non_empty(environ, "PI_CODING_AGENT_DIR")

        from_env: Dict[str, Any] = {
            "amp": Path(xdg_data_home) / "amp"
            if xdg_data_home
            else home / ".local" / "share" / "amp",
            "codex": Path(codex_home) if codex_home is not None else home / ".codex",
            "claude": Path(claude_config_dir)
            if claude_config_dir is not None
            else home / ".claude",
            "gemini": Path(gemini_cli_home) / ".gemini"
            if gemini_cli_home is not None
            else home / ".gemini",
            "pi": Path(pi_dir) if pi_dir else home / ".pi" / "agent",
            "opencode": Path(xdg_data_home) / "opencode"
            if xdg_data_home
            else home / ".local" / "share" / "opencode",
        }

        values: Dict[str, Any] = {}
        for key in ROOT_KEYS:
            if key in overrides:
                log_debug("config", f"Using configured {key} root: {overrides[key]}")
                values[f"{key}_root"] = Path(overrides[key])
            else:
                values[f"{key}_root"] = from_env[key]

        if "snapshot_dir" in overrides:
            values["snapshot_dir"] = Path(overrides["snapshot_dir"])

        return cls(**values)
