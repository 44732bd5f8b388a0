"""
jarvis.tools
~~~~~~~~~~~~
All tools in one place. Import from here so callers don't need to know
individual module paths.

Quick registration example::

    from jarvis.tools import build_registry

    registry = build_registry(config)
    result = await registry.dispatch("get_current_time", {"format": "iso"})
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from jarvis.auth.credentials import CredentialStore
from jarvis.config import AgentConfig
from jarvis.tools.base import ParameterSpec, ParamType, Tool, ToolCall, ToolDefinition
from jarvis.tools.git import build_git_tools
from jarvis.tools.registry import ToolRegistry
from jarvis.tools.spotify import build_spotify_client, build_spotify_tools
from jarvis.tools.system import SYSTEM_TOOLS
from jarvis.tools.tasks import build_task_tools


def build_registry(
    config: AgentConfig,
    store: Optional[CredentialStore] = None,
    repo_root: Optional[str] = None,
) -> ToolRegistry:
    """Create a registry holding every built-in tool.

    Args:
        config: Supplies the task file location and Spotify app credentials.
        store: Credential store for authenticated services.
        repo_root: Working tree for the git tools (defaults to cwd).
    """
    registry = ToolRegistry()
    for tool_cls in SYSTEM_TOOLS:
        registry.register(tool_cls())
    for tool in build_task_tools(Path(config.tasks_file)):
        registry.register(tool)
    for tool in build_git_tools(repo_root):
        registry.register(tool)

    spotify = build_spotify_client(
        store or CredentialStore(),
        config.spotify_client_id,
        config.spotify_client_secret,
    )
    for tool in build_spotify_tools(spotify):
        registry.register(tool)
    return registry


__all__ = [
    "ParamType",
    "ParameterSpec",
    "Tool",
    "ToolCall",
    "ToolDefinition",
    "ToolRegistry",
    "build_registry",
]
