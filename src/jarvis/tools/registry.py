"""Tool registry - the single place tools are registered, validated and run."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from jarvis.core.tool_result import ToolResult
from jarvis.tools.base import Tool, ToolDefinition

_log = logging.getLogger(__name__)


class ToolRegistry:
    """Holds the available tools and mediates every invocation.

    Dispatch never raises: unknown tools, invalid arguments and tools that
    break their own contract all come back as failed ToolResults.
    """

    def __init__(self) -> None:
        self._tools: Dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        name = tool.definition.name
        if name in self._tools:
            _log.warning("Tool %s is already registered, overwriting", name)
        self._tools[name] = tool
        _log.debug("Registered tool: %s", name)

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def list(self) -> List[ToolDefinition]:
        """Return descriptors in registration order."""
        return [tool.definition for tool in self._tools.values()]

    def list_by_category(self, category: str) -> List[ToolDefinition]:
        return [d for d in self.list() if d.category == category]

    def count(self) -> int:
        return len(self._tools)

    def clear(self) -> None:
        self._tools.clear()
        _log.debug("All tools cleared from registry")

    async def dispatch(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        """Validate and execute one tool call.

        Args:
            name: Registered tool name.
            arguments: Argument mapping produced by the model.

        Returns:
            The tool's ToolResult, or a failed one describing why the call
            could not run.
        """
        tool = self._tools.get(name)
        if tool is None:
            return ToolResult.failure(f"Tool '{name}' not found")

        args = arguments or {}
        error = tool.definition.validate(args)
        if error:
            _log.debug("Rejected call to %s: %s", name, error)
            return ToolResult.failure(error)

        _log.debug("Executing %s with %s", name, args)
        try:
            result = await tool.execute(args)
        except Exception as exc:
            _log.error("Tool %s execution failed", name, exc_info=True)
            return ToolResult.failure(str(exc) or "Unknown error")

        if not isinstance(result, ToolResult):
            _log.error("Tool %s returned %s instead of ToolResult", name, type(result).__name__)
            return ToolResult.failure(f"Tool '{name}' returned an invalid result")

        _log.debug("Tool %s result: %s", name, "success" if result.success else "failed")
        return result

    def schema_export(self) -> List[Dict[str, Any]]:
        """Function-calling schema for every registered tool."""
        return [definition.to_schema() for definition in self.list()]
