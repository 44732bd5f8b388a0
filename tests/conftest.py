"""Shared pytest fixtures and helpers for jarvis tests."""

from __future__ import annotations

from typing import Any, Dict
from unittest.mock import AsyncMock, MagicMock

import pytest

from jarvis.core.conversation import ConversationMemory
from jarvis.core.llm import ModelReply
from jarvis.core.tool_result import ToolResult
from jarvis.tools.base import ParameterSpec, Tool, ToolCall, ToolDefinition
from jarvis.tools.registry import ToolRegistry


# ── Plain helper functions ─────────────────────────────────────────────────
# Each test file imports these directly:
#   from conftest import assert_ok, assert_fail, EchoTool

def assert_ok(result: ToolResult) -> None:
    assert result.success, f"Expected success but got error: {result.error}"


def assert_fail(result: ToolResult, error: str | None = None) -> None:
    assert not result.success, f"Expected failure but result succeeded: {result.message}"
    if error is not None:
        assert error in result.error, f"Expected {error!r} in error, got {result.error!r}"


def text_reply(text: str) -> ModelReply:
    return ModelReply(text=text)


def call_reply(*calls: ToolCall, text: str = "") -> ModelReply:
    return ModelReply(text=text, function_calls=list(calls))


class EchoTool(Tool):
    """Returns its ``text`` argument; records every call it receives."""

    definition = ToolDefinition(
        name="echo",
        description="Echo text back",
        category="test",
        parameters=(
            ParameterSpec(name="text", type="string", description="Text to echo", required=True),
            ParameterSpec(name="mood", type="string", description="Tone", enum=("calm", "loud")),
        ),
    )

    def __init__(self) -> None:
        self.calls: list[Dict[str, Any]] = []

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        self.calls.append(dict(arguments))
        return ToolResult.ok(data={"text": arguments["text"]}, message=f"Echo: {arguments['text']}")


class CrashTool(Tool):
    definition = ToolDefinition(name="crash", description="Always raises", category="test")

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        raise RuntimeError("boom")


# ── Fixtures ───────────────────────────────────────────────────────────────


@pytest.fixture
def echo_tool():
    return EchoTool()


@pytest.fixture
def registry(echo_tool):
    reg = ToolRegistry()
    reg.register(echo_tool)
    reg.register(CrashTool())
    return reg


@pytest.fixture
def memory():
    return ConversationMemory(max_messages=50)


@pytest.fixture
def llm():
    """Model client double: ``send`` is an AsyncMock, streaming disabled."""
    client = MagicMock()
    client.supports_streaming = False
    client.send = AsyncMock(return_value=text_reply("Hello!"))
    client.verify_connection = AsyncMock(return_value=None)
    client.last_reply = None
    return client
