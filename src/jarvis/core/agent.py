"""Agent - turns one user input into one final reply, running tools on the way."""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from jarvis.core.conversation import ConversationMemory
from jarvis.core.llm import LLMClient, ModelReply, to_chat_messages
from jarvis.core.system_prompt import build_system_prompt
from jarvis.core.tool_result import ToolResult
from jarvis.tools.base import ToolCall
from jarvis.tools.registry import ToolRegistry
from jarvis.utils import truncate_output

_log = logging.getLogger(__name__)

APOLOGY = (
    "I'm having trouble connecting to my AI brain right now. Please try again "
    "in a moment, or check that your API key is configured correctly."
)
EMPTY_REPLY_FALLBACK = (
    "I'm not sure how to respond to that. Could you please rephrase your request?"
)

SUMMARY = "summary"
MODEL_FOLLOWUP = "model"


class Agent:
    """Dispatch loop between the model, the tool registry and memory.

    A turn either ends with the model's text, or runs every function call
    the model emitted (in order, one after another) and ends with their
    summary. With the "model" follow-up strategy the tool outputs are sent
    back for a natural-language reply instead.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        registry: ToolRegistry,
        memory: ConversationMemory,
        followup_strategy: str = SUMMARY,
        history_window: int = 10,
        streaming: bool = True,
    ) -> None:
        """Initialize the agent.

        Args:
            llm_client: Model client (send / send_stream)
            registry: Tools available to the model
            memory: Conversation memory for this session
            followup_strategy: "summary" or "model"
            history_window: Number of recent messages sent as context
            streaming: Whether respond_stream may stream from the model
        """
        if followup_strategy not in (SUMMARY, MODEL_FOLLOWUP):
            raise ValueError(f"Unknown follow-up strategy: {followup_strategy!r}")
        self.llm_client = llm_client
        self.registry = registry
        self.memory = memory
        self.followup_strategy = followup_strategy
        self.history_window = history_window
        self.streaming = streaming

    # ── Turn entry points ──────────────────────────────────────────────

    async def respond(self, user_input: str) -> str:
        """Run one full turn and return the final reply text."""
        self.memory.append_user(user_input)
        messages = self._build_messages()
        try:
            reply = await self.llm_client.send(messages, tools=self._tool_schema())
            final = await self._finish_turn(messages, reply)
        except Exception:
            _log.error("Agent processing error", exc_info=True)
            final = APOLOGY
        self.memory.append_model(final)
        return final

    def can_stream(self) -> bool:
        """Whether this turn may be streamed token by token."""
        return self.streaming and getattr(self.llm_client, "supports_streaming", False)

    async def respond_stream(self, user_input: str) -> AsyncIterator[str]:
        """Run one turn, yielding reply text as it becomes available.

        Plain text is yielded as it arrives. Once the model emits a
        function call the remaining output is buffered, the tools run, and
        the resulting reply is yielded in one piece.
        """
        if not self.can_stream():
            yield await self.respond(user_input)
            return

        self.memory.append_user(user_input)
        messages = self._build_messages()
        streamed: list[str] = []
        try:
            async for delta in self.llm_client.send_stream(messages, tools=self._tool_schema()):
                streamed.append(delta)
                yield delta
            reply = self.llm_client.last_reply or ModelReply(text="".join(streamed))
            prefix = "".join(streamed).strip()
            if reply.function_calls:
                tail = await self._finish_turn(messages, reply)
                final = f"{prefix}\n\n{tail}" if prefix else tail
                yield f"\n\n{tail}" if prefix else tail
            else:
                final = prefix or reply.text.strip()
                if not final:
                    final = EMPTY_REPLY_FALLBACK
                    yield final
        except Exception:
            _log.error("Agent streaming error", exc_info=True)
            final = APOLOGY
            yield f"\n\n{APOLOGY}" if streamed else APOLOGY
        self.memory.append_model(final)

    # ── Turn internals ─────────────────────────────────────────────────

    def _build_messages(self) -> list[dict[str, Any]]:
        system = {"role": "system", "content": build_system_prompt(self.registry.list())}
        history = self.memory.formatted_for_model(self.history_window)
        return [system] + to_chat_messages(history)

    def _tool_schema(self) -> list[dict[str, Any]] | None:
        schema = self.registry.schema_export()
        return schema or None

    async def _finish_turn(self, messages: list[dict[str, Any]], reply: ModelReply) -> str:
        if not reply.function_calls:
            text = reply.text.strip()
            return text or EMPTY_REPLY_FALLBACK

        outcomes = await self.execute_calls(reply.function_calls)
        summary = self.summarize(outcomes)
        if self.followup_strategy == MODEL_FOLLOWUP:
            return await self._model_followup(messages, reply, outcomes, summary)
        return summary

    async def execute_calls(self, calls: list[ToolCall]) -> list[tuple[ToolCall, ToolResult]]:
        """Dispatch calls strictly in order; each sees the effects of the last."""
        outcomes = []
        for call in calls:
            _log.debug("Executing function: %s %s", call.name, call.arguments)
            result = await self.registry.dispatch(call.name, call.arguments)
            outcomes.append((call, result))
        return outcomes

    def summarize(self, outcomes: list[tuple[ToolCall, ToolResult]]) -> str:
        """Concatenate one rendered block per call, in call order."""
        blocks = [self._render_outcome(call, result) for call, result in outcomes]
        body = "\n\n".join(blocks)
        if len(blocks) > 1:
            return f"I executed {len(blocks)} tools for you:\n\n{body}"
        return body

    def _render_outcome(self, call: ToolCall, result: ToolResult) -> str:
        if not result.success:
            return f"❌ Error executing {call.name}: {result.error}"
        tool = self.registry.get(call.name)
        try:
            text = tool.summarize(result) if tool is not None else (result.message or "")
        except Exception:
            _log.warning("Summary rendering failed for %s", call.name, exc_info=True)
            text = result.message or ""
        return f"✅ {text or f'Executed {call.name} successfully'}"

    async def _model_followup(
        self,
        messages: list[dict[str, Any]],
        reply: ModelReply,
        outcomes: list[tuple[ToolCall, ToolResult]],
        summary: str,
    ) -> str:
        ids = [call.id or f"call_{i}" for i, (call, _) in enumerate(outcomes)]
        followup = list(messages)
        followup.append({
            "role": "assistant",
            "content": reply.text or None,
            "tool_calls": [
                {
                    "id": call_id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                }
                for call_id, (call, _) in zip(ids, outcomes)
            ],
        })
        for call_id, (call, result) in zip(ids, outcomes):
            followup.append({
                "role": "tool",
                "tool_call_id": call_id,
                "content": truncate_output(json.dumps(result.to_dict(), default=str)),
            })
        try:
            second = await self.llm_client.send(followup, tools=None)
        except ConnectionError:
            _log.warning("Follow-up request failed; using local summary", exc_info=True)
            return summary
        return second.text.strip() or summary

    # ── Session helpers ────────────────────────────────────────────────

    async def test_connection(self) -> bool:
        try:
            await self.llm_client.verify_connection()
        except ConnectionError:
            _log.error("Connection test failed", exc_info=True)
            return False
        return True

    def available_tools(self) -> list[str]:
        return [d.name for d in self.registry.list()]

    def tools_by_category(self, category: str) -> list[str]:
        return [d.name for d in self.registry.list_by_category(category)]

    def clear_history(self) -> None:
        self.memory.clear()
        _log.debug("Conversation history cleared")
