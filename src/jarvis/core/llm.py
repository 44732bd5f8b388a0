"""LiteLLM client wrapper - connectivity verification and model communication."""

import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import litellm

from jarvis.config import API_KEY_ENV, AgentConfig
from jarvis.tools.base import ToolCall

_log = logging.getLogger(__name__)

_ROLE_MAP = {"user": "user", "model": "assistant"}


@dataclass
class ModelReply:
    """One model turn: text, plus the function calls it asked for."""

    text: str = ""
    function_calls: list[ToolCall] = field(default_factory=list)


def to_chat_messages(history: list[dict[str, str]]) -> list[dict[str, Any]]:
    """Map memory roles (user/model) onto chat-completion roles."""
    return [{"role": _ROLE_MAP.get(m["role"], m["role"]), "content": m["content"]} for m in history]


def to_function_tools(schema: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Wrap exported tool schema entries in the function-tool envelope."""
    return [{"type": "function", "function": entry} for entry in schema]


def _parse_arguments(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        _log.warning("Discarding non-JSON tool arguments: %r", raw)
        return {}
    return parsed if isinstance(parsed, dict) else {}


def parse_reply(response: Any) -> ModelReply:
    """Build a ModelReply from a chat-completion response object."""
    reply = ModelReply()
    if response is None or not getattr(response, "choices", None):
        return reply
    message = response.choices[0].message
    reply.text = message.content or ""
    for index, tc in enumerate(getattr(message, "tool_calls", None) or []):
        reply.function_calls.append(ToolCall(
            name=tc.function.name,
            arguments=_parse_arguments(tc.function.arguments),
            id=getattr(tc, "id", None) or f"call_{index}",
        ))
    return reply


class LLMClient:
    """LiteLLM client for model communication."""

    supports_streaming = True

    def __init__(self, config: AgentConfig) -> None:
        self.model = config.model
        self.api_base = config.api_base
        self.api_key = config.resolved_api_key()
        self.temperature = config.temperature
        self.top_p = config.top_p
        self.max_output_tokens = config.max_output_tokens
        self.last_reply: ModelReply | None = None

    def _request_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {
            "model": self.model,
            "api_key": self.api_key,
            "temperature": self.temperature,
            "top_p": self.top_p,
            "max_tokens": self.max_output_tokens,
        }
        if self.api_base:
            params["api_base"] = self.api_base
        return params

    def _handle_llm_error(self, error: Exception) -> None:
        """Convert exceptions from LiteLLM calls to ConnectionError with clear messages.

        Raises:
            ConnectionError: Always. With differentiated messages for
                authentication, connectivity, timeout, rejected requests,
                server errors, and unexpected failures.
        """
        server = self.api_base or self.model
        if isinstance(error, litellm.AuthenticationError):
            raise ConnectionError(
                f"Authentication failed for model {self.model}.\n\n"
                f"  Error: {error.message}\n\n"
                f"Check your API key: jarvis config update-key (or export {API_KEY_ENV})"
            ) from None
        if isinstance(error, litellm.Timeout):
            raise ConnectionError(
                f"Request to {server} timed out.\n\n"
                f"The service may be overloaded or unreachable. "
                f"Check your network connection."
            ) from None
        if isinstance(error, litellm.APIConnectionError):
            raise ConnectionError(
                f"Cannot connect to {server}.\n\n"
                f"  Error: {error.message}\n\n"
                f"Suggestions:\n"
                f"  1. Check your internet connection\n"
                f"  2. Check your firewall or proxy settings\n"
                f"  3. Run: jarvis config test-connection"
            ) from None
        if isinstance(error, litellm.BadRequestError):
            raise ConnectionError(
                f"Model rejected the request.\n\n"
                f"  Model: {self.model}\n"
                f"  Error: {error}\n\n"
                f"The model may not support function calling or this message format."
            ) from None
        if isinstance(error, litellm.APIError):
            raise ConnectionError(
                f"Model request failed (status {error.status_code}).\n\n"
                f"  Model: {self.model}\n"
                f"  Error: {error.message}"
            ) from None
        raise ConnectionError(
            f"Unexpected error from the model.\n\n"
            f"  Model: {self.model}\n"
            f"  Error: {type(error).__name__}: {error}"
        ) from None

    async def verify_connection(self) -> None:
        """Send a one-token request to confirm the model is reachable.

        Raises:
            ConnectionError: If the model cannot be reached or rejects the key.
        """
        params = self._request_params()
        params["max_tokens"] = 1
        try:
            await litellm.acompletion(
                messages=[{"role": "user", "content": "ping"}],
                timeout=10,
                **params,
            )
        except Exception as e:
            self._handle_llm_error(e)

    async def send(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelReply:
        """Send a chat completion and return the parsed reply.

        Args:
            messages: Chat-completion messages (system/user/assistant/tool).
            tools: Exported tool schema, or None to disable function calling.

        Raises:
            ConnectionError: If the model could not produce a reply.
        """
        self.last_reply = None
        try:
            response = await litellm.acompletion(
                messages=messages,
                tools=to_function_tools(tools) if tools else None,
                timeout=120,
                **self._request_params(),
            )
        except Exception as e:
            self._handle_llm_error(e)
        self.last_reply = parse_reply(response)
        return self.last_reply

    async def send_stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[str]:
        """Stream a completion, yielding text deltas.

        Text is yielded only until the first function-call delta appears;
        from then on chunks are buffered silently. Once the generator is
        exhausted the assembled reply is available as ``self.last_reply``.

        Raises:
            ConnectionError: If the model could not produce a reply.
        """
        self.last_reply = None
        chunks = []
        saw_function_call = False
        try:
            stream = await litellm.acompletion(
                messages=messages,
                tools=to_function_tools(tools) if tools else None,
                stream=True,
                timeout=120,
                **self._request_params(),
            )
            async for chunk in stream:
                chunks.append(chunk)
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if getattr(delta, "tool_calls", None):
                    saw_function_call = True
                if delta.content and not saw_function_call:
                    yield delta.content
            assembled = litellm.stream_chunk_builder(chunks) if chunks else None
        except Exception as e:
            self._handle_llm_error(e)
        self.last_reply = parse_reply(assembled)
