"""Core assistant pieces: memory, model client and the dispatch loop."""

from jarvis.core.agent import Agent
from jarvis.core.conversation import ConversationMemory, Message
from jarvis.core.llm import LLMClient, ModelReply
from jarvis.core.tool_result import ToolResult
