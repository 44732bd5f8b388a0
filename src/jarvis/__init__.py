"""JARVIS - a terminal AI assistant with model-driven tool calling."""

from importlib.metadata import version

__version__ = version("jarvis-cli")

from jarvis.config import AgentConfig, ConfigError, load_config
from jarvis.core.agent import Agent
from jarvis.core.conversation import ConversationMemory
from jarvis.core.llm import LLMClient
from jarvis.core.tool_result import ToolResult
from jarvis.tools import ToolRegistry, build_registry
