"""Base types for the tool system."""

from __future__ import annotations

import abc
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from jarvis.core.tool_result import ToolResult


class ParamType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"


def _is_string(value: Any) -> bool:
    return isinstance(value, str)


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid number argument
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_boolean(value: Any) -> bool:
    return isinstance(value, bool)


def _is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


_TYPE_CHECKS = {
    ParamType.STRING: _is_string,
    ParamType.NUMBER: _is_number,
    ParamType.BOOLEAN: _is_boolean,
    ParamType.ARRAY: _is_array,
}


@dataclass(frozen=True)
class ParameterSpec:
    """Declared parameter of a tool."""

    name: str
    type: ParamType
    description: str
    required: bool = False
    enum: Optional[Tuple[str, ...]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", ParamType(self.type))
        if self.enum is not None:
            object.__setattr__(self, "enum", tuple(self.enum))

    def check(self, value: Any) -> Optional[str]:
        """Return a description of the violated constraint, or None."""
        if not _TYPE_CHECKS[self.type](value):
            return f"Parameter {self.name} must be a {self.type.value}"
        if self.enum is not None and value not in self.enum:
            return f"Parameter {self.name} must be one of: {', '.join(self.enum)}"
        return None

    def to_schema(self) -> Dict[str, Any]:
        prop: Dict[str, Any] = {
            "type": self.type.value,
            "description": self.description,
        }
        if self.enum is not None:
            prop["enum"] = list(self.enum)
        return prop


@dataclass(frozen=True)
class ToolDefinition:
    """Immutable descriptor of a tool: what the model sees."""

    name: str
    description: str
    category: str
    parameters: Tuple[ParameterSpec, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", tuple(self.parameters))

    @property
    def required(self) -> list[str]:
        return [p.name for p in self.parameters if p.required]

    def validate(self, arguments: Dict[str, Any]) -> Optional[str]:
        """Check arguments against the declared parameters.

        Stops at the first violation: missing required parameter, wrong
        runtime type, or a value outside the declared enum.
        """
        for param in self.parameters:
            if param.name not in arguments:
                if param.required:
                    return f"Missing required parameter: {param.name}"
                continue
            error = param.check(arguments[param.name])
            if error:
                return error
        return None

    def to_schema(self) -> Dict[str, Any]:
        """Project the descriptor into a function-calling schema entry."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": {
                "type": "object",
                "properties": {p.name: p.to_schema() for p in self.parameters},
                "required": self.required,
            },
        }


@dataclass
class ToolCall:
    """A model-emitted request to invoke one tool."""

    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None


class Tool(abc.ABC):
    """A named, described, side-effecting capability.

    Subclasses set ``definition`` and implement ``execute``, which must
    report its own failures as ``ToolResult.failure`` instead of raising.
    """

    definition: ToolDefinition

    @property
    def name(self) -> str:
        return self.definition.name

    @abc.abstractmethod
    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        ...

    def summarize(self, result: ToolResult) -> str:
        """Render a successful result for the user.

        Tools override this for richer output; the fallback is the result
        message, or compact JSON of the data when there is no message.
        """
        if result.message:
            return result.message
        if result.data is not None:
            return json.dumps(result.data, default=str)
        return f"Executed {self.name} successfully"
