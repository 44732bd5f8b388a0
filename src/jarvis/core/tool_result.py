from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class ToolResult:
    """Standard envelope for every tool outcome.

    A failed result always carries an ``error``; ``data`` and ``message``
    are the success-path payload and its human-readable summary.
    """

    success: bool
    data: Any = None
    message: Optional[str] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.success and not self.error:
            self.error = "Unknown error"

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "ToolResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def failure(cls, error: str, data: Any = None) -> "ToolResult":
        return cls(success=False, data=data, error=error)

    def to_dict(self) -> Dict[str, Any]:
        """Return the result as a plain dict, omitting unset fields."""
        out: Dict[str, Any] = {"success": self.success}
        if self.data is not None:
            out["data"] = self.data
        if self.message is not None:
            out["message"] = self.message
        if self.error is not None:
            out["error"] = self.error
        return out
