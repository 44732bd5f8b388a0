from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from jarvis.core.tool_result import ToolResult
from jarvis.tools.base import ParameterSpec, Tool, ToolDefinition
from jarvis.utils import truncate_output

_SYSTEM_PATHS = ("/etc/", "/sys/", "/proc/", "C:\\Windows\\", "C:\\System32\\")


def _is_system_path(path: Path) -> bool:
    text = str(path)
    return any(text.startswith(p) or text + "/" == p for p in _SYSTEM_PATHS)


class GetCurrentTimeTool(Tool):
    definition = ToolDefinition(
        name="get_current_time",
        description="Get the current date and time",
        category="system",
        parameters=(
            ParameterSpec(
                name="format",
                type="string",
                description="Time format preference (default: local)",
                enum=("iso", "local", "timestamp"),
            ),
        ),
    )

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        now = datetime.now().astimezone()
        fmt = arguments.get("format", "local")
        if fmt == "iso":
            formatted = now.isoformat()
        elif fmt == "timestamp":
            formatted = str(int(now.timestamp() * 1000))
        else:
            formatted = now.strftime("%A, %B %d, %Y %I:%M:%S %p")

        return ToolResult.ok(
            data={
                "formatted": formatted,
                "iso": now.isoformat(),
                "timestamp": int(now.timestamp() * 1000),
                "timezone": now.tzname(),
            },
            message=f"Current time: {formatted}",
        )

    def summarize(self, result: ToolResult) -> str:
        data = result.data or {}
        return f"🕒 {data.get('formatted', result.message)}"


class ReadFileTool(Tool):
    definition = ToolDefinition(
        name="read_file",
        description="Read the contents of a text file",
        category="file",
        parameters=(
            ParameterSpec(
                name="filepath",
                type="string",
                description="Path to the file to read (relative or absolute)",
                required=True,
            ),
        ),
    )

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        raw_path = arguments["filepath"]
        path = Path(raw_path).expanduser().resolve()
        if _is_system_path(path):
            return ToolResult.failure("Access denied: Cannot read system files")
        if not path.exists():
            return ToolResult.failure(f"File not found: {raw_path}")
        if not path.is_file():
            return ToolResult.failure(f"Path is not a file: {raw_path}")

        try:
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            return ToolResult.failure(f"Binary file cannot be read as text: {raw_path}")
        except OSError as exc:
            return ToolResult.failure(f"Could not read file: {exc}")

        return ToolResult.ok(
            data=content,
            message=f"Successfully read {len(content)} characters from {raw_path}",
        )

    def summarize(self, result: ToolResult) -> str:
        content = truncate_output(result.data or "")
        return f"{result.message}\n\n```\n{content.rstrip()}\n```"


class WriteFileTool(Tool):
    definition = ToolDefinition(
        name="write_file",
        description="Write content to a text file (creates or overwrites)",
        category="file",
        parameters=(
            ParameterSpec(name="filepath", type="string", description="Path where to write the file", required=True),
            ParameterSpec(name="content", type="string", description="Content to write to the file", required=True),
        ),
    )

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        raw_path = arguments["filepath"]
        content = arguments["content"]
        path = Path(raw_path).expanduser().resolve()
        if _is_system_path(path):
            return ToolResult.failure("Access denied: Cannot write to system locations")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            return ToolResult.failure(f"Could not write file: {exc}")

        return ToolResult.ok(
            data={"path": str(path), "characters": len(content)},
            message=f"Successfully wrote {len(content)} characters to {raw_path}",
        )


class ListDirectoryTool(Tool):
    definition = ToolDefinition(
        name="list_directory",
        description="List files and directories in a given path",
        category="file",
        parameters=(
            ParameterSpec(
                name="directory",
                type="string",
                description="Directory path to list (defaults to current directory)",
            ),
        ),
    )

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        directory = arguments.get("directory") or "."
        path = Path(directory).expanduser().resolve()
        if not path.is_dir():
            return ToolResult.failure(f"Not a directory: {directory}")

        try:
            entries = sorted(path.iterdir(), key=lambda p: p.name.lower())
        except OSError as exc:
            return ToolResult.failure(f"Could not list directory: {exc}")

        files = [e.name for e in entries if e.is_file()]
        directories = [e.name for e in entries if e.is_dir()]
        return ToolResult.ok(
            data={
                "path": str(path),
                "files": files,
                "directories": directories,
                "total_items": len(entries),
            },
            message=f"Found {len(files)} files and {len(directories)} directories in {directory}",
        )

    def summarize(self, result: ToolResult) -> str:
        data = result.data or {}
        lines = [result.message or ""]
        lines += [f"  📁 {d}/" for d in data.get("directories", [])]
        lines += [f"  📄 {f}" for f in data.get("files", [])]
        return "\n".join(lines)


SYSTEM_TOOLS = (GetCurrentTimeTool, ReadFileTool, WriteFileTool, ListDirectoryTool)
