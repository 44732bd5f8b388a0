"""Local task list tools backed by a JSON file."""

from __future__ import annotations

import abc
import json
import logging
import os
import time
import uuid
from dataclasses import asdict, dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from jarvis.core.tool_result import ToolResult
from jarvis.tools.base import ParameterSpec, Tool, ToolDefinition

_log = logging.getLogger(__name__)

PRIORITIES = ("low", "medium", "high")
_PRIORITY_ICONS = {"high": "🔴", "medium": "🟡", "low": "🟢"}


@dataclass
class Task:
    id: str
    title: str
    priority: str = "medium"
    description: Optional[str] = None
    due_date: Optional[str] = None
    completed: bool = False
    created_at: float = 0.0
    completed_at: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        return cls(
            id=data["id"],
            title=data["title"],
            priority=data.get("priority", "medium"),
            description=data.get("description"),
            due_date=data.get("due_date"),
            completed=bool(data.get("completed", False)),
            created_at=data.get("created_at", 0.0),
            completed_at=data.get("completed_at"),
        )


def _days_until(due_date: str, today: date) -> Optional[int]:
    try:
        due = datetime.fromisoformat(due_date).date()
    except ValueError:
        return None
    return (due - today).days


def format_task(task: Task, today: Optional[date] = None) -> str:
    """One display line per task, with a due-date hint and optional description."""
    status = "✅" if task.completed else "⬜"
    line = f"{status} {_PRIORITY_ICONS.get(task.priority, '🟡')} {task.title}"
    if task.due_date and not task.completed:
        days = _days_until(task.due_date, today or date.today())
        if days is not None:
            if days < 0:
                line += f" (⚠️ {-days} days overdue)"
            elif days == 0:
                line += " (📅 Due today)"
            elif days == 1:
                line += " (📅 Due tomorrow)"
            elif days <= 7:
                line += f" (📅 Due in {days} days)"
    if task.description:
        line += f"\n   {task.description}"
    return line


class TaskStoreError(Exception):
    """The task file exists but could not be read."""


class TaskStore:
    """Reads and writes the task list. Shared by all task tools."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> List[Task]:
        """Return every stored task; an absent file is an empty list.

        Raises:
            TaskStoreError: The file exists but is unreadable or malformed.
        """
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return [Task.from_dict(t) for t in data["tasks"]]
        except (ValueError, OSError, KeyError, TypeError, AttributeError) as exc:
            _log.error("Failed to load tasks from %s", self.path, exc_info=True)
            raise TaskStoreError(
                f"Task file {self.path} is unreadable ({exc}). Fix or move it before changing tasks."
            ) from exc

    def save(self, tasks: List[Task]) -> None:
        """Write tasks via a temp file + rename so a crash never truncates the list."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"tasks": [asdict(t) for t in tasks], "last_updated": time.time()}
        tmp_path = self.path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(str(tmp_path), str(self.path))

    @staticmethod
    def new_id() -> str:
        return f"task_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


def _find(tasks: List[Task], arguments: Dict[str, Any]) -> Optional[Task]:
    """Match by exact id first, then by case-insensitive title substring."""
    task_id = arguments.get("task_id")
    if task_id:
        for task in tasks:
            if task.id == task_id:
                return task
    title = (arguments.get("title") or "").strip().lower()
    if title:
        for task in tasks:
            if title in task.title.lower():
                return task
    return None


_LOOKUP_PARAMS = (
    ParameterSpec(name="task_id", type="string", description="Exact task id"),
    ParameterSpec(name="title", type="string", description="Task title, or part of it"),
)


class _TaskTool(Tool):
    def __init__(self, store: TaskStore) -> None:
        self.store = store

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        try:
            return self.run(arguments)
        except TaskStoreError as exc:
            return ToolResult.failure(str(exc))

    @abc.abstractmethod
    def run(self, arguments: Dict[str, Any]) -> ToolResult:
        ...


class AddTaskTool(_TaskTool):
    definition = ToolDefinition(
        name="add_task",
        description="Add a task to the local task list",
        category="tasks",
        parameters=(
            ParameterSpec(name="title", type="string", description="Task title or summary", required=True),
            ParameterSpec(name="description", type="string", description="Optional notes"),
            ParameterSpec(
                name="priority",
                type="string",
                description="Task priority (default: medium)",
                enum=PRIORITIES,
            ),
            ParameterSpec(name="due_date", type="string", description="Due date in ISO format, e.g. 2025-12-10"),
        ),
    )

    def run(self, arguments: Dict[str, Any]) -> ToolResult:
        title = arguments["title"].strip()
        if not title:
            return ToolResult.failure("Task title must not be empty")
        task = Task(
            id=self.store.new_id(),
            title=title,
            priority=arguments.get("priority", "medium"),
            description=arguments.get("description"),
            due_date=arguments.get("due_date"),
            created_at=time.time(),
        )
        tasks = self.store.load()
        tasks.append(task)
        try:
            self.store.save(tasks)
        except OSError as exc:
            return ToolResult.failure(f"Failed to save tasks: {exc}")
        return ToolResult.ok(
            data=asdict(task),
            message=f'Task added: "{task.title}" (Priority: {task.priority})',
        )


class ListTasksTool(_TaskTool):
    definition = ToolDefinition(
        name="list_tasks",
        description="List tasks from the local task list",
        category="tasks",
        parameters=(
            ParameterSpec(
                name="filter",
                type="string",
                description="Which tasks to show (default: pending)",
                enum=("all", "pending", "completed"),
            ),
        ),
    )

    def run(self, arguments: Dict[str, Any]) -> ToolResult:
        which = arguments.get("filter", "pending")
        tasks = self.store.load()
        if which == "pending":
            tasks = [t for t in tasks if not t.completed]
        elif which == "completed":
            tasks = [t for t in tasks if t.completed]

        if not tasks:
            return ToolResult.ok(data=[], message=f"No {which} tasks found." if which != "all" else "No tasks found.")

        # Pending first, then by priority
        order = {"high": 0, "medium": 1, "low": 2}
        tasks.sort(key=lambda t: (t.completed, order.get(t.priority, 1), t.created_at))
        lines = "\n".join(format_task(t) for t in tasks)
        return ToolResult.ok(
            data=[asdict(t) for t in tasks],
            message=f"{len(tasks)} task(s):\n{lines}",
        )

    def summarize(self, result: ToolResult) -> str:
        return result.message or "No tasks found."


class CompleteTaskTool(_TaskTool):
    definition = ToolDefinition(
        name="complete_task",
        description="Mark a task as completed, by id or title",
        category="tasks",
        parameters=_LOOKUP_PARAMS,
    )

    def run(self, arguments: Dict[str, Any]) -> ToolResult:
        if not arguments.get("task_id") and not arguments.get("title"):
            return ToolResult.failure("Provide either task_id or title")
        tasks = self.store.load()
        task = _find(tasks, arguments)
        if task is None:
            return ToolResult.failure("Task not found")
        if task.completed:
            return ToolResult.ok(data=asdict(task), message=f'Task already completed: "{task.title}"')
        task.completed = True
        task.completed_at = time.time()
        try:
            self.store.save(tasks)
        except OSError as exc:
            return ToolResult.failure(f"Failed to save tasks: {exc}")
        return ToolResult.ok(data=asdict(task), message=f'Task completed: "{task.title}"')


class DeleteTaskTool(_TaskTool):
    definition = ToolDefinition(
        name="delete_task",
        description="Delete a task, by id or title",
        category="tasks",
        parameters=_LOOKUP_PARAMS,
    )

    def run(self, arguments: Dict[str, Any]) -> ToolResult:
        if not arguments.get("task_id") and not arguments.get("title"):
            return ToolResult.failure("Provide either task_id or title")
        tasks = self.store.load()
        task = _find(tasks, arguments)
        if task is None:
            return ToolResult.failure("Task not found")
        tasks.remove(task)
        try:
            self.store.save(tasks)
        except OSError as exc:
            return ToolResult.failure(f"Failed to save tasks: {exc}")
        return ToolResult.ok(data=asdict(task), message=f'Task deleted: "{task.title}"')


def build_task_tools(path: Path) -> List[Tool]:
    store = TaskStore(path)
    return [AddTaskTool(store), ListTasksTool(store), CompleteTaskTool(store), DeleteTaskTool(store)]
