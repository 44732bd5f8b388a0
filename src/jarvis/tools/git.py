from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from jarvis.core.tool_result import ToolResult
from jarvis.tools.base import ParameterSpec, Tool, ToolDefinition
from jarvis.utils import truncate_output

GIT_TIMEOUT = 15


@dataclass
class GitOutput:
    returncode: int
    stdout: str
    stderr: str


async def run_git(args: List[str], cwd: str) -> GitOutput:
    """Run ``git <args>`` without blocking the event loop."""
    try:
        proc = await asyncio.create_subprocess_exec(
            "git", *args,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        return GitOutput(127, "", "git executable not found")
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=GIT_TIMEOUT)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        return GitOutput(124, "", f"git {args[0]} timed out after {GIT_TIMEOUT}s")
    return GitOutput(proc.returncode, stdout.decode(errors="replace"), stderr.decode(errors="replace"))


class _GitTool(Tool):
    def __init__(self, repo_root: Optional[str] = None) -> None:
        self._repo_root = str(Path(repo_root or ".").resolve())

    async def _ensure_repo(self) -> Optional[ToolResult]:
        check = await run_git(["rev-parse", "--git-dir"], self._repo_root)
        if check.returncode != 0:
            return ToolResult.failure(f"Not in a git repository: {self._repo_root}")
        return None


def parse_short_status(output: str) -> Dict[str, List[str]]:
    """Split ``git status --short`` output into staged/modified/untracked lists."""
    staged: List[str] = []
    modified: List[str] = []
    untracked: List[str] = []
    for line in output.splitlines():
        if len(line) < 4:
            continue
        code, path = line[:2], line[3:]
        if code == "??":
            untracked.append(path)
            continue
        if code[0] != " ":
            staged.append(path)
        if code[1] != " ":
            modified.append(path)
    return {"staged": staged, "modified": modified, "untracked": untracked}


class GitStatusTool(_GitTool):
    definition = ToolDefinition(
        name="git_status",
        description="Check the status of the git repository, showing modified, staged, and untracked files",
        category="git",
    )

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        not_repo = await self._ensure_repo()
        if not_repo is not None:
            return not_repo

        branch_proc = await run_git(["branch", "--show-current"], self._repo_root)
        branch = branch_proc.stdout.strip() or "(detached HEAD)"
        status_proc = await run_git(["status", "--short"], self._repo_root)
        if status_proc.returncode != 0:
            return ToolResult.failure(f"git status failed: {status_proc.stderr.strip()}")

        files = parse_short_status(status_proc.stdout)
        if not any(files.values()):
            return ToolResult.ok(
                data={"branch": branch, "clean": True},
                message=f"On branch {branch}\nWorking tree clean",
            )

        sections = [f"On branch {branch}"]
        for label, key, mark in (("Staged", "staged", "✓"), ("Modified", "modified", "✎"), ("Untracked", "untracked", "?")):
            if files[key]:
                listed = "\n".join(f"  {mark} {f}" for f in files[key])
                sections.append(f"{label} files ({len(files[key])}):\n{listed}")
        return ToolResult.ok(
            data={"branch": branch, "clean": False, **files},
            message="\n\n".join(sections),
        )


class GitLogTool(_GitTool):
    definition = ToolDefinition(
        name="git_log",
        description="Show recent commits in the git repository",
        category="git",
        parameters=(
            ParameterSpec(name="count", type="number", description="Number of commits to show (default: 10)"),
        ),
    )

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        count = int(arguments.get("count", 10))
        if count < 1:
            return ToolResult.failure("count must be at least 1")
        not_repo = await self._ensure_repo()
        if not_repo is not None:
            return not_repo

        proc = await run_git(
            ["log", f"-{count}", "--pretty=format:%h%x09%an%x09%ar%x09%s"],
            self._repo_root,
        )
        if proc.returncode != 0:
            return ToolResult.failure(f"git log failed: {proc.stderr.strip()}")

        commits = []
        for line in proc.stdout.splitlines():
            parts = line.split("\t", 3)
            if len(parts) == 4:
                commits.append({"hash": parts[0], "author": parts[1], "when": parts[2], "subject": parts[3]})
        if not commits:
            return ToolResult.ok(data=[], message="No commits yet")
        lines = "\n".join(f"  {c['hash']} {c['subject']} ({c['author']}, {c['when']})" for c in commits)
        return ToolResult.ok(data=commits, message=f"Last {len(commits)} commit(s):\n{lines}")


class GitDiffTool(_GitTool):
    definition = ToolDefinition(
        name="git_diff",
        description="Show uncommitted changes in the git repository",
        category="git",
        parameters=(
            ParameterSpec(
                name="staged",
                type="boolean",
                description="Show staged changes instead of unstaged ones (default: false)",
            ),
        ),
    )

    async def execute(self, arguments: Dict[str, Any]) -> ToolResult:
        not_repo = await self._ensure_repo()
        if not_repo is not None:
            return not_repo

        staged = bool(arguments.get("staged", False))
        args = ["diff", "--cached"] if staged else ["diff"]
        stat = await run_git(args + ["--stat"], self._repo_root)
        if stat.returncode != 0:
            return ToolResult.failure(f"git diff failed: {stat.stderr.strip()}")
        if not stat.stdout.strip():
            which = "staged" if staged else "unstaged"
            return ToolResult.ok(data={"staged": staged, "diff": ""}, message=f"No {which} changes")

        full = await run_git(args, self._repo_root)
        return ToolResult.ok(
            data={"staged": staged, "stat": stat.stdout, "diff": full.stdout},
            message=stat.stdout.rstrip(),
        )

    def summarize(self, result: ToolResult) -> str:
        diff = (result.data or {}).get("diff", "")
        if not diff:
            return result.message or ""
        return f"{result.message}\n\n```diff\n{truncate_output(diff, 4000).rstrip()}\n```"


def build_git_tools(repo_root: Optional[str] = None) -> List[Tool]:
    return [GitStatusTool(repo_root), GitLogTool(repo_root), GitDiffTool(repo_root)]
