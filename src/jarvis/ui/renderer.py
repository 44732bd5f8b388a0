"""Rich terminal output helpers for the CLI."""

import contextlib

from rich.align import Align
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.status import Status
from rich.table import Table
from rich.text import Text

from jarvis.core.conversation import Message, USER
from jarvis.tools.base import ToolDefinition


class StreamingDisplay:
    """Progressive markdown streaming display using Rich Live.

    Context manager that accumulates streamed text and re-renders
    it as Rich Markdown on each update.
    """

    def __init__(self, console: Console) -> None:
        self._console = console
        self._text = ""
        self._live = Live(
            "",
            console=console,
            refresh_per_second=8,
            vertical_overflow="visible",
        )

    def __enter__(self) -> "StreamingDisplay":
        self._live.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._live.__exit__(exc_type, exc_val, exc_tb)

    def update(self, delta: str) -> None:
        """Append new text and re-render the full markdown."""
        self._text += delta
        self._live.update(Markdown(self._text))

    @property
    def full_text(self) -> str:
        return self._text


class PlainStreamingDisplay:
    """Fallback streaming display for non-capable terminals (piped/dumb)."""

    def __init__(self, console: Console) -> None:
        self._console = console
        self._text = ""

    def __enter__(self) -> "PlainStreamingDisplay":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._text.strip():
            self._console.print()

    def update(self, delta: str) -> None:
        self._text += delta
        self._console.print(delta, end="", markup=False, highlight=False)

    @property
    def full_text(self) -> str:
        return self._text


class Renderer:
    """Render markdown and styled status/error output in terminal."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render_markdown(self, text: str) -> None:
        """Render markdown content with Rich formatting."""
        self.console.print(Markdown(text))

    def render_streaming_live(self) -> "StreamingDisplay | PlainStreamingDisplay":
        """Return a streaming display context manager.

        Rich Live for interactive terminals, plain output for piped/dumb ones.
        """
        if self.console.is_terminal:
            return StreamingDisplay(self.console)
        return PlainStreamingDisplay(self.console)

    def print_error(self, message: str) -> None:
        self.console.print(f"[red]{escape(message)}[/red]", highlight=False)

    def print_info(self, message: str) -> None:
        self.console.print(f"[dim]{escape(message)}[/dim]", highlight=False)

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]{escape(message)}[/yellow]", highlight=False)

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]{escape(message)}[/green]", highlight=False)

    def status_spinner(self, message: str) -> "Status | contextlib.AbstractContextManager":
        """Return a spinner context manager, or a no-op one when not on a terminal."""
        if not self.console.is_terminal:
            return contextlib.nullcontext()
        return self.console.status(message)

    def render_separator(self) -> None:
        self.console.print(Rule(style="dim"))

    def render_banner(self, version: str, model: str) -> None:
        """Render the application banner.

        Args:
            version: Application version string.
            model: Model the session talks to.
        """
        content = Text.assemble(
            ("🤖 JARVIS", "bold cyan"),
            ("  v" + version, "dim"),
            ("\nJust A Rather Very Intelligent System", ""),
            (f"\nmodel: {model}", "dim"),
        )
        self.console.print(Panel(
            Align.left(content),
            border_style="cyan dim",
            expand=False,
            padding=(0, 2),
        ))

    def render_config(self, config_items: dict) -> None:
        """Render configuration items one per line, left-aligned."""
        for key, value in config_items.items():
            line = Text.assemble(
                (f"{key}: ", "dim"),
                (str(value), "#888888"),
            )
            self.console.print(line, highlight=False)

    def render_tools(self, definitions: list[ToolDefinition]) -> None:
        """Render registered tools grouped by category."""
        table = Table(title="Available tools", show_lines=False, header_style="bold cyan")
        table.add_column("Category", style="dim")
        table.add_column("Tool", style="cyan")
        table.add_column("Description")
        for definition in sorted(definitions, key=lambda d: d.category):
            table.add_row(definition.category, definition.name, definition.description)
        self.console.print(table)

    def render_history(self, messages: list[Message]) -> None:
        """Render the conversation so far, oldest first."""
        if not messages:
            self.print_info("No conversation history yet.")
            return
        for message in messages:
            if message.role == USER:
                label = Text("You", style="bold cyan")
            else:
                label = Text("JARVIS", style="bold green")
            self.console.print(Text.assemble(label, (" > ", "dim"), (message.content, "")), highlight=False)

    def render_panel(self, body: str, title: str, style: str = "cyan") -> None:
        self.console.print(Panel(Markdown(body), title=title, border_style=style, expand=False))
