"""JARVIS CLI entry point."""

import asyncio
import contextlib
import functools
import logging
import signal
import sys
import time
from pathlib import Path
from typing import Awaitable, Callable

import click
import litellm
from prompt_toolkit import PromptSession
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from jarvis import __version__
from jarvis.auth import SERVICES, CredentialStore, OAuthTokens
from jarvis.config import (
    API_KEY_ENV,
    DEFAULT_CONFIG_FILE,
    DEFAULT_MODEL,
    AgentConfig,
    ConfigError,
    apply_cli_overrides,
    backup_config,
    load_config_or_default,
    reset_config,
    restore_config,
    save_config,
)
from jarvis.core.agent import Agent
from jarvis.core.conversation import ConversationMemory
from jarvis.core.llm import LLMClient
from jarvis.tools import build_registry
from jarvis.ui.help import HELP_TEXT, SESSION_HELP, TUTORIAL_OUTRO, TUTORIAL_TOPICS
from jarvis.ui.renderer import Renderer
from jarvis.utils import mask_secret

_log = logging.getLogger(__name__)

USER_PROMPT = "You > "
EXIT_COMMANDS = ("exit", "quit", "bye")

MISSING_KEY_MESSAGE = (
    "No Gemini API key configured.\n\n"
    "Run: jarvis config setup\n"
    f"or export {API_KEY_ENV}=<your key>"
)


def setup_logging(verbose: bool, debug: bool) -> None:
    """Route log records through Rich on stderr."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=debug, rich_tracebacks=debug)],
        force=True,
    )
    litellm.suppress_debug_info = True
    for noisy in ("LiteLLM", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))


def build_agent(config: AgentConfig, store: CredentialStore | None = None) -> Agent:
    """Wire model client, tool registry and memory from one config."""
    return Agent(
        LLMClient(config),
        build_registry(config, store),
        ConversationMemory(config.memory_cap),
        followup_strategy=config.followup_strategy,
        history_window=config.history_window,
        streaming=config.streaming,
    )


# ── Interactive session ───────────────────────────────────────────────


@contextlib.contextmanager
def _cancel_on_interrupt(task: asyncio.Task):
    """While active, Ctrl+C cancels ``task`` instead of the whole program."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, task.cancel)
        installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        installed = False
    try:
        yield
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


async def stream_turn(agent: Agent, renderer: Renderer, text: str) -> None:
    renderer.console.print("[bold green]JARVIS[/bold green]")
    with renderer.render_streaming_live() as display:
        async for chunk in agent.respond_stream(text):
            display.update(chunk)


def handle_local_command(command: str, agent: Agent, renderer: Renderer) -> bool:
    """Run an in-session command. Returns False when ``command`` is not one."""
    if command == "help":
        renderer.render_markdown(SESSION_HELP)
    elif command == "clear":
        agent.clear_history()
        renderer.print_success("Conversation history cleared.")
    elif command == "history":
        renderer.render_history(agent.memory.messages())
    elif command == "tools":
        renderer.render_tools(agent.registry.list())
    else:
        return False
    return True


async def run_session(
    agent: Agent,
    renderer: Renderer,
    read_line: Callable[[], Awaitable[str]],
) -> None:
    """Read-respond loop until EOF or an exit command."""
    while True:
        try:
            text = await read_line()
        except KeyboardInterrupt:
            renderer.print_info("Use Ctrl+D or type 'exit' to quit.")
            continue
        except EOFError:
            break

        text = text.strip()
        if not text:
            continue
        command = text.lower()
        if command in EXIT_COMMANDS:
            break
        if handle_local_command(command, agent, renderer):
            continue

        turn = asyncio.ensure_future(stream_turn(agent, renderer, text))
        with _cancel_on_interrupt(turn):
            try:
                await turn
            except asyncio.CancelledError:
                if not turn.cancelled():
                    raise
                renderer.print_warning("\nInterrupted.")

    renderer.print_success("👋 Goodbye!")


# ── Command helpers ───────────────────────────────────────────────────


def _config_path(ctx: click.Context) -> Path:
    return ctx.obj["config_path"]


def _store(ctx: click.Context) -> CredentialStore:
    return CredentialStore(_config_path(ctx).parent)


def _load_or_exit(ctx: click.Context) -> AgentConfig:
    try:
        return load_config_or_default(_config_path(ctx))
    except ConfigError as e:
        click.echo(str(e), err=True)
        sys.exit(1)


# ── CLI ───────────────────────────────────────────────────────────────


@click.group(invoke_without_command=True)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.option("-d", "--debug", is_flag=True, help="Enable debug logging")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_FILE,
    envvar="JARVIS_CONFIG",
    show_default=True,
    help="Configuration file",
)
@click.version_option(__version__, prog_name="jarvis")
@click.pass_context
def main(ctx: click.Context, verbose: bool, debug: bool, config_path: Path) -> None:
    """JARVIS - AI-powered terminal assistant."""
    setup_logging(verbose, debug)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if ctx.invoked_subcommand is None:
        ctx.invoke(start)


@main.command()
@click.option("--model", default=None, help="Override model (e.g., gemini/gemini-2.5-pro)")
@click.option("--api-base", default=None, help="Override API base URL")
@click.option("--stream/--no-stream", default=None, help="Stream replies as they are generated")
@click.pass_context
def start(ctx: click.Context, model: str | None, api_base: str | None, stream: bool | None) -> None:
    """Start an interactive session."""
    renderer = Renderer()
    try:
        config = load_config_or_default(_config_path(ctx))
        config = apply_cli_overrides(config, model=model, api_base=api_base, streaming=stream)
    except ConfigError as e:
        renderer.print_error(str(e))
        sys.exit(1)

    if not config.resolved_api_key():
        renderer.print_error(MISSING_KEY_MESSAGE)
        sys.exit(1)

    agent = build_agent(config, _store(ctx))
    renderer.render_banner(__version__, config.model)
    renderer.print_info(f"{agent.registry.count()} tools available. Type 'help' for commands, 'exit' to quit.\n")

    session = PromptSession()
    read_line = functools.partial(session.prompt_async, USER_PROMPT)
    asyncio.run(run_session(agent, renderer, read_line))


@main.command("help")
def help_command() -> None:
    """Display usage and examples."""
    Renderer().render_markdown(HELP_TEXT)


@main.command()
@click.option("--test-connection", "check", is_flag=True, help="Also send a test request to the model")
@click.pass_context
def status(ctx: click.Context, check: bool) -> None:
    """Show configuration, authentication and tool status."""
    renderer = Renderer()
    path = _config_path(ctx)
    config = _load_or_exit(ctx)
    store = _store(ctx)

    table = Table(title="🤖 JARVIS status", show_header=False)
    table.add_column("Item", style="dim")
    table.add_column("Value")
    table.add_row("Version", __version__)
    table.add_row("Config", f"{path}" if path.exists() else f"{path} (not created, using defaults)")
    table.add_row("Model", config.model)
    table.add_row(
        "API key",
        "[green]✓ Configured[/green]" if config.resolved_api_key() else "[red]✗ Missing[/red]",
    )
    stored = set(store.services())
    for service in SERVICES:
        state = "[green]✓ Authenticated[/green]" if service in stored else "[dim]○ Not authenticated[/dim]"
        table.add_row(service.capitalize(), state)

    registry = build_registry(config, store)
    categories = sorted({d.category for d in registry.list()})
    breakdown = ", ".join(f"{c}: {len(registry.list_by_category(c))}" for c in categories)
    table.add_row("Tools", f"{registry.count()} available ({breakdown})")
    renderer.console.print(table)

    if check:
        if not config.resolved_api_key():
            renderer.print_warning("Skipping connection test: no API key configured.")
            return
        try:
            asyncio.run(LLMClient(config).verify_connection())
        except ConnectionError as e:
            renderer.print_error(str(e))
            sys.exit(1)
        renderer.print_success("✓ Connected")


@main.command()
@click.argument("topic", required=False, type=click.Choice(list(TUTORIAL_TOPICS)))
def tutorial(topic: str | None) -> None:
    """Walk through JARVIS features."""
    renderer = Renderer()
    if topic is None:
        topic = click.prompt(
            "What would you like to learn?",
            type=click.Choice(list(TUTORIAL_TOPICS)),
            default="setup",
        )
    renderer.render_panel(TUTORIAL_TOPICS[topic], title="🎓 JARVIS tutorial")
    renderer.render_markdown(TUTORIAL_OUTRO)


# ── auth ──────────────────────────────────────────────────────────────


@main.group()
def auth() -> None:
    """Manage service authentication."""


@auth.command("login")
@click.argument("service", type=click.Choice(SERVICES))
@click.option("--access-token", prompt="Access token", hide_input=True, help="OAuth access token")
@click.option("--refresh-token", default=None, help="OAuth refresh token")
@click.option("--expires-in", type=int, default=None, help="Seconds until the access token expires")
@click.pass_context
def auth_login(
    ctx: click.Context,
    service: str,
    access_token: str,
    refresh_token: str | None,
    expires_in: int | None,
) -> None:
    """Store tokens for SERVICE."""
    expires_at = None
    if expires_in is not None:
        expires_at = int(time.time() * 1000) + expires_in * 1000
    tokens = OAuthTokens(access_token=access_token.strip(), refresh_token=refresh_token, expires_at=expires_at)
    _store(ctx).save(service, tokens)
    Renderer().print_success(f"✓ {service.capitalize()} tokens saved.")


@auth.command("status")
@click.pass_context
def auth_status(ctx: click.Context) -> None:
    """Show which services are authenticated."""
    renderer = Renderer()
    store = _store(ctx)
    for service in SERVICES:
        tokens = store.load(service)
        if tokens is None:
            renderer.print_info(f"{service.capitalize()}: ○ Not authenticated")
        elif tokens.is_expired() and not tokens.refresh_token:
            renderer.print_warning(f"{service.capitalize()}: ⚠ Token expired (run: jarvis auth login {service})")
        else:
            renderer.print_success(f"{service.capitalize()}: ✓ Authenticated")


@auth.command("logout")
@click.argument("service", type=click.Choice(SERVICES + ("all",)))
@click.pass_context
def auth_logout(ctx: click.Context, service: str) -> None:
    """Forget tokens for SERVICE (or all)."""
    renderer = Renderer()
    store = _store(ctx)
    targets = SERVICES if service == "all" else (service,)
    for name in targets:
        if store.delete(name):
            renderer.print_success(f"Logged out from {name.capitalize()}.")
        else:
            renderer.print_info(f"{name.capitalize()} was not authenticated.")


# ── config ────────────────────────────────────────────────────────────


@main.group("config")
def config_group() -> None:
    """Manage configuration."""


@config_group.command("setup")
@click.option("--model", default=None, help="Model to use")
@click.option("--api-key", default=None, help="Gemini API key")
@click.pass_context
def config_setup(ctx: click.Context, model: str | None, api_key: str | None) -> None:
    """Interactive setup of the model and API key."""
    renderer = Renderer()
    config = _load_or_exit(ctx)
    if model is None:
        model = click.prompt("Model", default=config.model or DEFAULT_MODEL)
    if api_key is None:
        api_key = click.prompt(
            "Gemini API key (leave empty to use $" + API_KEY_ENV + ")",
            default="",
            show_default=False,
            hide_input=True,
        )
    updated = config.model_copy(update={"model": model, "api_key": api_key.strip() or config.api_key})
    path = save_config(updated, _config_path(ctx))
    renderer.print_success(f"✓ Configuration saved to {path}")


@config_group.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show the current configuration (secrets masked)."""
    config = _load_or_exit(ctx)
    items = config.model_dump()
    items["api_key"] = mask_secret(config.api_key)
    items["spotify_client_secret"] = mask_secret(config.spotify_client_secret)
    if not config.api_key and config.resolved_api_key():
        items["api_key"] = f"from ${API_KEY_ENV}"
    Renderer().render_config({k: "not set" if v is None else v for k, v in items.items()})


@config_group.command("reset")
@click.confirmation_option(prompt="Delete the configuration file?")
@click.pass_context
def config_reset(ctx: click.Context) -> None:
    """Delete the configuration file."""
    renderer = Renderer()
    if reset_config(_config_path(ctx)):
        renderer.print_success("Configuration deleted.")
    else:
        renderer.print_info("No configuration file to delete.")


@config_group.command("update-key")
@click.option("--api-key", prompt="New Gemini API key", hide_input=True, help="Gemini API key")
@click.pass_context
def config_update_key(ctx: click.Context, api_key: str) -> None:
    """Replace the stored API key."""
    config = _load_or_exit(ctx)
    save_config(config.model_copy(update={"api_key": api_key.strip()}), _config_path(ctx))
    Renderer().print_success("✓ API key updated.")


config_group.add_command(config_update_key, name="update-gemini")


@config_group.command("test-connection")
@click.pass_context
def config_test_connection(ctx: click.Context) -> None:
    """Send a test request to the model."""
    renderer = Renderer()
    config = _load_or_exit(ctx)
    if not config.resolved_api_key():
        renderer.print_error(MISSING_KEY_MESSAGE)
        sys.exit(1)
    try:
        with renderer.status_spinner(f"Connecting to {config.model}..."):
            asyncio.run(LLMClient(config).verify_connection())
    except ConnectionError as e:
        renderer.print_error(str(e))
        sys.exit(1)
    renderer.print_success(f"✓ Connected to {config.model}")


@config_group.command("backup")
@click.argument("dest", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def config_backup(ctx: click.Context, dest: Path | None) -> None:
    """Copy the configuration to DEST."""
    path = _config_path(ctx)
    dest = dest or path.with_name(f"config-backup-{time.strftime('%Y%m%d-%H%M%S')}.yaml")
    try:
        backup_config(dest, path)
    except ConfigError as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    Renderer().print_success(f"✓ Configuration backed up to {dest}")


@config_group.command("restore")
@click.argument("src", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def config_restore(ctx: click.Context, src: Path) -> None:
    """Restore the configuration from SRC."""
    try:
        restore_config(src, _config_path(ctx))
    except ConfigError as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    Renderer().print_success(f"✓ Configuration restored from {src}")
