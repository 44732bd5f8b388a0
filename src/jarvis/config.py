"""Configuration management - Pydantic model with YAML loading and CLI overrides."""

import os
import shutil
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

DEFAULT_CONFIG_DIR = Path.home() / ".jarvis"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_TASKS_FILE = DEFAULT_CONFIG_DIR / "tasks.json"

DEFAULT_MODEL = "gemini/gemini-2.5-flash"
API_KEY_ENV = "GEMINI_API_KEY"

_EXAMPLE = (
    f"Minimal example:\n"
    f"  model: {DEFAULT_MODEL}\n"
    f"  api_key: <your Gemini API key>\n\n"
    f"Or export {API_KEY_ENV} and run: jarvis config setup"
)


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""


class AgentConfig(BaseModel):
    """Agent configuration with validation."""

    model_config = ConfigDict(extra="forbid")

    model: str = DEFAULT_MODEL
    api_key: str | None = None
    api_base: str | None = None

    # Model sampling parameters
    temperature: float = 0.7
    top_p: float = 0.8
    max_output_tokens: int = 1024

    # Conversation
    memory_cap: int = 50
    history_window: int = 10
    streaming: bool = True
    followup_strategy: Literal["summary", "model"] = "summary"

    # Tools
    tasks_file: str = str(DEFAULT_TASKS_FILE)
    spotify_client_id: str | None = None
    spotify_client_secret: str | None = None

    @field_validator("api_base")
    @classmethod
    def validate_api_base(cls, v: str | None) -> str | None:
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError("Must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("memory_cap")
    @classmethod
    def validate_memory_cap(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Must be at least 1")
        return v

    @field_validator("history_window")
    @classmethod
    def validate_history_window(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Must not be negative")
        return v

    def resolved_api_key(self) -> str | None:
        """Return the configured key, falling back to the environment."""
        return self.api_key or os.environ.get(API_KEY_ENV)

    def __repr__(self) -> str:
        api_key_display = "***" if self.api_key else "None"
        return (
            f"AgentConfig(model={self.model!r}, "
            f"api_base={self.api_base!r}, "
            f"api_key={api_key_display!r}, "
            f"temperature={self.temperature!r}, "
            f"max_output_tokens={self.max_output_tokens!r}, "
            f"top_p={self.top_p!r})"
        )

    def __str__(self) -> str:
        return self.__repr__()


def _format_validation_error(e: ValidationError) -> str:
    errors = []
    for err in e.errors():
        field = ".".join(str(loc) for loc in err["loc"])
        errors.append(f"  - {field}: {err['msg']}")
    return "\n".join(errors)


def load_config(config_path: Path | None = None) -> AgentConfig:
    """Load and validate config from YAML file.

    Args:
        config_path: Path to config file. Defaults to ~/.jarvis/config.yaml.

    Returns:
        Validated AgentConfig instance.

    Raises:
        ConfigError: If file is missing, empty, or contains invalid config.
    """
    path = config_path or DEFAULT_CONFIG_FILE

    if not path.exists():
        raise ConfigError(
            f"Configuration file not found.\n\n"
            f"Expected location: {path}\n\n"
            f"{_EXAMPLE}"
        )

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid configuration in {path}\n\n"
            f"  {e}\n\n"
            f"{_EXAMPLE}"
        ) from None

    if not isinstance(data, dict):
        raise ConfigError(
            f"Invalid configuration in {path}\n\n"
            f"  Config file is empty or not a valid YAML mapping.\n\n"
            f"{_EXAMPLE}"
        )

    try:
        return AgentConfig(**data)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid configuration in {path}\n\n{_format_validation_error(e)}"
        ) from None


def load_config_or_default(config_path: Path | None = None) -> AgentConfig:
    """Load config, returning defaults when no file exists yet.

    Invalid files still raise ConfigError.
    """
    path = config_path or DEFAULT_CONFIG_FILE
    if not path.exists():
        return AgentConfig()
    return load_config(path)


def save_config(config: AgentConfig, config_path: Path | None = None) -> Path:
    """Write config as YAML (owner read/write only) and return the path."""
    path = config_path or DEFAULT_CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(exclude_none=True)
    tmp_path = path.with_suffix(".tmp")
    tmp_path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    os.replace(str(tmp_path), str(path))
    try:
        path.chmod(0o600)
    except OSError:
        pass
    return path


def reset_config(config_path: Path | None = None) -> bool:
    """Delete the config file. Returns True if a file was removed."""
    path = config_path or DEFAULT_CONFIG_FILE
    if path.exists():
        path.unlink()
        return True
    return False


def backup_config(dest: Path, config_path: Path | None = None) -> Path:
    """Copy the config file to ``dest``."""
    path = config_path or DEFAULT_CONFIG_FILE
    if not path.exists():
        raise ConfigError(f"Nothing to back up: {path} does not exist.")
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(path, dest)
    return dest


def restore_config(src: Path, config_path: Path | None = None) -> AgentConfig:
    """Validate a backup and copy it over the active config."""
    if not src.exists():
        raise ConfigError(f"Backup file not found: {src}")
    config = load_config(src)
    save_config(config, config_path)
    return config


def apply_cli_overrides(
    config: AgentConfig,
    model: str | None = None,
    api_base: str | None = None,
    temperature: float | None = None,
    max_output_tokens: int | None = None,
    top_p: float | None = None,
    streaming: bool | None = None,
) -> AgentConfig:
    """Apply CLI flag overrides to config. Returns a new AgentConfig instance.

    Override precedence: Defaults → YAML → CLI flags.
    """
    overrides = {}
    if model is not None:
        overrides["model"] = model
    if api_base is not None:
        overrides["api_base"] = api_base
    if temperature is not None:
        overrides["temperature"] = temperature
    if max_output_tokens is not None:
        overrides["max_output_tokens"] = max_output_tokens
    if top_p is not None:
        overrides["top_p"] = top_p
    if streaming is not None:
        overrides["streaming"] = streaming

    if not overrides:
        return config

    try:
        return AgentConfig.model_validate(config.model_dump() | overrides)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid CLI override:\n\n{_format_validation_error(e)}"
        ) from None
