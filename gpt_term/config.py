"""Configuration loading and validation for gpt-term."""

from __future__ import annotations

from copy import deepcopy
import logging
import os
from pathlib import Path
import re
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from .exceptions import ConfigValidationError, MissingCredentialError

import tomllib  # stdlib since Python 3.11 (project requires >=3.11)

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "gpt-term"
CONFIG_PATH = CONFIG_DIR / "config.toml"

HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")
VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}

DEFAULT_SYSTEM_PROMPT = (
    "You are a bash terminal helper AI. Unless the user asks otherwise, you will "
    "specify all solutions in bash commands, ideally one-liners if the task is "
    "simple. Before displaying a bash command you must surround it with "
    "<command></command> tags. Each <command> block must contain exactly one "
    "command; if you need to show multiple commands, use multiple <command> "
    "blocks. Do not insert markdown code fences inside <command> blocks."
)


def _non_empty(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError("Expected a string value.")
    normalized = value.strip()
    if not normalized:
        raise ValueError("String value must not be empty.")
    return normalized


class AppConfig(BaseModel):
    """Application metadata."""

    title: str = "gpt-term"

    @field_validator("title", mode="before")
    @classmethod
    def _validate_title(cls, value: Any) -> str:
        return _non_empty(value)


class AssistantConfig(BaseModel):
    """Remote assistant model and request settings."""

    model: str = "claude-3-5-sonnet-latest"
    max_tokens: int = Field(default=1000, ge=1, le=200_000)
    timeout: int = Field(default=120, ge=1, le=3600)
    max_retries: int = Field(default=2, ge=0, le=10)
    api_key_env: str = "CLAUDE_API_KEY"
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    @field_validator("model", "api_key_env", mode="before")
    @classmethod
    def _validate_required_string(cls, value: Any) -> str:
        return _non_empty(value)

    @field_validator("system_prompt", mode="before")
    @classmethod
    def _normalize_prompt(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Expected a string value.")
        return value.strip()


class EditorConfig(BaseModel):
    """External editor lookup."""

    env_var: str = "EDITOR"
    default: str = "nvim"

    @field_validator("env_var", "default", mode="before")
    @classmethod
    def _validate_required_string(cls, value: Any) -> str:
        return _non_empty(value)


class ShellConfig(BaseModel):
    """Shell used to run selected commands."""

    program: str = "sh"
    timeout_seconds: float | None = Field(default=None, gt=0)

    @field_validator("program", mode="before")
    @classmethod
    def _validate_program(cls, value: Any) -> str:
        return _non_empty(value)


class UIConfig(BaseModel):
    """Visual and scrolling settings for the terminal view."""

    user_color: str = "#7aa2f7"
    assistant_color: str = "#9ece6a"
    selection_color: str = "#e0af68"
    command_color: str = "#bb9af7"
    code_background: str = "#24283b"
    indicator_color: str = "#565f89"
    scroll_step: int = Field(default=3, ge=1, le=100)
    edit_bias: float = Field(default=0.25, ge=0.0, le=1.0)
    history_bias: float = Field(default=0.5, ge=0.0, le=1.0)
    summary_length: int = Field(default=50, ge=4, le=500)
    spinner_interval: float = Field(default=0.12, gt=0.0, le=5.0)

    @field_validator(
        "user_color",
        "assistant_color",
        "selection_color",
        "command_color",
        "code_background",
        "indicator_color",
        mode="before",
    )
    @classmethod
    def _validate_hex_color(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Expected a string value.")
        normalized = value.strip()
        if not HEX_COLOR_PATTERN.match(normalized):
            raise ValueError("Color must use #RGB or #RRGGBB format.")
        return normalized


class KeybindsConfig(BaseModel):
    """Global key mapping; values use Textual key syntax, comma separated."""

    quit: str = "ctrl+c"
    new_chat: str = "ctrl+n"
    show_help: str = "ctrl+h"
    execute_last: str = "ctrl+x"
    edit_navigation: str = "ctrl+j,ctrl+k"
    browse_history: str = "ctrl+r"
    load_latest: str = "ctrl+l"

    @field_validator("*", mode="before")
    @classmethod
    def _validate_keybind(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Keybind must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("Keybind must not be empty.")
        return normalized


class LoggingConfig(BaseModel):
    """Logging behavior and output destinations."""

    level: str = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: str = "~/.local/state/gpt-term/app.log"

    @field_validator("level", mode="before")
    @classmethod
    def _validate_level(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Logging level must be a string.")
        normalized = value.strip().upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(f"Unsupported log level {normalized!r}.")
        return normalized

    @field_validator("log_file_path", mode="before")
    @classmethod
    def _validate_log_file_path(cls, value: Any) -> str:
        return _non_empty(value)


class PersistenceConfig(BaseModel):
    """Where conversation snapshots are stored."""

    directory: str = "~/.gpt-term/conversations"

    @field_validator("directory", mode="before")
    @classmethod
    def _validate_path_string(cls, value: Any) -> str:
        return _non_empty(value)


class Config(BaseModel):
    """Root configuration model for all sections."""

    model_config = ConfigDict(populate_by_name=True)
    app: AppConfig = AppConfig()
    assistant: AssistantConfig = AssistantConfig()
    editor: EditorConfig = EditorConfig()
    shell: ShellConfig = ShellConfig()
    ui: UIConfig = UIConfig()
    keybinds: KeybindsConfig = KeybindsConfig()
    logging: LoggingConfig = LoggingConfig()
    persistence: PersistenceConfig = PersistenceConfig()


DEFAULT_CONFIG: dict[str, dict[str, Any]] = Config().model_dump()


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override values onto base values."""
    merged: dict[str, Any] = deepcopy(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _safe_default_config() -> dict[str, dict[str, Any]]:
    return deepcopy(DEFAULT_CONFIG)


def _validate_config(raw: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Validate merged config and fall back to safe defaults when possible."""
    try:
        return Config.model_validate(raw).model_dump()
    except ValidationError as exc:
        LOGGER.warning("Configuration validation failed, using safe defaults: %s", exc)
        return _safe_default_config()
    except Exception as exc:  # noqa: BLE001 - unexpected model construction failure.
        raise ConfigValidationError(f"Unable to validate configuration: {exc}") from exc


def load_config(config_path: Path | None = None) -> dict[str, dict[str, Any]]:
    """
    Load configuration from TOML, merge with defaults, and validate.

    The optional ``config_path`` argument is intended for tests and tooling.
    A missing file is not an error; the defaults apply.
    """
    target_path = config_path or CONFIG_PATH

    raw_data: dict[str, Any] = {}
    if target_path.exists():
        try:
            raw_data = tomllib.loads(target_path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as exc:
            LOGGER.warning("Failed to parse config at %s: %s", target_path, exc)
            raw_data = {}

    merged = (
        _deep_merge(DEFAULT_CONFIG, raw_data)
        if isinstance(raw_data, dict)
        else _safe_default_config()
    )
    return _validate_config(merged)


def resolve_api_key(
    assistant_config: dict[str, Any], environ: dict[str, str] | None = None
) -> str | None:
    """Return the credential named by ``api_key_env`` or None when unset."""
    env = os.environ if environ is None else environ
    name = str(assistant_config.get("api_key_env", "CLAUDE_API_KEY"))
    value = env.get(name, "").strip()
    return value or None


def require_api_key(
    assistant_config: dict[str, Any], environ: dict[str, str] | None = None
) -> str:
    """Return the credential or raise ``MissingCredentialError`` naming the variable."""
    value = resolve_api_key(assistant_config, environ)
    if value is None:
        name = str(assistant_config.get("api_key_env", "CLAUDE_API_KEY"))
        raise MissingCredentialError(f"{name} environment variable is not defined")
    return value
