"""User settings loaded from an optional YAML file.

Example ``~/.config/acai/config.yaml``::

    models:
      chat: anthropic/opus
      instruct: anthropic/claude-sonnet-4
    temperature: 0.2
    max_turns: 25
    lint_command: ruff check src

Public API (the "studs"):
    Settings: CLI defaults
    load_settings: Read settings from a YAML file
    DEFAULT_SETTINGS_PATH: Location read when no file is given
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from acai.llm.exceptions import ConfigurationError

_logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path.home() / ".config" / "acai" / "config.yaml"

DEFAULT_MODELS: dict[str, str] = {
    "chat": "anthropic/sonnet",
    "pipe": "openai/gpt-4o",
    "instruct": "minimax/minimax-m2.5",
    "complete": "mistral/codestral",
    "generate_edits": "anthropic/sonnet",
}


class Settings(BaseModel):
    """CLI defaults. Command-line flags take precedence over every field."""

    models: dict[str, str] = Field(default_factory=dict, description="Default model per command")
    temperature: float | None = Field(None, ge=0.0, le=2.0)
    top_p: float | None = Field(None, ge=0.0, le=1.0)
    max_tokens: int | None = Field(None, ge=1)
    max_turns: int | None = Field(None, ge=1, description="Agent loop round-trip cap")
    data_dir: Path | None = Field(None, description="Override for ~/.cache/acai")
    lint_command: str = Field("ruff check .", description="Command run by the lint tool")

    def model_for(self, command: str) -> str:
        """Configured model for a command, falling back to the built-in default."""
        return self.models.get(command) or DEFAULT_MODELS[command]


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from YAML.

    Args:
        path: File to read. When None, DEFAULT_SETTINGS_PATH is read if it exists.

    Returns:
        Settings (defaults when no file applies)

    Raises:
        ConfigurationError: If an explicit file is missing, or any file is
            not a valid YAML mapping of known settings
    """
    if path is None:
        path = DEFAULT_SETTINGS_PATH
        if not path.exists():
            return Settings()
    elif not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config file: {e}") from None

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError("Config file must contain a YAML mapping (dict)")

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings in {path}: {e}") from None

    _logger.debug("Loaded settings from %s", path)
    return settings


__all__ = ["Settings", "load_settings", "DEFAULT_SETTINGS_PATH", "DEFAULT_MODELS"]
