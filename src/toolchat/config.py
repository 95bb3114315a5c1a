"""Provider configuration files and client settings.

A provider file follows the common ``mcpServers`` layout::

    {
      "mcpServers": {
        "xcf": {"type": "tcp", "command": "xcf", "args": ["server"], "url": "tcp://127.0.0.1:9000"}
      }
    }

JSON and YAML are both accepted. Every failure (missing file, parse error,
bad shape) surfaces as :class:`ConfigError` so the CLI can report it.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from toolchat.agent.models import DEFAULT_SYSTEM_PROMPT, AgentConfig

DEFAULT_CONFIG_NAMES: tuple[str, ...] = ("toolchat.json", "toolchat.yaml", "toolchat.yml")


class ConfigError(Exception):
    """Raised when a provider file cannot be read, parsed, or validated."""


class ProviderConfig(BaseModel):
    """One named tool provider. ``command`` documents how it is started; ``url`` is where to reach it."""

    type: str | None = None
    command: str | None = None
    args: list[str] = []
    env: dict[str, str] = {}
    url: str | None = None

    @model_validator(mode="after")
    def _require_command_or_url(self) -> ProviderConfig:
        if not self.command and not self.url:
            msg = "provider needs a 'command' or a 'url'"
            raise ValueError(msg)
        return self

    @property
    def command_line(self) -> str:
        return " ".join([self.command or "", *self.args]).strip()


class ProvidersFile(BaseModel):
    """Top-level provider file; the first provider is the default."""

    model_config = {"populate_by_name": True}

    providers: dict[str, ProviderConfig] = Field(alias="mcpServers")

    @model_validator(mode="after")
    def _require_providers(self) -> ProvidersFile:
        if not self.providers:
            msg = "'mcpServers' must name at least one provider"
            raise ValueError(msg)
        return self

    @property
    def default_name(self) -> str:
        return next(iter(self.providers))

    def get(self, name: str | None = None) -> tuple[str, ProviderConfig]:
        """Look up *name*, or the default provider when ``None``.

        Raises:
            ConfigError: If no provider has that name.
        """
        key = name or self.default_name
        try:
            return key, self.providers[key]
        except KeyError:
            known = ", ".join(self.providers)
            raise ConfigError(f"Unknown provider {key!r} (known: {known})") from None


class ProvidersLoader:
    """Load and validate a provider file into a :class:`ProvidersFile`."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> ProvidersFile:
        """Read the file, interpolate env vars, parse JSON or YAML, and validate.

        Environment variables in the form ``${VAR}`` or ``$VAR`` are expanded
        using :func:`os.path.expandvars` before parsing.

        Raises:
            ConfigError: On read, parse, or validation failures.
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot read {self._path}: {exc}") from exc

        expanded = os.path.expandvars(raw)

        data: Any
        if self._path.suffix == ".json":
            try:
                data = json.loads(expanded)
            except json.JSONDecodeError as exc:
                raise ConfigError(f"JSON parse error in {self._path}: {exc}") from exc
        else:
            try:
                data = yaml.safe_load(expanded)
            except yaml.YAMLError as exc:
                raise ConfigError(f"YAML parse error in {self._path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigError(f"{self._path} must contain a mapping")
        if not isinstance(data.get("mcpServers"), dict):
            raise ConfigError(f"{self._path} has no valid 'mcpServers' mapping")

        try:
            return ProvidersFile.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc


def find_config(start: Path | None = None) -> Path | None:
    """First default-named provider file in *start* (the cwd by default)."""
    base = start or Path.cwd()
    for name in DEFAULT_CONFIG_NAMES:
        candidate = base / name
        if candidate.is_file():
            return candidate
    return None


class ClientSettings(BaseModel):
    """Completion and session settings gathered from CLI options and ``TOOLCHAT_*`` env vars."""

    model: str = "openai/gpt-4o-mini"
    api_base: str | None = None
    api_key: str | None = None
    temperature: float = 0.7
    max_tokens: int = 4000
    max_iterations: int = Field(default=5, ge=1)
    request_timeout: float = Field(default=30.0, gt=0)
    heuristic_tool_calls: bool = False
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    def agent_config(self) -> AgentConfig:
        return AgentConfig(
            model=self.model,
            api_base=self.api_base,
            api_key=self.api_key,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            max_iterations=self.max_iterations,
            heuristic_tool_calls=self.heuristic_tool_calls,
            system_prompt=self.system_prompt,
        )
