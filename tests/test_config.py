"""Tests for provider config loading and client settings."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from toolchat.config import ClientSettings, ConfigError, ProvidersLoader, find_config


def _write(path: Path, data: object) -> Path:
    path.write_text(json.dumps(data) if path.suffix == ".json" else str(data), encoding="utf-8")
    return path


class TestProvidersLoader:
    def test_json(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path / "toolchat.json",
            {"mcpServers": {"xcf": {"command": "xcf", "args": ["server"], "url": "tcp://127.0.0.1:9000"}}},
        )
        providers = ProvidersLoader(path).load()
        name, entry = providers.get()
        assert name == "xcf"
        assert entry.url == "tcp://127.0.0.1:9000"
        assert entry.command_line == "xcf server"

    def test_yaml_with_env_vars(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("XCF_PORT", "9100")
        path = tmp_path / "toolchat.yaml"
        path.write_text(
            "mcpServers:\n  first:\n    url: tcp://localhost:${XCF_PORT}\n  second:\n    command: other\n",
            encoding="utf-8",
        )
        providers = ProvidersLoader(path).load()
        assert providers.default_name == "first"
        assert providers.providers["first"].url == "tcp://localhost:9100"
        assert providers.get("second")[1].url is None

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read"):
            ProvidersLoader(tmp_path / "absent.json").load()

    def test_malformed_json(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError, match="JSON parse error"):
            ProvidersLoader(path).load()

    def test_malformed_mcp_servers(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "bad.json", {"mcpServers": ["xcf"]})
        with pytest.raises(ConfigError, match="mcpServers"):
            ProvidersLoader(path).load()

    def test_empty_mcp_servers(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "empty.json", {"mcpServers": {}})
        with pytest.raises(ConfigError):
            ProvidersLoader(path).load()

    def test_provider_needs_command_or_url(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "bad.json", {"mcpServers": {"x": {"args": ["a"]}}})
        with pytest.raises(ConfigError, match="command"):
            ProvidersLoader(path).load()

    def test_unknown_provider(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "ok.json", {"mcpServers": {"xcf": {"command": "xcf"}}})
        with pytest.raises(ConfigError, match="Unknown provider"):
            ProvidersLoader(path).load().get("nope")


class TestFindConfig:
    def test_finds_default_name(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "toolchat.yml", "mcpServers: {}")
        assert find_config(tmp_path) == path

    def test_none(self, tmp_path: Path) -> None:
        assert find_config(tmp_path) is None


class TestClientSettings:
    def test_agent_config(self) -> None:
        config = ClientSettings(model="openai/gpt-4o", max_iterations=3, heuristic_tool_calls=True).agent_config()
        assert config.model == "openai/gpt-4o"
        assert config.max_iterations == 3
        assert config.heuristic_tool_calls
        assert config.temperature == 0.7
