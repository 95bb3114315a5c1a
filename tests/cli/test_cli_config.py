"""Tests for ``toolchat config show``."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from toolchat.cli import main

CONFIG = {"mcpServers": {"xcf": {"command": "xcf", "args": ["server"], "url": "tcp://127.0.0.1:9000"}}}


class TestConfigShow:
    def test_valid_default_file(self) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("toolchat.json").write_text(json.dumps(CONFIG), encoding="utf-8")
            result = runner.invoke(main, ["config", "show"])

        assert result.exit_code == 0
        assert "is valid" in result.output
        assert "xcf" in result.output

    def test_json(self) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("servers.json").write_text(json.dumps(CONFIG), encoding="utf-8")
            result = runner.invoke(main, ["config", "show", "servers.json", "--json"])

        assert result.exit_code == 0
        assert json.loads(result.output)["mcpServers"]["xcf"]["url"] == "tcp://127.0.0.1:9000"

    def test_invalid_file(self) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("bad.yaml").write_text("mcpServers: [1, 2]\n", encoding="utf-8")
            result = runner.invoke(main, ["config", "show", "bad.yaml"])

        assert result.exit_code == 1
        assert "Config error" in result.output

    def test_missing_default(self) -> None:
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(main, ["config", "show"])

        assert result.exit_code == 1
        assert "No provider config found" in result.output
