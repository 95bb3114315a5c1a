"""Tests for ``toolchat route``."""

from __future__ import annotations

import json

from click.testing import CliRunner

from toolchat.cli import main

XCF = ["--tool", "read_file", "--meta", "help", "--meta", "list", "--umbrella", "xcf"]


class TestRouteCommand:
    def test_meta_command(self) -> None:
        result = CliRunner().invoke(main, ["route", "help", *XCF, "--json"])

        assert result.exit_code == 0
        assert json.loads(result.output) == {
            "kind": "direct",
            "tool": "xcf",
            "arguments": "help",
            "rule": "meta-command",
        }

    def test_chat_goes_to_agent(self) -> None:
        result = CliRunner().invoke(main, ["route", "what does this project do", *XCF, "--json"])

        data = json.loads(result.output)
        assert data["kind"] == "agent"
        assert data["rule"] == "umbrella-default"

    def test_table_output(self) -> None:
        result = CliRunner().invoke(main, ["route", "read_file /tmp/x", *XCF])

        assert result.exit_code == 0
        assert "direct" in result.output
        assert "read_file" in result.output
        assert "/tmp/x" in result.output

    def test_empty_input(self) -> None:
        result = CliRunner().invoke(main, ["route", "  "])
        assert result.exit_code == 1
        assert "Routing error" in result.output
