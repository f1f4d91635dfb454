"""Tests for the command-line interface."""

import json
from unittest.mock import patch

import pytest
import yaml

from insight_router import __version__
from insight_router import cli as cli_module
from insight_router.cli import main
from insight_router.cli.commands import parse_model_bindings

PLANNING_TEXT = "为什么计划总是执行不下去？"


class TestCliParsing:
    """Tests for the argument parsing logic."""

    def test_no_args_prints_help(self, capsys):
        """Test that running with no arguments prints help."""
        assert main([]) == 0
        captured = capsys.readouterr()
        assert "usage: insight-router" in captured.out

    def test_version_flag(self, capsys):
        """Test the -v / --version flag."""
        with pytest.raises(SystemExit) as e:
            main(["--version"])
        assert e.value.code == 0
        captured = capsys.readouterr()
        assert __version__ in captured.out

    def test_analyze_command_args(self):
        """Test parsing for the 'analyze' command."""
        parser = cli_module.build_parser()
        args = parser.parse_args(
            ["analyze", "text", "-c", "my.yaml", "-m", "openai=openai:gpt-4o", "-s", "ensemble"]
        )
        assert args.command == "analyze"
        assert args.config == "my.yaml"
        assert args.model == ["openai=openai:gpt-4o"]
        assert args.strategy == "ensemble"
        assert args.json is False

    def test_invalid_strategy(self):
        """Test unknown strategies are rejected by the parser."""
        with pytest.raises(SystemExit):
            main(["analyze", "text", "-s", "fastest"])

    def test_parse_model_bindings(self):
        """Test PROVIDER=MODEL parsing."""
        bindings = parse_model_bindings(["openai=openai:gpt-4o", " claude = anthropic:claude "])
        assert [(b.provider_id, b.model) for b in bindings] == [
            ("openai", "openai:gpt-4o"),
            ("claude", "anthropic:claude"),
        ]
        with pytest.raises(ValueError):
            parse_model_bindings(["openai"])


class TestCliCommands:
    """Tests for command execution."""

    def test_analyze_json(self, capsys):
        """Test analyze runs the pipeline with offline stand-ins."""
        assert main(["analyze", PLANNING_TEXT, "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["selected_providers"]
        assert payload["synthesized"]["degraded"] is False

    def test_analyze_rich_output(self, capsys):
        """Test analyze renders tables and panels."""
        assert main(["analyze", PLANNING_TEXT]) == 0
        out = capsys.readouterr().out
        assert "Provider results" in out
        assert "Scenario:" in out

    def test_analyze_missing_config(self, tmp_path, capsys):
        """Test a missing config file is reported, not raised."""
        assert main(["analyze", "text", "-c", str(tmp_path / "missing.yaml")]) == 1
        assert "Error" in capsys.readouterr().out

    def test_analyze_bad_model_binding(self, capsys):
        """Test a malformed --model value is reported."""
        assert main(["analyze", "text", "-m", "openai"]) == 1
        assert "PROVIDER=MODEL" in capsys.readouterr().out

    def test_quick_json(self, capsys):
        """Test the quick command."""
        assert main(["quick", PLANNING_TEXT, "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["scenario"] == "deep_insight"
        assert payload["provider_id"] == "openai"

    def test_batch(self, tmp_path, capsys):
        """Test the batch command processes one item per line."""
        input_file = tmp_path / "notes.txt"
        input_file.write_text(f"{PLANNING_TEXT}\n\n今天很开心\n", encoding="utf-8")

        assert main(["batch", str(input_file), "--json"]) == 0
        payload = json.loads(capsys.readouterr().out)
        assert set(payload) == {"line_1", "line_3"}

    def test_batch_missing_file(self, tmp_path, capsys):
        """Test a missing batch input file."""
        assert main(["batch", str(tmp_path / "none.txt")]) == 1
        assert "not found" in capsys.readouterr().out

    def test_capabilities(self, capsys):
        """Test listing capabilities for one scenario."""
        assert main(["capabilities", "--scenario", "deep_insight"]) == 0
        out = capsys.readouterr().out
        assert "openai" in out
        assert "claude" in out

    def test_capabilities_unknown_scenario(self, capsys):
        """Test an unknown scenario is reported."""
        assert main(["capabilities", "--scenario", "nonsense"]) == 1

    @pytest.mark.parametrize("command", [["quick", "hello"], ["capabilities"]])
    def test_invalid_capability_in_config(self, tmp_path, capsys, command):
        """Test invalid configured capabilities are reported, not raised."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            yaml.safe_dump({"capabilities": [{"scenario": "time_travel", "provider_id": "x"}]}),
            encoding="utf-8",
        )

        assert main([*command, "-c", str(config_file)]) == 1
        assert "Invalid capability" in capsys.readouterr().out

    def test_init_creates_config(self, tmp_path):
        """Test init writes a loadable default configuration."""
        output = tmp_path / "config.yaml"

        assert main(["init", "-o", str(output)]) == 0

        data = yaml.safe_load(output.read_text(encoding="utf-8"))
        assert data["orchestrator"]["default_provider"] == "openai"

    def test_init_refuses_overwrite(self, tmp_path):
        """Test init keeps existing files unless forced."""
        output = tmp_path / "config.yaml"
        output.write_text("keep: me\n", encoding="utf-8")

        assert main(["init", "-o", str(output)]) == 1
        assert output.read_text(encoding="utf-8") == "keep: me\n"

        assert main(["init", "-o", str(output), "--force"]) == 0
        assert "orchestrator" in output.read_text(encoding="utf-8")

    def test_dispatch_uses_handler(self):
        """Test main dispatches to the matching handler."""
        with patch("insight_router.cli.cmd_quick", return_value=0) as handler:
            assert main(["quick", "text"]) == 0
        handler.assert_called_once()
