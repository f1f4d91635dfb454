"""Tests for configuration loading.

Tests cover:
- Defaults
- YAML and JSON loading with environment expansion
- Error handling for missing and invalid files
- Writing configuration back to YAML
- Environment overrides
"""

from __future__ import annotations

import json

import pytest
import yaml
from pydantic import ValidationError

from insight_router.core import RouterConfig, TrackerConfig


# ==============================================================================
# Defaults Tests
# ==============================================================================


class TestDefaults:
    """Tests for default configuration values."""

    def test_default_values(self):
        """Test defaults match the documented values."""
        config = RouterConfig()

        assert config.orchestrator.default_provider == "openai"
        assert config.orchestrator.confidence_threshold == 0.6
        assert config.orchestrator.default_strategy is None
        assert config.tracker.max_entries == 1000
        assert config.tracker.smoothing_factor == 0.1
        assert config.preferences.speed_vs_quality == "balanced"
        assert config.capabilities == []
        assert config.providers == []

    def test_tracker_bounds_validated(self):
        """Test inverted reliability bounds are rejected."""
        with pytest.raises(ValidationError):
            TrackerConfig(min_reliability=0.9, max_reliability=0.5)

    def test_environment_override(self, monkeypatch):
        """Test nested settings can come from the environment."""
        monkeypatch.setenv("INSIGHT_ROUTER_ORCHESTRATOR__DEFAULT_PROVIDER", "claude")

        config = RouterConfig()

        assert config.orchestrator.default_provider == "claude"


# ==============================================================================
# Loading Tests
# ==============================================================================


class TestLoading:
    """Tests for loading configuration files."""

    def test_from_yaml(self, tmp_path, monkeypatch):
        """Test YAML loading with environment variable expansion."""
        monkeypatch.setenv("ROUTER_TEST_MODEL", "openai:gpt-4o-mini")
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "orchestrator": {"default_provider": "deepseek", "history_window": 5},
                    "providers": [{"provider_id": "openai", "model": "${ROUTER_TEST_MODEL}"}],
                    "capabilities": [
                        {"scenario": "sentiment_analysis", "provider_id": "local", "speed": "fast"}
                    ],
                }
            ),
            encoding="utf-8",
        )

        config = RouterConfig.from_yaml(path)

        assert config.orchestrator.default_provider == "deepseek"
        assert config.orchestrator.history_window == 5
        assert config.providers[0].model == "openai:gpt-4o-mini"
        assert config.capabilities[0].speed == "fast"

    def test_from_empty_yaml(self, tmp_path):
        """Test an empty YAML file yields defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        config = RouterConfig.from_yaml(path)

        assert config.orchestrator.default_provider == "openai"

    def test_from_json(self, tmp_path):
        """Test JSON loading."""
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps({"preferences": {"cost_sensitivity": "high"}}), encoding="utf-8"
        )

        config = RouterConfig.from_json(path)

        assert config.preferences.cost_sensitivity == "high"

    def test_missing_file(self, tmp_path):
        """Test missing files raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            RouterConfig.from_yaml(tmp_path / "nope.yaml")
        with pytest.raises(FileNotFoundError):
            RouterConfig.from_json(tmp_path / "nope.json")

    def test_invalid_yaml(self, tmp_path):
        """Test malformed YAML raises ValueError."""
        path = tmp_path / "bad.yaml"
        path.write_text("orchestrator: [unclosed", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid YAML"):
            RouterConfig.from_yaml(path)

    def test_invalid_json(self, tmp_path):
        """Test malformed JSON raises ValueError."""
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid JSON"):
            RouterConfig.from_json(path)

    def test_invalid_values(self, tmp_path):
        """Test out-of-range values fail validation."""
        path = tmp_path / "config.yaml"
        path.write_text("orchestrator:\n  confidence_threshold: 1.5\n", encoding="utf-8")

        with pytest.raises(ValidationError):
            RouterConfig.from_yaml(path)


# ==============================================================================
# Saving Tests
# ==============================================================================


class TestSaving:
    """Tests for writing configuration."""

    def test_to_yaml_round_trip(self, tmp_path):
        """Test a written file loads back with the same values."""
        config = RouterConfig()
        config.orchestrator.default_provider = "zhipu"
        path = tmp_path / "nested" / "config.yaml"

        config.to_yaml(path)
        loaded = RouterConfig.from_yaml(path)

        assert loaded.orchestrator.default_provider == "zhipu"
        assert loaded.to_dict() == config.to_dict()
