"""Configuration management for insight-router.

This module provides configuration models and loading functionality using Pydantic
for validation and type safety.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DOTENV_LOADED = False

DEFAULT_PRIVATE_PROVIDERS = ["zhipu", "qwen", "wenxin", "doubao", "deepseek", "moonshot", "local"]


def _load_env_once() -> None:
    """Load environment variables from a .env file exactly once."""

    global _DOTENV_LOADED
    if not _DOTENV_LOADED:
        load_dotenv()
        _DOTENV_LOADED = True


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand environment variables in configuration data."""

    if isinstance(data, str):
        return os.path.expandvars(data)
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    return data


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    log_file: str | None = Field(default=None, description="Log file path")
    max_bytes: int = Field(default=10485760, description="Max log file size (10MB)")
    backup_count: int = Field(default=5, description="Number of backup files")


class OrchestratorConfig(BaseModel):
    """Configuration for the orchestration pipeline."""

    default_provider: str = Field(
        default="openai", description="Provider used when no capability row is eligible"
    )
    default_strategy: (
        Literal["quality_first", "speed_first", "cost_effective", "balanced", "adaptive", "ensemble"]
        | None
    ) = Field(
        default=None,
        description="Force a selection strategy instead of deriving it from preferences",
    )
    confidence_threshold: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Detection confidence below which the general scenario is used",
    )
    provider_timeout_seconds: float = Field(
        default=30.0, gt=0.0, description="Upper bound on a single provider call"
    )
    history_window: int = Field(
        default=10, ge=0, description="Number of recent items passed as context"
    )
    max_concurrent_items: int = Field(
        default=4, ge=1, description="Items processed in parallel by batch calls"
    )
    result_history_size: int = Field(
        default=100, ge=1, description="Orchestration results kept for statistics"
    )
    approved_private_providers: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PRIVATE_PROVIDERS),
        description="Providers allowed when privacy sensitivity is high",
    )


class TrackerConfig(BaseModel):
    """Configuration for the performance tracker."""

    max_entries: int = Field(default=1000, ge=1, description="Metric log capacity")
    smoothing_factor: float = Field(
        default=0.1,
        gt=0.0,
        le=1.0,
        description="Weight of the newest observation in reliability updates",
    )
    min_reliability: float = Field(default=0.1, ge=0.0, le=1.0)
    max_reliability: float = Field(default=1.0, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_bounds(self) -> TrackerConfig:
        if self.min_reliability > self.max_reliability:
            raise ValueError("min_reliability must not exceed max_reliability")
        return self


class PreferencesConfig(BaseModel):
    """Default user preferences applied when the caller supplies none."""

    speed_vs_quality: Literal["speed", "balanced", "quality"] = Field(default="balanced")
    cost_sensitivity: Literal["low", "medium", "high"] = Field(default="medium")
    privacy_sensitivity: Literal["low", "medium", "high"] = Field(default="medium")
    experience_level: Literal["beginner", "intermediate", "advanced"] = Field(
        default="intermediate"
    )


class CapabilityConfig(BaseModel):
    """A capability row added or replaced at startup."""

    scenario: str = Field(..., description="Scenario name")
    provider_id: str = Field(..., description="Provider identifier")
    speed: Literal["fast", "medium", "slow"] = Field(default="medium")
    quality: Literal["basic", "good", "excellent"] = Field(default="good")
    cost: Literal["low", "medium", "high"] = Field(default="medium")
    reliability: float = Field(default=0.8, ge=0.0, le=1.0)


class ProviderModelConfig(BaseModel):
    """Binding of a provider id to a pydantic-ai model string."""

    provider_id: str = Field(..., description="Provider identifier used in capability rows")
    model: str = Field(..., description="pydantic-ai model name, e.g. 'openai:gpt-4o'")
    system_prompt: str | None = Field(default=None, description="Override the system prompt")


class RouterConfig(BaseSettings):
    """Main configuration for insight-router."""

    model_config = SettingsConfigDict(
        env_prefix="INSIGHT_ROUTER_",
        env_nested_delimiter="__",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    orchestrator: OrchestratorConfig = Field(
        default_factory=OrchestratorConfig, description="Orchestrator configuration"
    )
    tracker: TrackerConfig = Field(
        default_factory=TrackerConfig, description="Performance tracker configuration"
    )
    preferences: PreferencesConfig = Field(
        default_factory=PreferencesConfig, description="Default user preferences"
    )
    capabilities: list[CapabilityConfig] = Field(
        default_factory=list, description="Extra capability rows registered at startup"
    )
    providers: list[ProviderModelConfig] = Field(
        default_factory=list, description="pydantic-ai backed providers"
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> RouterConfig:
        """Load configuration from a YAML file."""

        _load_env_once()
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, encoding="utf-8") as handle:
            try:
                config_data = yaml.safe_load(handle)
            except yaml.YAMLError as exc:
                raise ValueError(f"Invalid YAML in config file: {exc}") from exc

        if not config_data:
            config_data = {}

        config_data = _expand_env_vars(config_data)
        return cls(**config_data)

    @classmethod
    def from_json(cls, path: str | Path) -> RouterConfig:
        """Load configuration from a JSON file."""

        import json

        _load_env_once()
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, encoding="utf-8") as handle:
            try:
                config_data = json.load(handle)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid JSON in config file: {exc}") from exc

        config_data = _expand_env_vars(config_data)
        return cls(**config_data)

    def to_yaml(self, path: str | Path) -> None:
        """Write the configuration to a YAML file."""

        config_path = Path(path)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as handle:
            yaml.safe_dump(
                self.model_dump(mode="json"), handle, allow_unicode=True, sort_keys=False
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""

        return self.model_dump()
