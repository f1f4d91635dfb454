"""Core modules for insight-router.

This package contains configuration management and logging utilities.
"""

from .config import (
    CapabilityConfig,
    LoggingConfig,
    OrchestratorConfig,
    PreferencesConfig,
    ProviderModelConfig,
    RouterConfig,
    TrackerConfig,
)
from .logger import get_logger, log_exception, setup_logging

__all__ = [
    "CapabilityConfig",
    "LoggingConfig",
    "OrchestratorConfig",
    "PreferencesConfig",
    "ProviderModelConfig",
    "RouterConfig",
    "TrackerConfig",
    "get_logger",
    "log_exception",
    "setup_logging",
]
