"""insight-router.

Scenario-aware routing of free-text analysis across heterogeneous AI
providers, with:
- Rule-based scenario detection
- Adaptive provider selection and ensembles
- Failure-isolated execution with a status stream
- Result synthesis and reliability tracking

Example:
    ```python
    from insight_router import Orchestrator, RouterConfig, WorkItem

    orchestrator = Orchestrator(RouterConfig.from_yaml("config.yaml"))
    result = await orchestrator.process_one(WorkItem(content="..."))
    ```
"""

from importlib.metadata import PackageNotFoundError, version

from .core import RouterConfig, get_logger, setup_logging
from .exceptions import (
    ConfigurationError,
    InsightRouterError,
    MalformedResponseError,
    ProviderError,
    ProviderNotFoundError,
    ProviderTimeoutError,
    UnknownStrategyError,
)
from .orchestration import (
    KeywordAnalysisProvider,
    Orchestrator,
    Scenario,
    ThinkingContext,
    WorkItem,
)

__all__ = [
    "__version__",
    "Orchestrator",
    "RouterConfig",
    "WorkItem",
    "ThinkingContext",
    "Scenario",
    "KeywordAnalysisProvider",
    "ConfigurationError",
    "InsightRouterError",
    "MalformedResponseError",
    "ProviderError",
    "ProviderNotFoundError",
    "ProviderTimeoutError",
    "UnknownStrategyError",
    "get_logger",
    "setup_logging",
]

try:  # pragma: no cover - best-effort during development
    __version__ = version("insight-router")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"
