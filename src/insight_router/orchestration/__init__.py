"""Orchestration engine routing free text to heterogeneous analysis providers.

This module provides:
- Scenario detection from text and thinking context
- A capability registry with reliability learned from outcomes
- Strategy-based provider selection, including ensembles
- Sequential, failure-isolated provider execution with a status stream
- Synthesis of several provider results into one insight

Example:
    ```python
    from insight_router.orchestration import (
        KeywordAnalysisProvider,
        Orchestrator,
        WorkItem,
    )

    orchestrator = Orchestrator(providers=[KeywordAnalysisProvider("openai")])
    result = await orchestrator.process_one(WorkItem(content="为什么计划总是执行不下去？"))

    # Or only estimate where the text would go
    quick = orchestrator.quick_analysis("整理一下今天的笔记")
    ```
"""

from .base import (
    DEFAULT_CAPABILITIES,
    SCENARIO_REQUIREMENTS,
    AnalysisResult,
    Capability,
    Cost,
    DeadEnd,
    OrchestrationResult,
    PerformanceMetric,
    Priority,
    ProcessingStep,
    ProviderStats,
    Quality,
    QuickAnalysis,
    Scenario,
    ScenarioDetection,
    SelectionStrategy,
    Sentiment,
    SessionData,
    Speed,
    StepStatus,
    SynthesizedInsight,
    Task,
    TaskPerformance,
    TaskPhase,
    TaskResult,
    ThinkingContext,
    ThinkingPattern,
    UserPreferences,
    WorkItem,
    WorkStatus,
)
from .detector import DEFAULT_PATTERNS, ScenarioDetector, ScenarioPattern
from .executor import TaskExecutor
from .orchestrator import Orchestrator
from .providers import (
    AgentAnalysisProvider,
    AnalysisProvider,
    KeywordAnalysisProvider,
    ProviderRegistry,
)
from .registry import CapabilityRegistry
from .selector import CapabilitySelector, SelectionDecision
from .status import StatusBroadcaster, StatusSubscription
from .synthesizer import ResultSynthesizer
from .tracker import PerformanceTracker

__all__ = [
    # Orchestrator
    "Orchestrator",
    "TaskExecutor",
    # Detection
    "DEFAULT_PATTERNS",
    "ScenarioDetector",
    "ScenarioPattern",
    "ScenarioDetection",
    # Capabilities and selection
    "DEFAULT_CAPABILITIES",
    "SCENARIO_REQUIREMENTS",
    "Capability",
    "CapabilityRegistry",
    "CapabilitySelector",
    "Cost",
    "Quality",
    "SelectionDecision",
    "SelectionStrategy",
    "Speed",
    # Providers
    "AgentAnalysisProvider",
    "AnalysisProvider",
    "KeywordAnalysisProvider",
    "ProviderRegistry",
    # Synthesis and tracking
    "PerformanceTracker",
    "ResultSynthesizer",
    # Status
    "StatusBroadcaster",
    "StatusSubscription",
    # Models
    "AnalysisResult",
    "DeadEnd",
    "OrchestrationResult",
    "PerformanceMetric",
    "Priority",
    "ProcessingStep",
    "ProviderStats",
    "QuickAnalysis",
    "Scenario",
    "Sentiment",
    "SessionData",
    "StepStatus",
    "SynthesizedInsight",
    "Task",
    "TaskPerformance",
    "TaskPhase",
    "TaskResult",
    "ThinkingContext",
    "ThinkingPattern",
    "UserPreferences",
    "WorkItem",
    "WorkStatus",
]
