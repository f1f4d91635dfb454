"""Orchestrator composing detection, selection, execution and synthesis.

Every request goes through the same pipeline::

    created -> detecting -> selecting -> executing -> synthesizing -> completed | failed

Nothing in the pipeline raises to the caller: provider failures are isolated
per step, total failure yields a degraded insight, and unexpected errors are
turned into a well-formed error result.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections import Counter, deque
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..core.config import RouterConfig
from ..core.logger import get_logger, log_exception
from ..exceptions import ConfigurationError
from .base import (
    SCENARIO_REQUIREMENTS,
    Capability,
    OrchestrationResult,
    PerformanceMetric,
    Priority,
    ProcessingStep,
    ProviderStats,
    QuickAnalysis,
    Scenario,
    SelectionStrategy,
    SessionData,
    StepStatus,
    SynthesizedInsight,
    Task,
    TaskPerformance,
    TaskPhase,
    TaskResult,
    ThinkingContext,
    UserPreferences,
    WorkItem,
    WorkStatus,
)
from .detector import ScenarioDetector
from .executor import TaskExecutor
from .providers import AgentAnalysisProvider, AnalysisProvider, ProviderRegistry
from .registry import CapabilityRegistry
from .selector import CapabilitySelector
from .status import StatusBroadcaster, StatusSubscription
from .synthesizer import ResultSynthesizer
from .tracker import PerformanceTracker

logger = get_logger("orchestration.orchestrator")

SYNTHESIS_STEP = "synthesis"

BASE_TIME_MS = 2000
PER_PROVIDER_TIME_MS = 1500
TIME_MULTIPLIERS: dict[Scenario, float] = {
    Scenario.QUICK_CLASSIFICATION: 0.5,
    Scenario.LIVE_ANALYSIS: 0.6,
    Scenario.AUTO_TAGGING: 0.7,
    Scenario.CATEGORIZATION: 0.8,
    Scenario.SENTIMENT_ANALYSIS: 0.8,
    Scenario.SEARCH_OPTIMIZATION: 0.9,
    Scenario.CONTENT_SUMMARIZATION: 1.0,
    Scenario.KNOWLEDGE_LINKING: 1.2,
    Scenario.RELATIONSHIP_DETECTION: 1.2,
    Scenario.CREATIVE_INSPIRATION: 1.3,
    Scenario.FILE_PROCESSING: 1.5,
    Scenario.DEEP_INSIGHT: 1.8,
    Scenario.COMPLEX_REASONING: 2.0,
    Scenario.PHILOSOPHICAL: 2.2,
    Scenario.STRATEGIC_PLANNING: 2.5,
    Scenario.GENERAL_THINKING: 1.0,
}

# Rough cost per request, in USD
REQUEST_COSTS: dict[str, float] = {
    "openai": 0.02,
    "claude": 0.015,
    "gemini": 0.01,
    "deepseek": 0.005,
    "zhipu": 0.008,
    "moonshot": 0.01,
    "qwen": 0.006,
    "wenxin": 0.008,
    "doubao": 0.005,
    "local": 0.0,
}
DEFAULT_REQUEST_COST = 0.01

SLOW_TASK_MS = 10000
LOW_SUCCESS_RATE = 0.8
LOW_CONFIDENCE = 0.6
FAILING_RELIABILITY = 0.5
QUICK_FALLBACK_CONFIDENCE = 0.5


class Orchestrator:
    """Routes work items to analysis providers and merges their answers.

    Example:
        ```python
        orchestrator = Orchestrator(RouterConfig(), providers=[KeywordAnalysisProvider("openai")])
        result = await orchestrator.process_one(WorkItem(content="为什么计划总是执行不下去？"))
        print(result.synthesized.primary_insight)
        ```
    """

    def __init__(
        self,
        config: RouterConfig | None = None,
        providers: ProviderRegistry | Sequence[AnalysisProvider] | None = None,
        registry: CapabilityRegistry | None = None,
        detector: ScenarioDetector | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Router configuration; defaults are used when omitted
            providers: Provider implementations, as a registry or a list
            registry: Capability registry; built from configuration when omitted
            detector: Scenario detector; built from configuration when omitted

        Raises:
            ConfigurationError: If configured capabilities or providers are invalid
        """
        self.config = config or RouterConfig()
        settings = self.config.orchestrator

        if isinstance(providers, ProviderRegistry):
            self.providers = providers
        else:
            self.providers = ProviderRegistry(providers or [])
        self._register_configured_providers()

        self.registry = registry or CapabilityRegistry(
            default_provider=settings.default_provider,
            smoothing_factor=self.config.tracker.smoothing_factor,
            min_reliability=self.config.tracker.min_reliability,
            max_reliability=self.config.tracker.max_reliability,
        )
        self._register_configured_capabilities()

        self.detector = detector or ScenarioDetector(
            confidence_threshold=settings.confidence_threshold
        )
        self.selector = CapabilitySelector(
            self.registry,
            approved_private_providers=settings.approved_private_providers,
            default_strategy=settings.default_strategy,
        )
        self.broadcaster = StatusBroadcaster()
        self.executor = TaskExecutor(
            self.providers,
            timeout=settings.provider_timeout_seconds,
            broadcaster=self.broadcaster,
        )
        self.synthesizer = ResultSynthesizer()
        self.tracker = PerformanceTracker(self.registry, max_entries=self.config.tracker.max_entries)

        # Guards task bookkeeping, history, session and metrics across threads
        self._lock = threading.RLock()
        self._active: dict[str, WorkStatus] = {}
        self._cancel_events: dict[str, asyncio.Event] = {}
        self._recent_items: deque[WorkItem] = deque(maxlen=settings.history_window)
        self._results: deque[OrchestrationResult] = deque(maxlen=settings.result_history_size)
        self._session = SessionData()

        self._metrics = {
            "total_tasks": 0,
            "completed_tasks": 0,
            "degraded_tasks": 0,
            "failed_tasks": 0,
            "cancelled_tasks": 0,
            "total_time_ms": 0.0,
        }

        logger.info(
            "Orchestrator initialized (capabilities: %d, providers: %d, default: %s)",
            len(self.registry),
            len(self.providers),
            settings.default_provider,
        )

    @classmethod
    def from_config(
        cls,
        path: str | Path,
        providers: ProviderRegistry | Sequence[AnalysisProvider] | None = None,
    ) -> Orchestrator:
        """Build an orchestrator from a YAML or JSON configuration file."""
        config_path = Path(path)
        if config_path.suffix.lower() == ".json":
            config = RouterConfig.from_json(config_path)
        else:
            config = RouterConfig.from_yaml(config_path)
        return cls(config, providers=providers)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_provider(self, provider: AnalysisProvider, provider_id: str | None = None) -> None:
        """Bind a provider implementation to a provider id."""
        self.providers.register(provider, provider_id)

    def register_capability(self, capability: Capability) -> None:
        """Add or replace a capability row."""
        self.registry.register(capability)

    def _register_configured_providers(self) -> None:
        for entry in self.config.providers:
            try:
                provider = AgentAnalysisProvider(
                    entry.provider_id, entry.model, system_prompt=entry.system_prompt
                )
            except Exception as exc:
                raise ConfigurationError(
                    f"Cannot create provider {entry.provider_id} ({entry.model}): {exc}",
                    config_key="providers",
                ) from exc
            self.providers.register(provider)

    def _register_configured_capabilities(self) -> None:
        for entry in self.config.capabilities:
            try:
                capability = Capability(**entry.model_dump())
            except ValidationError as exc:
                raise ConfigurationError(
                    f"Invalid capability {entry.scenario}/{entry.provider_id}: {exc}",
                    config_key="capabilities",
                ) from exc
            self.registry.register(capability)

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    def default_preferences(self) -> UserPreferences:
        return UserPreferences(**self.config.preferences.model_dump())

    def build_context(
        self, item: WorkItem, preferences: UserPreferences | None = None
    ) -> ThinkingContext:
        """Build a fresh context from the orchestrator's recent items and session."""
        with self._lock:
            recent_items = list(self._recent_items)
            session = self._session.model_copy(deep=True)
        return ThinkingContext(
            current_item=item,
            recent_items=recent_items,
            preferences=preferences or self.default_preferences(),
            session=session,
        )

    def _context_for(self, item: WorkItem, context: ThinkingContext | None) -> ThinkingContext:
        if context is None:
            return self.build_context(item)
        return context.model_copy(update={"current_item": item})

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def process_one(
        self,
        item: WorkItem,
        context: ThinkingContext | None = None,
        priority: Priority = Priority.MEDIUM,
        strategy: SelectionStrategy | str | None = None,
        task_id: str | None = None,
    ) -> OrchestrationResult:
        """Run the full pipeline for one work item.

        Args:
            item: Work item to process
            context: Caller supplied context; built from process state when None
            priority: Task priority
            strategy: Explicit selection strategy
            task_id: Use this task id instead of generating one

        Returns:
            OrchestrationResult, an error result if the pipeline itself failed
        """
        start_time = time.perf_counter()
        task_context = self._context_for(item, context)
        task = Task(content=item.content, context=task_context, priority=priority)
        if task_id:
            task.id = task_id

        status = WorkStatus(task_id=task.id, scenario=Scenario.GENERAL_THINKING)
        cancel_event = asyncio.Event()
        with self._lock:
            self._active[task.id] = status
            self._cancel_events[task.id] = cancel_event
            self._metrics["total_tasks"] += 1
        self.broadcaster.publish(status)

        try:
            result = await self._run_pipeline(task, item, status, cancel_event, strategy, start_time)
        except Exception as exc:
            log_exception(logger, exc, f"Task {task.id} failed")
            status.phase = TaskPhase.FAILED
            self._count("failed_tasks")
            result = self._error_result(item, str(exc), task_id=task.id, start_time=start_time)
        finally:
            with self._lock:
                self._active.pop(task.id, None)
                self._cancel_events.pop(task.id, None)
            self.broadcaster.publish(status)

        self._remember(item, result)
        return result

    async def _run_pipeline(
        self,
        task: Task,
        item: WorkItem,
        status: WorkStatus,
        cancel_event: asyncio.Event,
        strategy: SelectionStrategy | str | None,
        start_time: float,
    ) -> OrchestrationResult:
        self._set_phase(status, TaskPhase.DETECTING)
        detection = self.detector.analyze(task.content, task.context)
        task.scenario = detection.scenario
        task.required_capabilities = list(SCENARIO_REQUIREMENTS.get(detection.scenario, []))
        status.scenario = detection.scenario
        status.confidence = detection.confidence

        self._set_phase(status, TaskPhase.SELECTING)
        decision = self.selector.select(task.scenario, task.context, strategy)
        capabilities = decision.capabilities
        status.selected_providers = decision.provider_ids
        status.steps = self._build_steps(capabilities)
        status.estimated_time_ms = self.estimate_processing_time(task.scenario, len(capabilities))

        logger.info(
            "Task %s: scenario=%s (%.2f) providers=%s",
            task.id,
            task.scenario.value,
            detection.confidence,
            decision.provider_ids,
        )

        self._set_phase(status, TaskPhase.EXECUTING)
        results = await self.executor.execute(task, capabilities, status, cancel_event)
        self._record_outcomes(results, capabilities)

        self._set_phase(status, TaskPhase.SYNTHESIZING)
        synthesis_step = self._synthesis_step(status)
        if synthesis_step is not None:
            synthesis_step.mark_running()
        synthesized = self.synthesizer.synthesize(results, task.scenario)
        if synthesis_step is not None:
            if synthesized.degraded:
                synthesis_step.mark_failed("no usable provider results")
            else:
                synthesis_step.mark_completed()

        cancelled = cancel_event.is_set()
        total_time_ms = (time.perf_counter() - start_time) * 1000
        performance = self._performance(results, total_time_ms)

        if cancelled:
            self._count("cancelled_tasks")
        if synthesized.degraded:
            self._count("degraded_tasks")
            status.phase = TaskPhase.FAILED
        else:
            self._count("completed_tasks")
            status.phase = TaskPhase.COMPLETED
        self._count("total_time_ms", total_time_ms)

        return OrchestrationResult(
            task_id=task.id,
            item_id=item.id,
            scenario=task.scenario,
            detection_confidence=detection.confidence,
            strategy=decision.applied_strategy,
            selected_providers=decision.provider_ids,
            results=results,
            synthesized=synthesized,
            performance=performance,
            recommendations=self._recommendations(results, performance, capabilities),
            cancelled=cancelled,
        )

    async def process_batch(
        self,
        items: Sequence[WorkItem],
        context: ThinkingContext | None = None,
        strategy: SelectionStrategy | str | None = None,
    ) -> dict[str, OrchestrationResult]:
        """Process several items concurrently.

        At most ``max_concurrent_items`` items run at once. A failure while
        processing one item never affects the others.

        Args:
            items: Work items to process
            context: Shared caller context; the current item is set per item
            strategy: Explicit selection strategy for every item

        Returns:
            Mapping of item id to result
        """
        semaphore = asyncio.Semaphore(self.config.orchestrator.max_concurrent_items)

        async def run(item: WorkItem) -> OrchestrationResult:
            async with semaphore:
                return await self.process_one(item, context, strategy=strategy)

        outcomes = await asyncio.gather(*(run(item) for item in items), return_exceptions=True)

        results: dict[str, OrchestrationResult] = {}
        for item, outcome in zip(items, outcomes):
            if isinstance(outcome, BaseException):
                logger.error("Batch item %s failed: %s", item.id, outcome)
                results[item.id] = self._error_result(item, str(outcome) or type(outcome).__name__)
            else:
                results[item.id] = outcome

        logger.info("Batch processed %d items", len(results))
        return results

    def quick_analysis(self, text: str) -> QuickAnalysis:
        """Estimate scenario, provider and confidence without calling a provider."""
        try:
            scenario = self.detector.detect_quick(text)
            provider_id = self.selector.select_quick(scenario)
            confidence = self.estimate_quick_confidence(text, scenario)
        except Exception as exc:
            logger.warning("Quick analysis failed: %s", exc)
            return QuickAnalysis(
                scenario=Scenario.GENERAL_THINKING,
                provider_id=self.registry.default_provider,
                confidence=QUICK_FALLBACK_CONFIDENCE,
            )
        return QuickAnalysis(scenario=scenario, provider_id=provider_id, confidence=confidence)

    def estimate_quick_confidence(self, text: str, scenario: Scenario) -> float:
        """Heuristic confidence from text length and pattern density."""
        confidence = 0.6
        if len(text) > 100:
            confidence += 0.1
        if len(text) > 200:
            confidence += 0.1
        if scenario == Scenario.QUICK_CLASSIFICATION and len(text) < 50:
            confidence += 0.2
        if scenario == Scenario.DEEP_INSIGHT and any(w in text for w in ("为什么", "如何", "怎样")):
            confidence += 0.2
        confidence += 0.1 * self.detector.pattern_density(text, scenario)
        return min(confidence, 1.0)

    @staticmethod
    def estimate_processing_time(scenario: Scenario, provider_count: int) -> float:
        """Expected processing time in milliseconds."""
        base = BASE_TIME_MS + PER_PROVIDER_TIME_MS * provider_count
        return base * TIME_MULTIPLIERS.get(scenario, 1.0)

    # ------------------------------------------------------------------
    # Task control
    # ------------------------------------------------------------------

    def cancel(self, task_id: str) -> bool:
        """Stop waiting on a task.

        Removes the task's bookkeeping and prevents providers that have not
        started yet from being called. A provider call already in flight is
        not interrupted; it runs until it answers or its timeout expires.

        Returns:
            True if the task was active
        """
        with self._lock:
            status = self._active.pop(task_id, None)
            event = self._cancel_events.pop(task_id, None)
        if status is None:
            return False

        if event is not None:
            event.set()
        status.cancelled = True
        self.broadcaster.publish(status)
        logger.info("Task %s cancelled", task_id)
        return True

    def get_status(self, task_id: str) -> WorkStatus | None:
        """Snapshot of an active task's progress, or None."""
        with self._lock:
            status = self._active.get(task_id)
            return status.model_copy(deep=True) if status else None

    def get_active_tasks(self) -> list[str]:
        with self._lock:
            return list(self._active)

    def subscribe(self, task_id: str | None = None) -> StatusSubscription:
        """Subscribe to status snapshots of every task, or of one task."""
        return self.broadcaster.subscribe(task_id)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def stats(self, provider_id: str, scenario: Scenario | None = None) -> ProviderStats:
        """Performance statistics of a provider."""
        return self.tracker.stats(provider_id, scenario)

    def get_stats(self) -> dict[str, Any]:
        """Get orchestrator statistics.

        Returns:
            Dictionary with orchestrator statistics
        """
        with self._lock:
            history = list(self._results)
            active_tasks = len(self._active)
            metrics = dict(self._metrics)
        total = len(history)

        scenario_distribution = Counter(result.scenario.value for result in history)
        provider_usage: Counter[str] = Counter()
        for result in history:
            provider_usage.update(r.provider_id for r in result.results)

        return {
            "total_processed": total,
            "average_processing_time_ms": (
                sum(r.performance.total_time_ms for r in history) / total if total else 0.0
            ),
            "success_rate": (
                sum(r.performance.success_rate for r in history) / total if total else 0.0
            ),
            "scenario_distribution": dict(scenario_distribution),
            "provider_usage": dict(provider_usage),
            "active_tasks": active_tasks,
            "capability_count": len(self.registry),
            "metric_log_size": len(self.tracker),
            **metrics,
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _count(self, key: str, amount: float = 1) -> None:
        with self._lock:
            self._metrics[key] += amount

    def _set_phase(self, status: WorkStatus, phase: TaskPhase) -> None:
        status.phase = phase
        self.broadcaster.publish(status)

    @staticmethod
    def _build_steps(capabilities: Sequence[Capability]) -> list[ProcessingStep]:
        steps = [
            ProcessingStep(
                name=f"{cap.provider_id}_analysis",
                description=f"Analyze with {cap.provider_id}",
                provider_id=cap.provider_id,
            )
            for cap in capabilities
        ]
        if len(capabilities) > 1:
            steps.append(
                ProcessingStep(name=SYNTHESIS_STEP, description="Synthesize provider results")
            )
        return steps

    @staticmethod
    def _synthesis_step(status: WorkStatus) -> ProcessingStep | None:
        for step in status.steps:
            if step.name == SYNTHESIS_STEP and step.provider_id is None:
                return step if step.status == StepStatus.PENDING else None
        return None

    @staticmethod
    def _row_scenarios(capabilities: Sequence[Capability]) -> dict[str, Scenario]:
        """Scenario of the selected row per provider; differs from the task on fallback."""
        return {cap.provider_id: cap.scenario for cap in capabilities}

    def _record_outcomes(
        self, results: Sequence[TaskResult], capabilities: Sequence[Capability]
    ) -> None:
        row_scenarios = self._row_scenarios(capabilities)
        for result in results:
            self.tracker.record_outcome(
                PerformanceMetric(
                    provider_id=result.provider_id,
                    scenario=row_scenarios.get(result.provider_id, result.scenario),
                    response_time_ms=result.response_time_ms,
                    success=result.ok,
                    satisfaction=result.confidence if result.ok else 0.0,
                )
            )

    @staticmethod
    def _performance(results: Sequence[TaskResult], total_time_ms: float) -> TaskPerformance:
        successful = [r for r in results if r.ok]
        success_rate = len(successful) / len(results) if results else 0.0
        average_confidence = (
            sum(r.confidence for r in successful) / len(successful) if successful else 0.0
        )
        cost = sum(REQUEST_COSTS.get(r.provider_id, DEFAULT_REQUEST_COST) for r in results)
        return TaskPerformance(
            total_time_ms=total_time_ms,
            average_confidence=average_confidence,
            success_rate=success_rate,
            cost_estimate=cost,
            satisfaction_prediction=min(average_confidence * success_rate * 1.2, 1.0),
        )

    def _recommendations(
        self,
        results: Sequence[TaskResult],
        performance: TaskPerformance,
        capabilities: Sequence[Capability],
    ) -> list[str]:
        recommendations: list[str] = []
        row_scenarios = self._row_scenarios(capabilities)

        if results and performance.success_rate < LOW_SUCCESS_RATE:
            recommendations.append(
                "Some providers failed; check network connectivity and provider configuration"
            )
        if performance.success_rate > 0 and performance.average_confidence < LOW_CONFIDENCE:
            recommendations.append(
                "Result confidence is low; consider a higher-quality provider or strategy"
            )
        if performance.total_time_ms > SLOW_TASK_MS:
            recommendations.append("Processing was slow; consider a faster provider")

        for result in results:
            if result.ok:
                continue
            recommendations.append(f"Provider {result.provider_id} failed: {result.error}")
            scenario = row_scenarios.get(result.provider_id, result.scenario)
            row = self.registry.get(scenario, result.provider_id)
            if row is not None and row.reliability < FAILING_RELIABILITY:
                recommendations.append(
                    f"Provider {result.provider_id} is failing repeatedly "
                    f"(reliability {row.reliability:.2f})"
                )

        return recommendations

    def _error_result(
        self,
        item: WorkItem,
        message: str,
        task_id: str | None = None,
        start_time: float | None = None,
    ) -> OrchestrationResult:
        total_time_ms = (time.perf_counter() - start_time) * 1000 if start_time else 0.0
        return OrchestrationResult(
            task_id=task_id or f"error_{item.id}",
            item_id=item.id,
            scenario=Scenario.GENERAL_THINKING,
            synthesized=SynthesizedInsight(
                primary_insight=f"Processing failed: {message}",
                actionable_advice=["Retry later", "Check the orchestrator logs for details"],
                degraded=True,
            ),
            performance=TaskPerformance(total_time_ms=total_time_ms),
            recommendations=[f"Processing failed: {message}"],
            error=message,
        )

    def _remember(self, item: WorkItem, result: OrchestrationResult) -> None:
        with self._lock:
            self._recent_items.append(item)
            self._results.append(result)
            self._session.item_count += 1
            counts = Counter(r.scenario for r in list(self._results))
            self._session.dominant_scenarios = [s for s, _ in counts.most_common(3)]
