"""Task execution.

Runs a task's selected providers one after another against the task's
status record. Every provider call is bounded by a timeout and isolated:
a failing provider marks its own step failed and execution moves on.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence

from ..core.logger import get_logger
from ..exceptions import MalformedResponseError, ProviderTimeoutError
from .base import AnalysisResult, Capability, StepStatus, Task, TaskResult, WorkStatus
from .providers import ProviderRegistry
from .status import StatusBroadcaster

logger = get_logger("orchestration.executor")

CANCELLED_ERROR = "cancelled"


class TaskExecutor:
    """Executes provider steps sequentially in selection order."""

    def __init__(
        self,
        providers: ProviderRegistry,
        timeout: float = 30.0,
        broadcaster: StatusBroadcaster | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            providers: Provider implementations keyed by provider id
            timeout: Upper bound in seconds for a single provider call
            broadcaster: Optional status stream to publish step changes to
        """
        self.providers = providers
        self.timeout = timeout
        self.broadcaster = broadcaster

    async def execute(
        self,
        task: Task,
        capabilities: Sequence[Capability],
        status: WorkStatus,
        cancel_event: asyncio.Event | None = None,
    ) -> list[TaskResult]:
        """Call every selected provider and collect their results.

        ``status.steps`` must hold one step per capability, in the same order.
        Provider steps still pending when ``cancel_event`` is set are marked
        failed without being attempted and produce no result. Steps without a
        provider, such as synthesis, are left to the caller.

        Args:
            task: Task being executed
            capabilities: Selected capabilities, in selection order
            status: Status record whose steps are updated in place
            cancel_event: Set to stop before the next provider call

        Returns:
            One TaskResult per attempted provider, in selection order
        """
        recent_context = [item.content for item in task.context.recent_items]
        results: list[TaskResult] = []

        for index, capability in enumerate(capabilities):
            step = status.steps[index]

            if cancel_event is not None and cancel_event.is_set():
                self._skip_remaining(status, index)
                logger.info("Task %s cancelled before %s", task.id, capability.provider_id)
                break

            status.current_step = index
            step.mark_running()
            self._publish(status)

            result = await self._run_provider(task, capability, recent_context)
            if result.ok:
                step.mark_completed(result.result)
            else:
                step.mark_failed(result.error or "unknown error")
            self._publish(status)
            results.append(result)

        return results

    async def _run_provider(
        self, task: Task, capability: Capability, recent_context: list[str]
    ) -> TaskResult:
        provider_id = capability.provider_id
        start_time = time.perf_counter()

        try:
            provider = self.providers.get(provider_id)
            analysis = await asyncio.wait_for(
                provider.analyze(task.content, recent_context), timeout=self.timeout
            )
            if not isinstance(analysis, AnalysisResult):
                raise MalformedResponseError(provider_id, analysis)
        except asyncio.TimeoutError:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            error = ProviderTimeoutError(provider_id, self.timeout)
            logger.warning("Task %s: %s", task.id, error)
            return TaskResult(
                provider_id=provider_id,
                scenario=task.scenario,
                response_time_ms=elapsed_ms,
                error=str(error),
            )
        except Exception as exc:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.warning("Task %s: provider %s failed: %s", task.id, provider_id, exc)
            return TaskResult(
                provider_id=provider_id,
                scenario=task.scenario,
                response_time_ms=elapsed_ms,
                error=str(exc) or type(exc).__name__,
            )

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug("Task %s: %s answered in %.1fms", task.id, provider_id, elapsed_ms)
        return TaskResult(
            provider_id=provider_id,
            scenario=task.scenario,
            result=analysis,
            confidence=analysis.thinking_pattern.confidence,
            response_time_ms=elapsed_ms,
        )

    def _skip_remaining(self, status: WorkStatus, start: int) -> None:
        for step in status.steps[start:]:
            if step.status == StepStatus.PENDING and step.provider_id is not None:
                step.mark_failed(CANCELLED_ERROR)
        self._publish(status)

    def _publish(self, status: WorkStatus) -> None:
        if self.broadcaster is not None:
            self.broadcaster.publish(status)
