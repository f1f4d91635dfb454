"""Performance tracking.

Keeps a bounded log of provider outcomes and feeds each one back into the
capability registry's reliability scores.
"""

from __future__ import annotations

import threading
from collections import deque

from ..core.logger import get_logger
from .base import PerformanceMetric, ProviderStats, Scenario
from .registry import CapabilityRegistry

logger = get_logger("orchestration.tracker")


class PerformanceTracker:
    """Append-only metric log with reliability feedback.

    The log holds at most ``max_entries`` metrics; the oldest are evicted
    first. Appends and reliability updates happen under one lock so that
    concurrent tasks never interleave them.
    """

    def __init__(self, registry: CapabilityRegistry, max_entries: int = 1000) -> None:
        """Initialize the tracker.

        Args:
            registry: Registry whose reliability scores are updated
            max_entries: Capacity of the metric log
        """
        self.registry = registry
        self.max_entries = max_entries
        self._log: deque[PerformanceMetric] = deque(maxlen=max_entries)
        self._lock = threading.RLock()

    def record_outcome(self, metric: PerformanceMetric) -> float | None:
        """Store a metric and update the matching capability's reliability.

        Args:
            metric: Observed outcome

        Returns:
            The updated reliability, or None when the provider has no row for
            the scenario
        """
        with self._lock:
            self._log.append(metric)
            reliability = self.registry.update_reliability(
                metric.provider_id, metric.scenario, 1.0 if metric.success else 0.0
            )

        if not metric.success:
            logger.info(
                "Recorded failure for %s/%s (reliability now %s)",
                metric.provider_id,
                metric.scenario.value,
                f"{reliability:.3f}" if reliability is not None else "n/a",
            )
        return reliability

    def stats(self, provider_id: str, scenario: Scenario | None = None) -> ProviderStats:
        """Aggregate the logged metrics of a provider.

        Args:
            provider_id: Provider to summarize
            scenario: Restrict to one scenario when given

        Returns:
            ProviderStats, all zeros when nothing was recorded
        """
        with self._lock:
            matching = [
                metric
                for metric in self._log
                if metric.provider_id == provider_id
                and (scenario is None or metric.scenario == scenario)
            ]

        if not matching:
            return ProviderStats()

        count = len(matching)
        satisfactions = [m.satisfaction for m in matching if m.satisfaction is not None]
        return ProviderStats(
            avg_response_time_ms=sum(m.response_time_ms for m in matching) / count,
            success_rate=sum(1 for m in matching if m.success) / count,
            avg_satisfaction=sum(satisfactions) / len(satisfactions) if satisfactions else 0.0,
            usage_count=count,
        )

    def history(self, limit: int | None = None) -> list[PerformanceMetric]:
        """Return logged metrics, oldest first."""
        with self._lock:
            entries = list(self._log)
        if limit is not None:
            return entries[-limit:] if limit > 0 else []
        return entries

    def clear(self) -> None:
        with self._lock:
            self._log.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._log)
