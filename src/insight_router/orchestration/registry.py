"""Capability registry.

Holds the (scenario, provider) capability table. Every field except
reliability is configuration set at startup; reliability is adjusted by the
performance tracker through :meth:`CapabilityRegistry.update_reliability`.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable

from ..core.logger import get_logger
from .base import DEFAULT_CAPABILITIES, Capability, Cost, Quality, Scenario, Speed

logger = get_logger("orchestration.registry")

DEFAULT_PROVIDER = "openai"
MIN_RELIABILITY = 0.1
MAX_RELIABILITY = 1.0


class CapabilityRegistry:
    """Thread-safe table of provider capabilities.

    Rows are keyed by ``(scenario, provider_id)`` and keep their registration
    order, which the selector uses to break score ties. Reads hand out copies
    so callers can never mutate the shared table.
    """

    def __init__(
        self,
        capabilities: Iterable[Capability] | None = None,
        default_provider: str = DEFAULT_PROVIDER,
        smoothing_factor: float = 0.1,
        min_reliability: float = MIN_RELIABILITY,
        max_reliability: float = MAX_RELIABILITY,
    ) -> None:
        """Initialize the registry.

        Args:
            capabilities: Initial rows; defaults to DEFAULT_CAPABILITIES
            default_provider: Provider used when no row is eligible
            smoothing_factor: Weight of the newest observation in reliability updates
            min_reliability: Lower clamp for reliability
            max_reliability: Upper clamp for reliability
        """
        self._lock = threading.RLock()
        self._rows: dict[tuple[Scenario, str], Capability] = {}
        self.default_provider = default_provider
        self.smoothing_factor = smoothing_factor
        self.min_reliability = min_reliability
        self.max_reliability = max_reliability

        source = DEFAULT_CAPABILITIES if capabilities is None else capabilities
        for capability in source:
            self.register(capability)

    def register(self, capability: Capability) -> None:
        """Add a capability row, replacing any row with the same key."""
        with self._lock:
            replaced = capability.key in self._rows
            self._rows[capability.key] = capability.model_copy()
        logger.debug(
            "%s capability %s/%s",
            "Replaced" if replaced else "Registered",
            capability.scenario.value,
            capability.provider_id,
        )

    def remove(self, scenario: Scenario, provider_id: str) -> bool:
        """Remove a row. Returns False when it did not exist."""
        with self._lock:
            return self._rows.pop((scenario, provider_id), None) is not None

    def get(self, scenario: Scenario, provider_id: str) -> Capability | None:
        with self._lock:
            row = self._rows.get((scenario, provider_id))
            return row.model_copy() if row else None

    def for_scenario(self, scenario: Scenario) -> list[Capability]:
        """All rows serving a scenario, in registration order."""
        with self._lock:
            return [row.model_copy() for row in self._rows.values() if row.scenario == scenario]

    def for_provider(self, provider_id: str) -> list[Capability]:
        with self._lock:
            return [
                row.model_copy() for row in self._rows.values() if row.provider_id == provider_id
            ]

    def all(self) -> list[Capability]:
        with self._lock:
            return [row.model_copy() for row in self._rows.values()]

    def providers(self) -> list[str]:
        """Distinct provider ids in registration order."""
        with self._lock:
            return list(dict.fromkeys(row.provider_id for row in self._rows.values()))

    def update_reliability(
        self, provider_id: str, scenario: Scenario, observed_success_rate: float
    ) -> float | None:
        """Blend an observed success rate into a row's reliability.

        Applies ``new = (1 - a) * old + a * observed`` and clamps the outcome
        to the configured bounds.

        Args:
            provider_id: Provider of the row
            scenario: Scenario of the row
            observed_success_rate: Observed success in [0, 1]

        Returns:
            The new reliability, or None when no such row exists
        """
        with self._lock:
            row = self._rows.get((scenario, provider_id))
            if row is None:
                return None
            alpha = self.smoothing_factor
            blended = (1 - alpha) * row.reliability + alpha * observed_success_rate
            new_value = min(max(blended, self.min_reliability), self.max_reliability)
            self._rows[row.key] = row.model_copy(update={"reliability": new_value})

        logger.debug(
            "Reliability for %s/%s: %.3f -> %.3f",
            provider_id,
            scenario.value,
            row.reliability,
            new_value,
        )
        return new_value

    def default_capability(self) -> Capability:
        """The single row used when filtering leaves nothing.

        Prefers the default provider's general row, then any of its rows, and
        finally synthesizes a general row for it.
        """
        with self._lock:
            general = self._rows.get((Scenario.GENERAL_THINKING, self.default_provider))
            if general is not None:
                return general.model_copy()
            for row in self._rows.values():
                if row.provider_id == self.default_provider:
                    return row.model_copy()
        return Capability(
            scenario=Scenario.GENERAL_THINKING,
            provider_id=self.default_provider,
            speed=Speed.MEDIUM,
            quality=Quality.GOOD,
            cost=Cost.MEDIUM,
            reliability=0.8,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._rows
