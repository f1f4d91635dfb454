"""Provider selection.

Chooses which capability rows serve a scenario under the caller's
preferences. Candidates are filtered by hard constraints first and scored by
the chosen strategy second; an empty candidate set falls back to the
registry's default capability.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from datetime import datetime

from pydantic import BaseModel, Field

from ..core.logger import get_logger
from ..exceptions import UnknownStrategyError
from .base import (
    Capability,
    Cost,
    Quality,
    Scenario,
    SelectionStrategy,
    Speed,
    ThinkingContext,
    UserPreferences,
)
from .registry import CapabilityRegistry

logger = get_logger("orchestration.selector")

QUALITY_WEIGHTS = {Quality.BASIC: 0.3, Quality.GOOD: 0.6, Quality.EXCELLENT: 1.0}
SPEED_WEIGHTS = {Speed.SLOW: 0.3, Speed.MEDIUM: 0.6, Speed.FAST: 1.0}
COST_WEIGHTS = {Cost.HIGH: 0.3, Cost.MEDIUM: 0.6, Cost.LOW: 1.0}

# Scenarios that need careful reasoning regardless of the clock
QUALITY_SCENARIOS = frozenset(
    {Scenario.DEEP_INSIGHT, Scenario.PHILOSOPHICAL, Scenario.COMPLEX_REASONING}
)
# Scenarios where latency matters more than depth
SPEED_SCENARIOS = frozenset(
    {Scenario.LIVE_ANALYSIS, Scenario.QUICK_CLASSIFICATION, Scenario.AUTO_TAGGING}
)
# Scenarios worth corroborating across several providers
ENSEMBLE_SCENARIOS = frozenset(
    {
        Scenario.DEEP_INSIGHT,
        Scenario.PHILOSOPHICAL,
        Scenario.COMPLEX_REASONING,
        Scenario.STRATEGIC_PLANNING,
        Scenario.CREATIVE_INSPIRATION,
        Scenario.KNOWLEDGE_LINKING,
    }
)
MAX_ENSEMBLE_SIZE = 3

QUICK_PROVIDER_MAP: dict[Scenario, str] = {
    Scenario.LIVE_ANALYSIS: "gemini",
    Scenario.QUICK_CLASSIFICATION: "deepseek",
    Scenario.CONTENT_SUMMARIZATION: "moonshot",
    Scenario.SEARCH_OPTIMIZATION: "gemini",
    Scenario.AUTO_TAGGING: "deepseek",
    Scenario.SENTIMENT_ANALYSIS: "deepseek",
}

DEFAULT_APPROVED_PRIVATE = ("zhipu", "qwen", "wenxin", "doubao", "deepseek", "moonshot", "local")


def quality_score(capability: Capability) -> float:
    return QUALITY_WEIGHTS[capability.quality] * capability.reliability


def speed_score(capability: Capability) -> float:
    return SPEED_WEIGHTS[capability.speed] * capability.reliability


def cost_effectiveness_score(capability: Capability) -> float:
    """Average of cost efficiency and quality, weighted by reliability."""
    return (
        (COST_WEIGHTS[capability.cost] + QUALITY_WEIGHTS[capability.quality])
        / 2
        * capability.reliability
    )


def balanced_weights(preferences: UserPreferences) -> tuple[float, float, float]:
    """Return (quality, speed, cost) weights for the balanced score."""
    quality_w, speed_w, cost_w = 0.4, 0.3, 0.3

    if preferences.speed_vs_quality == "speed":
        speed_w, quality_w = 0.5, 0.3
    elif preferences.speed_vs_quality == "quality":
        quality_w, speed_w = 0.6, 0.2

    if preferences.cost_sensitivity == "high":
        cost_w = 0.5
        quality_w *= 0.7
        speed_w *= 0.7

    return quality_w, speed_w, cost_w


def balanced_score(capability: Capability, preferences: UserPreferences) -> float:
    quality_w, speed_w, cost_w = balanced_weights(preferences)
    return (
        quality_score(capability) * quality_w
        + speed_score(capability) * speed_w
        + cost_effectiveness_score(capability) * cost_w
    )


def adaptive_strategy(scenario: Scenario, context: ThinkingContext) -> SelectionStrategy:
    """Pick a concrete strategy from the scenario class and the hour of day."""
    if scenario in QUALITY_SCENARIOS:
        return SelectionStrategy.QUALITY_FIRST
    if scenario in SPEED_SCENARIOS:
        return SelectionStrategy.SPEED_FIRST

    hour = context.hour
    if 9 <= hour <= 18:
        return SelectionStrategy.SPEED_FIRST
    if hour >= 22 or hour <= 6:
        return SelectionStrategy.QUALITY_FIRST
    return SelectionStrategy.BALANCED


class SelectionDecision(BaseModel):
    """Record of one provider selection."""

    scenario: Scenario
    strategy: SelectionStrategy = Field(description="Strategy requested or derived")
    applied_strategy: SelectionStrategy = Field(description="Concrete strategy that ranked")
    capabilities: list[Capability] = Field(default_factory=list)
    candidate_count: int = Field(default=0, description="Candidates left after filtering")
    fallback: bool = Field(default=False, description="True when the default row was used")
    timestamp: datetime = Field(default_factory=datetime.now)

    @property
    def provider_ids(self) -> list[str]:
        return [cap.provider_id for cap in self.capabilities]


class CapabilitySelector:
    """Selects providers for a scenario from a capability registry.

    Example:
        ```python
        selector = CapabilitySelector(CapabilityRegistry())
        caps = selector.select_optimal_providers(Scenario.DEEP_INSIGHT, ThinkingContext())
        ```
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        approved_private_providers: list[str] | None = None,
        default_strategy: SelectionStrategy | str | None = None,
        max_history_size: int = 500,
    ) -> None:
        """Initialize the selector.

        Args:
            registry: Capability registry to select from
            approved_private_providers: Providers allowed under high privacy sensitivity
            default_strategy: Strategy used when the caller does not name one
            max_history_size: Number of selection decisions kept
        """
        self.registry = registry
        self.approved_private_providers = list(
            approved_private_providers
            if approved_private_providers is not None
            else DEFAULT_APPROVED_PRIVATE
        )
        self.default_strategy = (
            self._coerce_strategy(default_strategy) if default_strategy else None
        )
        self._history: list[SelectionDecision] = []
        self._max_history_size = max_history_size
        self._history_lock = threading.Lock()
        self._rankers: dict[SelectionStrategy, Callable[[Capability, UserPreferences], float]] = {
            SelectionStrategy.QUALITY_FIRST: lambda cap, _: quality_score(cap),
            SelectionStrategy.SPEED_FIRST: lambda cap, _: speed_score(cap),
            SelectionStrategy.COST_EFFECTIVE: lambda cap, _: cost_effectiveness_score(cap),
            SelectionStrategy.BALANCED: balanced_score,
        }

    def select_optimal_providers(
        self,
        scenario: Scenario,
        context: ThinkingContext,
        strategy: SelectionStrategy | str | None = None,
    ) -> list[Capability]:
        """Return the ordered capabilities to use for a scenario.

        Never returns an empty list.
        """
        return self.select(scenario, context, strategy).capabilities

    def select(
        self,
        scenario: Scenario,
        context: ThinkingContext,
        strategy: SelectionStrategy | str | None = None,
    ) -> SelectionDecision:
        """Select providers and return the full decision.

        Args:
            scenario: Scenario to serve
            context: Thinking context carrying preferences and timestamp
            strategy: Explicit strategy; derived from preferences when None

        Returns:
            SelectionDecision with at least one capability

        Raises:
            UnknownStrategyError: If an explicit strategy name is not recognised
        """
        requested = (
            self._coerce_strategy(strategy) if strategy is not None else self.resolve_strategy(context)
        )
        candidates = self.filter_candidates(scenario, context)

        if not candidates:
            default = self.registry.default_capability()
            logger.info(
                "No eligible provider for %s, falling back to default %s",
                scenario.value,
                default.provider_id,
            )
            decision = SelectionDecision(
                scenario=scenario,
                strategy=requested,
                applied_strategy=requested,
                capabilities=[default],
                candidate_count=0,
                fallback=True,
            )
            self._record(decision)
            return decision

        applied, chosen = self._apply_strategy(requested, scenario, candidates, context)
        decision = SelectionDecision(
            scenario=scenario,
            strategy=requested,
            applied_strategy=applied,
            capabilities=chosen,
            candidate_count=len(candidates),
        )
        logger.debug(
            "Selected %s for %s using %s",
            decision.provider_ids,
            scenario.value,
            applied.value,
        )
        self._record(decision)
        return decision

    def resolve_strategy(self, context: ThinkingContext) -> SelectionStrategy:
        """Derive a strategy from configuration and user preferences."""
        if self.default_strategy is not None:
            return self.default_strategy

        preferences = context.preferences
        if preferences.speed_vs_quality == "speed":
            return SelectionStrategy.SPEED_FIRST
        if preferences.speed_vs_quality == "quality":
            return SelectionStrategy.QUALITY_FIRST
        if preferences.cost_sensitivity == "high":
            return SelectionStrategy.COST_EFFECTIVE
        return SelectionStrategy.ADAPTIVE

    def filter_candidates(self, scenario: Scenario, context: ThinkingContext) -> list[Capability]:
        """Restrict the registry to rows eligible under hard constraints."""
        candidates = self.registry.for_scenario(scenario)
        preferences = context.preferences

        if preferences.cost_sensitivity == "high":
            candidates = [cap for cap in candidates if cap.cost != Cost.HIGH]

        if preferences.privacy_sensitivity == "high":
            approved = set(self.approved_private_providers)
            candidates = [cap for cap in candidates if cap.provider_id in approved]

        return candidates

    def select_quick(self, scenario: Scenario) -> str:
        """Static scenario to provider mapping for latency-sensitive callers."""
        return QUICK_PROVIDER_MAP.get(scenario, self.registry.default_provider)

    def select_batch(
        self, scenarios: Mapping[str, Scenario], context: ThinkingContext
    ) -> dict[str, list[Capability]]:
        """Select providers for several items sharing one context."""
        return {
            item_id: self.select_optimal_providers(scenario, context)
            for item_id, scenario in scenarios.items()
        }

    def get_selection_history(self, limit: int = 100) -> list[SelectionDecision]:
        with self._history_lock:
            return list(self._history[-limit:])

    def _apply_strategy(
        self,
        strategy: SelectionStrategy,
        scenario: Scenario,
        candidates: list[Capability],
        context: ThinkingContext,
    ) -> tuple[SelectionStrategy, list[Capability]]:
        if strategy == SelectionStrategy.ADAPTIVE:
            strategy = adaptive_strategy(scenario, context)

        if strategy == SelectionStrategy.ENSEMBLE:
            ranked = self._rank(SelectionStrategy.BALANCED, candidates, context.preferences)
            size = MAX_ENSEMBLE_SIZE if scenario in ENSEMBLE_SCENARIOS else 1
            return strategy, ranked[:size]

        ranked = self._rank(strategy, candidates, context.preferences)
        return strategy, ranked[:1]

    def _rank(
        self,
        strategy: SelectionStrategy,
        candidates: list[Capability],
        preferences: UserPreferences,
    ) -> list[Capability]:
        scorer = self._rankers[strategy]
        # sorted() is stable, so equal scores keep registry order
        return sorted(candidates, key=lambda cap: scorer(cap, preferences), reverse=True)

    def _record(self, decision: SelectionDecision) -> None:
        with self._history_lock:
            self._history.append(decision)
            if len(self._history) > self._max_history_size:
                self._history = self._history[-self._max_history_size :]

    @staticmethod
    def _coerce_strategy(strategy: SelectionStrategy | str) -> SelectionStrategy:
        if isinstance(strategy, SelectionStrategy):
            return strategy
        try:
            return SelectionStrategy(strategy)
        except ValueError as exc:
            raise UnknownStrategyError(str(strategy)) from exc
