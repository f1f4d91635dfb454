"""Tests for CapabilityRegistry.

Tests cover:
- Registration and replacement of capability rows
- Copy-on-read semantics
- Reliability smoothing and clamping
- Default capability fallback
"""

from __future__ import annotations

import threading

import pytest

from insight_router.orchestration import (
    DEFAULT_CAPABILITIES,
    Capability,
    CapabilityRegistry,
    Cost,
    Quality,
    Scenario,
    Speed,
)


def make_capability(
    provider_id: str = "alpha",
    scenario: Scenario = Scenario.DEEP_INSIGHT,
    reliability: float = 0.8,
) -> Capability:
    return Capability(
        scenario=scenario,
        provider_id=provider_id,
        speed=Speed.MEDIUM,
        quality=Quality.GOOD,
        cost=Cost.MEDIUM,
        reliability=reliability,
    )


# ==============================================================================
# Registration Tests
# ==============================================================================


class TestRegistration:
    """Tests for registering and reading rows."""

    def test_defaults_seeded(self):
        """Test the registry starts with the default table."""
        registry = CapabilityRegistry()

        assert len(registry) == len(DEFAULT_CAPABILITIES)
        assert "openai" in registry.providers()

    def test_empty_registry(self):
        """Test an explicit empty list yields an empty registry."""
        assert len(CapabilityRegistry([])) == 0

    def test_register_replaces_same_key(self):
        """Test registering the same scenario/provider replaces the row."""
        registry = CapabilityRegistry([make_capability(reliability=0.5)])

        registry.register(make_capability(reliability=0.9))

        assert len(registry) == 1
        assert registry.get(Scenario.DEEP_INSIGHT, "alpha").reliability == 0.9

    def test_for_scenario_keeps_registration_order(self):
        """Test rows come back in the order they were registered."""
        registry = CapabilityRegistry(
            [make_capability("b"), make_capability("a"), make_capability("c")]
        )

        ids = [cap.provider_id for cap in registry.for_scenario(Scenario.DEEP_INSIGHT)]

        assert ids == ["b", "a", "c"]

    def test_reads_are_copies(self):
        """Test mutating a returned row does not change the registry."""
        registry = CapabilityRegistry([make_capability(reliability=0.5)])

        row = registry.for_scenario(Scenario.DEEP_INSIGHT)[0]
        row.reliability = 0.99

        assert registry.get(Scenario.DEEP_INSIGHT, "alpha").reliability == 0.5

    def test_remove(self):
        """Test removing rows."""
        registry = CapabilityRegistry([make_capability()])

        assert registry.remove(Scenario.DEEP_INSIGHT, "alpha") is True
        assert registry.remove(Scenario.DEEP_INSIGHT, "alpha") is False
        assert len(registry) == 0

    def test_for_provider(self):
        """Test listing rows of one provider."""
        registry = CapabilityRegistry()

        scenarios = {cap.scenario for cap in registry.for_provider("deepseek")}

        assert Scenario.QUICK_CLASSIFICATION in scenarios
        assert Scenario.AUTO_TAGGING in scenarios


# ==============================================================================
# Reliability Tests
# ==============================================================================


class TestReliability:
    """Tests for reliability updates."""

    def test_smoothing(self):
        """Test new = 0.9 * old + 0.1 * observed."""
        registry = CapabilityRegistry([make_capability(reliability=0.8)])

        new_value = registry.update_reliability("alpha", Scenario.DEEP_INSIGHT, 0.0)

        assert new_value == pytest.approx(0.72)
        assert registry.get(Scenario.DEEP_INSIGHT, "alpha").reliability == pytest.approx(0.72)

    def test_unknown_row(self):
        """Test updating a missing row returns None."""
        registry = CapabilityRegistry([])

        assert registry.update_reliability("ghost", Scenario.DEEP_INSIGHT, 1.0) is None

    def test_lower_bound(self):
        """Test repeated failures never push reliability below 0.1."""
        registry = CapabilityRegistry([make_capability(reliability=0.2)])

        for _ in range(200):
            registry.update_reliability("alpha", Scenario.DEEP_INSIGHT, 0.0)

        assert registry.get(Scenario.DEEP_INSIGHT, "alpha").reliability == pytest.approx(0.1)

    def test_upper_bound(self):
        """Test repeated successes never exceed 1.0."""
        registry = CapabilityRegistry([make_capability(reliability=0.95)])

        for _ in range(200):
            registry.update_reliability("alpha", Scenario.DEEP_INSIGHT, 1.0)

        assert registry.get(Scenario.DEEP_INSIGHT, "alpha").reliability <= 1.0

    def test_concurrent_updates_stay_bounded(self):
        """Test updates from many threads keep every row within bounds."""
        registry = CapabilityRegistry([make_capability(reliability=0.5)])

        def hammer(observed: float) -> None:
            for _ in range(100):
                registry.update_reliability("alpha", Scenario.DEEP_INSIGHT, observed)

        threads = [threading.Thread(target=hammer, args=(i % 2,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        reliability = registry.get(Scenario.DEEP_INSIGHT, "alpha").reliability
        assert 0.1 <= reliability <= 1.0


# ==============================================================================
# Default Capability Tests
# ==============================================================================


class TestDefaultCapability:
    """Tests for the fallback row."""

    def test_prefers_general_row(self):
        """Test the default provider's general row is used."""
        registry = CapabilityRegistry()

        default = registry.default_capability()

        assert default.provider_id == "openai"
        assert default.scenario == Scenario.GENERAL_THINKING

    def test_any_row_of_default_provider(self):
        """Test a non-general row is used when there is no general row."""
        registry = CapabilityRegistry([make_capability("alpha")], default_provider="alpha")

        assert registry.default_capability().scenario == Scenario.DEEP_INSIGHT

    def test_synthesized_row(self):
        """Test a row is synthesized for an unknown default provider."""
        registry = CapabilityRegistry([], default_provider="local")

        default = registry.default_capability()

        assert default.provider_id == "local"
        assert default.scenario == Scenario.GENERAL_THINKING
