"""Tests for ResultSynthesizer."""

from __future__ import annotations

import pytest

from insight_router.orchestration import (
    AnalysisResult,
    DeadEnd,
    ResultSynthesizer,
    Scenario,
    TaskResult,
    ThinkingPattern,
)
from insight_router.orchestration.synthesizer import (
    DEGRADED_ADVICE,
    DEGRADED_MESSAGE,
    EMPTY_INSIGHT_MESSAGE,
)


def ok_result(provider_id: str, confidence: float, **fields) -> TaskResult:
    return TaskResult(
        provider_id=provider_id,
        scenario=Scenario.DEEP_INSIGHT,
        result=AnalysisResult(
            thinking_pattern=ThinkingPattern(type="reflective", confidence=confidence), **fields
        ),
        confidence=confidence,
    )


def failed_result(provider_id: str) -> TaskResult:
    return TaskResult(provider_id=provider_id, scenario=Scenario.DEEP_INSIGHT, error="boom")


@pytest.fixture
def synthesizer():
    return ResultSynthesizer()


# ==============================================================================
# Degraded Tests
# ==============================================================================


class TestDegraded:
    """Tests for synthesis without usable results."""

    def test_no_results(self, synthesizer):
        """Test an empty list yields the degraded insight."""
        insight = synthesizer.synthesize([], Scenario.GENERAL_THINKING)

        assert insight.degraded is True
        assert insight.confidence == 0.0
        assert insight.sources == []
        assert insight.primary_insight == DEGRADED_MESSAGE
        assert insight.actionable_advice == DEGRADED_ADVICE

    def test_only_failures(self, synthesizer):
        """Test failures alone are not usable."""
        insight = synthesizer.synthesize(
            [failed_result("a"), failed_result("b")], Scenario.DEEP_INSIGHT
        )

        assert insight.degraded is True


# ==============================================================================
# Pass-through Tests
# ==============================================================================


class TestPassThrough:
    """Tests for a single usable result."""

    def test_single_result(self, synthesizer):
        """Test a single result is passed through unchanged."""
        result = ok_result(
            "openai",
            0.85,
            insights=["first", "second", "third", "fourth", "fifth"],
            advice=["a1", "a2", "a3", "a4"],
            themes=["t1"],
        )

        insight = synthesizer.synthesize([failed_result("claude"), result], Scenario.DEEP_INSIGHT)

        assert insight.degraded is False
        assert insight.primary_insight == "first"
        assert insight.supporting_insights == ["second", "third", "fourth", "fifth"]
        assert insight.confidence == 0.85
        assert insight.sources == ["openai"]
        assert insight.actionable_advice == ["a1", "a2", "a3", "a4"]
        assert insight.related_concepts == ["t1"]


# ==============================================================================
# Merge Tests
# ==============================================================================


class TestMerge:
    """Tests for merging several usable results."""

    def test_merge_dedupes_and_caps(self, synthesizer):
        """Test insights are de-duplicated and supporting ones are capped."""
        results = [
            ok_result("openai", 0.9, insights=["shared", "o1", "o2"], themes=["x", "y", "z"]),
            ok_result("claude", 0.7, insights=["shared", "c1", "c2"], themes=["y", "u", "v", "w"]),
        ]

        insight = synthesizer.synthesize(results, Scenario.DEEP_INSIGHT)

        assert insight.primary_insight == "shared"
        assert insight.supporting_insights == ["o1", "o2", "c1"]
        assert insight.confidence == pytest.approx(0.8)
        assert insight.sources == ["openai", "claude"]
        assert insight.related_concepts == ["x", "y", "z", "u", "v"]

    def test_merge_advice_with_dead_end_warning(self, synthesizer):
        """Test dead-end warnings join the advice, capped at three."""
        results = [
            ok_result(
                "openai",
                0.6,
                insights=["i"],
                advice=["a1"],
                dead_end=DeadEnd(is_dead_end=True, warning="going in circles"),
            ),
            ok_result("claude", 0.6, insights=["j"], advice=["a1", "a2", "a3"]),
        ]

        insight = synthesizer.synthesize(results, Scenario.DEEP_INSIGHT)

        assert insight.actionable_advice == ["a1", "going in circles", "a2"]

    def test_results_without_insights(self, synthesizer):
        """Test usable results without insights still get a primary insight."""
        single = synthesizer.synthesize([ok_result("openai", 0.7)], Scenario.DEEP_INSIGHT)
        merged = synthesizer.synthesize(
            [ok_result("openai", 0.7), ok_result("claude", 0.5)], Scenario.DEEP_INSIGHT
        )

        assert single.primary_insight == EMPTY_INSIGHT_MESSAGE
        assert single.supporting_insights == []
        assert merged.primary_insight == EMPTY_INSIGHT_MESSAGE
        assert merged.degraded is False

    def test_merge_ignores_failures(self, synthesizer):
        """Test failed results do not contribute sources or confidence."""
        results = [
            ok_result("openai", 0.9, insights=["a"]),
            failed_result("gemini"),
            ok_result("claude", 0.5, insights=["b"]),
        ]

        insight = synthesizer.synthesize(results, Scenario.DEEP_INSIGHT)

        assert insight.sources == ["openai", "claude"]
        assert insight.confidence == pytest.approx(0.7)
