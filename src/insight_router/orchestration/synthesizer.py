"""Result synthesis.

Merges the results of every provider that answered into a single
:class:`SynthesizedInsight`.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from ..core.logger import get_logger
from .base import AnalysisResult, Scenario, SynthesizedInsight, TaskResult

logger = get_logger("orchestration.synthesizer")

MAX_SUPPORTING_INSIGHTS = 3
MAX_THEMES = 5
MAX_ADVICE = 3

DEGRADED_MESSAGE = "Analysis failed: no provider returned a usable result"
EMPTY_INSIGHT_MESSAGE = "Analysis completed"
DEGRADED_ADVICE = [
    "Check network connectivity",
    "Verify provider configuration and credentials",
    "Try again later or choose a different provider",
]


def _unique(values: Iterable[str]) -> list[str]:
    """De-duplicate while keeping first-seen order."""
    return list(dict.fromkeys(value for value in values if value))


class ResultSynthesizer:
    """Builds one insight out of several provider results."""

    def synthesize(self, results: Sequence[TaskResult], scenario: Scenario) -> SynthesizedInsight:
        """Merge provider results.

        Args:
            results: Results of every attempted provider
            scenario: Scenario the results were produced for

        Returns:
            Degraded insight when nothing is usable, the single result passed
            through when one is usable, and a merged insight otherwise
        """
        usable = [result for result in results if result.ok]

        if not usable:
            logger.warning(
                "No usable results for %s (%d attempted)", scenario.value, len(results)
            )
            return self.degraded()

        if len(usable) == 1:
            return self._pass_through(usable[0])

        return self._merge(usable)

    @staticmethod
    def degraded(message: str = DEGRADED_MESSAGE) -> SynthesizedInsight:
        return SynthesizedInsight(
            primary_insight=message,
            supporting_insights=[],
            confidence=0.0,
            sources=[],
            actionable_advice=list(DEGRADED_ADVICE),
            related_concepts=[],
            degraded=True,
        )

    @staticmethod
    def _pass_through(result: TaskResult) -> SynthesizedInsight:
        analysis = result.result or AnalysisResult()
        insights = list(analysis.insights)
        return SynthesizedInsight(
            primary_insight=insights[0] if insights else EMPTY_INSIGHT_MESSAGE,
            supporting_insights=insights[1:],
            confidence=result.confidence,
            sources=[result.provider_id],
            actionable_advice=list(analysis.advice),
            related_concepts=list(analysis.themes),
        )

    @staticmethod
    def _merge(results: Sequence[TaskResult]) -> SynthesizedInsight:
        insights: list[str] = []
        themes: list[str] = []
        advice: list[str] = []
        for result in results:
            analysis = result.result or AnalysisResult()
            insights.extend(analysis.insights)
            themes.extend(analysis.themes)
            advice.extend(analysis.advice)
            if analysis.dead_end.is_dead_end and analysis.dead_end.warning:
                advice.append(analysis.dead_end.warning)

        insights = _unique(insights)
        confidence = sum(result.confidence for result in results) / len(results)

        return SynthesizedInsight(
            primary_insight=insights[0] if insights else EMPTY_INSIGHT_MESSAGE,
            supporting_insights=insights[1 : 1 + MAX_SUPPORTING_INSIGHTS],
            confidence=confidence,
            sources=_unique(result.provider_id for result in results),
            actionable_advice=_unique(advice)[:MAX_ADVICE],
            related_concepts=_unique(themes)[:MAX_THEMES],
        )
