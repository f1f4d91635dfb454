"""Scenario detection for incoming text.

The detector scores every known scenario against the text and the thinking
context, applies time-of-day and preference nudges, and picks the best
scenario. Low-confidence outcomes fall back to the general scenario so that
weak signals never trigger an expensive specialized pipeline.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

from ..core.logger import get_logger
from .base import Scenario, ScenarioDetection, ThinkingContext, WorkItem

logger = get_logger("orchestration.detector")

ContextCheck = Callable[[str, ThinkingContext], bool]

TEXT_MATCH_FACTOR = 0.4
CONTEXT_MATCH_FACTOR = 0.3
SEMANTIC_MATCH_FACTOR = 0.2
MARGIN_FACTOR = 0.3
DEFAULT_CONFIDENCE_THRESHOLD = 0.6

# Texts shorter than this carry too little signal to specialize on
MIN_SIGNAL_LENGTH = 4
LOW_SIGNAL_CONFIDENCE = 0.5

QUICK_MATCH_THRESHOLD = 0.8


@dataclass(frozen=True)
class ScenarioPattern:
    """Matchers and weight describing one scenario.

    Attributes:
        scenario: Scenario the pattern votes for
        text_patterns: Regexes searched in the text, each counted once
        context_checks: Predicates over (text, context)
        semantic_indicators: Lower-case keywords searched as substrings
        weight: Scalar applied to every matched signal
    """

    scenario: Scenario
    text_patterns: tuple[re.Pattern[str], ...]
    context_checks: tuple[ContextCheck, ...] = ()
    semantic_indicators: tuple[str, ...] = ()
    weight: float = 1.0
    name: str = field(default="")

    def text_matches(self, text: str) -> int:
        return sum(1 for pattern in self.text_patterns if pattern.search(text))

    def semantic_matches(self, text: str) -> int:
        lowered = text.lower()
        return sum(1 for indicator in self.semantic_indicators if indicator in lowered)

    def context_matches(self, text: str, context: ThinkingContext) -> int:
        return sum(1 for check in self.context_checks if check(text, context))


def _compile(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(pattern) for pattern in patterns)


def _contains_any(text: str, words: Iterable[str]) -> bool:
    return any(word in text for word in words)


QUESTION_PATTERNS = _compile(
    r"[？?]",
    r"^(为什么|怎样|如何|什么|哪里|何时|谁)",
    r"(原因是什么|怎么办|如何解决)",
)
PHILOSOPHICAL_WORDS = (
    "存在", "意义", "价值", "本质", "真理", "自由", "责任", "道德", "伦理",
    "正义", "善恶", "美丑", "人生", "生命", "死亡", "永恒", "时间", "空间",
)
PHILOSOPHICAL_CONCEPTS = ("存在主义", "唯物主义", "理想主义", "功利主义", "人道主义")
ABSTRACT_WORDS = ("抽象", "概念", "理论", "思想", "观念", "精神", "意识")
CREATIVE_WORDS = (
    "创意", "灵感", "想法", "点子", "创新", "设计", "构思", "创作",
    "发明", "突破", "新颖", "独特", "有趣", "创造性", "艺术",
)
IDEA_PHRASES = ("我想到了", "突然想到", "灵光一闪", "有个想法", "想起来了")
PROBLEM_SOLVING_PATTERNS = _compile(
    r"(问题是|需要解决|怎么办|解决方案)", r"(对策|方法|策略)", r"(步骤|流程|计划)"
)
STEP_PATTERNS = _compile(
    r"(第一|首先|然后|接下来|最后)",
    r"步骤",
    r"阶段",
    r"过程",
    r"先.*再.*后",
    r"1\.|2\.|3\.",
    r"一、|二、|三、",
)
SEARCH_WORDS = ("搜索", "查找", "寻找", "检索", "查询", "搜一下", "百度", "谷歌")
CONNECTION_WORDS = (
    "关联", "联系", "关系", "连接", "相关", "类似", "相似",
    "对比", "区别", "比较", "启发", "借鉴", "参考", "联想",
)
LIST_PATTERNS = _compile(r"1\.|2\.|3\.", r"一、|二、|三、", r"\n.*\n.*\n", r"[，,].*[，,].*[，,]")
SOURCE_PATTERNS = _compile(r"来源|出处|引用|参考", r"根据.*说", r".+提到", r"书中|文章中|报告中")
PLANNING_WORDS = ("计划", "打算", "准备", "目标", "规划", "安排", "日程", "deadline")
EMOTION_WORDS = ("开心", "高兴", "难过", "伤心", "焦虑", "生气", "沮丧", "害怕", "兴奋", "失落")


def has_question(text: str) -> bool:
    """Return True when the text reads as a question."""
    return any(pattern.search(text) for pattern in QUESTION_PATTERNS)


def has_step_by_step(text: str) -> bool:
    return any(pattern.search(text) for pattern in STEP_PATTERNS)


def has_list_structure(text: str) -> bool:
    return any(pattern.search(text) for pattern in LIST_PATTERNS)


def has_source_reference(text: str) -> bool:
    return any(pattern.search(text) for pattern in SOURCE_PATTERNS)


def _in_live_session(_: str, context: ThinkingContext) -> bool:
    elapsed = (context.timestamp - context.session.start_time).total_seconds()
    return 0 <= elapsed < 60


DEFAULT_PATTERNS: tuple[ScenarioPattern, ...] = (
    ScenarioPattern(
        name="quick_classification",
        scenario=Scenario.QUICK_CLASSIFICATION,
        text_patterns=_compile(r"整理|分类|归档|标签|文件|文档", r"分组|排序|组织|管理"),
        context_checks=(
            lambda text, _: len(text) < 100,
            lambda text, _: has_list_structure(text),
        ),
        semantic_indicators=("organize", "classify", "sort", "categorize"),
        weight=0.8,
    ),
    ScenarioPattern(
        name="summarization",
        scenario=Scenario.CONTENT_SUMMARIZATION,
        text_patterns=_compile(r"总结|概括|摘要|提炼|梳理", r"重点|要点|核心|关键"),
        context_checks=(
            lambda text, _: len(text) > 200,
            lambda text, _: has_source_reference(text),
        ),
        semantic_indicators=("summarize", "digest", "key points", "overview"),
        weight=0.85,
    ),
    ScenarioPattern(
        name="deep_insight",
        scenario=Scenario.DEEP_INSIGHT,
        text_patterns=_compile(
            r"为什么|怎样|如何|原因|本质",
            r"深层|深度|深入|根本|底层",
            r"洞察|理解|认识|看法|观点",
        ),
        context_checks=(
            lambda text, _: has_question(text),
            lambda text, _: _contains_any(text, PHILOSOPHICAL_WORDS),
            lambda text, _: len(text) > 50,
        ),
        semantic_indicators=("insight", "understanding", "deeper", "why", "how"),
        weight=0.9,
    ),
    ScenarioPattern(
        name="philosophical",
        scenario=Scenario.PHILOSOPHICAL,
        text_patterns=_compile(
            r"存在|意义|价值|道德|伦理",
            r"人生|生命|死亡|永恒|真理",
            r"正义|善恶|美丑|自由|责任",
        ),
        context_checks=(
            lambda text, _: _contains_any(text, PHILOSOPHICAL_CONCEPTS),
            lambda text, _: _contains_any(text, ABSTRACT_WORDS),
        ),
        semantic_indicators=("meaning", "existence", "truth", "philosophy", "ethics"),
        weight=0.95,
    ),
    ScenarioPattern(
        name="creative",
        scenario=Scenario.CREATIVE_INSPIRATION,
        text_patterns=_compile(
            r"创意|灵感|想法|点子|创新",
            r"设计|构思|创作|发明|突破",
            r"新颖|独特|有趣|创造性",
        ),
        context_checks=(
            lambda text, _: _contains_any(text, CREATIVE_WORDS),
            lambda text, _: _contains_any(text, IDEA_PHRASES),
        ),
        semantic_indicators=("creative", "idea", "innovation", "inspiration", "design"),
        weight=0.8,
    ),
    ScenarioPattern(
        name="complex_reasoning",
        scenario=Scenario.COMPLEX_REASONING,
        text_patterns=_compile(
            r"问题|困难|挑战|障碍|瓶颈",
            r"解决|方案|对策|办法|策略",
            r"分析|推理|逻辑|步骤|方法",
        ),
        context_checks=(
            lambda text, _: any(p.search(text) for p in PROBLEM_SOLVING_PATTERNS),
            lambda text, _: has_step_by_step(text),
        ),
        semantic_indicators=("problem", "solution", "strategy", "method", "approach"),
        weight=0.85,
    ),
    ScenarioPattern(
        name="strategic_planning",
        scenario=Scenario.STRATEGIC_PLANNING,
        text_patterns=_compile(
            r"计划|规划|目标|安排|日程",
            r"执行|落实|推进|拖延|坚持",
            r"长期|战略|路线|里程碑|优先级",
        ),
        context_checks=(lambda text, _: _contains_any(text, PLANNING_WORDS),),
        semantic_indicators=("plan", "goal", "roadmap", "milestone", "schedule"),
        weight=0.9,
    ),
    ScenarioPattern(
        name="search",
        scenario=Scenario.SEARCH_OPTIMIZATION,
        text_patterns=_compile(r"搜索|查找|寻找|检索|查询", r"关键词|搜索词|查询条件"),
        context_checks=(
            lambda text, _: _contains_any(text, SEARCH_WORDS),
            lambda text, _: len(text) < 150,
        ),
        semantic_indicators=("search", "find", "lookup", "query", "keywords"),
        weight=0.7,
    ),
    ScenarioPattern(
        name="knowledge_linking",
        scenario=Scenario.KNOWLEDGE_LINKING,
        text_patterns=_compile(
            r"关联|联系|关系|连接|相关",
            r"类似|相似|对比|区别|比较",
            r"启发|借鉴|参考|联想",
        ),
        context_checks=(
            lambda text, _: _contains_any(text, CONNECTION_WORDS),
            lambda _, context: len(context.recent_items) > 5,
        ),
        semantic_indicators=("relate", "connect", "similar", "association", "link"),
        weight=0.75,
    ),
    ScenarioPattern(
        name="live_analysis",
        scenario=Scenario.LIVE_ANALYSIS,
        text_patterns=_compile(r"现在|当前|此刻|正在", r"快速|立即|马上|及时"),
        context_checks=(
            lambda text, _: 20 < len(text) < 200,
            _in_live_session,
        ),
        semantic_indicators=("now", "current", "immediate", "quick", "real-time"),
        weight=0.6,
    ),
    ScenarioPattern(
        name="sentiment",
        scenario=Scenario.SENTIMENT_ANALYSIS,
        text_patterns=_compile(r"开心|高兴|难过|伤心|焦虑|生气|沮丧", r"心情|情绪|感受|感觉"),
        context_checks=(lambda text, _: _contains_any(text, EMOTION_WORDS),),
        semantic_indicators=("feel", "mood", "emotion", "happy", "sad", "anxious"),
        weight=0.7,
    ),
)


class ScenarioDetector:
    """Classifies text into a scenario.

    Detection is a pure function of the text, the context and the pattern
    table the detector was built with.

    Example:
        ```python
        detector = ScenarioDetector()
        scenario = detector.detect("为什么计划总是执行不下去？", ThinkingContext())
        ```
    """

    def __init__(
        self,
        patterns: Sequence[ScenarioPattern] | None = None,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    ) -> None:
        """Initialize the detector.

        Args:
            patterns: Ordered pattern table; earlier patterns win ties
            confidence_threshold: Confidence below which the general scenario is returned
        """
        self._patterns: tuple[ScenarioPattern, ...] = tuple(patterns or DEFAULT_PATTERNS)
        self.confidence_threshold = confidence_threshold

    @property
    def patterns(self) -> tuple[ScenarioPattern, ...]:
        return self._patterns

    def detect(self, text: str, context: ThinkingContext) -> Scenario:
        """Return the scenario the text should be processed as."""
        return self.analyze(text, context).scenario

    def analyze(self, text: str, context: ThinkingContext) -> ScenarioDetection:
        """Score the text and return the detection with its confidence.

        Args:
            text: Text to classify
            context: Thinking context for context checks and nudges

        Returns:
            ScenarioDetection holding the scenario, confidence and per-scenario scores
        """
        scores: dict[Scenario, float] = {}
        lexical_signal = False

        for pattern in self._patterns:
            text_hits = pattern.text_matches(text)
            semantic_hits = pattern.semantic_matches(text)
            context_hits = pattern.context_matches(text, context)
            if text_hits or semantic_hits:
                lexical_signal = True
            score = (
                text_hits * TEXT_MATCH_FACTOR * pattern.weight
                + context_hits * CONTEXT_MATCH_FACTOR * pattern.weight
                + semantic_hits * SEMANTIC_MATCH_FACTOR * pattern.weight
            )
            scores[pattern.scenario] = scores.get(pattern.scenario, 0.0) + score

        self._apply_nudges(scores, context)

        best_scenario, best_score = Scenario.GENERAL_THINKING, 0.0
        for scenario, score in scores.items():
            if score > best_score:
                best_scenario, best_score = scenario, score

        confidence = self._confidence(best_score, scores)

        if len(text.strip()) < MIN_SIGNAL_LENGTH or not lexical_signal:
            confidence = min(confidence, LOW_SIGNAL_CONFIDENCE)

        if confidence < self.confidence_threshold or best_score <= 0:
            logger.debug(
                "Low detection confidence %.2f for %s, using general scenario",
                confidence,
                best_scenario.value,
            )
            return ScenarioDetection(
                scenario=Scenario.GENERAL_THINKING,
                confidence=confidence,
                scores=scores,
                fallback=True,
            )

        return ScenarioDetection(scenario=best_scenario, confidence=confidence, scores=scores)

    def detect_quick(self, text: str) -> Scenario:
        """Cheap detection using text patterns only.

        Skips context checks and nudges. The first pattern scoring above the
        quick threshold wins; otherwise the text is treated as live input.
        """
        question = has_question(text)
        for pattern in self._patterns:
            score = pattern.text_matches(text) * pattern.weight

            if len(text) < 50 and pattern.scenario == Scenario.QUICK_CLASSIFICATION:
                score += 0.3
            if len(text) > 200 and pattern.scenario == Scenario.CONTENT_SUMMARIZATION:
                score += 0.3
            if question and pattern.scenario == Scenario.DEEP_INSIGHT:
                score += 0.4

            if score > QUICK_MATCH_THRESHOLD:
                return pattern.scenario

        return Scenario.LIVE_ANALYSIS

    def detect_batch(
        self, items: Iterable[WorkItem], context: ThinkingContext
    ) -> dict[str, Scenario]:
        """Detect the scenario of several items against one context."""
        return {
            item.id: self.detect(item.content, context.model_copy(update={"current_item": item}))
            for item in items
        }

    def pattern_density(self, text: str, scenario: Scenario) -> float:
        """Fraction of the scenario's text patterns that match the text."""
        total = 0
        hits = 0
        for pattern in self._patterns:
            if pattern.scenario == scenario:
                total += len(pattern.text_patterns)
                hits += pattern.text_matches(text)
        if total == 0:
            return 0.0
        return hits / total

    @staticmethod
    def _apply_nudges(scores: dict[Scenario, float], context: ThinkingContext) -> None:
        def bump(scenario: Scenario, amount: float) -> None:
            scores[scenario] = scores.get(scenario, 0.0) + amount

        if context.time_of_day == "morning":
            bump(Scenario.STRATEGIC_PLANNING, 0.1)
            bump(Scenario.DEEP_INSIGHT, 0.1)
        elif context.time_of_day == "evening":
            bump(Scenario.CONTENT_SUMMARIZATION, 0.1)
            bump(Scenario.PHILOSOPHICAL, 0.1)

        preference = context.preferences.speed_vs_quality
        if preference == "speed":
            bump(Scenario.QUICK_CLASSIFICATION, 0.2)
            bump(Scenario.LIVE_ANALYSIS, 0.2)
        elif preference == "quality":
            bump(Scenario.DEEP_INSIGHT, 0.2)
            bump(Scenario.PHILOSOPHICAL, 0.2)

    @staticmethod
    def _confidence(best_score: float, scores: dict[Scenario, float]) -> float:
        ranked = sorted(scores.values(), reverse=True)
        if len(ranked) < 2:
            return min(max(best_score, 0.0), 1.0)
        margin = best_score - ranked[1]
        return min(max(best_score + margin * MARGIN_FACTOR, 0.0), 1.0)
