"""Analysis providers.

A provider is anything that can turn a piece of text into an
:class:`AnalysisResult`. The orchestrator only sees the
:class:`AnalysisProvider` interface; concrete backends are bound to provider
ids once, at startup, through a :class:`ProviderRegistry`.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Sequence

from pydantic_ai import Agent

from ..core.logger import get_logger
from ..exceptions import MalformedResponseError, ProviderError, ProviderNotFoundError
from .base import AnalysisResult, DeadEnd, Sentiment, ThinkingPattern

logger = get_logger("orchestration.providers")

DEFAULT_SYSTEM_PROMPT = """你是一位思维分析专家。请分析用户的思维内容并给出结构化结果。

分析维度：
1. 思维模式：creative, analytical, problem_solving, reflective, planning
2. 情感分析：polarity (positive/negative/neutral)，强度 0-1，具体情绪
3. 主题提取：最多 3 个关键主题
4. 思维洞察：深层次的思维模式分析
5. 死胡同检测：是否陷入重复或困惑的思维循环
6. 个性化建议：基于思维模式的具体建议

请用中文回答，保持专业且温暖的语调。"""

# Number of recent entries forwarded to a model prompt
PROMPT_HISTORY_SIZE = 3


class AnalysisProvider(ABC):
    """Interface every analysis backend implements."""

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Identifier matching the provider's capability rows."""

    @abstractmethod
    async def analyze(self, content: str, recent_context: Sequence[str]) -> AnalysisResult:
        """Analyze text.

        Args:
            content: Text to analyze
            recent_context: Recently processed texts, oldest first

        Returns:
            Normalized analysis result

        Raises:
            ProviderError: If the backend fails
        """


POSITIVE_RE = re.compile(r"很好|不错|收获|成功|开心|满意|喜欢|棒|优秀|高兴")
NEGATIVE_RE = re.compile(r"担心|焦虑|困难|问题|失败|难过|痛苦|烦恼|拖延|沮丧")
PLAN_RE = re.compile(r"计划|打算|准备|明天|下周|将要")
QUESTION_RE = re.compile(r"[？?]|为什么")
REFLECTION_RE = re.compile(r"感觉|觉得|思考|反思")
CREATIVE_RE = re.compile(r"创意|灵感|想法|点子|设计")
LOOP_RE = re.compile(r"总是|一直|又|还是|老是")

THEME_KEYWORDS: dict[str, re.Pattern[str]] = {
    "计划": re.compile(r"计划|规划|目标|安排"),
    "执行": re.compile(r"执行|落实|坚持|拖延|行动"),
    "情绪": re.compile(r"焦虑|开心|难过|沮丧|情绪|心情"),
    "创意": CREATIVE_RE,
    "学习": re.compile(r"学习|读书|课程|知识"),
    "工作": re.compile(r"工作|项目|会议|同事"),
}


class KeywordAnalysisProvider(AnalysisProvider):
    """Offline keyword heuristics.

    Produces a low-confidence but well-formed result without any network
    access. Used for the ``local`` provider and as a stand-in for every
    provider in demos.
    """

    def __init__(self, provider_id: str = "local", confidence: float = 0.6) -> None:
        self._provider_id = provider_id
        self._confidence = confidence

    @property
    def provider_id(self) -> str:
        return self._provider_id

    async def analyze(self, content: str, recent_context: Sequence[str]) -> AnalysisResult:
        positive = bool(POSITIVE_RE.search(content))
        negative = bool(NEGATIVE_RE.search(content))
        polarity = "neutral"
        if positive and not negative:
            polarity = "positive"
        elif negative and not positive:
            polarity = "negative"

        if PLAN_RE.search(content):
            pattern_type, reasoning = "planning", "提到了计划或未来安排"
        elif CREATIVE_RE.search(content):
            pattern_type, reasoning = "creative", "包含创意或新想法"
        elif QUESTION_RE.search(content):
            pattern_type, reasoning = "problem_solving", "以提问的方式展开思考"
        elif REFLECTION_RE.search(content):
            pattern_type, reasoning = "reflective", "包含对自身感受的反思"
        else:
            pattern_type, reasoning = "analytical", "基于文本内容分析"

        themes = [name for name, regex in THEME_KEYWORDS.items() if regex.search(content)]
        if not themes:
            themes = ["思考"]

        insights = [f"{self._provider_id} 分析：这段思考以{reasoning}为主"]
        advice = ["继续保持记录思考的习惯"]
        if pattern_type == "planning":
            advice.insert(0, "把计划拆成今天就能完成的小步骤")
        if polarity == "negative":
            advice.insert(0, "先承认当前的情绪，再回到具体问题")

        # Repetition against recent entries suggests the author is going in circles
        looping = bool(LOOP_RE.search(content)) and negative
        if not looping and recent_context:
            looping = any(previous.strip() == content.strip() for previous in recent_context)
        dead_end = DeadEnd(
            is_dead_end=looping,
            warning="这个想法似乎在原地打转" if looping else None,
            suggestions=["换一个角度重新描述问题", "找人聊聊这个问题"] if looping else [],
        )

        return AnalysisResult(
            thinking_pattern=ThinkingPattern(
                type=pattern_type, confidence=self._confidence, reasoning=reasoning
            ),
            sentiment=Sentiment(
                polarity=polarity, intensity=0.6 if polarity != "neutral" else 0.3, emotions=[]
            ),
            themes=themes,
            insights=insights,
            dead_end=dead_end,
            advice=advice,
        )


class AgentAnalysisProvider(AnalysisProvider):
    """Provider backed by a pydantic-ai agent with structured output.

    The agent is asked for an :class:`AnalysisResult` directly, so the
    model's output is validated into the normalized shape at the boundary.
    """

    def __init__(
        self,
        provider_id: str,
        model: str,
        system_prompt: str | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            provider_id: Identifier matching capability rows
            model: pydantic-ai model name, e.g. "openai:gpt-4o"
            system_prompt: Optional system prompt override
        """
        self._provider_id = provider_id
        self.model = model
        self._agent = Agent(
            model=model,
            output_type=AnalysisResult,
            system_prompt=system_prompt or DEFAULT_SYSTEM_PROMPT,
        )
        logger.info("Initialized agent provider: %s (model: %s)", provider_id, model)

    @property
    def provider_id(self) -> str:
        return self._provider_id

    async def analyze(self, content: str, recent_context: Sequence[str]) -> AnalysisResult:
        prompt = self._build_prompt(content, recent_context)
        try:
            result = await self._agent.run(prompt)
        except Exception as exc:
            raise ProviderError(
                f"Provider {self._provider_id} failed: {exc}", self._provider_id, exc
            ) from exc

        output = result.output
        if not isinstance(output, AnalysisResult):
            raise MalformedResponseError(self._provider_id, output)
        return output

    @staticmethod
    def _build_prompt(content: str, recent_context: Sequence[str]) -> str:
        prompt = f'请分析这个思维内容：\n"{content}"'
        history = list(recent_context)[-PROMPT_HISTORY_SIZE:]
        if history:
            prompt += "\n\n用户最近的思维历史：" + "; ".join(history)
        return prompt


class ProviderRegistry:
    """Maps provider ids to their implementations."""

    def __init__(self, providers: Sequence[AnalysisProvider] | None = None) -> None:
        self._providers: dict[str, AnalysisProvider] = {}
        for provider in providers or []:
            self.register(provider)

    def register(self, provider: AnalysisProvider, provider_id: str | None = None) -> None:
        """Bind a provider, replacing any earlier binding for the same id."""
        key = provider_id or provider.provider_id
        self._providers[key] = provider
        logger.debug("Registered provider implementation: %s", key)

    def unregister(self, provider_id: str) -> bool:
        return self._providers.pop(provider_id, None) is not None

    def get(self, provider_id: str) -> AnalysisProvider:
        """Return the provider bound to an id.

        Raises:
            ProviderNotFoundError: If nothing is bound to the id
        """
        provider = self._providers.get(provider_id)
        if provider is None:
            raise ProviderNotFoundError(provider_id)
        return provider

    def ids(self) -> list[str]:
        return list(self._providers)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._providers

    def __len__(self) -> int:
        return len(self._providers)
