"""Tests for analysis providers and the provider registry."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from insight_router.exceptions import (
    MalformedResponseError,
    ProviderError,
    ProviderNotFoundError,
)
from insight_router.orchestration import (
    AgentAnalysisProvider,
    AnalysisResult,
    KeywordAnalysisProvider,
    ProviderRegistry,
)
from tests.mocks import MockProvider, make_result


# ==============================================================================
# Keyword Provider Tests
# ==============================================================================


class TestKeywordAnalysisProvider:
    """Tests for the offline keyword provider."""

    @pytest.mark.anyio
    async def test_planning_text(self):
        """Test planning text yields a planning pattern and advice."""
        provider = KeywordAnalysisProvider()

        result = await provider.analyze("明天计划完成项目报告", [])

        assert isinstance(result, AnalysisResult)
        assert result.thinking_pattern.type == "planning"
        assert result.thinking_pattern.confidence == 0.6
        assert "计划" in result.themes
        assert result.advice[0] == "把计划拆成今天就能完成的小步骤"

    @pytest.mark.anyio
    async def test_negative_sentiment(self):
        """Test negative words set negative polarity."""
        provider = KeywordAnalysisProvider("local")

        result = await provider.analyze("最近很焦虑，总是失败", [])

        assert result.sentiment.polarity == "negative"
        assert result.dead_end.is_dead_end is True
        assert result.dead_end.warning

    @pytest.mark.anyio
    async def test_repeated_content_is_dead_end(self):
        """Test repeating a recent entry is flagged as a loop."""
        provider = KeywordAnalysisProvider()

        result = await provider.analyze("今天写点东西", ["今天写点东西"])

        assert result.dead_end.is_dead_end is True

    @pytest.mark.anyio
    async def test_neutral_fallback(self):
        """Test text without keywords still gets a well-formed result."""
        provider = KeywordAnalysisProvider("deepseek", confidence=0.4)

        result = await provider.analyze("abc", [])

        assert provider.provider_id == "deepseek"
        assert result.sentiment.polarity == "neutral"
        assert result.themes == ["思考"]
        assert result.insights
        assert result.dead_end.is_dead_end is False


# ==============================================================================
# Agent Provider Tests
# ==============================================================================


class TestAgentAnalysisProvider:
    """Tests for the pydantic-ai backed provider."""

    @pytest.mark.anyio
    async def test_returns_structured_output(self):
        """Test agent output is returned as-is."""
        expected = make_result(["from the model"])
        with patch("insight_router.orchestration.providers.Agent") as agent_cls:
            agent_cls.return_value.run = AsyncMock(return_value=MagicMock(output=expected))
            provider = AgentAnalysisProvider("openai", "openai:gpt-4o")

            result = await provider.analyze("思考内容", ["a", "b"])

        assert result is expected
        _, kwargs = agent_cls.call_args
        assert kwargs["model"] == "openai:gpt-4o"
        assert kwargs["output_type"] is AnalysisResult

    @pytest.mark.anyio
    async def test_prompt_includes_recent_history(self):
        """Test only the last few history entries reach the prompt."""
        with patch("insight_router.orchestration.providers.Agent") as agent_cls:
            run = AsyncMock(return_value=MagicMock(output=make_result()))
            agent_cls.return_value.run = run
            provider = AgentAnalysisProvider("openai", "openai:gpt-4o")

            await provider.analyze("现在", ["one", "two", "three", "four"])

        prompt = run.call_args.args[0]
        assert "现在" in prompt
        assert "four" in prompt
        assert "one" not in prompt

    @pytest.mark.anyio
    async def test_wraps_backend_errors(self):
        """Test backend exceptions become ProviderError."""
        with patch("insight_router.orchestration.providers.Agent") as agent_cls:
            agent_cls.return_value.run = AsyncMock(side_effect=RuntimeError("quota exceeded"))
            provider = AgentAnalysisProvider("claude", "anthropic:claude-3-5-sonnet-latest")

            with pytest.raises(ProviderError) as exc_info:
                await provider.analyze("text", [])

        assert exc_info.value.provider_id == "claude"
        assert "quota exceeded" in str(exc_info.value)

    @pytest.mark.anyio
    async def test_malformed_output(self):
        """Test non-normalized output raises MalformedResponseError."""
        with patch("insight_router.orchestration.providers.Agent") as agent_cls:
            agent_cls.return_value.run = AsyncMock(return_value=MagicMock(output="plain text"))
            provider = AgentAnalysisProvider("openai", "openai:gpt-4o")

            with pytest.raises(MalformedResponseError):
                await provider.analyze("text", [])


# ==============================================================================
# Provider Registry Tests
# ==============================================================================


class TestProviderRegistry:
    """Tests for ProviderRegistry."""

    def test_register_and_get(self):
        """Test providers are bound by their id."""
        provider = MockProvider("openai")
        registry = ProviderRegistry([provider])

        assert registry.get("openai") is provider
        assert "openai" in registry
        assert len(registry) == 1

    def test_register_under_alias(self):
        """Test binding a provider under another id."""
        registry = ProviderRegistry()
        provider = MockProvider("openai")

        registry.register(provider, "azure")

        assert registry.get("azure") is provider
        assert registry.ids() == ["azure"]

    def test_missing_provider(self):
        """Test unknown ids raise ProviderNotFoundError."""
        registry = ProviderRegistry()

        with pytest.raises(ProviderNotFoundError):
            registry.get("nope")

    def test_unregister(self):
        """Test unregistering a provider."""
        registry = ProviderRegistry([MockProvider("openai")])

        assert registry.unregister("openai") is True
        assert registry.unregister("openai") is False
        assert len(registry) == 0
