"""Base types and models for the orchestration engine.

This module provides the enums and pydantic models shared by the scenario
detector, capability selector, task executor, synthesizer and performance
tracker.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Scenario(str, Enum):
    """Kinds of processing a piece of text can require."""

    QUICK_CLASSIFICATION = "quick_classification"
    CONTENT_SUMMARIZATION = "content_summarization"
    FILE_PROCESSING = "file_processing"
    AUTO_TAGGING = "auto_tagging"
    DEEP_INSIGHT = "deep_insight"
    PHILOSOPHICAL = "philosophical"
    COMPLEX_REASONING = "complex_reasoning"
    STRATEGIC_PLANNING = "strategic_planning"
    SEARCH_OPTIMIZATION = "search_optimization"
    KNOWLEDGE_LINKING = "knowledge_linking"
    CREATIVE_INSPIRATION = "creative_inspiration"
    RELATIONSHIP_DETECTION = "relationship_detection"
    LIVE_ANALYSIS = "live_analysis"
    CATEGORIZATION = "categorization"
    SENTIMENT_ANALYSIS = "sentiment_analysis"
    GENERAL_THINKING = "general_thinking"


class Speed(str, Enum):
    """Relative response speed of a provider."""

    FAST = "fast"
    MEDIUM = "medium"
    SLOW = "slow"


class Quality(str, Enum):
    """Relative output quality of a provider."""

    BASIC = "basic"
    GOOD = "good"
    EXCELLENT = "excellent"


class Cost(str, Enum):
    """Relative cost of a provider."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Priority(str, Enum):
    """Priority levels for tasks."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class StepStatus(str, Enum):
    """Status of a single processing step."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskPhase(str, Enum):
    """Phases a task passes through inside the orchestrator."""

    CREATED = "created"
    DETECTING = "detecting"
    SELECTING = "selecting"
    EXECUTING = "executing"
    SYNTHESIZING = "synthesizing"
    COMPLETED = "completed"
    FAILED = "failed"


class SelectionStrategy(str, Enum):
    """Strategies for choosing providers for a scenario."""

    QUALITY_FIRST = "quality_first"
    SPEED_FIRST = "speed_first"
    COST_EFFECTIVE = "cost_effective"
    BALANCED = "balanced"
    ADAPTIVE = "adaptive"
    ENSEMBLE = "ensemble"


class Capability(BaseModel):
    """How well one provider handles one scenario.

    Attributes:
        scenario: Scenario this row applies to
        provider_id: Backend provider identifier
        speed: Relative speed
        quality: Relative quality
        cost: Relative cost
        reliability: Observed trust score, adjusted at runtime
    """

    scenario: Scenario = Field(description="Scenario served")
    provider_id: str = Field(description="Provider identifier")
    speed: Speed = Field(default=Speed.MEDIUM, description="Relative speed")
    quality: Quality = Field(default=Quality.GOOD, description="Relative quality")
    cost: Cost = Field(default=Cost.MEDIUM, description="Relative cost")
    reliability: float = Field(default=0.8, ge=0.0, le=1.0, description="Reliability score")

    @property
    def key(self) -> tuple[Scenario, str]:
        return (self.scenario, self.provider_id)


class UserPreferences(BaseModel):
    """Per-user knobs that bias detection and selection."""

    speed_vs_quality: Literal["speed", "balanced", "quality"] = Field(
        default="balanced", description="Speed versus quality bias"
    )
    cost_sensitivity: Literal["low", "medium", "high"] = Field(
        default="medium", description="How strongly to avoid expensive providers"
    )
    privacy_sensitivity: Literal["low", "medium", "high"] = Field(
        default="medium", description="How strongly to restrict providers"
    )
    experience_level: Literal["beginner", "intermediate", "advanced"] = Field(
        default="intermediate", description="User experience level"
    )
    preferred_providers: dict[Scenario, list[str]] = Field(
        default_factory=dict, description="Preferred providers per scenario"
    )


class SessionData(BaseModel):
    """Information about the current capture session."""

    start_time: datetime = Field(default_factory=datetime.now, description="Session start")
    item_count: int = Field(default=0, ge=0, description="Items captured this session")
    dominant_scenarios: list[Scenario] = Field(
        default_factory=list, description="Most frequent scenarios this session"
    )


class WorkItem(BaseModel):
    """A unit of free text submitted for processing."""

    id: str = Field(default_factory=lambda: f"item_{uuid.uuid4().hex[:12]}")
    content: str = Field(description="Text content")
    created_at: datetime = Field(default_factory=datetime.now)
    tags: list[str] = Field(default_factory=list, description="User tags")
    category: str | None = Field(default=None, description="User category")


def time_of_day_for(moment: datetime) -> Literal["morning", "afternoon", "evening", "night"]:
    """Bucket a timestamp into a coarse time of day."""
    hour = moment.hour
    if hour < 12:
        return "morning"
    if hour < 18:
        return "afternoon"
    if hour < 22:
        return "evening"
    return "night"


class ThinkingContext(BaseModel):
    """Snapshot of everything detection and selection may depend on.

    Built fresh for every request and never persisted. All time-dependent
    decisions read ``timestamp`` rather than the wall clock, so the same
    context always yields the same routing.
    """

    current_item: WorkItem | None = Field(default=None, description="Item being processed")
    recent_items: list[WorkItem] = Field(
        default_factory=list, description="Recently processed items, oldest first"
    )
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    session: SessionData = Field(default_factory=SessionData)
    timestamp: datetime = Field(default_factory=datetime.now, description="Context build time")
    mood: str | None = Field(default=None, description="Optional mood hint")

    @property
    def time_of_day(self) -> Literal["morning", "afternoon", "evening", "night"]:
        return time_of_day_for(self.timestamp)

    @property
    def hour(self) -> int:
        return self.timestamp.hour


class Task(BaseModel):
    """A request travelling through the pipeline."""

    id: str = Field(default_factory=lambda: f"task_{uuid.uuid4().hex[:12]}")
    scenario: Scenario = Field(default=Scenario.GENERAL_THINKING, description="Detected scenario")
    content: str = Field(description="Text to analyze")
    context: ThinkingContext = Field(default_factory=ThinkingContext)
    priority: Priority = Field(default=Priority.MEDIUM, description="Task priority")
    required_capabilities: list[str] = Field(
        default_factory=list, description="Capability tags derived from the scenario"
    )
    deadline: datetime | None = Field(default=None, description="Optional deadline")


class ThinkingPattern(BaseModel):
    """Dominant mode of thought found in a piece of text."""

    type: Literal["creative", "analytical", "problem_solving", "reflective", "planning"] = Field(
        default="analytical", description="Pattern type"
    )
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    reasoning: str = Field(default="", description="Why this pattern was chosen")


class Sentiment(BaseModel):
    """Emotional tone of a piece of text."""

    polarity: Literal["positive", "negative", "neutral"] = Field(default="neutral")
    intensity: float = Field(default=0.0, ge=0.0, le=1.0)
    emotions: list[str] = Field(default_factory=list)


class DeadEnd(BaseModel):
    """Whether the author appears stuck, with ways out."""

    is_dead_end: bool = Field(default=False)
    warning: str | None = Field(default=None)
    suggestions: list[str] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    """Normalized output of a provider's analysis."""

    thinking_pattern: ThinkingPattern = Field(default_factory=ThinkingPattern)
    sentiment: Sentiment = Field(default_factory=Sentiment)
    themes: list[str] = Field(default_factory=list, description="Key themes")
    insights: list[str] = Field(default_factory=list, description="Insights")
    dead_end: DeadEnd = Field(default_factory=DeadEnd)
    advice: list[str] = Field(default_factory=list, description="Actionable advice")


class ProcessingStep(BaseModel):
    """One step of a task's execution, visible through the status stream."""

    name: str = Field(description="Step name")
    description: str = Field(default="", description="Human readable description")
    provider_id: str | None = Field(default=None, description="Provider this step calls")
    status: StepStatus = Field(default=StepStatus.PENDING)
    started_at: datetime | None = Field(default=None)
    ended_at: datetime | None = Field(default=None)
    result: AnalysisResult | None = Field(default=None)
    error: str | None = Field(default=None)

    def mark_running(self) -> None:
        """Mark step as running."""
        self.status = StepStatus.RUNNING
        self.started_at = datetime.now()

    def mark_completed(self, result: AnalysisResult | None = None) -> None:
        """Mark step as completed with an optional result."""
        self.status = StepStatus.COMPLETED
        self.ended_at = datetime.now()
        self.result = result

    def mark_failed(self, error: str) -> None:
        """Mark step as failed with error."""
        self.status = StepStatus.FAILED
        self.ended_at = datetime.now()
        self.error = error


class WorkStatus(BaseModel):
    """Live progress record for one task."""

    task_id: str = Field(description="Task identifier")
    scenario: Scenario = Field(description="Detected scenario")
    phase: TaskPhase = Field(default=TaskPhase.CREATED)
    selected_providers: list[str] = Field(default_factory=list)
    current_step: int = Field(default=0, ge=0, description="Index of the active step")
    steps: list[ProcessingStep] = Field(default_factory=list)
    estimated_time_ms: float = Field(default=0.0, ge=0.0)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    started_at: datetime = Field(default_factory=datetime.now)
    cancelled: bool = Field(default=False)


class TaskResult(BaseModel):
    """Outcome of a single provider call."""

    model_config = ConfigDict(frozen=True)

    provider_id: str
    scenario: Scenario
    result: AnalysisResult | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    response_time_ms: float = Field(default=0.0, ge=0.0)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None


class SynthesizedInsight(BaseModel):
    """Merged view over every usable provider result."""

    model_config = ConfigDict(frozen=True)

    primary_insight: str
    supporting_insights: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    sources: list[str] = Field(default_factory=list)
    actionable_advice: list[str] = Field(default_factory=list)
    related_concepts: list[str] = Field(default_factory=list)
    degraded: bool = Field(default=False, description="True when no provider contributed")


class TaskPerformance(BaseModel):
    """Aggregate figures for one orchestrated task."""

    total_time_ms: float = Field(default=0.0, ge=0.0)
    average_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    cost_estimate: float = Field(default=0.0, ge=0.0)
    satisfaction_prediction: float = Field(default=0.0, ge=0.0, le=1.0)


class OrchestrationResult(BaseModel):
    """Everything the caller gets back for one work item."""

    task_id: str
    item_id: str
    scenario: Scenario
    detection_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    strategy: SelectionStrategy | None = None
    selected_providers: list[str] = Field(default_factory=list)
    results: list[TaskResult] = Field(default_factory=list)
    synthesized: SynthesizedInsight
    performance: TaskPerformance = Field(default_factory=TaskPerformance)
    recommendations: list[str] = Field(default_factory=list)
    cancelled: bool = False
    error: str | None = Field(default=None, description="Set when the pipeline itself failed")


class PerformanceMetric(BaseModel):
    """One observed provider outcome."""

    model_config = ConfigDict(frozen=True)

    provider_id: str
    scenario: Scenario
    response_time_ms: float = Field(default=0.0, ge=0.0)
    success: bool
    satisfaction: float | None = Field(default=None, ge=0.0, le=1.0)
    timestamp: datetime = Field(default_factory=datetime.now)


class ProviderStats(BaseModel):
    """Summary statistics over a provider's recorded metrics."""

    avg_response_time_ms: float = 0.0
    success_rate: float = 0.0
    avg_satisfaction: float = 0.0
    usage_count: int = 0


class QuickAnalysis(BaseModel):
    """Fast detection and selection without calling any provider."""

    scenario: Scenario
    provider_id: str
    confidence: float = Field(ge=0.0, le=1.0)


class ScenarioDetection(BaseModel):
    """Detailed outcome of scenario detection."""

    scenario: Scenario
    confidence: float = Field(ge=0.0, le=1.0)
    scores: dict[Scenario, float] = Field(default_factory=dict)
    fallback: bool = Field(default=False, description="True when low confidence forced general")


DEFAULT_CAPABILITIES: list[Capability] = [
    # Heavy reasoning
    Capability(scenario=Scenario.DEEP_INSIGHT, provider_id="openai", speed=Speed.MEDIUM,
               quality=Quality.EXCELLENT, cost=Cost.HIGH, reliability=0.95),
    Capability(scenario=Scenario.COMPLEX_REASONING, provider_id="openai", speed=Speed.MEDIUM,
               quality=Quality.EXCELLENT, cost=Cost.HIGH, reliability=0.95),
    Capability(scenario=Scenario.STRATEGIC_PLANNING, provider_id="openai", speed=Speed.MEDIUM,
               quality=Quality.EXCELLENT, cost=Cost.HIGH, reliability=0.93),
    Capability(scenario=Scenario.GENERAL_THINKING, provider_id="openai", speed=Speed.MEDIUM,
               quality=Quality.GOOD, cost=Cost.MEDIUM, reliability=0.9),
    Capability(scenario=Scenario.PHILOSOPHICAL, provider_id="claude", speed=Speed.MEDIUM,
               quality=Quality.EXCELLENT, cost=Cost.MEDIUM, reliability=0.92),
    Capability(scenario=Scenario.DEEP_INSIGHT, provider_id="claude", speed=Speed.MEDIUM,
               quality=Quality.EXCELLENT, cost=Cost.MEDIUM, reliability=0.90),
    # Fast and cheap
    Capability(scenario=Scenario.SEARCH_OPTIMIZATION, provider_id="gemini", speed=Speed.FAST,
               quality=Quality.GOOD, cost=Cost.LOW, reliability=0.88),
    Capability(scenario=Scenario.LIVE_ANALYSIS, provider_id="gemini", speed=Speed.FAST,
               quality=Quality.GOOD, cost=Cost.LOW, reliability=0.85),
    Capability(scenario=Scenario.QUICK_CLASSIFICATION, provider_id="gemini", speed=Speed.FAST,
               quality=Quality.GOOD, cost=Cost.LOW, reliability=0.83),
    Capability(scenario=Scenario.QUICK_CLASSIFICATION, provider_id="deepseek", speed=Speed.FAST,
               quality=Quality.GOOD, cost=Cost.LOW, reliability=0.90),
    Capability(scenario=Scenario.FILE_PROCESSING, provider_id="deepseek", speed=Speed.FAST,
               quality=Quality.GOOD, cost=Cost.LOW, reliability=0.88),
    Capability(scenario=Scenario.AUTO_TAGGING, provider_id="deepseek", speed=Speed.FAST,
               quality=Quality.GOOD, cost=Cost.LOW, reliability=0.87),
    Capability(scenario=Scenario.SENTIMENT_ANALYSIS, provider_id="deepseek", speed=Speed.FAST,
               quality=Quality.GOOD, cost=Cost.LOW, reliability=0.85),
    Capability(scenario=Scenario.GENERAL_THINKING, provider_id="deepseek", speed=Speed.FAST,
               quality=Quality.GOOD, cost=Cost.LOW, reliability=0.85),
    # Linking and long text
    Capability(scenario=Scenario.KNOWLEDGE_LINKING, provider_id="zhipu", speed=Speed.MEDIUM,
               quality=Quality.EXCELLENT, cost=Cost.MEDIUM, reliability=0.90),
    Capability(scenario=Scenario.RELATIONSHIP_DETECTION, provider_id="zhipu", speed=Speed.MEDIUM,
               quality=Quality.EXCELLENT, cost=Cost.MEDIUM, reliability=0.88),
    Capability(scenario=Scenario.CONTENT_SUMMARIZATION, provider_id="moonshot",
               speed=Speed.MEDIUM, quality=Quality.EXCELLENT, cost=Cost.MEDIUM, reliability=0.90),
    Capability(scenario=Scenario.FILE_PROCESSING, provider_id="moonshot", speed=Speed.MEDIUM,
               quality=Quality.EXCELLENT, cost=Cost.MEDIUM, reliability=0.85),
    # Creative and categorization
    Capability(scenario=Scenario.CREATIVE_INSPIRATION, provider_id="wenxin", speed=Speed.MEDIUM,
               quality=Quality.GOOD, cost=Cost.MEDIUM, reliability=0.82),
    Capability(scenario=Scenario.CREATIVE_INSPIRATION, provider_id="doubao", speed=Speed.FAST,
               quality=Quality.GOOD, cost=Cost.LOW, reliability=0.80),
    Capability(scenario=Scenario.CATEGORIZATION, provider_id="qwen", speed=Speed.FAST,
               quality=Quality.GOOD, cost=Cost.LOW, reliability=0.85),
    Capability(scenario=Scenario.AUTO_TAGGING, provider_id="qwen", speed=Speed.FAST,
               quality=Quality.GOOD, cost=Cost.LOW, reliability=0.83),
    # Offline fallback
    Capability(scenario=Scenario.GENERAL_THINKING, provider_id="local", speed=Speed.FAST,
               quality=Quality.BASIC, cost=Cost.LOW, reliability=0.7),
]

# Capability tags each scenario asks of a provider
SCENARIO_REQUIREMENTS: dict[Scenario, list[str]] = {
    Scenario.QUICK_CLASSIFICATION: ["classification", "speed"],
    Scenario.CONTENT_SUMMARIZATION: ["summarization", "long context"],
    Scenario.FILE_PROCESSING: ["document parsing", "long context"],
    Scenario.AUTO_TAGGING: ["tagging", "speed"],
    Scenario.DEEP_INSIGHT: ["reasoning", "analysis"],
    Scenario.PHILOSOPHICAL: ["philosophy", "abstract thinking"],
    Scenario.COMPLEX_REASONING: ["reasoning", "problem solving"],
    Scenario.STRATEGIC_PLANNING: ["planning", "strategy"],
    Scenario.SEARCH_OPTIMIZATION: ["search", "keyword extraction"],
    Scenario.KNOWLEDGE_LINKING: ["association", "knowledge graph"],
    Scenario.CREATIVE_INSPIRATION: ["creativity", "ideation"],
    Scenario.RELATIONSHIP_DETECTION: ["association", "analysis"],
    Scenario.LIVE_ANALYSIS: ["speed", "streaming"],
    Scenario.CATEGORIZATION: ["classification"],
    Scenario.SENTIMENT_ANALYSIS: ["sentiment"],
    Scenario.GENERAL_THINKING: ["general analysis"],
}
