"""Core data models for the OK Computer self-improvement state"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class FactSource(str, Enum):
    """Where a recorded fact came from"""

    PATTERN_ANALYSIS = "pattern_analysis"
    METRICS_ANALYSIS = "metrics_analysis"
    PERFORMANCE_ANALYSIS = "performance_analysis"
    SYSTEM_ANALYSIS = "system_analysis"
    USER_FEEDBACK = "user_feedback"
    CONTEXT_ANALYSIS = "context_analysis"
    BEHAVIORAL_ADAPTATION = "behavioral_adaptation"
    AUTOMATIC_OPTIMIZATION = "automatic_optimization"


class CommunicationStyle(str, Enum):
    FORMAL = "formal"
    CASUAL = "casual"
    TECHNICAL = "technical"
    FRIENDLY = "friendly"
    PROFESSIONAL = "professional"


class ResponseDetailLevel(str, Enum):
    CONCISE = "concise"
    BALANCED = "balanced"
    DETAILED = "detailed"
    COMPREHENSIVE = "comprehensive"


class ProactivityLevel(str, Enum):
    PASSIVE = "passive"
    RESPONSIVE = "responsive"
    PROACTIVE = "proactive"
    VERY_PROACTIVE = "very_proactive"


class LearningRate(str, Enum):
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


class GoalPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class OptimizationPriority(str, Enum):
    """Focus areas for auto-optimization"""

    PERFORMANCE = "performance"
    PRODUCTIVITY = "productivity"
    TOOL_USAGE = "tool_usage"
    RESPONSE_TIME = "response_time"
    BALANCED = "balanced"


class ProductivityAction(str, Enum):
    """Actions accepted by the track_productivity tool"""

    ADD_TASK = "add_task"
    COMPLETE_TASK = "complete_task"
    SET_GOAL = "set_goal"
    GET_METRICS = "get_metrics"
    ANALYZE_EFFICIENCY = "analyze_efficiency"


# ========== HISTORY ==========


class InteractionEntry(BaseModel):
    """One recorded user/AI exchange. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_input: str
    ai_response: str
    timestamp: str
    feedback: Optional[str] = None
    success: Optional[bool] = None
    context: Optional[str] = None


class FeedbackEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    feedback: str
    timestamp: str
    related_interaction: Optional[str] = None  # InteractionEntry.id


# ========== KNOWLEDGE BASE ==========


class Fact(BaseModel):
    """A timestamped, confidence-scored statement the system has learned"""

    model_config = ConfigDict(frozen=True)

    id: str
    content: str
    confidence: float = Field(ge=0.0, le=1.0)
    source: FactSource
    timestamp: Optional[str] = None


class Pattern(BaseModel):
    """Stimulus -> response-type association. Duplicate names are allowed."""

    model_config = ConfigDict(frozen=True)

    pattern: str
    response_type: str
    effectiveness: float = Field(ge=0.0, le=1.0)


class Preferences(BaseModel):
    """Behavioral knobs adjusted by adapt_behavior"""

    model_config = ConfigDict(validate_assignment=True)

    communication_style: CommunicationStyle = CommunicationStyle.PROFESSIONAL
    response_detail_level: ResponseDetailLevel = ResponseDetailLevel.BALANCED
    learn_from_feedback: bool = True
    auto_optimize: bool = True
    productivity_focus: bool = True
    tool_usage_priority: bool = True
    proactivity_level: Optional[ProactivityLevel] = None
    learning_rate: Optional[LearningRate] = None
    custom_preferences: dict[str, Any] = Field(default_factory=dict)


class KnowledgeBase(BaseModel):
    facts: list[Fact] = Field(default_factory=list)
    patterns: list[Pattern] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)


# ========== METRICS ==========


class ErrorRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    tool: str
    message: str
    timestamp: str
    stack: Optional[str] = None


class ToolStats(BaseModel):
    uses: int = 0
    success: int = 0

    @property
    def success_rate(self) -> Optional[float]:
        """Fraction of successful uses, or None when the tool was never used"""
        if self.uses <= 0:
            return None
        return self.success / self.uses


class PerformanceMetrics(BaseModel):
    total_interactions: int = 0
    successful_interactions: int = 0
    average_response_time: float = 0.0
    tool_usage_count: dict[str, int] = Field(default_factory=dict)
    productivity_score: float = Field(default=0.75, ge=0.0, le=1.0)
    error_count: int = 0
    last_error: Optional[ErrorRecord] = None

    # Optimization bookkeeping
    last_optimization: Optional[str] = None
    last_successful_optimization: Optional[int] = None
    optimization_success_count: int = 0
    optimization_failure_count: int = 0
    last_optimization_error: Optional[ErrorRecord] = None


class ProductivityGoal(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    description: str
    priority: GoalPriority = GoalPriority.MEDIUM
    deadline: Optional[str] = None
    created: str
    completed: Optional[str] = None


class ProductivityMetrics(BaseModel):
    tasks_completed: int = 0
    efficiency_score: float = Field(default=0.8, ge=0.0, le=1.0)
    tool_effectiveness: dict[str, ToolStats] = Field(default_factory=dict)
    user_goals: list[ProductivityGoal] = Field(default_factory=list)
    completed_goals: list[ProductivityGoal] = Field(default_factory=list)


class OptimizationTargets(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_success_rate: float = 0.85
    max_response_time: float = 2000
    min_tool_usage: float = 0.7
    target_productivity: float = 0.9


class AutoOptimizationConfig(BaseModel):
    enabled: bool = True
    interval: int = 300_000  # ms
    last_run: int = 0  # epoch ms
    priority_areas: list[OptimizationPriority] = Field(default_factory=lambda: [
        OptimizationPriority.PERFORMANCE,
        OptimizationPriority.PRODUCTIVITY,
        OptimizationPriority.TOOL_USAGE,
        OptimizationPriority.RESPONSE_TIME,
    ])
    target_metrics: OptimizationTargets = Field(default_factory=OptimizationTargets)


# ========== VALIDATED TOOL INPUT ==========


class InteractionInput(BaseModel):
    user_input: str
    ai_response: str
    user_feedback: Optional[str] = None
    success: Optional[bool] = None
    context: Optional[str] = None


class TaskInput(BaseModel):
    name: str
    type: Optional[str] = None
    tools_used: list[str] = Field(default_factory=list)
    duration: Optional[float] = None
    success: Optional[bool] = None
    efficiency: Optional[float] = None


class GoalInput(BaseModel):
    description: str
    priority: GoalPriority = GoalPriority.MEDIUM
    deadline: Optional[str] = None


class AdaptationInput(BaseModel):
    communication_style: Optional[CommunicationStyle] = None
    response_detail_level: Optional[ResponseDetailLevel] = None
    proactivity_level: Optional[ProactivityLevel] = None
    learning_rate: Optional[LearningRate] = None
    custom_preferences: Optional[dict[str, Any]] = None


# ========== TOOL RESULTS ==========


class TextBlock(BaseModel):
    type: str = "text"
    text: str


class ToolResult(BaseModel):
    """Structured tool outcome handed back to the transport layer"""

    content: list[TextBlock]
    is_error: bool = False
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def ok(cls, text: str, **data: Any) -> "ToolResult":
        return cls(content=[TextBlock(text=text)], data=data)

    @classmethod
    def error(cls, text: str, **data: Any) -> "ToolResult":
        return cls(content=[TextBlock(text=text)], is_error=True, data=data)

    @property
    def text(self) -> str:
        return "\n".join(block.text for block in self.content)
