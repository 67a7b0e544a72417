"""
StateStore - the single mutable aggregate behind every stateful tool.

Owns interaction history, feedback, performance and productivity metrics, the
knowledge base and the auto-optimization config. Handlers read through the
properties and mutate only through the named methods below, so range checks,
enum membership and bounded-size eviction live in one place.

Every bounded collection is a FIFO cap: once it exceeds its maximum the
oldest entries (front of the list) are dropped.
"""

import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from uuid import uuid4

from loguru import logger
from pydantic import ValidationError

from okcomputer.core.config import Settings
from okcomputer.core.errors import StateInvariantError
from okcomputer.core.models import (
    AutoOptimizationConfig,
    ErrorRecord,
    FactSource,
    Fact,
    FeedbackEntry,
    InteractionEntry,
    KnowledgeBase,
    Pattern,
    PerformanceMetrics,
    Preferences,
    ProductivityGoal,
    ProductivityMetrics,
    ToolStats,
)
from okcomputer.metrics.calculations import (
    calculate_success_rate,
    clamp_unit,
    format_percentage,
    format_tool_stats,
    update_running_average,
    usage_rate,
    weighted_blend,
)
from okcomputer.security.sanitize import DANGEROUS_KEYS

Clock = Callable[[], int]


def system_clock() -> int:
    """Current time in epoch milliseconds"""
    return int(time.time() * 1000)


def _to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


# Core preference fields that update_preferences may set directly
CORE_PREFERENCE_FIELDS = frozenset(
    name for name in Preferences.model_fields if name != "custom_preferences"
)

# Keys a caller may never smuggle into custom preferences
RESERVED_PREFERENCE_KEYS = frozenset(
    set(Preferences.model_fields)
    | {_to_camel(name) for name in Preferences.model_fields}
    | DANGEROUS_KEYS
)

SEED_FACTS = [
    ("greeting_1", "Users appreciate friendly greetings", 0.8, FactSource.PATTERN_ANALYSIS),
    ("efficiency_1", "Quick responses improve user satisfaction", 0.9, FactSource.METRICS_ANALYSIS),
    ("productivity_1", "Tool usage increases task completion rates", 0.95, FactSource.PERFORMANCE_ANALYSIS),
    ("optimization_1", "Continuous optimization improves system performance", 0.9, FactSource.SYSTEM_ANALYSIS),
]

SEED_PATTERNS = [
    ("feedback_positive", "acknowledgment", 0.85),
    ("feedback_negative", "apology_and_improve", 0.75),
    ("tool_usage_success", "enhance_tool_capabilities", 0.9),
    ("productivity_focus", "prioritize_efficiency", 0.88),
]


class StateStore:
    """
    In-memory state for one server process.

    Constructed once by the server and passed by reference to handlers and
    the scheduler; there is no module-level instance.

    Example:
        store = StateStore(Settings())
        store.add_interaction(InteractionEntry(...))
        store.success_rate()  # 1.0
    """

    def __init__(self, settings: Optional[Settings] = None, clock: Clock = system_clock):
        self.settings = settings or Settings()
        self.clock = clock

        self._interaction_history: list[InteractionEntry] = []
        self._feedback_data: list[FeedbackEntry] = []
        self._performance = PerformanceMetrics()
        self._productivity = ProductivityMetrics()
        self._knowledge = KnowledgeBase(
            facts=[Fact(id=i, content=c, confidence=conf, source=src) for i, c, conf, src in SEED_FACTS],
            patterns=[Pattern(pattern=p, response_type=r, effectiveness=e) for p, r, e in SEED_PATTERNS],
            preferences=Preferences(),
        )
        self._auto_optimization = AutoOptimizationConfig(
            enabled=self.settings.AUTO_OPTIMIZE_ENABLED,
            interval=self.settings.AUTO_OPTIMIZE_INTERVAL_MS,
            last_run=self.clock(),
        )

    # ========== READ ACCESS ==========

    @property
    def interaction_history(self) -> list[InteractionEntry]:
        return self._interaction_history

    @property
    def feedback_data(self) -> list[FeedbackEntry]:
        return self._feedback_data

    @property
    def performance(self) -> PerformanceMetrics:
        return self._performance

    @property
    def productivity(self) -> ProductivityMetrics:
        return self._productivity

    @property
    def knowledge(self) -> KnowledgeBase:
        return self._knowledge

    @property
    def preferences(self) -> Preferences:
        return self._knowledge.preferences

    @property
    def auto_optimization(self) -> AutoOptimizationConfig:
        return self._auto_optimization

    # ========== HELPERS FOR HANDLERS ==========

    def now_iso(self) -> str:
        return datetime.fromtimestamp(self.clock() / 1000, tz=timezone.utc).isoformat()

    @staticmethod
    def new_id(prefix: str) -> str:
        return f"{prefix}_{uuid4().hex[:12]}"

    # ========== METRIC CALCULATIONS ==========

    def success_rate(self) -> float:
        perf = self._performance
        return calculate_success_rate(perf.total_interactions, perf.successful_interactions)

    def formatted_success_rate(self) -> str:
        return format_percentage(self.success_rate())

    def total_tool_usage(self) -> int:
        return sum(self._performance.tool_usage_count.values())

    def average_tool_usage(self) -> float:
        return usage_rate(self.total_tool_usage(), self._performance.total_interactions)

    def tool_success_rate(self, tool_name: str) -> Optional[float]:
        """Success ratio for a tool, or None if it has no recorded uses"""
        stats = self._productivity.tool_effectiveness.get(tool_name)
        if stats is None:
            return None
        return stats.success_rate

    def tool_effectiveness_stats(self) -> str:
        return format_tool_stats(self._productivity.tool_effectiveness)

    # ========== INTERACTIONS ==========

    def add_interaction(self, entry: InteractionEntry) -> None:
        """Append an interaction and count it; success unless explicitly False"""
        self._interaction_history.append(entry)
        self._prune(self._interaction_history, self.settings.MAX_HISTORY_SIZE, "interaction_history")

        self._performance.total_interactions += 1
        if entry.success is not False:
            self._performance.successful_interactions += 1

    def add_feedback(self, entry: FeedbackEntry) -> None:
        self._feedback_data.append(entry)
        self._prune(self._feedback_data, self.settings.MAX_FEEDBACK_SIZE, "feedback_data")

    # ========== KNOWLEDGE BASE ==========

    def add_fact(self, fact: Fact) -> None:
        """Append a fact; refuses (never clamps) bad confidence or source"""
        if not isinstance(fact.confidence, (int, float)) or not 0.0 <= fact.confidence <= 1.0:
            raise StateInvariantError(
                f"Invalid confidence score: {fact.confidence}. Must be between 0 and 1."
            )
        if not isinstance(fact.source, FactSource):
            raise StateInvariantError(f"Invalid fact source: {fact.source}")

        self._knowledge.facts.append(fact)
        self._prune(self._knowledge.facts, self.settings.MAX_FACTS_SIZE, "facts")

    def record_fact(self, prefix: str, content: str, confidence: float, source: FactSource) -> Fact:
        """Build a timestamped fact and add it"""
        try:
            fact = Fact(
                id=self.new_id(prefix),
                content=content,
                confidence=confidence,
                source=source,
                timestamp=self.now_iso(),
            )
        except ValidationError as e:
            raise StateInvariantError(str(e)) from e
        self.add_fact(fact)
        return fact

    def add_pattern(self, pattern: Pattern) -> None:
        if not isinstance(pattern.effectiveness, (int, float)) or not 0.0 <= pattern.effectiveness <= 1.0:
            raise StateInvariantError(
                f"Invalid pattern effectiveness: {pattern.effectiveness}. Must be between 0 and 1."
            )

        self._knowledge.patterns.append(pattern)
        self._prune(self._knowledge.patterns, self.settings.MAX_PATTERNS_SIZE, "patterns")

    def update_preferences(self, **updates: Any) -> dict[str, tuple[Any, Any]]:
        """
        Set the given core preference fields, leaving the rest untouched.

        Returns:
            {field: (old_value, new_value)} for every field that was set
        """
        unknown = set(updates) - CORE_PREFERENCE_FIELDS
        if unknown:
            raise StateInvariantError(f"Unknown preference fields: {', '.join(sorted(unknown))}")

        # Validate the whole change set first so a bad value mutates nothing
        try:
            Preferences.model_validate({**self.preferences.model_dump(), **updates})
        except ValidationError as e:
            raise StateInvariantError(f"Invalid preference update: {e}") from e

        changes = {}
        for field, value in updates.items():
            old = getattr(self.preferences, field)
            setattr(self.preferences, field, value)
            changes[field] = (old, getattr(self.preferences, field))
        return changes

    def merge_custom_preferences(self, values: dict[str, Any]) -> tuple[list[str], list[str]]:
        """
        Shallow-merge caller-supplied custom preferences (later calls win).

        Keys that collide with structural preference names or dangerous keys
        are refused.

        Returns:
            (accepted_keys, rejected_keys)
        """
        accepted, rejected = [], []
        custom = self.preferences.custom_preferences
        for key, value in values.items():
            if not isinstance(key, str) or key in RESERVED_PREFERENCE_KEYS:
                rejected.append(str(key))
                continue
            custom[key] = value
            accepted.append(key)

        if rejected:
            logger.warning("Rejected reserved custom preference keys: {keys}", keys=rejected)
        return accepted, rejected

    # ========== PRODUCTIVITY ==========

    def increment_tasks_completed(self) -> None:
        self._productivity.tasks_completed += 1

    def update_efficiency_score(self, efficiency: float) -> None:
        """Fold a new sample into the efficiency score (90% old, 10% new)"""
        if isinstance(efficiency, bool) or not isinstance(efficiency, (int, float)) or not 0 <= efficiency <= 1:
            raise StateInvariantError(
                f"Invalid efficiency score: {efficiency}. Must be between 0 and 1."
            )
        self._productivity.efficiency_score = weighted_blend(
            self._productivity.efficiency_score, efficiency
        )

    def increment_efficiency_score(self, amount: float) -> None:
        self._productivity.efficiency_score = clamp_unit(self._productivity.efficiency_score + amount)

    def track_tool_usage(self, tool_name: str, success: bool) -> None:
        """Bump both the raw usage counter and the {uses, success} pair"""
        counts = self._performance.tool_usage_count
        counts[tool_name] = counts.get(tool_name, 0) + 1
        self.record_tool_effectiveness(tool_name, success)

    def record_tool_effectiveness(self, tool_name: str, success: bool) -> None:
        """Track effectiveness of a tool named in a task, without counting it as a call"""
        stats = self._productivity.tool_effectiveness.setdefault(tool_name, ToolStats())
        stats.uses += 1
        if success:
            stats.success += 1

    def add_goal(self, goal: ProductivityGoal) -> None:
        self._productivity.user_goals.append(goal)
        self._prune(self._productivity.user_goals, self.settings.MAX_GOALS_SIZE, "user_goals")

    def complete_goal(self, goal_id: str) -> Optional[ProductivityGoal]:
        """Move a goal from user_goals to completed_goals; None if unknown"""
        goals = self._productivity.user_goals
        for index, goal in enumerate(goals):
            if goal.id == goal_id:
                done = goal.model_copy(update={"completed": self.now_iso()})
                del goals[index]
                self._productivity.completed_goals.append(done)
                return done
        return None

    # ========== PERFORMANCE ==========

    def update_productivity_score(self, score: float) -> None:
        self._performance.productivity_score = clamp_unit(score)

    def increment_productivity_score(self, amount: float) -> None:
        self.update_productivity_score(self._performance.productivity_score + amount)

    def update_average_response_time(self, response_time_ms: float) -> None:
        self._performance.average_response_time = update_running_average(
            self._performance.average_response_time, response_time_ms
        )

    def record_error(self, error: ErrorRecord) -> None:
        self._performance.error_count += 1
        self._performance.last_error = error

    # ========== AUTO-OPTIMIZATION ==========

    def should_optimize(self, force: bool = False) -> bool:
        if force:
            return True
        elapsed = self.clock() - self._auto_optimization.last_run
        return elapsed >= self._auto_optimization.interval

    def next_optimization_time(self) -> str:
        next_ms = self._auto_optimization.last_run + self._auto_optimization.interval
        return datetime.fromtimestamp(next_ms / 1000, tz=timezone.utc).isoformat()

    def mark_optimization_run(self) -> None:
        self._auto_optimization.last_run = self.clock()

    def record_optimization(self) -> None:
        """Bookkeeping for a successful (non-skipped) optimization run"""
        self._performance.last_optimization = self.now_iso()
        self._performance.last_successful_optimization = self.clock()
        self._performance.optimization_success_count += 1

    def record_optimization_failure(self, error: ErrorRecord) -> int:
        """Record a failed optimization run; returns the cumulative failure count"""
        self._performance.optimization_failure_count += 1
        self._performance.last_optimization_error = error
        return self._performance.optimization_failure_count

    def set_auto_optimization_enabled(self, enabled: bool) -> None:
        self._auto_optimization.enabled = enabled

    # ========== REPORTS ==========

    def analyze_efficiency(self) -> str:
        return (
            "📈 Efficiency Analysis\n\n"
            f"🎯 Current Efficiency Score: {format_percentage(self._productivity.efficiency_score)}%\n"
            f"📊 Productivity Score: {format_percentage(self._performance.productivity_score)}%\n\n"
            f"🛠️ Tool Effectiveness:\n{self.tool_effectiveness_stats()}\n\n"
            "💡 Recommendations:\n"
            "- Focus on high-effectiveness tools\n"
            "- Track task completion more consistently\n"
            "- Set measurable goals with deadlines"
        )

    def snapshot(self) -> dict[str, Any]:
        """JSON-friendly dump of the whole state (for the metrics resource)"""
        return {
            "interaction_count": len(self._interaction_history),
            "feedback_count": len(self._feedback_data),
            "performance_metrics": self._performance.model_dump(mode="json"),
            "productivity_metrics": self._productivity.model_dump(mode="json"),
            "knowledge_base": {
                "facts": len(self._knowledge.facts),
                "patterns": len(self._knowledge.patterns),
                "preferences": self.preferences.model_dump(mode="json"),
            },
            "auto_optimization": self._auto_optimization.model_dump(mode="json"),
        }

    # ========== INTERNAL ==========

    @staticmethod
    def _prune(items: list, max_size: int, label: str) -> None:
        overflow = len(items) - max_size
        if overflow > 0:
            del items[:overflow]
            logger.debug("Evicted {n} oldest entries from {label}", n=overflow, label=label)
