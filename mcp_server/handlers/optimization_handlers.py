"""
Optimization handlers - performance analysis, auto-optimization and tool
usage enhancement.

auto_optimize is also the callable driven by the background scheduler; its
result carries ``status`` in ``data`` so the scheduler can tell a skipped run
from a completed one without parsing text.
"""

from enum import Enum
from typing import Any, Dict

from loguru import logger

from okcomputer.core.models import FactSource, OptimizationPriority, ToolResult
from okcomputer.core.validation import is_string_list, validate_flag, validate_option
from okcomputer.metrics.calculations import format_percentage
from okcomputer.state.store import StateStore


class OptimizationType(str, Enum):
    RESPONSE_TIME = "response_time"
    ACCURACY = "accuracy"
    USER_SATISFACTION = "user_satisfaction"
    EFFICIENCY = "efficiency"
    COMPREHENSIVE = "comprehensive"


class AnalysisType(str, Enum):
    USAGE_PATTERNS = "usage_patterns"
    EFFECTIVENESS = "effectiveness"
    RECOMMENDATIONS = "recommendations"
    COMPREHENSIVE = "comprehensive"


# Tools worth promoting when they have never been called
PROMOTED_TOOLS = (
    "learn_from_interaction",
    "get_learning_insights",
    "adapt_behavior",
    "optimize_performance",
    "auto_optimize",
    "track_productivity",
    "enhance_tool_usage",
)

EFFICIENCY_TARGET = 0.85
TOOL_USAGE_TARGET = 0.5


OPTIMIZE_PERFORMANCE_SCHEMA = {
    "type": "object",
    "properties": {
        "optimizationType": {
            "type": "string",
            "enum": [t.value for t in OptimizationType],
            "description": "Type of optimization to focus on",
            "default": "comprehensive",
        },
        "includeImplementation": {
            "type": "boolean",
            "description": "Whether to include specific implementation suggestions",
            "default": False,
        },
    },
}

AUTO_OPTIMIZE_SCHEMA = {
    "type": "object",
    "properties": {
        "priority": {
            "type": "string",
            "enum": [p.value for p in OptimizationPriority],
            "description": "Optimization priority focus",
            "default": "balanced",
        },
        "force": {
            "type": "boolean",
            "description": "Force optimization even if recently run",
            "default": False,
        },
    },
}

ENHANCE_TOOL_USAGE_SCHEMA = {
    "type": "object",
    "properties": {
        "analysisType": {
            "type": "string",
            "enum": [a.value for a in AnalysisType],
            "description": "Type of enhancement analysis",
            "default": "comprehensive",
        },
        "targetTools": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Specific tools to analyze (if not all)",
        },
    },
}


def handle_optimize_performance(state: StateStore, args: Dict[str, Any]) -> ToolResult:
    """Read-only analysis with per-area suggestions"""
    kind = validate_option(args, "optimizationType", OptimizationType, OptimizationType.COMPREHENSIVE)
    implementation = validate_flag(args, "includeImplementation")
    for result in (kind, implementation):
        if not result.ok:
            return ToolResult.error(f"❌ {result.error}")
    optimization_type, include_impl = kind.data, implementation.data

    def wanted(area: OptimizationType) -> bool:
        return optimization_type in (area, OptimizationType.COMPREHENSIVE)

    def impl(text: str) -> str:
        return f"\n- Implementation: {text}" if include_impl else ""

    kb = state.knowledge
    sections = []

    if wanted(OptimizationType.RESPONSE_TIME):
        sections.append(
            "⚡ Response Time Optimization:\n"
            f"- Current performance: {state.formatted_success_rate()}% success rate\n"
            f"- Average response time: {state.performance.average_response_time:.1f}ms\n"
            "- Suggestion: Cache frequently requested resources\n"
            "- Impact: Faster response times for repeated queries"
            + impl("Implement LRU cache for tools and resources")
        )

    if wanted(OptimizationType.ACCURACY):
        low_confidence = [f for f in kb.facts if f.confidence < 0.5]
        sections.append(
            "🎯 Accuracy Optimization:\n"
            f"- Low-confidence facts: {len(low_confidence)}\n"
            "- Suggestion: Validate and update low-confidence knowledge\n"
            "- Impact: More reliable responses"
            + impl("Add fact verification process")
        )

    if wanted(OptimizationType.USER_SATISFACTION):
        recent = state.feedback_data[-10:]
        positive = sum(
            1 for f in recent if "good" in f.feedback.lower() or "great" in f.feedback.lower()
        )
        sections.append(
            "😊 User Satisfaction Optimization:\n"
            f"- Recent positive feedback: {positive}/{len(recent)}\n"
            "- Suggestion: Personalize responses based on user preferences\n"
            "- Impact: Higher user satisfaction"
            + impl("Enhance preference learning algorithms")
        )

    if wanted(OptimizationType.EFFICIENCY):
        names = [p.pattern for p in kb.patterns]
        duplicates = sum(1 for name in names if names.count(name) > 1)
        sections.append(
            "⚙️ Efficiency Optimization:\n"
            f"- Duplicate patterns: {duplicates}\n"
            "- Suggestion: Consolidate similar patterns and remove redundancies\n"
            "- Impact: Faster pattern matching, reduced memory usage"
            + impl("Pattern deduplication algorithm")
        )

    body = "\n\n".join(sections)
    return ToolResult.ok(
        "⚡ Performance Optimization Analysis\n\n"
        f"{body}\n\n"
        "📋 Priority Recommendations:\n"
        "🔥 High Priority: Implement response caching for frequently used tools\n"
        "🚀 Medium Priority: Enhance pattern recognition for common user intents\n"
        "💡 Low Priority: Add more sophisticated feedback analysis\n\n"
        "🎯 Next Steps:\n"
        "1. Implement high-priority optimizations\n"
        "2. Monitor performance metrics\n"
        "3. Gather user feedback on improvements\n"
        "4. Iterate based on results",
        optimization_type=optimization_type.value,
    )


def handle_auto_optimize(state: StateStore, args: Dict[str, Any]) -> ToolResult:
    """
    Check metrics against targets and nudge scores when any are missed.

    Skips without touching state when the last run is more recent than the
    configured interval, unless ``force`` is set.
    """
    priority_result = validate_option(args, "priority", OptimizationPriority, OptimizationPriority.BALANCED)
    force_result = validate_flag(args, "force")
    for result in (priority_result, force_result):
        if not result.ok:
            return ToolResult.error(f"❌ {result.error}")
    priority, force = priority_result.data, force_result.data

    if not state.should_optimize(force):
        next_run = state.next_optimization_time()
        logger.debug("Auto-optimization skipped; next run at {next_run}", next_run=next_run)
        return ToolResult.ok(
            "⏳ Auto-optimization skipped (run too recently)\n"
            f"Next optimization: {next_run}\n"
            'Use "force: true" to override',
            status="skipped",
            next_run=next_run,
        )

    state.mark_optimization_run()

    targets = state.auto_optimization.target_metrics
    perf = state.performance
    success_rate = state.success_rate()
    tool_usage = state.average_tool_usage()

    def covers(*areas: OptimizationPriority) -> bool:
        return priority == OptimizationPriority.BALANCED or priority in areas

    optimizations, improvements = [], []

    if covers(OptimizationPriority.PERFORMANCE) and success_rate < targets.min_success_rate:
        optimizations.append("🎯 Enhancing success rate through pattern analysis")
        improvements.append("Increased pattern matching accuracy")

    if covers(OptimizationPriority.PERFORMANCE, OptimizationPriority.TOOL_USAGE) \
            and tool_usage < targets.min_tool_usage:
        optimizations.append("🛠️ Promoting tool usage through better recommendations")
        improvements.append("Enhanced tool suggestion algorithms")

    if covers(OptimizationPriority.RESPONSE_TIME) and perf.average_response_time > targets.max_response_time:
        optimizations.append("⏱️ Reducing response latency for slow tools")
        improvements.append("Lower average response time")

    if covers(OptimizationPriority.PRODUCTIVITY):
        if state.productivity.efficiency_score < EFFICIENCY_TARGET:
            optimizations.append("⚡ Streamlining response patterns for efficiency")
            improvements.append("Faster response generation")

        if perf.productivity_score < targets.target_productivity:
            optimizations.append("📈 Implementing productivity enhancement strategies")
            improvements.append("Better task completion tracking")

    if optimizations:
        state.record_fact(
            "auto_opt",
            f"Auto-optimization applied: {', '.join(optimizations)}",
            0.9,
            FactSource.AUTOMATIC_OPTIMIZATION,
        )
        state.increment_productivity_score(0.05)
        state.increment_efficiency_score(0.03)

    state.record_optimization()
    next_run = state.next_optimization_time()
    logger.info(
        "Auto-optimization completed ({priority}): {count} optimizations applied",
        priority=priority.value, count=len(optimizations),
    )

    applied = "\n".join(f"• {o}" for o in optimizations) or "• No optimizations needed (metrics within targets)"
    gained = "\n".join(f"• {i}" for i in improvements) or "• System performing optimally"

    return ToolResult.ok(
        f"🚀 Auto-Optimization Complete ({priority.value} priority)\n\n"
        "📊 Current Metrics:\n"
        f"- Success rate: {format_percentage(success_rate)}%\n"
        f"- Tool usage: {format_percentage(tool_usage)}%\n"
        f"- Productivity score: {format_percentage(perf.productivity_score)}%\n"
        f"- Efficiency score: {format_percentage(state.productivity.efficiency_score)}%\n\n"
        f"🔧 Optimizations Applied:\n{applied}\n\n"
        f"✅ Improvements:\n{gained}\n\n"
        f"⏰ Next auto-optimization: {next_run}",
        status="completed",
        next_run=next_run,
        priority=priority.value,
        optimizations=optimizations,
    )


def handle_enhance_tool_usage(state: StateStore, args: Dict[str, Any]) -> ToolResult:
    """Usage and effectiveness breakdown plus adoption recommendations. Read-only."""
    kind = validate_option(args, "analysisType", AnalysisType, AnalysisType.COMPREHENSIVE)
    if not kind.ok:
        return ToolResult.error(f"❌ {kind.error}")
    analysis_type = kind.data

    target_tools = args.get("targetTools")
    if target_tools is not None and not is_string_list(target_tools):
        return ToolResult.error("❌ targetTools must be an array of strings")

    def selected(tool: str) -> bool:
        return not target_tools or tool in target_tools

    def wanted(area: AnalysisType) -> bool:
        return analysis_type in (area, AnalysisType.COMPREHENSIVE)

    usage = {t: n for t, n in state.performance.tool_usage_count.items() if selected(t)}
    effectiveness = {t: s for t, s in state.productivity.tool_effectiveness.items() if selected(t)}

    analysis, recommendations = [], []

    if wanted(AnalysisType.USAGE_PATTERNS):
        total = sum(usage.values())
        if total > 0:
            top = sorted(usage.items(), key=lambda item: item[1], reverse=True)[:5]
            lines = "\n".join(
                f"{tool}: {count} uses ({format_percentage(count / total)}%)" for tool, count in top
            )
            analysis.append(f"📈 Tool Usage Patterns (Top 5):\n{lines}")
        else:
            analysis.append("📈 Tool Usage: No usage data available")

    if wanted(AnalysisType.EFFECTIVENESS):
        if effectiveness:
            lines = "\n".join(
                f"{tool}: {format_percentage(stats.success_rate)}"
                f"{'%' if stats.success_rate is not None else ''} success rate"
                for tool, stats in effectiveness.items()
            )
            analysis.append(f"🎯 Tool Effectiveness:\n{lines}")
        else:
            analysis.append("🎯 Tool Effectiveness: No effectiveness data available")

    if wanted(AnalysisType.RECOMMENDATIONS):
        unused = [
            tool for tool in PROMOTED_TOOLS
            if selected(tool) and tool not in state.performance.tool_usage_count
        ]
        if unused:
            recommendations.append(f"🔍 Promote unused tools: {', '.join(unused)}")

        rate = state.average_tool_usage()
        if rate < TOOL_USAGE_TARGET:
            recommendations.append(
                f"🚀 Increase tool usage: Current rate {format_percentage(rate)}% (target: >50%)"
            )

        recommendations.extend([
            "⚡ Implement tool usage prompts in responses",
            "📊 Add tool suggestions based on user input patterns",
            "🎯 Create tool usage tutorials or examples",
        ])

    sections = "\n\n".join(analysis)
    text = f"🛠️ Tool Usage Enhancement Analysis ({analysis_type.value})\n\n"
    if sections:
        text += f"{sections}\n\n"
    if recommendations:
        text += "💡 Recommendations:\n" + "\n".join(recommendations) + "\n\n"
    text += (
        "🎯 Enhancement Impact:\n"
        "- Improved productivity through better tool utilization\n"
        "- Enhanced user experience with targeted tool suggestions\n"
        "- Increased system effectiveness and user satisfaction"
    )

    return ToolResult.ok(
        text,
        analysis_type=analysis_type.value,
        recommendations=recommendations,
    )
