"""
Learning handlers - interaction learning, insights and behavior adaptation.

Handlers take the shared StateStore plus sanitized arguments and return a
ToolResult. Validation failures come back in-band (``is_error=True``) and
leave the store untouched.
"""

from enum import Enum
from typing import Any, Dict

from loguru import logger

from okcomputer.core.models import (
    FactSource,
    FeedbackEntry,
    InteractionEntry,
    Pattern,
    ToolResult,
)
from okcomputer.core.validation import (
    validate_adaptation,
    validate_interaction,
    validate_option,
)
from okcomputer.metrics.calculations import format_percentage
from okcomputer.state.store import StateStore

POSITIVE_MARKERS = ("good", "great")
NEGATIVE_MARKERS = ("bad", "improve")


class DetailLevel(str, Enum):
    SUMMARY = "summary"
    DETAILED = "detailed"
    FULL = "full"


class FocusArea(str, Enum):
    PERFORMANCE = "performance"
    PATTERNS = "patterns"
    KNOWLEDGE = "knowledge"
    FEEDBACK = "feedback"
    ALL = "all"


LEARN_FROM_INTERACTION_SCHEMA = {
    "type": "object",
    "properties": {
        "interaction": {
            "type": "object",
            "description": "Details of the interaction to learn from",
            "properties": {
                "userInput": {"type": "string", "description": "What the user said or requested"},
                "aiResponse": {"type": "string", "description": "How the AI responded"},
                "userFeedback": {"type": "string", "description": "User feedback on the interaction"},
                "success": {"type": "boolean", "description": "Whether the interaction was successful"},
                "context": {"type": "string", "description": "Additional context about the interaction"},
            },
        },
    },
    "required": ["interaction"],
}

GET_LEARNING_INSIGHTS_SCHEMA = {
    "type": "object",
    "properties": {
        "detailLevel": {
            "type": "string",
            "enum": [d.value for d in DetailLevel],
            "description": "Level of detail for insights",
            "default": "summary",
        },
        "focusArea": {
            "type": "string",
            "enum": [f.value for f in FocusArea],
            "description": "Specific area to focus on",
            "default": "all",
        },
    },
}

ADAPT_BEHAVIOR_SCHEMA = {
    "type": "object",
    "properties": {
        "adaptation": {
            "type": "object",
            "description": "Behavior adaptation parameters",
            "properties": {
                "communicationStyle": {
                    "type": "string",
                    "enum": ["formal", "casual", "technical", "friendly", "professional"],
                    "description": "How the AI should communicate",
                },
                "responseDetailLevel": {
                    "type": "string",
                    "enum": ["concise", "balanced", "detailed", "comprehensive"],
                    "description": "How detailed responses should be",
                },
                "proactivityLevel": {
                    "type": "string",
                    "enum": ["passive", "responsive", "proactive", "very_proactive"],
                    "description": "How proactive the AI should be",
                },
                "learningRate": {
                    "type": "string",
                    "enum": ["conservative", "moderate", "aggressive"],
                    "description": "How quickly the AI should adopt new behaviors",
                },
                "customPreferences": {
                    "type": "object",
                    "description": "Custom user preferences as key-value pairs",
                },
            },
        },
        "reason": {
            "type": "string",
            "description": "Reason for this adaptation (helps with learning)",
        },
    },
    "required": ["adaptation"],
}


def _contains_any(text: str, markers: tuple) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in markers)


def _bullets(items: list, empty: str) -> str:
    return "\n".join(f"- {item}" for item in items) if items else f"- {empty}"


def handle_learn_from_interaction(state: StateStore, args: Dict[str, Any]) -> ToolResult:
    """Record an interaction and learn from its feedback and context."""
    validated = validate_interaction(args.get("interaction"))
    if not validated.ok:
        logger.warning("learn_from_interaction rejected: {error}", error=validated.error)
        return ToolResult.error(f"❌ {validated.error}")

    interaction = validated.data
    timestamp = state.now_iso()
    entry = InteractionEntry(
        id=state.new_id("interaction"),
        user_input=interaction.user_input,
        ai_response=interaction.ai_response,
        feedback=interaction.user_feedback,
        success=interaction.success,
        context=interaction.context,
        timestamp=timestamp,
    )
    state.add_interaction(entry)

    improvements = []

    if interaction.user_feedback:
        feedback = interaction.user_feedback
        state.add_feedback(FeedbackEntry(
            feedback=feedback, timestamp=timestamp, related_interaction=entry.id,
        ))

        # Both checks may fire for mixed feedback
        if _contains_any(feedback, POSITIVE_MARKERS):
            improvements.append("Positive feedback noted - reinforcing similar response patterns")
            state.record_fact(
                "fact",
                f'Successful interaction pattern: "{interaction.user_input}" -> "{interaction.ai_response}"',
                0.7,
                FactSource.USER_FEEDBACK,
            )

        if _contains_any(feedback, NEGATIVE_MARKERS):
            improvements.append("Constructive feedback noted - adjusting response patterns")
            state.add_pattern(Pattern(
                pattern="avoid_response_type",
                response_type=interaction.ai_response,
                effectiveness=0.2,
            ))

    if interaction.context:
        state.record_fact(
            "context", f"Context learning: {interaction.context}", 0.6, FactSource.CONTEXT_ANALYSIS,
        )

    perf = state.performance
    kb = state.knowledge
    success_rate = state.formatted_success_rate()

    return ToolResult.ok(
        "🧠 Learning completed successfully!\n\n"
        "📊 Performance Update:\n"
        f"- Total interactions: {perf.total_interactions}\n"
        f"- Success rate: {success_rate}%\n"
        f"- Knowledge base size: {len(kb.facts)} facts, {len(kb.patterns)} patterns\n\n"
        "🔧 Improvements Made:\n"
        f"{_bullets(improvements, 'No specific improvements needed')}\n\n"
        "✅ Ready to provide better responses in future interactions!",
        interaction_id=entry.id,
        total_interactions=perf.total_interactions,
        success_rate=success_rate,
        improvements=improvements,
    )


def handle_get_learning_insights(state: StateStore, args: Dict[str, Any]) -> ToolResult:
    """Report on what has been learned. Read-only."""
    detail = validate_option(args, "detailLevel", DetailLevel, DetailLevel.SUMMARY)
    focus = validate_option(args, "focusArea", FocusArea, FocusArea.ALL)
    for result in (detail, focus):
        if not result.ok:
            return ToolResult.error(f"❌ {result.error}")
    detail_level, focus_area = detail.data, focus.data

    perf = state.performance
    kb = state.knowledge
    insights = []

    if focus_area in (FocusArea.ALL, FocusArea.PERFORMANCE):
        insights.append(
            "📊 Performance Metrics:\n"
            f"- Total interactions: {perf.total_interactions}\n"
            f"- Successful interactions: {perf.successful_interactions}\n"
            f"- Success rate: {state.formatted_success_rate()}%\n"
            f"- Feedback entries: {len(state.feedback_data)}"
        )

    if focus_area in (FocusArea.ALL, FocusArea.PATTERNS):
        effective = [p for p in kb.patterns if p.effectiveness > 0.7]
        best = max(effective, key=lambda p: p.effectiveness).pattern if effective else "None yet"
        insights.append(
            "🧠 Learned Patterns:\n"
            f"- Total patterns: {len(kb.patterns)}\n"
            f"- High-effectiveness patterns: {len(effective)}\n"
            f"- Most effective pattern type: {best}"
        )

    if focus_area in (FocusArea.ALL, FocusArea.KNOWLEDGE):
        high_confidence = [f for f in kb.facts if f.confidence > 0.8]
        sources = list(dict.fromkeys(f.source.value for f in kb.facts))
        insights.append(
            "🎓 Knowledge Base:\n"
            f"- Total facts: {len(kb.facts)}\n"
            f"- High-confidence facts: {len(high_confidence)}\n"
            f"- Learning sources: {', '.join(sources) or 'none recorded'}"
        )

    if focus_area in (FocusArea.ALL, FocusArea.FEEDBACK):
        recent = state.feedback_data[-5:]
        lines = [f'"{f.feedback}" ({f.timestamp})' for f in recent]
        insights.append(
            f"💬 Feedback ({len(state.feedback_data)} total):\n"
            f"{_bullets(lines, 'No feedback data yet')}"
        )

    if detail_level in (DetailLevel.DETAILED, DetailLevel.FULL):
        recent = state.interaction_history[-5:]
        lines = [
            f'"{i.user_input}" -> {"✅ Success" if i.success is not False else "❌ Failed"}'
            for i in recent
        ]
        insights.append(
            f"🔄 Recent Learning ({len(recent)} recent interactions):\n"
            f"{_bullets(lines, 'No recent interactions')}"
        )

    if detail_level == DetailLevel.FULL:
        prefs = state.preferences
        insights.append(
            "⚙️ Current Preferences:\n"
            f"- Communication style: {prefs.communication_style.value}\n"
            f"- Response detail: {prefs.response_detail_level.value}\n"
            f"- Productivity score: {format_percentage(perf.productivity_score)}%\n"
            f"- Errors recorded: {perf.error_count}"
        )

    insights.append(
        "💡 Recommendations:\n"
        "- Continue providing feedback to improve response quality\n"
        "- Use specific context to help the AI learn better\n"
        "- Interact regularly to maintain learning momentum"
    )

    body = "\n\n".join(insights)
    return ToolResult.ok(
        f"🧠 AI Learning Insights ({detail_level.value} view)\n\n{body}",
        detail_level=detail_level.value,
        focus_area=focus_area.value,
    )


# preference field, label in the change summary
_ADAPTABLE = (
    ("communication_style", "Communication style"),
    ("response_detail_level", "Response detail"),
    ("proactivity_level", "Proactivity level"),
    ("learning_rate", "Learning rate"),
)


def _label(value: Any) -> str:
    if value is None:
        return "unset"
    return value.value if isinstance(value, Enum) else str(value)


def handle_adapt_behavior(state: StateStore, args: Dict[str, Any]) -> ToolResult:
    """Merge explicitly supplied preference fields and log one audit fact."""
    validated = validate_adaptation(args.get("adaptation"))
    if not validated.ok:
        logger.warning("adapt_behavior rejected: {error}", error=validated.error)
        return ToolResult.error(f"❌ {validated.error}")

    reason = args.get("reason")
    if reason is not None and not isinstance(reason, str):
        return ToolResult.error("❌ reason must be a string")

    adaptation = validated.data
    updates = {
        field: getattr(adaptation, field)
        for field, _ in _ADAPTABLE
        if getattr(adaptation, field) is not None
    }
    diff = state.update_preferences(**updates)

    changes = [
        f"{label}: {_label(diff[field][0])} → {_label(diff[field][1])}"
        for field, label in _ADAPTABLE
        if field in diff
    ]

    rejected = []
    if adaptation.custom_preferences is not None:
        accepted, rejected = state.merge_custom_preferences(adaptation.custom_preferences)
        if accepted:
            changes.append(f"Custom preferences: {', '.join(accepted)}")

    summary = ", ".join(changes) or "no changes"
    state.record_fact(
        "adaptation",
        f"Behavior adaptation: {summary}" + (f" (Reason: {reason})" if reason else ""),
        0.9,
        FactSource.BEHAVIORAL_ADAPTATION,
    )

    lines = "\n".join(f"✅ {change}" for change in changes) or "✅ No changes applied"
    text = (
        "🎯 Behavior Adaptation Complete!\n\n"
        f"{lines}\n"
    )
    if rejected:
        text += f"⚠️ Ignored reserved preference keys: {', '.join(rejected)}\n"
    text += "\n🔄 AI behavior has been updated based on learned patterns and preferences.\n"
    if reason:
        text += f"\n💭 Adaptation reason: {reason}\n"
    text += "\n🚀 Future interactions will reflect these new behavioral preferences!"

    return ToolResult.ok(text, changes=changes, rejected_keys=rejected)
