"""
Input validation for stateful tools.

Each validator is a pure function ``raw -> ValidationResult``: either the full
validated model or one descriptive error string naming the offending field.
Nothing here mutates state, so a handler that checks ``result.ok`` before
touching the store can never partially apply a bad call.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, Type, TypeVar

from okcomputer.core.models import (
    AdaptationInput,
    CommunicationStyle,
    GoalInput,
    GoalPriority,
    InteractionInput,
    LearningRate,
    ProactivityLevel,
    ResponseDetailLevel,
    TaskInput,
)

T = TypeVar("T")
E = TypeVar("E", bound=Enum)


@dataclass(frozen=True)
class ValidationResult(Generic[T]):
    ok: bool
    data: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, data: T) -> "ValidationResult[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str) -> "ValidationResult[T]":
        return cls(ok=False, error=error)


# ========== PRIMITIVE CHECKS ==========


def is_object(value: Any) -> bool:
    return isinstance(value, dict)


def is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and len(value) > 0


def is_number(value: Any) -> bool:
    # bool is an int subclass; True is not a number for our purposes
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def is_number_in_range(value: Any, low: float, high: float) -> bool:
    return is_number(value) and low <= value <= high


def is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def _enum_value(enum_cls: Type[E], value: Any) -> Optional[E]:
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        return None


def _choices(enum_cls: Type[Enum]) -> str:
    return ", ".join(member.value for member in enum_cls)


# ========== TOOL VALIDATORS ==========


def validate_interaction(raw: Any) -> ValidationResult[InteractionInput]:
    """Validate ``interaction`` for learn_from_interaction"""
    if not is_object(raw):
        return ValidationResult.failure("Interaction object is required")

    if not is_non_empty_string(raw.get("userInput")):
        return ValidationResult.failure("Interaction must have valid userInput (non-empty string)")

    if not is_non_empty_string(raw.get("aiResponse")):
        return ValidationResult.failure("Interaction must have valid aiResponse (non-empty string)")

    success = raw.get("success")
    if success is not None and not isinstance(success, bool):
        return ValidationResult.failure("Interaction success must be a boolean if provided")

    feedback = raw.get("userFeedback")
    if feedback is not None and not isinstance(feedback, str):
        return ValidationResult.failure("Interaction userFeedback must be a string if provided")

    context = raw.get("context")
    if context is not None and not isinstance(context, str):
        return ValidationResult.failure("Interaction context must be a string if provided")

    return ValidationResult.success(InteractionInput(
        user_input=raw["userInput"],
        ai_response=raw["aiResponse"],
        user_feedback=feedback,
        success=success,
        context=context,
    ))


def validate_task(raw: Any) -> ValidationResult[TaskInput]:
    """Validate ``task`` for track_productivity(add_task)"""
    if not is_object(raw):
        return ValidationResult.failure("Task information required")

    if not is_non_empty_string(raw.get("name")):
        return ValidationResult.failure("Task name must be a non-empty string")

    efficiency = raw.get("efficiency")
    if efficiency is not None:
        if not is_number(efficiency):
            return ValidationResult.failure("Task efficiency must be a number (0-1)")
        if not 0 <= efficiency <= 1:
            return ValidationResult.failure(
                f"Task efficiency must be between 0 and 1, got {efficiency}"
            )

    tools_used = raw.get("toolsUsed")
    if tools_used is not None:
        if not isinstance(tools_used, list):
            return ValidationResult.failure("toolsUsed must be an array of strings")
        for tool in tools_used:
            if not isinstance(tool, str):
                return ValidationResult.failure(
                    f"All tools in toolsUsed must be strings, found {type(tool).__name__}"
                )

    success = raw.get("success")
    if success is not None and not isinstance(success, bool):
        return ValidationResult.failure("Task success must be a boolean if provided")

    duration = raw.get("duration")
    if duration is not None and not is_number(duration):
        return ValidationResult.failure("Task duration must be a number of seconds")

    task_type = raw.get("type")
    if task_type is not None and not isinstance(task_type, str):
        return ValidationResult.failure("Task type must be a string if provided")

    return ValidationResult.success(TaskInput(
        name=raw["name"],
        type=task_type,
        tools_used=list(tools_used or []),
        duration=duration,
        success=success,
        efficiency=efficiency,
    ))


def validate_goal(raw: Any) -> ValidationResult[GoalInput]:
    """Validate ``goal`` for track_productivity(set_goal)"""
    if not is_object(raw):
        return ValidationResult.failure("Goal information required")

    if not is_non_empty_string(raw.get("description")):
        return ValidationResult.failure("Goal description must be a non-empty string")

    priority = GoalPriority.MEDIUM
    if raw.get("priority") is not None:
        priority = _enum_value(GoalPriority, raw["priority"])
        if priority is None:
            return ValidationResult.failure(f"Goal priority must be one of: {_choices(GoalPriority)}")

    deadline = raw.get("deadline")
    if deadline is not None and not isinstance(deadline, str):
        return ValidationResult.failure("Goal deadline must be an ISO date string")

    return ValidationResult.success(GoalInput(
        description=raw["description"],
        priority=priority,
        deadline=deadline,
    ))


_ADAPTATION_ENUMS: dict[str, tuple[str, Type[Enum]]] = {
    "communicationStyle": ("communication_style", CommunicationStyle),
    "responseDetailLevel": ("response_detail_level", ResponseDetailLevel),
    "proactivityLevel": ("proactivity_level", ProactivityLevel),
    "learningRate": ("learning_rate", LearningRate),
}


def validate_adaptation(raw: Any) -> ValidationResult[AdaptationInput]:
    """Validate ``adaptation`` for adapt_behavior; every field is optional"""
    if not is_object(raw):
        return ValidationResult.failure("Adaptation object is required and must be an object")

    fields: dict[str, Any] = {}
    for wire_name, (field_name, enum_cls) in _ADAPTATION_ENUMS.items():
        if raw.get(wire_name) is None:
            continue
        member = _enum_value(enum_cls, raw[wire_name])
        if member is None:
            return ValidationResult.failure(f"{wire_name} must be one of: {_choices(enum_cls)}")
        fields[field_name] = member

    custom = raw.get("customPreferences")
    if custom is not None:
        if not is_object(custom):
            return ValidationResult.failure("customPreferences must be an object of key/value pairs")
        fields["custom_preferences"] = dict(custom)

    return ValidationResult.success(AdaptationInput(**fields))


def validate_option(args: dict, key: str, enum_cls: Type[E], default: E) -> ValidationResult[E]:
    """Resolve an optional enum argument, falling back to ``default`` when absent"""
    raw = args.get(key)
    if raw is None:
        return ValidationResult.success(default)
    member = _enum_value(enum_cls, raw)
    if member is None:
        return ValidationResult.failure(f"{key} must be one of: {_choices(enum_cls)}")
    return ValidationResult.success(member)


def validate_flag(args: dict, key: str, default: bool = False) -> ValidationResult[bool]:
    raw = args.get(key)
    if raw is None:
        return ValidationResult.success(default)
    if not isinstance(raw, bool):
        return ValidationResult.failure(f"{key} must be a boolean")
    return ValidationResult.success(raw)
