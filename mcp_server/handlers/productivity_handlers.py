"""Productivity tracking handler - tasks, goals and efficiency metrics"""

from typing import Any, Callable, Dict

from loguru import logger

from okcomputer.core.models import ProductivityAction, ProductivityGoal, ToolResult
from okcomputer.core.validation import validate_goal, validate_option, validate_task
from okcomputer.metrics.calculations import NOT_AVAILABLE, format_percentage
from okcomputer.state.store import StateStore

TRACK_PRODUCTIVITY_SCHEMA = {
    "type": "object",
    "properties": {
        "task": {
            "type": "object",
            "description": "Task information to track",
            "properties": {
                "name": {"type": "string", "description": "Task name or description"},
                "type": {"type": "string", "description": "Type of task"},
                "toolsUsed": {"type": "array", "items": {"type": "string"}, "description": "Tools used for this task"},
                "duration": {"type": "number", "description": "Time taken in seconds"},
                "success": {"type": "boolean", "description": "Whether task was completed successfully"},
                "efficiency": {"type": "number", "description": "Efficiency rating (0-1)"},
            },
        },
        "goal": {
            "type": "object",
            "description": "Productivity goal to set or update",
            "properties": {
                "description": {"type": "string", "description": "Goal description"},
                "priority": {"type": "string", "enum": ["low", "medium", "high"], "description": "Goal priority"},
                "deadline": {"type": "string", "description": "Target completion date (ISO string)"},
            },
        },
        "goalId": {
            "type": "string",
            "description": "Goal to mark as completed (complete_task only)",
        },
        "action": {
            "type": "string",
            "enum": [a.value for a in ProductivityAction],
            "description": "Action to perform",
            "default": "get_metrics",
        },
    },
}


def _add_task(state: StateStore, args: Dict[str, Any]) -> ToolResult:
    validated = validate_task(args.get("task"))
    if not validated.ok:
        logger.warning("add_task rejected: {error}", error=validated.error)
        return ToolResult.error(f"❌ {validated.error}")

    task = validated.data
    state.increment_tasks_completed()

    for tool in task.tools_used:
        state.record_tool_effectiveness(tool, task.success is not False)

    # 0 is a legitimate efficiency sample
    if task.efficiency is not None:
        state.update_efficiency_score(task.efficiency)

    metrics = state.productivity
    return ToolResult.ok(
        f"✅ Task tracked: {task.name}\n"
        "📊 Productivity metrics updated\n"
        f"🎯 Tasks completed: {metrics.tasks_completed}\n"
        f"⚡ Current efficiency: {format_percentage(metrics.efficiency_score)}%",
        tasks_completed=metrics.tasks_completed,
        efficiency_score=metrics.efficiency_score,
    )


def _complete_task(state: StateStore, args: Dict[str, Any]) -> ToolResult:
    goal_id = args.get("goalId")
    if goal_id is not None:
        if not isinstance(goal_id, str) or not any(g.id == goal_id for g in state.productivity.user_goals):
            return ToolResult.error(f"❌ Unknown goal id: {goal_id}")

    state.increment_tasks_completed()
    state.increment_productivity_score(0.02)

    text = (
        "🎉 Task completed!\n"
        f"📈 Productivity score: {format_percentage(state.performance.productivity_score)}%\n"
        f"✅ Total tasks completed: {state.productivity.tasks_completed}"
    )

    completed = None
    if goal_id is not None:
        completed = state.complete_goal(goal_id)
        text += f"\n🏁 Goal completed: {completed.description}"

    return ToolResult.ok(
        text,
        tasks_completed=state.productivity.tasks_completed,
        productivity_score=state.performance.productivity_score,
        completed_goal=completed.id if completed else None,
    )


def _set_goal(state: StateStore, args: Dict[str, Any]) -> ToolResult:
    validated = validate_goal(args.get("goal"))
    if not validated.ok:
        logger.warning("set_goal rejected: {error}", error=validated.error)
        return ToolResult.error(f"❌ {validated.error}")

    goal_input = validated.data
    goal = ProductivityGoal(
        id=state.new_id("goal"),
        description=goal_input.description,
        priority=goal_input.priority,
        deadline=goal_input.deadline,
        created=state.now_iso(),
    )
    state.add_goal(goal)

    text = (
        f"🎯 Goal set: {goal.description}\n"
        f"📅 Priority: {goal.priority.value}\n"
    )
    if goal.deadline:
        text += f"⏰ Deadline: {goal.deadline}\n"
    text += f"🚀 Goal added to productivity tracking (id: {goal.id})"

    return ToolResult.ok(text, goal_id=goal.id)


def _get_metrics(state: StateStore, args: Dict[str, Any]) -> ToolResult:
    metrics = state.productivity
    lines = []
    for tool, stats in metrics.tool_effectiveness.items():
        rate = format_percentage(stats.success_rate)
        suffix = "%" if rate != NOT_AVAILABLE else ""
        lines.append(f"{tool}: {stats.success}/{stats.uses} ({rate}{suffix} success)")
    tool_stats = "\n".join(lines) or "No tool usage data yet"

    return ToolResult.ok(
        "📊 Productivity Metrics\n\n"
        f"🎯 Tasks Completed: {metrics.tasks_completed}\n"
        f"⚡ Efficiency Score: {format_percentage(metrics.efficiency_score)}%\n"
        f"📈 Productivity Score: {format_percentage(state.performance.productivity_score)}%\n"
        f"🛠️ Tool Effectiveness:\n{tool_stats}\n"
        f"🎯 Active Goals: {len(metrics.user_goals)}\n"
        f"✅ Completed Goals: {len(metrics.completed_goals)}",
        tasks_completed=metrics.tasks_completed,
        active_goals=len(metrics.user_goals),
        completed_goals=len(metrics.completed_goals),
    )


def _analyze_efficiency(state: StateStore, args: Dict[str, Any]) -> ToolResult:
    return ToolResult.ok(state.analyze_efficiency())


ACTIONS: Dict[ProductivityAction, Callable[[StateStore, Dict[str, Any]], ToolResult]] = {
    ProductivityAction.ADD_TASK: _add_task,
    ProductivityAction.COMPLETE_TASK: _complete_task,
    ProductivityAction.SET_GOAL: _set_goal,
    ProductivityAction.GET_METRICS: _get_metrics,
    ProductivityAction.ANALYZE_EFFICIENCY: _analyze_efficiency,
}


def handle_track_productivity(state: StateStore, args: Dict[str, Any]) -> ToolResult:
    action = validate_option(args, "action", ProductivityAction, ProductivityAction.GET_METRICS)
    if not action.ok:
        return ToolResult.error(f"❌ Unknown action. {action.error}")
    return ACTIONS[action.data](state, args)
