"""
Tool registry shared by the dispatcher and the MCP server.

Maps each tool name to its description, JSON input schema and handler. The
list of names is fixed and its order is stable; list_tools reports tools in
registration order.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from okcomputer.core.models import ToolResult
from okcomputer.state.store import StateStore

from mcp_server.handlers.learning_handlers import (
    ADAPT_BEHAVIOR_SCHEMA,
    GET_LEARNING_INSIGHTS_SCHEMA,
    LEARN_FROM_INTERACTION_SCHEMA,
    handle_adapt_behavior,
    handle_get_learning_insights,
    handle_learn_from_interaction,
)
from mcp_server.handlers.optimization_handlers import (
    AUTO_OPTIMIZE_SCHEMA,
    ENHANCE_TOOL_USAGE_SCHEMA,
    OPTIMIZE_PERFORMANCE_SCHEMA,
    handle_auto_optimize,
    handle_enhance_tool_usage,
    handle_optimize_performance,
)
from mcp_server.handlers.productivity_handlers import (
    TRACK_PRODUCTIVITY_SCHEMA,
    handle_track_productivity,
)
from mcp_server.handlers.system_handlers import (
    ECHO_SCHEMA,
    SYSTEM_INFO_SCHEMA,
    handle_echo,
    handle_system_info,
)

ToolHandler = Callable[[StateStore, Dict[str, Any]], ToolResult]


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    input_schema: Dict[str, Any]
    handler: ToolHandler


class ToolRegistry:
    """Ordered name -> ToolDefinition lookup"""

    def __init__(self):
        self._tools: Dict[str, ToolDefinition] = {}

    def register(self, tool: ToolDefinition) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def definitions(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def build_registry() -> ToolRegistry:
    """Registry with the nine built-in tools, in their published order"""
    registry = ToolRegistry()
    for tool in (
        ToolDefinition(
            "echo",
            "Echo back the provided message",
            ECHO_SCHEMA,
            handle_echo,
        ),
        ToolDefinition(
            "system_info",
            "Get system information",
            SYSTEM_INFO_SCHEMA,
            handle_system_info,
        ),
        ToolDefinition(
            "learn_from_interaction",
            "Learn from user interactions to improve future responses",
            LEARN_FROM_INTERACTION_SCHEMA,
            handle_learn_from_interaction,
        ),
        ToolDefinition(
            "get_learning_insights",
            "Get insights about what the AI has learned and performance metrics",
            GET_LEARNING_INSIGHTS_SCHEMA,
            handle_get_learning_insights,
        ),
        ToolDefinition(
            "adapt_behavior",
            "Adapt AI behavior based on learned patterns and user preferences",
            ADAPT_BEHAVIOR_SCHEMA,
            handle_adapt_behavior,
        ),
        ToolDefinition(
            "optimize_performance",
            "Analyze performance and suggest optimizations for better interactions",
            OPTIMIZE_PERFORMANCE_SCHEMA,
            handle_optimize_performance,
        ),
        ToolDefinition(
            "auto_optimize",
            "Automatically optimize system performance based on current metrics and usage patterns",
            AUTO_OPTIMIZE_SCHEMA,
            handle_auto_optimize,
        ),
        ToolDefinition(
            "track_productivity",
            "Track and analyze productivity metrics. Monitor task completion, efficiency, and tool effectiveness.",
            TRACK_PRODUCTIVITY_SCHEMA,
            handle_track_productivity,
        ),
        ToolDefinition(
            "enhance_tool_usage",
            "Analyze tool usage patterns and suggest enhancements to increase productivity and tool adoption.",
            ENHANCE_TOOL_USAGE_SCHEMA,
            handle_enhance_tool_usage,
        ),
    ):
        registry.register(tool)
    return registry

