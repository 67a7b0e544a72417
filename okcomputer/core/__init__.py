"""Core data models, configuration, errors and input validation"""

from okcomputer.core.models import (
    AutoOptimizationConfig,
    Fact,
    FactSource,
    InteractionEntry,
    KnowledgeBase,
    Pattern,
    PerformanceMetrics,
    Preferences,
    ProductivityGoal,
    ProductivityMetrics,
    ToolResult,
    ToolStats,
)
from okcomputer.core.config import Settings, settings

__all__ = [
    "AutoOptimizationConfig",
    "Fact",
    "FactSource",
    "InteractionEntry",
    "KnowledgeBase",
    "Pattern",
    "PerformanceMetrics",
    "Preferences",
    "ProductivityGoal",
    "ProductivityMetrics",
    "ToolResult",
    "ToolStats",
    "Settings",
    "settings",
]
