"""
Shared metric calculations.

Every ratio here guards its denominator; a zero count yields 0 or the
``None`` sentinel (rendered as ``N/A``), never a ZeroDivisionError.
"""

from typing import Mapping, Optional

from okcomputer.core.models import ToolStats

NOT_AVAILABLE = "N/A"


def calculate_success_rate(total: int, successful: int) -> float:
    """Success rate as a fraction; 0.0 when nothing was attempted"""
    return successful / total if total > 0 else 0.0


def format_percentage(value: Optional[float], decimals: int = 1) -> str:
    """Format a 0-1 fraction as a percentage string, e.g. 0.855 -> '85.5'"""
    if value is None:
        return NOT_AVAILABLE
    return f"{value * 100:.{decimals}f}"


def usage_rate(total_usage: int, total_interactions: int) -> float:
    """Tool calls per recorded interaction (at least one interaction assumed)"""
    return total_usage / max(total_interactions, 1)


def update_running_average(current: float, new_value: float) -> float:
    """Equal-weight blend of the previous average and the new sample"""
    return (current + new_value) / 2


def weighted_blend(current: float, new_value: float, new_weight: float = 0.1) -> float:
    """Exponential blend; the default keeps 90% of the old value"""
    return current * (1 - new_weight) + new_value * new_weight


def clamp_unit(value: float) -> float:
    return min(1.0, max(0.0, value))


def format_tool_stats(effectiveness: Mapping[str, ToolStats]) -> str:
    """One line per tool: '<tool>: <rate>% success rate'"""
    if not effectiveness:
        return "No tool usage data available"

    lines = []
    for tool, stats in effectiveness.items():
        rate = format_percentage(stats.success_rate)
        suffix = "%" if stats.success_rate is not None else ""
        lines.append(f"{tool}: {rate}{suffix} success rate")
    return "\n".join(lines)
