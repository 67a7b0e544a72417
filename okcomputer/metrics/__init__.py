"""
Metric helpers

Success rates, percentages, running averages and tool effectiveness rendering.
"""

from okcomputer.metrics.calculations import (
    NOT_AVAILABLE,
    calculate_success_rate,
    clamp_unit,
    format_percentage,
    format_tool_stats,
    update_running_average,
    usage_rate,
    weighted_blend,
)
