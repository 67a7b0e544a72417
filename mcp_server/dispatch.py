"""
Tool dispatch: lookup, sanitize, run, record metrics.

Every tool call from the transport goes through ToolDispatcher.dispatch, so
sanitization and usage tracking happen in exactly one place.
"""

import traceback
from typing import Any, Dict, Optional

from loguru import logger

from okcomputer.core.config import Settings
from okcomputer.core.errors import InputRejectedError, SanitizationError, ToolNotFoundError
from okcomputer.core.models import ErrorRecord, ToolResult
from okcomputer.security.sanitize import deep_sanitize
from okcomputer.state.store import StateStore

from mcp_server.handlers.registry import ToolRegistry


class ToolDispatcher:
    """
    Routes a tool call to its handler and keeps the performance counters.

    Handler faults are recorded (error count, last error with traceback,
    failed tool usage) and re-raised for the transport to report.
    """

    def __init__(self, state: StateStore, registry: ToolRegistry, settings: Optional[Settings] = None):
        self.state = state
        self.registry = registry
        self.settings = settings or state.settings

    def dispatch(self, name: str, raw_args: Optional[Dict[str, Any]] = None) -> ToolResult:
        tool = self.registry.get(name)
        if tool is None:
            raise ToolNotFoundError(name, self.registry.names())

        try:
            args = deep_sanitize(raw_args or {}, self.settings.SANITIZE_MAX_DEPTH)
        except SanitizationError as e:
            logger.warning("Security: rejected arguments for {tool}: {error}", tool=name, error=str(e))
            self.state.record_error(ErrorRecord(
                tool=name, message=str(e), timestamp=self.state.now_iso(),
            ))
            raise InputRejectedError(f"Invalid input format: {e}") from e

        if not isinstance(args, dict):
            raise InputRejectedError("Invalid input format: arguments must be an object")

        started = self.state.clock()
        try:
            result = tool.handler(self.state, args)
        except Exception as e:
            self.state.record_error(ErrorRecord(
                tool=name,
                message=str(e),
                timestamp=self.state.now_iso(),
                stack=traceback.format_exc(),
            ))
            self.state.track_tool_usage(name, False)
            logger.error("Tool {tool} failed: {error}", tool=name, error=str(e))
            raise

        elapsed = self.state.clock() - started
        self.state.track_tool_usage(name, not result.is_error)
        self.state.update_average_response_time(elapsed)
        logger.debug(
            "Tool {tool} finished in {elapsed}ms (error={is_error})",
            tool=name, elapsed=elapsed, is_error=result.is_error,
        )
        return result
