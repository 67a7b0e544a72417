"""Stateless handlers: echo and system_info"""

import json
import os
import platform
import sys
import time
from enum import Enum
from typing import Any, Dict

from okcomputer.core.models import ToolResult
from okcomputer.core.validation import validate_option
from okcomputer.state.store import StateStore

# Only these environment variables are ever reported
SAFE_ENV_VARS = ("APP_ENV", "TZ")

_STARTED = time.monotonic()


class InfoDetail(str, Enum):
    BASIC = "basic"
    FULL = "full"


ECHO_SCHEMA = {
    "type": "object",
    "properties": {
        "message": {
            "type": "string",
            "description": "Message to echo back",
        },
    },
    "required": ["message"],
}

SYSTEM_INFO_SCHEMA = {
    "type": "object",
    "properties": {
        "detail": {
            "type": "string",
            "enum": [d.value for d in InfoDetail],
            "description": "Level of detail for system information",
        },
    },
}


def uptime_seconds() -> float:
    return round(time.monotonic() - _STARTED, 3)


def handle_echo(state: StateStore, args: Dict[str, Any]) -> ToolResult:
    message = args.get("message")
    if not isinstance(message, str):
        return ToolResult.error("❌ message must be a string")
    return ToolResult.ok(f"Echo: {message}")


def handle_system_info(state: StateStore, args: Dict[str, Any]) -> ToolResult:
    """Platform details; ``full`` adds allow-listed env vars and runtime versions"""
    detail = validate_option(args, "detail", InfoDetail, InfoDetail.BASIC)
    if not detail.ok:
        return ToolResult.error(f"❌ {detail.error}")

    info: Dict[str, Any] = {
        "platform": sys.platform,
        "arch": platform.machine(),
        "python_version": platform.python_version(),
        "uptime": uptime_seconds(),
    }

    if detail.data == InfoDetail.FULL:
        info["safe_env"] = {name: os.environ.get(name, "unknown") for name in SAFE_ENV_VARS}
        info["versions"] = {
            "python": sys.version,
            "implementation": platform.python_implementation(),
            "system": platform.system(),
            "release": platform.release(),
        }

    return ToolResult.ok(
        f"System Information ({detail.data.value}):\n```json\n{json.dumps(info, indent=2)}\n```",
        **info,
    )
