"""
Deep sanitization of untrusted tool arguments.

Strips structural keys (``__proto__``, ``constructor``, ``prototype``) at every
nesting level before arguments reach a handler or get merged into long-lived
state. Runs once, centrally, in the dispatcher.
"""

from typing import Any

from loguru import logger

from okcomputer.core.errors import SanitizationError

DANGEROUS_KEYS = frozenset({"__proto__", "constructor", "prototype"})

DEFAULT_MAX_DEPTH = 10


def is_dangerous_key(key: Any) -> bool:
    return key in DANGEROUS_KEYS


def deep_sanitize(value: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
    """
    Return a structurally equivalent copy of ``value`` with dangerous keys removed.

    Raises:
        SanitizationError: if any value sits deeper than ``max_depth``. The whole
            sanitization fails; no partial result is returned.
    """
    return _sanitize(value, 0, max_depth, "$")


def _sanitize(value: Any, depth: int, max_depth: int, path: str) -> Any:
    if depth > max_depth:
        raise SanitizationError(
            f"Object nesting too deep at {path} (max depth {max_depth}) - possible pollution attack"
        )

    if isinstance(value, dict):
        clean = {}
        for key, item in value.items():
            if is_dangerous_key(key):
                logger.warning("Blocked dangerous property {key!r} in {path}", key=key, path=path)
                continue
            clean[key] = _sanitize(item, depth + 1, max_depth, f"{path}.{key}")
        return clean

    if isinstance(value, (list, tuple)):
        return [
            _sanitize(item, depth + 1, max_depth, f"{path}[{i}]")
            for i, item in enumerate(value)
        ]

    return value
