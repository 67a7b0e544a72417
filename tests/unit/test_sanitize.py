"""Unit tests for deep argument sanitization"""

import pytest

from okcomputer.core.errors import SanitizationError
from okcomputer.security.sanitize import DANGEROUS_KEYS, deep_sanitize, is_dangerous_key


def _nested(depth: int) -> dict:
    value: dict = {"leaf": 1}
    for _ in range(depth):
        value = {"child": value}
    return value


class TestDeepSanitize:

    def test_scalars_pass_through(self) -> None:
        """Scalars come back unchanged"""
        for value in ("text", 42, 1.5, True, None):
            assert deep_sanitize(value) == value

    def test_strips_dangerous_keys_at_top_level(self) -> None:
        """Dangerous keys are removed at the top level"""
        raw = {"__proto__": {"polluted": True}, "constructor": 1, "prototype": 2, "safe": "ok"}

        assert deep_sanitize(raw) == {"safe": "ok"}

    def test_strips_dangerous_keys_at_depth(self) -> None:
        """Dangerous keys are removed inside nested objects"""
        raw = {"adaptation": {"customPreferences": {"__proto__": {"x": 1}, "theme": "dark"}}}

        clean = deep_sanitize(raw)

        assert clean == {"adaptation": {"customPreferences": {"theme": "dark"}}}

    def test_strips_inside_lists(self) -> None:
        """Dangerous keys are removed inside list items"""
        raw = {"items": [{"constructor": "bad", "name": "a"}, {"name": "b"}]}

        assert deep_sanitize(raw) == {"items": [{"name": "a"}, {"name": "b"}]}

    def test_tuples_become_lists(self) -> None:
        """Tuples are returned as lists"""
        assert deep_sanitize((1, 2, (3,))) == [1, 2, [3]]

    def test_input_is_not_mutated(self) -> None:
        """The input is left untouched"""
        raw = {"__proto__": 1, "keep": {"prototype": 2}}

        deep_sanitize(raw)

        assert raw == {"__proto__": 1, "keep": {"prototype": 2}}

    def test_idempotent(self) -> None:
        """Sanitizing twice gives the same result"""
        raw = {"a": [{"__proto__": 1, "b": {"constructor": 2, "c": 3}}]}

        once = deep_sanitize(raw)

        assert deep_sanitize(once) == once

    def test_depth_at_limit_is_accepted(self) -> None:
        """Nesting exactly at the limit is accepted"""
        # leaf scalar sits at depth 10
        assert deep_sanitize(_nested(9), max_depth=10) == _nested(9)

    def test_depth_over_limit_fails(self) -> None:
        """Nesting past the limit fails"""
        with pytest.raises(SanitizationError, match="nesting too deep"):
            deep_sanitize(_nested(10), max_depth=10)

    def test_deep_list_nesting_fails(self) -> None:
        """List nesting counts toward the depth limit"""
        value: list = [1]
        for _ in range(12):
            value = [value]

        with pytest.raises(SanitizationError):
            deep_sanitize(value)

    def test_custom_depth(self) -> None:
        """The depth limit is configurable"""
        with pytest.raises(SanitizationError):
            deep_sanitize({"a": {"b": {"c": 1}}}, max_depth=2)


def test_is_dangerous_key() -> None:
    """Only the structural keys are dangerous"""
    assert all(is_dangerous_key(key) for key in DANGEROUS_KEYS)
    assert not is_dangerous_key("name")
