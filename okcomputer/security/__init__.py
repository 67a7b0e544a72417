"""Input sanitization for untrusted tool arguments"""

from okcomputer.security.sanitize import DANGEROUS_KEYS, deep_sanitize, is_dangerous_key

__all__ = ["DANGEROUS_KEYS", "deep_sanitize", "is_dangerous_key"]
