"""Centralized in-memory server state"""

from okcomputer.state.store import StateStore, system_clock

__all__ = ["StateStore", "system_clock"]
