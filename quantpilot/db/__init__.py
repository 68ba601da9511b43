"""Persistence layer for QuantPilot."""

from quantpilot.db.store import PersistedState, SessionInfo, StateStore

__all__ = ["PersistedState", "SessionInfo", "StateStore"]
