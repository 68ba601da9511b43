"""Bounded event stream consumed by the presentation layer."""

import logging
from collections import deque

from quantpilot.models import LogEntry

logger = logging.getLogger("quantpilot.events")

MAX_EVENTS = 50

_LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "ai": logging.INFO,
    "warning": logging.WARNING,
}


class EventLog:
    """Keeps the most recent engine events and mirrors them to logging."""

    def __init__(self, max_events: int = MAX_EVENTS):
        self._entries: deque[LogEntry] = deque(maxlen=max_events)

    def add(self, message: str, level: str = "info") -> LogEntry:
        entry = LogEntry(message=message, level=level)
        self._entries.append(entry)
        logger.log(_LOG_LEVELS[level], message)
        return entry

    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
