"""
Alert records and the bounded alert log.

Alerts are immutable, timestamped in simulated seconds and tagged with a
severity. The log keeps the most recent entries in a ring buffer and hands
the entries raised since the last drain back to the caller of each tick.
"""

import logging
from collections import deque
from enum import Enum
from typing import Deque, List, Optional

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.CRITICAL: logging.ERROR,
}


class Alert(BaseModel):
    """One plant event as shown to the operator."""

    model_config = ConfigDict(frozen=True)

    time: float
    severity: Severity
    message: str
    source: Optional[str] = None


class AlertLog:
    """Append-only ring buffer of alerts."""

    def __init__(self, maxlen: int = 200):
        self._entries: Deque[Alert] = deque(maxlen=maxlen)
        self._pending: Deque[Alert] = deque(maxlen=maxlen)

    def push(self, time: float, severity: Severity, message: str,
             source: Optional[str] = None) -> Alert:
        alert = Alert(time=time, severity=severity, message=message, source=source)
        self._entries.append(alert)
        self._pending.append(alert)
        logger.log(_LOG_LEVELS[severity], f"[t={time:7.2f}s] {message}")
        return alert

    def drain(self) -> List[Alert]:
        """Return the alerts raised since the previous drain."""
        pending = list(self._pending)
        self._pending.clear()
        return pending

    def recent(self, count: int) -> List[Alert]:
        if count <= 0:
            return []
        return list(self._entries)[-count:]

    def clear(self):
        self._entries.clear()
        self._pending.clear()

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))
