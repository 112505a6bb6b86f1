"""
User-facing notifications raised by the labeling session
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class Severity(str, Enum):
    """Notification severities, mapped to st.success/info/warning/error"""
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Notification:
    message: str
    severity: Severity = Severity.INFO


class NotificationCenter:
    """Collects notifications until the page renders and drains them"""

    def __init__(self):
        self._pending: List[Notification] = []

    def notify(self, message: str, severity: Severity = Severity.INFO) -> Notification:
        notification = Notification(message=message, severity=Severity(severity))
        self._pending.append(notification)
        return notification

    def success(self, message: str) -> Notification:
        return self.notify(message, Severity.SUCCESS)

    def info(self, message: str) -> Notification:
        return self.notify(message, Severity.INFO)

    def warning(self, message: str) -> Notification:
        return self.notify(message, Severity.WARNING)

    def error(self, message: str) -> Notification:
        return self.notify(message, Severity.ERROR)

    @property
    def pending(self) -> List[Notification]:
        return list(self._pending)

    @property
    def latest(self) -> Optional[Notification]:
        return self._pending[-1] if self._pending else None

    def drain(self) -> List[Notification]:
        """Return and forget all pending notifications"""
        pending, self._pending = self._pending, []
        return pending

    def clear(self) -> None:
        self._pending = []
