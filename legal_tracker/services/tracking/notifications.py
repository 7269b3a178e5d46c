from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List

from .models import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    level: str
    message: str
    blocking: bool = False
    created_at: str = field(default_factory=utc_now)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "message": self.message,
            "blocking": self.blocking,
            "created_at": self.created_at,
        }


class Notifier:
    """User-facing notices waiting to be shown by the view."""

    def __init__(self, history: int = 50) -> None:
        self._items: Deque[Notification] = deque(maxlen=max(1, int(history)))

    def info(self, message: str) -> Notification:
        return self._push(Notification(level="info", message=message))

    def error(self, message: str, *, blocking: bool = True) -> Notification:
        logger.error(message)
        return self._push(Notification(level="error", message=message, blocking=blocking))

    def _push(self, notification: Notification) -> Notification:
        self._items.append(notification)
        return notification

    def pending(self) -> List[Notification]:
        return list(self._items)

    def drain(self) -> List[Notification]:
        items = list(self._items)
        self._items.clear()
        return items
