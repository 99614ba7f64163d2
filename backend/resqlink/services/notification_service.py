"""
Notification Service
====================

Keeps the recent toasts so the dashboard can show them.

Bounded: once full, the oldest toast falls off.

Author: ResQlink Team
"""

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Optional

from resqlink.models import Notification, NotificationVariant

logger = logging.getLogger(__name__)


class NotificationService:
    """In-memory toast feed, newest first on read."""

    def __init__(self, max_size: int = 100):
        self._toasts: deque[Notification] = deque(maxlen=max_size)

    def notify(
        self,
        title: str,
        description: str,
        variant: NotificationVariant = NotificationVariant.DEFAULT,
    ) -> Notification:
        """Record a toast and log it (destructive ones as warnings)."""
        toast = Notification(
            title=title,
            description=description,
            variant=variant,
            created_at=datetime.now(timezone.utc),
        )
        self._toasts.append(toast)

        if toast.variant == NotificationVariant.DESTRUCTIVE:
            logger.warning(f"[toast] {title}: {description}")
        else:
            logger.info(f"[toast] {title}: {description}")
        return toast

    def recent(self, limit: Optional[int] = None) -> list[Notification]:
        toasts = list(reversed(self._toasts))
        if limit is not None:
            toasts = toasts[:max(limit, 0)]
        return toasts

    def clear(self) -> int:
        """Forget every toast. Returns how many were dropped."""
        count = len(self._toasts)
        self._toasts.clear()
        return count

    def __len__(self) -> int:
        return len(self._toasts)
