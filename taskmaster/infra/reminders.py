from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable
from uuid import UUID

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingReminder:
    task_id: UUID
    trigger_at: datetime


class InMemoryReminderScheduler:
    """
    Process-local reminder registry.

    One pending reminder per task id; scheduling again replaces it.
    Trigger times that are not in the future are dropped, like the
    platform notification centre does for past dates.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock
        self._pending: dict[UUID, datetime] = {}
        self._lock = threading.Lock()

    def schedule(self, task_id: UUID, trigger_at: datetime) -> None:
        with self._lock:
            self._pending.pop(task_id, None)
            if trigger_at <= self._clock():
                logger.debug("Skipping past reminder for task %s at %s", task_id, trigger_at)
                return
            self._pending[task_id] = trigger_at
        logger.debug("Scheduled reminder for task %s at %s", task_id, trigger_at)

    def cancel(self, task_id: UUID) -> None:
        with self._lock:
            removed = self._pending.pop(task_id, None)
        if removed is not None:
            logger.debug("Cancelled reminder for task %s", task_id)

    def get(self, task_id: UUID) -> datetime | None:
        with self._lock:
            return self._pending.get(task_id)

    def pending(self) -> list[PendingReminder]:
        with self._lock:
            items = list(self._pending.items())
        return [
            PendingReminder(task_id=task_id, trigger_at=trigger_at)
            for task_id, trigger_at in sorted(items, key=lambda item: item[1])
        ]

    def pop_due(self, now: datetime | None = None) -> list[PendingReminder]:
        now = now or self._clock()
        with self._lock:
            due = [(task_id, at) for task_id, at in self._pending.items() if at <= now]
            for task_id, _ in due:
                del self._pending[task_id]
        return [
            PendingReminder(task_id=task_id, trigger_at=trigger_at)
            for task_id, trigger_at in sorted(due, key=lambda item: item[1])
        ]
