from __future__ import annotations

import logging
import threading
from datetime import date, datetime

from taskmaster.config import SETTINGS
from taskmaster.domain.entities import TaskEntity
from taskmaster.infra.db import init_db
from taskmaster.infra.logging import setup_logging
from taskmaster.infra.reminders import InMemoryReminderScheduler
from taskmaster.infra.repository import TaskRepository
from taskmaster.services.task_service import TaskService

logger = logging.getLogger(__name__)


def build_service(
    repo: TaskRepository | None = None,
    scheduler: InMemoryReminderScheduler | None = None,
) -> TaskService:
    return TaskService(
        repo or TaskRepository(upcoming_days=SETTINGS.upcoming_days),
        scheduler or InMemoryReminderScheduler(),
        default_reminder_minutes=SETTINGS.default_reminder_minutes,
    )


def describe_due(task: TaskEntity, today: date | None = None) -> str:
    days = task.days_until_due(today)
    if days is None:
        return "no due date"
    if task.is_overdue(today):
        return f"overdue by {-days} day(s)"
    if days == 0:
        return "due today"
    return f"due in {days} day(s)"


def deliver_due_reminders(
    service: TaskService,
    scheduler: InMemoryReminderScheduler,
    now: datetime | None = None,
) -> list[TaskEntity]:
    """Fire the reminders whose trigger time has passed and return their tasks."""
    now = now or datetime.now()
    delivered = []
    for reminder in scheduler.pop_due(now):
        task = service.get_task(reminder.task_id)
        if not task or task.is_completed:
            continue
        logger.info("Reminder: %s (%s)", task.title, describe_due(task, now.date()))
        delivered.append(task)
    return delivered


def run_reminder_loop(
    service: TaskService,
    scheduler: InMemoryReminderScheduler,
    stop: threading.Event,
    poll_seconds: float,
) -> None:
    while not stop.wait(poll_seconds):
        deliver_due_reminders(service, scheduler)


def _show_reminders(service: TaskService, now: datetime) -> None:
    reminders = service.list_reminders(now)
    if not reminders:
        return
    logger.info("%d task(s) are due or overdue", len(reminders))
    for task in reminders[:5]:
        logger.info("  %s (%s)", task.title, describe_due(task, now.date()))


def main() -> None:
    setup_logging()
    try:
        init_db()
    except Exception:
        logger.exception("Database is not reachable at %s", SETTINGS.database_url)
        raise SystemExit(1)

    scheduler = InMemoryReminderScheduler()
    service = build_service(scheduler=scheduler)
    now = datetime.now()
    registered = service.reschedule_reminders(now)
    logger.info("Registered %d pending reminder(s)", registered)
    _show_reminders(service, now)

    stop = threading.Event()
    try:
        run_reminder_loop(service, scheduler, stop, SETTINGS.reminder_poll_seconds)
    except KeyboardInterrupt:
        stop.set()
        logger.info("Stopped reminder loop")


if __name__ == "__main__":
    main()
