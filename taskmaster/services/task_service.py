from __future__ import annotations

import logging
from dataclasses import fields, replace
from datetime import datetime, timedelta
from uuid import UUID

from taskmaster.domain.entities import TaskEntity
from taskmaster.domain.enums import PriorityLevel, RecurrenceRule, TaskStatus
from taskmaster.domain.filters import TaskFilters
from taskmaster.domain.recurrence import create_next_occurrence

from .ports import ReminderScheduler, TaskStore

logger = logging.getLogger(__name__)

_TASK_FIELDS = {f.name for f in fields(TaskEntity)}


class TaskValidationError(ValueError):
    pass


class TaskService:
    def __init__(
        self,
        store: TaskStore,
        scheduler: ReminderScheduler | None = None,
        default_reminder_minutes: int = 15,
    ) -> None:
        self._store = store
        self._scheduler = scheduler
        self._default_reminder = timedelta(minutes=default_reminder_minutes)

    def list_tasks(self, filters: TaskFilters) -> list[TaskEntity]:
        return self._store.list_tasks(filters)

    def get_task(self, task_id: UUID) -> TaskEntity | None:
        return self._store.get(task_id)

    def create_task(self, data: dict) -> TaskEntity:
        normalized = self._normalize_data(data)
        normalized.pop("id", None)
        if normalized.get("status") == TaskStatus.COMPLETED:
            normalized.setdefault("completion_date", datetime.now())
        task = TaskEntity(**normalized)
        self._validate(task)
        self._store.save(task)
        logger.info("Created task %s %r", task.id, task.title)
        self._sync_reminder(task)
        return task

    def update_task(self, task_id: UUID, data: dict) -> TaskEntity | None:
        task = self._store.get(task_id)
        if not task:
            return None

        normalized = self._normalize_data(data, base=task)
        normalized.pop("id", None)
        status = normalized.get("status")
        if status == TaskStatus.COMPLETED and "completion_date" not in normalized:
            normalized["completion_date"] = datetime.now()
        if status and status != TaskStatus.COMPLETED:
            normalized["completion_date"] = None

        updated = replace(task, **normalized)
        self._validate(updated)
        self._store.save(updated)
        self._sync_reminder(updated)
        if updated.is_completed and not task.is_completed:
            updated = self._handle_recurrence(updated)
        return updated

    def delete_task(self, task_id: UUID) -> None:
        self._store.delete(task_id)
        if self._scheduler:
            self._scheduler.cancel(task_id)

    def mark_done(self, task_id: UUID) -> TaskEntity | None:
        existing = self._store.get(task_id)
        if not existing:
            return None
        if existing.is_completed:
            return existing
        return self.update_task(task_id, {"status": TaskStatus.COMPLETED})

    def toggle_completion(self, task_id: UUID) -> TaskEntity | None:
        task = self._store.get(task_id)
        if not task:
            return None
        if task.is_completed:
            return self.update_task(task_id, {"status": TaskStatus.NOT_STARTED})
        return self.mark_done(task_id)

    def list_reminders(self, now: datetime | None = None) -> list[TaskEntity]:
        return self._store.list_due_reminders(now or datetime.now())

    def reschedule_reminders(self, now: datetime | None = None) -> int:
        """Register reminders for every open task that has one in the future."""
        if not self._scheduler:
            return 0
        now = now or datetime.now()
        count = 0
        for task in self._store.list_tasks(TaskFilters(filter_key="open")):
            if task.reminder_date and task.reminder_date > now:
                self._scheduler.schedule(task.id, task.reminder_date)
                count += 1
        return count

    def _handle_recurrence(self, task: TaskEntity) -> TaskEntity:
        """Spawn and persist the successor of a just-completed task.

        Returns the completed task, linked to its successor when one was
        created. A task whose successor still exists is not spawned again,
        so reopening and re-completing it keeps one record per occurrence.
        """
        if task.next_occurrence_id and self._store.get(task.next_occurrence_id):
            logger.info("Task %s already recurred as %s", task.id, task.next_occurrence_id)
            return task

        next_task = create_next_occurrence(task)
        if next_task is None:
            return task

        try:
            self._store.save(next_task)
        except Exception:
            logger.exception("Failed to save next occurrence of task %s", task.id)
            raise
        linked = replace(task, next_occurrence_id=next_task.id)
        self._store.save(linked)
        logger.info(
            "Task %s recurred as %s due %s",
            task.id,
            next_task.id,
            next_task.due_date.isoformat() if next_task.due_date else None,
        )
        self._sync_reminder(next_task)
        return linked

    def _sync_reminder(self, task: TaskEntity) -> None:
        if not self._scheduler:
            return
        if task.reminder_date and not task.is_completed and task.status != TaskStatus.CANCELLED:
            self._scheduler.schedule(task.id, task.reminder_date)
        else:
            self._scheduler.cancel(task.id)

    def _normalize_data(self, data: dict, base: TaskEntity | None = None) -> dict:
        normalized = dict(data)
        remind = normalized.pop("remind", False)

        unknown = set(normalized) - _TASK_FIELDS
        if unknown:
            raise TaskValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}")

        try:
            if "status" in normalized:
                normalized["status"] = TaskStatus(normalized["status"])
            if "priority" in normalized:
                normalized["priority"] = PriorityLevel(int(normalized["priority"]))
            if "recurrence_rule" in normalized:
                normalized["recurrence_rule"] = RecurrenceRule(normalized["recurrence_rule"] or "none")
        except ValueError as exc:
            raise TaskValidationError(str(exc)) from exc

        for key in ("tag_ids", "subtask_ids"):
            if key in normalized:
                normalized[key] = tuple(normalized[key] or ())

        if remind and "reminder_date" not in normalized:
            due = normalized.get("due_date", base.due_date if base else None)
            if due is None:
                raise TaskValidationError("A reminder needs a due date")
            normalized["reminder_date"] = due - self._default_reminder
        return normalized

    @staticmethod
    def _validate(task: TaskEntity) -> None:
        if not task.title or not task.title.strip():
            raise TaskValidationError("Task title must not be empty")
        interval = task.recurrence_interval_days
        if interval is not None and interval < 1:
            raise TaskValidationError("recurrence_interval_days must be a positive number of days")
        if task.is_recurring and task.recurrence_rule == RecurrenceRule.CUSTOM and interval is None:
            raise TaskValidationError("Custom recurrence needs recurrence_interval_days")
