"""Next-occurrence computation for recurring tasks.

Everything here is pure: functions take a task and return new values, and
nothing is read from or written to a store. Persisting the new occurrence
and registering its reminder is left to the caller (see ``TaskService``).
"""
from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import StrEnum
from uuid import uuid4

from dateutil.relativedelta import relativedelta

from .entities import TaskEntity
from .enums import RecurrenceRule, TaskStatus

logger = logging.getLogger(__name__)

SATURDAY = 6
SUNDAY = 7


class RecurrenceSkip(StrEnum):
    NOT_RECURRING = "not_recurring"
    MISSING_DUE_DATE = "missing_due_date"
    NO_RULE = "no_rule"
    MISSING_CUSTOM_INTERVAL = "missing_custom_interval"


@dataclass(frozen=True)
class RecurrenceOutcome:
    task: TaskEntity | None = None
    skip: RecurrenceSkip | None = None

    @property
    def created(self) -> bool:
        return self.task is not None


def create_next_occurrence(task: TaskEntity, now: datetime | None = None) -> TaskEntity | None:
    """Return the task's next occurrence, or ``None`` when it does not recur."""
    return resolve_next_occurrence(task, now).task


def resolve_next_occurrence(task: TaskEntity, now: datetime | None = None) -> RecurrenceOutcome:
    if not task.is_recurring:
        return _skip(task, RecurrenceSkip.NOT_RECURRING)
    if task.due_date is None:
        return _skip(task, RecurrenceSkip.MISSING_DUE_DATE)

    next_due = compute_next_due_date(task)
    if next_due is None:
        if task.recurrence_rule == RecurrenceRule.CUSTOM:
            return _skip(task, RecurrenceSkip.MISSING_CUSTOM_INTERVAL)
        return _skip(task, RecurrenceSkip.NO_RULE)

    occurrence = replace(
        task,
        id=uuid4(),
        due_date=next_due,
        status=TaskStatus.NOT_STARTED,
        completion_date=None,
        creation_date=now or datetime.now(),
        reminder_date=shift_reminder(task, next_due),
        next_occurrence_id=None,
    )
    logger.debug(
        "Next occurrence %s of task %s (%s) due %s",
        occurrence.id,
        task.id,
        task.recurrence_rule,
        next_due.isoformat(),
    )
    return RecurrenceOutcome(task=occurrence)


def compute_next_due_date(task: TaskEntity) -> datetime | None:
    due = task.due_date
    if due is None:
        return None

    rule = task.recurrence_rule
    if rule == RecurrenceRule.DAILY:
        return due + timedelta(days=1)
    if rule == RecurrenceRule.WEEKDAYS:
        return next_weekday(due)
    if rule == RecurrenceRule.WEEKLY:
        return due + timedelta(days=7)
    if rule == RecurrenceRule.MONTHLY:
        return clamp_to_original_day(due + relativedelta(months=1), due)
    if rule == RecurrenceRule.YEARLY:
        return clamp_to_original_day(due + relativedelta(years=1), due)
    if rule == RecurrenceRule.CUSTOM:
        if task.recurrence_interval_days is None:
            return None
        return due + timedelta(days=task.recurrence_interval_days)
    return None


def next_weekday(current: datetime) -> datetime:
    """The day after ``current``, pushed forward to Monday if it is a weekend."""
    candidate = current + timedelta(days=1)
    weekday = candidate.isoweekday()
    if weekday == SATURDAY:
        return candidate + timedelta(days=2)
    if weekday == SUNDAY:
        return candidate + timedelta(days=1)
    return candidate


def clamp_to_original_day(shifted: datetime, original: datetime) -> datetime:
    """Put ``original``'s day-of-month and clock time onto ``shifted``'s month.

    The day is clamped to the length of the target month, so the 31st
    becomes the 30th (or 28th/29th in February) and Feb 29 becomes Feb 28
    in a non-leap year.
    """
    last_day = days_in_month(shifted.year, shifted.month)
    return original.replace(
        year=shifted.year,
        month=shifted.month,
        day=min(original.day, last_day),
    )


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def shift_reminder(task: TaskEntity, next_due: datetime) -> datetime | None:
    if task.reminder_date is None or task.due_date is None:
        return None
    offset = task.reminder_date - task.due_date
    return next_due + offset


def _skip(task: TaskEntity, reason: RecurrenceSkip) -> RecurrenceOutcome:
    if reason != RecurrenceSkip.NOT_RECURRING:
        logger.info("Task %s will not recur: %s", task.id, reason.value)
    return RecurrenceOutcome(skip=reason)
