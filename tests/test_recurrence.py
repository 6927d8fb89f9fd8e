from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from taskmaster.domain.entities import TaskEntity
from taskmaster.domain.enums import PriorityLevel, RecurrenceRule, TaskStatus
from taskmaster.domain.recurrence import (
    RecurrenceSkip,
    clamp_to_original_day,
    compute_next_due_date,
    create_next_occurrence,
    days_in_month,
    next_weekday,
    resolve_next_occurrence,
)


def _recurring(rule: RecurrenceRule, due: datetime | None, **kwargs) -> TaskEntity:
    return TaskEntity(
        title="Water plants",
        due_date=due,
        is_recurring=True,
        recurrence_rule=rule,
        status=TaskStatus.COMPLETED,
        completion_date=datetime(2024, 1, 1, 12, 0),
        **kwargs,
    )


def test_non_recurring_task_never_recurs() -> None:
    task = TaskEntity(
        title="One-off",
        due_date=datetime(2024, 1, 31, 9, 0),
        recurrence_rule=RecurrenceRule.DAILY,
    )

    assert create_next_occurrence(task) is None
    assert resolve_next_occurrence(task).skip == RecurrenceSkip.NOT_RECURRING


@pytest.mark.parametrize("rule", list(RecurrenceRule))
def test_recurring_task_without_due_date_never_recurs(rule: RecurrenceRule) -> None:
    task = _recurring(rule, None, recurrence_interval_days=3)

    assert create_next_occurrence(task) is None
    assert resolve_next_occurrence(task).skip == RecurrenceSkip.MISSING_DUE_DATE


def test_rule_none_returns_nothing() -> None:
    task = _recurring(RecurrenceRule.NONE, datetime(2024, 1, 31, 9, 0))

    assert compute_next_due_date(task) is None
    assert resolve_next_occurrence(task).skip == RecurrenceSkip.NO_RULE


def test_daily_adds_one_day() -> None:
    task = _recurring(RecurrenceRule.DAILY, datetime(2024, 1, 31, 9, 0))

    assert compute_next_due_date(task) == datetime(2024, 2, 1, 9, 0)


def test_daily_crosses_year_boundary() -> None:
    task = _recurring(RecurrenceRule.DAILY, datetime(2024, 12, 31, 23, 30))

    assert compute_next_due_date(task) == datetime(2025, 1, 1, 23, 30)


@pytest.mark.parametrize(
    ("due", "expected"),
    [
        (datetime(2024, 5, 9, 9, 0), datetime(2024, 5, 10, 9, 0)),  # Thu -> Fri
        (datetime(2024, 5, 10, 9, 0), datetime(2024, 5, 13, 9, 0)),  # Fri -> Mon
        (datetime(2024, 5, 11, 9, 0), datetime(2024, 5, 13, 9, 0)),  # Sat -> Mon
        (datetime(2024, 5, 12, 9, 0), datetime(2024, 5, 13, 9, 0)),  # Sun -> Mon
        (datetime(2024, 5, 13, 9, 0), datetime(2024, 5, 14, 9, 0)),  # Mon -> Tue
    ],
)
def test_weekdays_skip_weekend(due: datetime, expected: datetime) -> None:
    task = _recurring(RecurrenceRule.WEEKDAYS, due)

    next_due = compute_next_due_date(task)

    assert next_due == expected
    assert next_due.isoweekday() <= 5


def test_next_weekday_never_lands_on_weekend() -> None:
    start = datetime(2024, 1, 1, 8, 0)
    for offset in range(14):
        assert next_weekday(start + timedelta(days=offset)).isoweekday() <= 5


def test_weekly_adds_seven_days() -> None:
    task = _recurring(RecurrenceRule.WEEKLY, datetime(2024, 2, 26, 7, 15))

    assert compute_next_due_date(task) == datetime(2024, 3, 4, 7, 15)


def test_monthly_clamps_to_leap_february() -> None:
    task = _recurring(RecurrenceRule.MONTHLY, datetime(2024, 1, 31, 10, 0))

    assert compute_next_due_date(task) == datetime(2024, 2, 29, 10, 0)


def test_monthly_clamps_to_non_leap_february() -> None:
    task = _recurring(RecurrenceRule.MONTHLY, datetime(2025, 1, 31))

    assert compute_next_due_date(task) == datetime(2025, 2, 28)


def test_monthly_clamps_to_thirty_day_month() -> None:
    task = _recurring(RecurrenceRule.MONTHLY, datetime(2024, 3, 31, 18, 45, 30))

    assert compute_next_due_date(task) == datetime(2024, 4, 30, 18, 45, 30)


def test_monthly_keeps_day_when_it_fits() -> None:
    task = _recurring(RecurrenceRule.MONTHLY, datetime(2024, 12, 15, 8, 0))

    assert compute_next_due_date(task) == datetime(2025, 1, 15, 8, 0)


def test_yearly_clamps_leap_day() -> None:
    task = _recurring(RecurrenceRule.YEARLY, datetime(2024, 2, 29, 6, 0))

    assert compute_next_due_date(task) == datetime(2025, 2, 28, 6, 0)


def test_yearly_into_leap_year_keeps_day() -> None:
    task = _recurring(RecurrenceRule.YEARLY, datetime(2023, 3, 15, 6, 0))

    assert compute_next_due_date(task) == datetime(2024, 3, 15, 6, 0)


def test_custom_interval_adds_days() -> None:
    task = _recurring(RecurrenceRule.CUSTOM, datetime(2024, 3, 1), recurrence_interval_days=10)

    assert compute_next_due_date(task) == datetime(2024, 3, 11)


def test_custom_without_interval_does_not_recur(caplog: pytest.LogCaptureFixture) -> None:
    task = _recurring(RecurrenceRule.CUSTOM, datetime(2024, 3, 1))

    with caplog.at_level(logging.INFO, logger="taskmaster.domain.recurrence"):
        outcome = resolve_next_occurrence(task)

    assert compute_next_due_date(task) is None
    assert outcome.task is None
    assert not outcome.created
    assert outcome.skip == RecurrenceSkip.MISSING_CUSTOM_INTERVAL
    assert "missing_custom_interval" in caplog.text


def test_reminder_offset_is_preserved() -> None:
    task = _recurring(
        RecurrenceRule.WEEKLY,
        datetime(2024, 5, 10, 9, 0),
        reminder_date=datetime(2024, 5, 10, 8, 45),
    )

    occurrence = create_next_occurrence(task)

    assert occurrence.due_date == datetime(2024, 5, 17, 9, 0)
    assert occurrence.reminder_date == datetime(2024, 5, 17, 8, 45)


def test_reminder_after_due_date_keeps_positive_offset() -> None:
    task = _recurring(
        RecurrenceRule.MONTHLY,
        datetime(2024, 1, 31, 10, 0),
        reminder_date=datetime(2024, 2, 1, 10, 0),
    )

    occurrence = create_next_occurrence(task)

    assert occurrence.reminder_date == datetime(2024, 3, 1, 10, 0)


def test_no_reminder_stays_without_reminder() -> None:
    task = _recurring(RecurrenceRule.DAILY, datetime(2024, 5, 10, 9, 0))

    assert create_next_occurrence(task).reminder_date is None


def test_next_occurrence_resets_state_and_copies_fields() -> None:
    project_id = uuid4()
    tag_ids = (uuid4(), uuid4())
    task = _recurring(
        RecurrenceRule.CUSTOM,
        datetime(2024, 3, 1, 9, 0),
        recurrence_interval_days=10,
        notes="Kitchen and balcony",
        priority=PriorityLevel.HIGH,
        project_id=project_id,
        tag_ids=tag_ids,
        parent_task_id=uuid4(),
        creation_date=datetime(2023, 12, 1),
    )
    now = datetime(2024, 3, 1, 9, 5)

    occurrence = create_next_occurrence(task, now=now)

    assert occurrence.id != task.id
    assert occurrence.status == TaskStatus.NOT_STARTED
    assert occurrence.completion_date is None
    assert occurrence.creation_date == now
    assert occurrence.title == task.title
    assert occurrence.notes == task.notes
    assert occurrence.priority == PriorityLevel.HIGH
    assert occurrence.project_id == project_id
    assert occurrence.tag_ids == tag_ids
    assert occurrence.parent_task_id == task.parent_task_id
    assert occurrence.is_recurring is True
    assert occurrence.recurrence_rule == RecurrenceRule.CUSTOM
    assert occurrence.recurrence_interval_days == 10


def test_original_task_is_left_untouched() -> None:
    task = _recurring(RecurrenceRule.DAILY, datetime(2024, 1, 31, 9, 0))

    create_next_occurrence(task)

    assert task.status == TaskStatus.COMPLETED
    assert task.due_date == datetime(2024, 1, 31, 9, 0)
    assert task.completion_date == datetime(2024, 1, 1, 12, 0)


def test_each_occurrence_gets_a_new_id() -> None:
    task = _recurring(RecurrenceRule.DAILY, datetime(2024, 1, 31, 9, 0))

    first = create_next_occurrence(task)
    second = create_next_occurrence(task)

    assert len({task.id, first.id, second.id}) == 3


def test_clamp_keeps_timezone_and_time() -> None:
    tz = timezone(timedelta(hours=9))
    original = datetime(2024, 1, 31, 23, 59, 59, tzinfo=tz)

    clamped = clamp_to_original_day(datetime(2024, 2, 29, tzinfo=tz), original)

    assert clamped == datetime(2024, 2, 29, 23, 59, 59, tzinfo=tz)
    assert clamped.tzinfo is tz


def test_days_in_month() -> None:
    assert days_in_month(2024, 2) == 29
    assert days_in_month(2025, 2) == 28
    assert days_in_month(2024, 4) == 30
    assert days_in_month(2024, 12) == 31
