from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional
from uuid import UUID, uuid4

from .enums import PriorityLevel, RecurrenceRule, TaskStatus


@dataclass(frozen=True)
class TaskEntity:
    title: str
    id: UUID = field(default_factory=uuid4)
    notes: str | None = None
    due_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    status: TaskStatus = TaskStatus.NOT_STARTED
    priority: PriorityLevel = PriorityLevel.MEDIUM
    is_recurring: bool = False
    recurrence_rule: RecurrenceRule = RecurrenceRule.NONE
    recurrence_interval_days: int | None = None
    reminder_date: Optional[datetime] = None
    creation_date: datetime = field(default_factory=datetime.now)
    project_id: UUID | None = None
    tag_ids: tuple[UUID, ...] = ()
    parent_task_id: UUID | None = None
    subtask_ids: tuple[UUID, ...] = ()
    next_occurrence_id: UUID | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def days_until_due(self, today: date | None = None) -> int | None:
        """Whole calendar days from ``today`` to the due date (negative when late)."""
        if self.due_date is None:
            return None
        today = today or date.today()
        return (self.due_date.date() - today).days

    def is_overdue(self, today: date | None = None) -> bool:
        days = self.days_until_due(today)
        return days is not None and days < 0 and not self.is_completed


@dataclass(frozen=True)
class ProjectEntity:
    name: str
    id: UUID = field(default_factory=uuid4)
    description: str | None = None
    color_hex: str = "#4A6EB3"
    creation_date: datetime = field(default_factory=datetime.now)
    due_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    parent_project_id: UUID | None = None

    @property
    def is_completed(self) -> bool:
        return self.completion_date is not None

    def days_until_due(self, today: date | None = None) -> int | None:
        if self.due_date is None:
            return None
        today = today or date.today()
        return (self.due_date.date() - today).days

    def is_overdue(self, today: date | None = None) -> bool:
        days = self.days_until_due(today)
        return days is not None and days < 0 and not self.is_completed


@dataclass(frozen=True)
class TagEntity:
    name: str
    id: UUID = field(default_factory=uuid4)
    color_hex: str = "#AAAAAA"
    creation_date: datetime = field(default_factory=datetime.now)
