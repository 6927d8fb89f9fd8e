"""
Collaborator ports used by the service layer.

``TaskService`` talks to storage and reminders through these Protocols so the
SQLAlchemy repository and the reminder scheduler can be swapped for fakes.
"""
from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from taskmaster.domain.entities import ProjectEntity, TagEntity, TaskEntity
from taskmaster.domain.filters import TaskFilters


class TaskStore(Protocol):
    def get(self, task_id: UUID) -> TaskEntity | None: ...
    def save(self, task: TaskEntity) -> None: ...
    def delete(self, task_id: UUID) -> None: ...
    def list_tasks(self, filters: TaskFilters) -> list[TaskEntity]: ...
    def list_due_reminders(self, now: datetime) -> list[TaskEntity]: ...
    def get_project(self, project_id: UUID) -> ProjectEntity | None: ...
    def get_tag(self, tag_id: UUID) -> TagEntity | None: ...


class ReminderScheduler(Protocol):
    """Point-in-time notification keyed by task id (one per task)."""
    def schedule(self, task_id: UUID, trigger_at: datetime) -> None: ...
    def cancel(self, task_id: UUID) -> None: ...
