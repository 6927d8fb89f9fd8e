from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, or_, select, update

from taskmaster.domain.entities import ProjectEntity, TagEntity, TaskEntity
from taskmaster.domain.enums import OPEN_STATUSES, PriorityLevel, RecurrenceRule, TaskStatus
from taskmaster.domain.filters import TaskFilters

from .db import SessionLocal
from .models import ProjectModel, TagModel, TaskModel, TaskTagModel

STATUS_COMPLETED = TaskStatus.COMPLETED.value
OPEN_VALUES = [status.value for status in OPEN_STATUSES]


def _to_entity(model: TaskModel) -> TaskEntity:
    return TaskEntity(
        id=model.id,
        title=model.title,
        notes=model.notes,
        due_date=model.due_date,
        completion_date=model.completion_date,
        status=TaskStatus(model.status),
        priority=PriorityLevel(model.priority),
        is_recurring=model.is_recurring,
        recurrence_rule=RecurrenceRule(model.recurrence_rule),
        recurrence_interval_days=model.recurrence_interval_days,
        reminder_date=model.reminder_date,
        creation_date=model.creation_date,
        project_id=model.project_id,
        tag_ids=tuple(link.tag_id for link in model.tag_links),
        parent_task_id=model.parent_task_id,
        subtask_ids=tuple(UUID(value) for value in model.subtask_ids or ()),
        next_occurrence_id=model.next_occurrence_id,
    )


def _apply_entity(model: TaskModel, task: TaskEntity) -> None:
    model.title = task.title
    model.notes = task.notes
    model.due_date = task.due_date
    model.completion_date = task.completion_date
    model.status = task.status.value
    model.priority = int(task.priority)
    model.is_recurring = task.is_recurring
    model.recurrence_rule = task.recurrence_rule.value
    model.recurrence_interval_days = task.recurrence_interval_days
    model.reminder_date = task.reminder_date
    model.creation_date = task.creation_date
    model.project_id = task.project_id
    model.parent_task_id = task.parent_task_id
    model.subtask_ids = [str(value) for value in task.subtask_ids]
    model.next_occurrence_id = task.next_occurrence_id

    existing = {link.tag_id: link for link in model.tag_links}
    links = []
    for index, tag_id in enumerate(dict.fromkeys(task.tag_ids)):
        link = existing.get(tag_id) or TaskTagModel(tag_id=tag_id)
        link.position = index
        links.append(link)
    model.tag_links = links


def _project_to_entity(model: ProjectModel) -> ProjectEntity:
    return ProjectEntity(
        id=model.id,
        name=model.name,
        description=model.description,
        color_hex=model.color_hex,
        creation_date=model.creation_date,
        due_date=model.due_date,
        completion_date=model.completion_date,
        parent_project_id=model.parent_project_id,
    )


def _tag_to_entity(model: TagModel) -> TagEntity:
    return TagEntity(
        id=model.id,
        name=model.name,
        color_hex=model.color_hex,
        creation_date=model.creation_date,
    )


def _apply_filters(stmt, filters: TaskFilters, now: datetime, upcoming_days: int) -> object:
    if filters.filter_key == "open":
        stmt = stmt.where(TaskModel.status.in_(OPEN_VALUES))
    elif filters.filter_key == "completed":
        stmt = stmt.where(TaskModel.status == STATUS_COMPLETED)
    elif filters.filter_key == "recurring":
        stmt = stmt.where(TaskModel.is_recurring.is_(True))
    elif filters.filter_key == "overdue":
        # due on an earlier calendar day, same rule as TaskEntity.is_overdue
        stmt = stmt.where(
            TaskModel.due_date.is_not(None),
            TaskModel.due_date < datetime.combine(now.date(), time.min),
            TaskModel.status.in_(OPEN_VALUES),
        )
    elif filters.filter_key == "upcoming":
        horizon = now + timedelta(days=upcoming_days)
        stmt = stmt.where(
            TaskModel.due_date.is_not(None),
            TaskModel.due_date.between(now, horizon),
            TaskModel.status.in_(OPEN_VALUES),
        )

    if filters.due_on:
        day_start = datetime.combine(filters.due_on, time.min)
        stmt = stmt.where(
            TaskModel.due_date >= day_start,
            TaskModel.due_date < day_start + timedelta(days=1),
        )

    if filters.project_id:
        stmt = stmt.where(TaskModel.project_id == filters.project_id)

    if filters.tag_id:
        stmt = stmt.where(TaskModel.tag_links.any(TaskTagModel.tag_id == filters.tag_id))

    if filters.search:
        pattern = f"%{filters.search}%"
        stmt = stmt.where(
            or_(
                TaskModel.title.ilike(pattern),
                TaskModel.notes.ilike(pattern),
            )
        )

    return stmt


class TaskRepository:
    def __init__(self, session_factory=SessionLocal, upcoming_days: int = 7) -> None:
        self._session_factory = session_factory
        self._upcoming_days = upcoming_days

    def list_tasks(self, filters: TaskFilters, now: datetime | None = None) -> list[TaskEntity]:
        with self._session_factory() as session:
            stmt = select(TaskModel)
            stmt = _apply_filters(stmt, filters, now or datetime.now(), self._upcoming_days)
            stmt = stmt.order_by(
                TaskModel.due_date.is_(None),
                TaskModel.due_date.asc(),
                TaskModel.priority.desc(),
                TaskModel.creation_date.desc(),
            )
            return [_to_entity(task) for task in session.scalars(stmt)]

    def get(self, task_id: UUID) -> Optional[TaskEntity]:
        with self._session_factory() as session:
            task = session.get(TaskModel, task_id)
            return _to_entity(task) if task else None

    def save(self, task: TaskEntity) -> None:
        with self._session_factory() as session:
            model = session.get(TaskModel, task.id)
            if model is None:
                model = TaskModel(id=task.id)
                session.add(model)
            _apply_entity(model, task)
            session.commit()

    def delete(self, task_id: UUID) -> None:
        with self._session_factory() as session:
            task = session.get(TaskModel, task_id)
            if not task:
                return
            session.delete(task)
            session.commit()

    def list_due_reminders(self, now: datetime) -> list[TaskEntity]:
        with self._session_factory() as session:
            stmt = (
                select(TaskModel)
                .where(
                    TaskModel.due_date.is_not(None),
                    TaskModel.due_date <= now,
                    TaskModel.status.in_(OPEN_VALUES),
                )
                .order_by(TaskModel.due_date.asc())
            )
            return [_to_entity(task) for task in session.scalars(stmt)]

    def get_project(self, project_id: UUID) -> Optional[ProjectEntity]:
        with self._session_factory() as session:
            project = session.get(ProjectModel, project_id)
            return _project_to_entity(project) if project else None

    def list_projects(self) -> list[ProjectEntity]:
        with self._session_factory() as session:
            stmt = select(ProjectModel).order_by(ProjectModel.creation_date.asc())
            return [_project_to_entity(project) for project in session.scalars(stmt)]

    def save_project(self, project: ProjectEntity) -> None:
        with self._session_factory() as session:
            model = session.get(ProjectModel, project.id)
            if model is None:
                model = ProjectModel(id=project.id)
                session.add(model)
            model.name = project.name
            model.description = project.description
            model.color_hex = project.color_hex
            model.creation_date = project.creation_date
            model.due_date = project.due_date
            model.completion_date = project.completion_date
            model.parent_project_id = project.parent_project_id
            session.commit()

    def get_tag(self, tag_id: UUID) -> Optional[TagEntity]:
        with self._session_factory() as session:
            tag = session.get(TagModel, tag_id)
            return _tag_to_entity(tag) if tag else None

    def list_tags(self) -> list[TagEntity]:
        with self._session_factory() as session:
            stmt = select(TagModel).order_by(TagModel.name.asc())
            return [_tag_to_entity(tag) for tag in session.scalars(stmt)]

    def save_tag(self, tag: TagEntity) -> None:
        with self._session_factory() as session:
            model = session.get(TagModel, tag.id)
            if model is None:
                model = TagModel(id=tag.id)
                session.add(model)
            model.name = tag.name
            model.color_hex = tag.color_hex
            model.creation_date = tag.creation_date
            session.commit()

    def delete_project(self, project_id: UUID) -> None:
        with self._session_factory() as session:
            project = session.get(ProjectModel, project_id)
            if not project:
                return
            session.execute(
                update(TaskModel)
                .where(TaskModel.project_id == project_id)
                .values(project_id=None)
            )
            session.execute(
                update(ProjectModel)
                .where(ProjectModel.parent_project_id == project_id)
                .values(parent_project_id=None)
            )
            session.delete(project)
            session.commit()

    def delete_tag(self, tag_id: UUID) -> None:
        with self._session_factory() as session:
            tag = session.get(TagModel, tag_id)
            if not tag:
                return
            session.execute(delete(TaskTagModel).where(TaskTagModel.tag_id == tag_id))
            session.delete(tag)
            session.commit()
