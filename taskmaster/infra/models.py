from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from .db import Base


def now() -> datetime:
    return datetime.now()


class ProjectModel(Base):
    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    color_hex = Column(String(9), nullable=False, default="#4A6EB3")
    creation_date = Column(DateTime, nullable=False, default=now)
    due_date = Column(DateTime, nullable=True)
    completion_date = Column(DateTime, nullable=True)
    parent_project_id = Column(Uuid, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True)


class TagModel(Base):
    __tablename__ = "tags"

    id = Column(Uuid, primary_key=True)
    name = Column(String(100), nullable=False)
    color_hex = Column(String(9), nullable=False, default="#AAAAAA")
    creation_date = Column(DateTime, nullable=False, default=now)


class TaskModel(Base):
    __tablename__ = "tasks"

    id = Column(Uuid, primary_key=True)
    title = Column(String(200), nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="not_started", index=True)
    priority = Column(Integer, nullable=False, default=2)
    due_date = Column(DateTime, nullable=True, index=True)
    completion_date = Column(DateTime, nullable=True)
    creation_date = Column(DateTime, nullable=False, default=now)
    reminder_date = Column(DateTime, nullable=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurrence_rule = Column(String(20), nullable=False, default="none")
    recurrence_interval_days = Column(Integer, nullable=True)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True)
    parent_task_id = Column(Uuid, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    subtask_ids = Column(JSON, nullable=False, default=list)
    next_occurrence_id = Column(Uuid, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)

    tag_links = relationship(
        "TaskTagModel",
        cascade="all, delete-orphan",
        order_by="TaskTagModel.position",
        lazy="selectin",
    )


class TaskTagModel(Base):
    __tablename__ = "task_tags"

    task_id = Column(Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True)
    tag_id = Column(Uuid, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)
    position = Column(Integer, nullable=False, default=0)
