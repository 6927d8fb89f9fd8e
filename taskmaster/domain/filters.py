from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional
from uuid import UUID


@dataclass(frozen=True)
class TaskFilters:
    filter_key: str = "all"
    search: str | None = None
    due_on: Optional[date] = None
    project_id: UUID | None = None
    tag_id: UUID | None = None
