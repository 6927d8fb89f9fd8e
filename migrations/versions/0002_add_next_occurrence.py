"""link completed recurring tasks to their next occurrence"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0002_add_next_occurrence"
down_revision = "0001_create_tables"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("tasks") as batch:
        batch.add_column(sa.Column("next_occurrence_id", sa.Uuid(), nullable=True))
        batch.create_foreign_key(
            "fk_tasks_next_occurrence_id",
            "tasks",
            ["next_occurrence_id"],
            ["id"],
            ondelete="SET NULL",
        )


def downgrade() -> None:
    with op.batch_alter_table("tasks") as batch:
        batch.drop_constraint("fk_tasks_next_occurrence_id", type_="foreignkey")
        batch.drop_column("next_occurrence_id")
