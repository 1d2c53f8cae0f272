"""
Module: ledger_kernel.models.task
Responsibility: ORM persistence for close-workflow tasks (reconciliations,
    flux reviews, account reviews) attached to a company.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Status moves planned -> in_progress -> completed -> reviewed, one step
      at a time.  TaskService enforces the order via ALLOWED_TRANSITIONS.
    - completed_on is set exactly when the task reaches completed.
"""

from datetime import date
from enum import Enum

from sqlalchemy import Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TimestampedBase


class TaskType(str, Enum):
    ACCOUNT = "account"
    RECONCILIATION = "reconciliation"
    FLUX = "flux"
    CATEGORY = "category"


class Frequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class TaskStatus(str, Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REVIEWED = "reviewed"


ALLOWED_TRANSITIONS: dict[TaskStatus, TaskStatus] = {
    TaskStatus.PLANNED: TaskStatus.IN_PROGRESS,
    TaskStatus.IN_PROGRESS: TaskStatus.COMPLETED,
    TaskStatus.COMPLETED: TaskStatus.REVIEWED,
}


class Task(TimestampedBase):
    """A unit of close work, optionally recurring."""

    __tablename__ = "tasks"

    __table_args__ = (
        Index("idx_task_company_due", "company_id", "due_date"),
    )

    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str] = mapped_column(String(4000), nullable=False, default="")

    task_type: Mapped[TaskType] = mapped_column(String(20), nullable=False)

    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    frequency: Mapped[Frequency | None] = mapped_column(String(10), nullable=True)

    status: Mapped[TaskStatus] = mapped_column(
        String(12), nullable=False, default=TaskStatus.PLANNED
    )

    created_by_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    assigned_to_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=True
    )

    reviewer_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=True
    )

    # Free-form grouping label
    category: Mapped[str | None] = mapped_column(String(255), nullable=True)

    completed_on: Mapped[date | None] = mapped_column(Date, nullable=True)

    resolution: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    def __repr__(self) -> str:
        return f"<Task {self.title}: {self.status}>"
