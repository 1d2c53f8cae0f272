"""
TaskService -- close-workflow tasks.

Responsibility:
    Creates the reconciliation, flux, account and category tasks a close
    team works through, and walks them through their one-way lifecycle.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - planned -> in_progress -> completed -> reviewed, one step at a time
      (models.task.ALLOWED_TRANSITIONS).
    - completed_on is stamped from the injected clock on completion.
    - reviewed requires an assigned reviewer and records the resolution.
    - Creator, assignee and reviewer are users of the task's company.

Failure modes:
    - NotFoundError: unknown company, task or user.
    - ValidationError: bad enum value, cross-company user, review without
      a reviewer.
    - InvalidTransitionError: any other status change.
"""

from datetime import date

from ledger_kernel.domain.chart import coerce_enum
from ledger_kernel.domain.dtos import TaskInfo
from ledger_kernel.exceptions import InvalidTransitionError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.organization import Company, User
from ledger_kernel.models.task import (
    ALLOWED_TRANSITIONS,
    Frequency,
    Task,
    TaskStatus,
    TaskType,
)
from ledger_kernel.services.base import BaseService

logger = get_logger("services.task")


class TaskService(BaseService):
    """Service for close-workflow tasks."""

    def create_task(
        self,
        company_id: str,
        title: str,
        task_type: TaskType | str,
        due_date: date,
        created_by_id: str,
        description: str = "",
        frequency: Frequency | str | None = None,
        assigned_to_id: str | None = None,
        reviewer_id: str | None = None,
        category: str | None = None,
    ) -> TaskInfo:
        self._require(Company, company_id)
        title = (title or "").strip()
        if not title:
            raise ValidationError("Task title is required", field="title")
        task_type = coerce_enum(TaskType, task_type, "task_type")
        if frequency is not None:
            frequency = coerce_enum(Frequency, frequency, "frequency")
        for field, user_id in (
            ("created_by_id", created_by_id),
            ("assigned_to_id", assigned_to_id),
            ("reviewer_id", reviewer_id),
        ):
            if user_id is not None:
                self._require_company_user(user_id, company_id, field)

        now = self._clock.now_utc()
        task = Task(
            id=self._ids.new_id(),
            company_id=company_id,
            title=title,
            description=description or "",
            task_type=task_type,
            due_date=due_date,
            frequency=frequency,
            status=TaskStatus.PLANNED,
            created_by_id=created_by_id,
            assigned_to_id=assigned_to_id,
            reviewer_id=reviewer_id,
            category=category,
            created_at=now,
            updated_at=now,
        )
        self.session.add(task)
        self._flush(f"task {title!r}")

        logger.info(
            "task_created",
            extra={"company_id": company_id, "task_id": task.id, "task_type": task_type.value},
        )
        return TaskInfo.from_model(task)

    def advance_task(
        self,
        task_id: str,
        to_status: TaskStatus | str,
        actor_id: str,
        resolution: str | None = None,
    ) -> TaskInfo:
        """
        Move a task one step along its lifecycle.

        Raises:
            InvalidTransitionError: ``to_status`` is not the next status.
            ValidationError: Review requested on a task with no reviewer.
        """
        task = self._require(Task, task_id, for_update=True)
        self._require_company_user(actor_id, task.company_id, "actor_id")
        to_status = coerce_enum(TaskStatus, to_status, "to_status")
        current = TaskStatus(task.status)

        if ALLOWED_TRANSITIONS.get(current) is not to_status:
            logger.warning(
                "task_transition_refused",
                extra={"task_id": task_id, "from_status": current.value, "to_status": to_status.value},
            )
            raise InvalidTransitionError("Task", task_id, current.value, to_status.value)

        if to_status is TaskStatus.COMPLETED:
            task.completed_on = self._clock.today()
        elif to_status is TaskStatus.REVIEWED:
            if task.reviewer_id is None:
                raise ValidationError(
                    f"Task {task_id} has no reviewer", field="reviewer_id"
                )
            task.resolution = resolution

        task.status = to_status
        task.touch(self._clock.now_utc())
        self._flush(f"task {task.title!r}")

        logger.info(
            "task_advanced",
            extra={
                "task_id": task_id,
                "actor_id": actor_id,
                "from_status": current.value,
                "to_status": to_status.value,
            },
        )
        return TaskInfo.from_model(task)

    def get_task(self, task_id: str) -> TaskInfo:
        return TaskInfo.from_model(self._require(Task, task_id))

    def _require_company_user(self, user_id: str, company_id: str, field: str) -> None:
        user = self._require(User, user_id)
        if user.company_id != company_id:
            raise ValidationError(f"User {user_id} belongs to another company", field=field)
