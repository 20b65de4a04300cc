from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from studyblocks.core.timeutils import to_local_naive
from studyblocks.models.task import ScheduleStatus, TaskStatus, TaskType


class TaskBase(BaseModel):
    title: str
    course_id: str | None = None
    type: TaskType = TaskType.ASSIGNMENT
    due_at: datetime
    # None means "use the per-type default"; non-positive values are skipped by the scheduler
    estimated_hours: float | None = None
    complexity: int = Field(default=3, ge=1, le=5)
    is_hard_deadline: bool = False
    buffer_percentage: float = Field(default=20, ge=0)
    lead_time_days: int | None = Field(default=None, ge=0)
    buffer_days: int | None = Field(default=None, ge=0)
    status: TaskStatus = TaskStatus.NOT_STARTED

    @field_validator("due_at")
    @classmethod
    def _localize_due(cls, value: datetime) -> datetime:
        return to_local_naive(value)

    @property
    def hard_deadline(self) -> bool:
        """Exams can never slip past their due date, flagged or not."""
        return self.is_hard_deadline or self.type == TaskType.EXAM


class TaskCreate(TaskBase):
    pass


class TaskUpdate(BaseModel):
    title: str | None = None
    course_id: str | None = None
    type: TaskType | None = None
    due_at: datetime | None = None
    estimated_hours: float | None = None
    complexity: int | None = Field(default=None, ge=1, le=5)
    is_hard_deadline: bool | None = None
    buffer_percentage: float | None = Field(default=None, ge=0)
    lead_time_days: int | None = Field(default=None, ge=0)
    buffer_days: int | None = Field(default=None, ge=0)
    status: TaskStatus | None = None

    @field_validator("due_at")
    @classmethod
    def _localize_due(cls, value: datetime | None) -> datetime | None:
        return to_local_naive(value) if value else value

    class Config:
        # Allow extra fields to be ignored (clients may echo read-only fields)
        extra = "ignore"


class TaskPublic(TaskBase):
    id: int
    schedule_status: ScheduleStatus = ScheduleStatus.UNSCHEDULED
    unscheduled_hours: float = 0

    class Config:
        from_attributes = True
