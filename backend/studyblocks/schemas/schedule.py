from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from studyblocks.core.timeutils import to_local_naive
from studyblocks.models.study_session import BlockOrigin
from studyblocks.models.task import ScheduleStatus
from studyblocks.schemas.energy import EnergyLabel, EnergyProfile
from studyblocks.schemas.event import FixedEventPublic
from studyblocks.schemas.scheduler_config import SchedulerConfig
from studyblocks.schemas.task import TaskPublic


class StudyBlock(BaseModel):
    id: str
    task_id: int
    start_time: datetime
    end_time: datetime
    completed: bool = False
    is_pinned: bool = False
    origin: BlockOrigin = BlockOrigin.WORK
    score: float | None = None
    energy_level: EnergyLabel | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _localize(cls, value: datetime) -> datetime:
        return to_local_naive(value)

    @model_validator(mode="after")
    def _check_interval(self) -> "StudyBlock":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def duration_hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600

    class Config:
        from_attributes = True


class StudyBlockCreate(BaseModel):
    """A manually placed block; always pinned."""

    task_id: int
    start_time: datetime
    end_time: datetime
    completed: bool = False
    origin: BlockOrigin = BlockOrigin.WORK

    @field_validator("start_time", "end_time")
    @classmethod
    def _localize(cls, value: datetime) -> datetime:
        return to_local_naive(value)

    @model_validator(mode="after")
    def _check_interval(self) -> "StudyBlockCreate":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class StudyBlockUpdate(BaseModel):
    start_time: datetime | None = None
    end_time: datetime | None = None
    completed: bool | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _localize(cls, value: datetime | None) -> datetime | None:
        return to_local_naive(value) if value else value


class TaskScheduleReport(BaseModel):
    task_id: int
    status: ScheduleStatus
    required_hours: float = 0
    scheduled_hours: float = 0
    shortfall_hours: float = 0
    review_hours: float = 0
    review_days_missed: int = 0
    reason: str | None = None


class ScheduleResult(BaseModel):
    # Newly generated blocks only; pinned blocks passed in are not repeated
    blocks: list[StudyBlock]
    unscheduled: list[int]
    reports: list[TaskScheduleReport]
    generated_at: datetime
    seed: int | None = None

    def report_for(self, task_id: int) -> TaskScheduleReport | None:
        return next((report for report in self.reports if report.task_id == task_id), None)

    def blocks_for(self, task_id: int) -> list[StudyBlock]:
        return [block for block in self.blocks if block.task_id == task_id]


class ScheduleStatistics(BaseModel):
    total_blocks: int
    completed_blocks: int
    total_hours: float
    completed_hours: float
    completion_rate: float
    hours_by_day: dict[date, float]
    hours_by_origin: dict[BlockOrigin, float]
    overcommitted_task_ids: list[int]
    shortfall_hours: float


class ScheduleStatusResponse(BaseModel):
    state: str
    reports: list[TaskScheduleReport]
    statistics: ScheduleStatistics
    last_generated_at: datetime | None = None
    discarded_passes: int = 0


class SchedulePreviewRequest(BaseModel):
    tasks: list[TaskPublic]
    fixed_events: list[FixedEventPublic] = Field(default_factory=list)
    pinned_blocks: list[StudyBlock] = Field(default_factory=list)
    energy_profile: EnergyProfile | None = None
    config: SchedulerConfig | None = None
    now: datetime | None = None
    seed: int | None = None
