from __future__ import annotations

from datetime import date, time
from enum import Enum as PyEnum

from pydantic import BaseModel, Field, model_validator

from studyblocks.models.fixed_event import EventType
from studyblocks.models.task import TaskType


class SpreadStrategy(str, PyEnum):
    DISTRIBUTED = "distributed"
    COMPRESSED = "compressed"


class SlotWeights(BaseModel):
    """Points contributed by each slot scoring factor."""

    energy: float = Field(default=30.0, ge=0)
    affinity: float = Field(default=20.0, ge=0)
    clustering: float = Field(default=15.0, ge=0)
    hour_repeat: float = Field(default=10.0, ge=0)
    fit: float = Field(default=20.0, ge=0)


def _lead_time_days() -> dict[TaskType, int]:
    return {
        TaskType.EXAM: 7,
        TaskType.ASSIGNMENT: 3,
        TaskType.PROJECT: 5,
        TaskType.QUIZ: 2,
    }


def _buffer_days() -> dict[TaskType, int]:
    return {
        TaskType.EXAM: 3,
        TaskType.QUIZ: 1,
        TaskType.READING: 1,
    }


def _default_hours() -> dict[TaskType, float]:
    return {
        TaskType.ASSIGNMENT: 3,
        TaskType.EXAM: 8,
        TaskType.PROJECT: 10,
        TaskType.READING: 2,
        TaskType.LAB: 4,
        TaskType.QUIZ: 2,
    }


def _type_multipliers() -> dict[TaskType, float]:
    return {
        TaskType.EXAM: 1.5,
        TaskType.PROJECT: 1.3,
        TaskType.ASSIGNMENT: 1.0,
        TaskType.READING: 0.9,
        TaskType.LAB: 0.8,
    }


def _complexity_multipliers() -> dict[int, float]:
    return {1: 0.5, 2: 0.75, 3: 1.0, 4: 1.5, 5: 2.0}


class SchedulerConfig(BaseModel):
    """User-tunable scheduling policy.

    Every number here is an empirically chosen, tunable default.
    """

    study_hours_start: time = time(hour=9)
    study_hours_end: time = time(hour=22)
    daily_max_hours: float = Field(default=6.0, gt=0, le=24)
    weekend_max_hours: float = Field(default=4.0, ge=0, le=24)

    min_session_minutes: int = Field(default=30, ge=5)
    preferred_session_minutes: int = Field(default=120, ge=5)
    max_session_minutes: int = Field(default=120, ge=5)
    break_minutes: int = Field(default=15, ge=0)
    slot_granularity_minutes: int = Field(default=30, ge=5, le=120)

    lead_time_days: dict[TaskType, int] = Field(default_factory=_lead_time_days)
    default_lead_time_days: int = Field(default=3, ge=0)
    buffer_days: dict[TaskType, int] = Field(default_factory=_buffer_days)
    default_buffer_days: int = Field(default=2, ge=0)
    default_hours: dict[TaskType, float] = Field(default_factory=_default_hours)
    fallback_hours: float = Field(default=3.0, gt=0)
    type_multipliers: dict[TaskType, float] = Field(default_factory=_type_multipliers)
    complexity_multipliers: dict[int, float] = Field(
        default_factory=_complexity_multipliers
    )

    # Extra share of required hours added to exams for review
    review_percentage: float = Field(default=0.2, ge=0)
    buffer_before_exam: int = Field(default=2, ge=0)
    review_session_hours: float = Field(default=2.0, gt=0)
    spread_strategy: SpreadStrategy = SpreadStrategy.DISTRIBUTED

    urgency_weight: float = Field(default=0.7, ge=0)
    importance_weight: float = Field(default=0.3, ge=0)

    top_n_candidates: int = Field(default=3, ge=1)
    slot_weights: SlotWeights = Field(default_factory=SlotWeights)
    clustering_window_minutes: int = Field(default=240, ge=0)

    overdue_grace_days: int = Field(default=7, ge=0)
    overdue_reschedule_days: int = Field(default=1, ge=0)
    max_search_days: int = Field(default=60, ge=1)

    # Any event of these types blocks the whole day
    all_day_event_types: set[EventType] = Field(
        default_factory=lambda: {EventType.CLINICAL}
    )

    @model_validator(mode="after")
    def _check_bounds(self) -> "SchedulerConfig":
        if self.study_hours_end <= self.study_hours_start:
            raise ValueError("study_hours_end must be after study_hours_start")
        if not (
            self.min_session_minutes
            <= self.preferred_session_minutes
            <= self.max_session_minutes
        ):
            raise ValueError(
                "session lengths must satisfy min <= preferred <= max"
            )
        return self

    def lead_time_for(self, task_type: TaskType) -> int:
        return self.lead_time_days.get(task_type, self.default_lead_time_days)

    def buffer_days_for(self, task_type: TaskType) -> int:
        return self.buffer_days.get(task_type, self.default_buffer_days)

    def default_hours_for(self, task_type: TaskType) -> float:
        return self.default_hours.get(task_type, self.fallback_hours)

    def type_multiplier_for(self, task_type: TaskType) -> float:
        return self.type_multipliers.get(task_type, 1.0)

    def complexity_multiplier_for(self, complexity: int) -> float:
        return self.complexity_multipliers.get(complexity, 1.0)

    def daily_cap(self, day: date) -> float:
        return self.weekend_max_hours if day.weekday() >= 5 else self.daily_max_hours

    @property
    def min_session_hours(self) -> float:
        return self.min_session_minutes / 60

    @property
    def preferred_session_hours(self) -> float:
        return min(self.preferred_session_minutes, self.max_session_minutes) / 60
