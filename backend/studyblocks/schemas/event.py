from datetime import datetime

from pydantic import BaseModel, field_validator, model_validator

from studyblocks.core.timeutils import to_local_naive
from studyblocks.models.fixed_event import EventType


class FixedEventBase(BaseModel):
    title: str
    type: EventType = EventType.OTHER
    course_id: str | None = None
    start_at: datetime
    end_at: datetime
    all_day: bool = False

    @field_validator("start_at", "end_at")
    @classmethod
    def _localize(cls, value: datetime) -> datetime:
        return to_local_naive(value)

    @model_validator(mode="after")
    def _check_interval(self) -> "FixedEventBase":
        if self.end_at <= self.start_at:
            raise ValueError("end_at must be after start_at")
        return self


class FixedEventCreate(FixedEventBase):
    pass


class FixedEventPublic(FixedEventBase):
    id: int

    class Config:
        from_attributes = True
