from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, Integer, String

from studyblocks.db.base import Base


class EventType(str, PyEnum):
    LECTURE = "lecture"
    LAB = "lab"
    EXAM = "exam"
    CLINICAL = "clinical"
    MEETING = "meeting"
    DEADLINE = "deadline"
    OTHER = "other"


class FixedEvent(Base):
    __tablename__ = "fixed_events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    type = Column(SQLEnum(EventType), nullable=False, default=EventType.OTHER)
    course_id = Column(String(64), nullable=True, index=True)
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)
    all_day = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
