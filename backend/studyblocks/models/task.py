from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    Float,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from studyblocks.db.base import Base


class TaskType(str, PyEnum):
    ASSIGNMENT = "assignment"
    EXAM = "exam"
    QUIZ = "quiz"
    PROJECT = "project"
    PRESENTATION = "presentation"
    PAPER = "paper"
    LAB = "lab"
    LECTURE = "lecture"
    CLINICAL = "clinical"
    SIMULATION = "simulation"
    READING = "reading"
    TUTORIAL = "tutorial"
    VIDEO = "video"
    DISCUSSION = "discussion"
    VSIM = "vsim"
    REMEDIATION = "remediation"
    ADMIN = "admin"
    PREP = "prep"
    DRILL = "drill"
    OTHER = "other"


class TaskStatus(str, PyEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ScheduleStatus(str, PyEnum):
    FULLY_SCHEDULED = "fully_scheduled"
    PARTIALLY_SCHEDULED = "partially_scheduled"
    UNSCHEDULED = "unscheduled"
    SKIPPED = "skipped"


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    course_id = Column(String(64), nullable=True, index=True)
    type = Column(SQLEnum(TaskType), nullable=False, default=TaskType.ASSIGNMENT)
    due_at = Column(DateTime, nullable=False)
    # NULL means "use the per-type default estimate"
    estimated_hours = Column(Float, nullable=True)
    complexity = Column(Integer, nullable=False, default=3)
    is_hard_deadline = Column(Boolean, nullable=False, default=False)
    buffer_percentage = Column(Float, nullable=False, default=20)
    lead_time_days = Column(Integer, nullable=True)
    buffer_days = Column(Integer, nullable=True)
    # Use String for SQLite compatibility - enum values are stored as lowercase strings
    status = Column(String(20), nullable=False, default=TaskStatus.NOT_STARTED.value)

    # Written back by the scheduler after every pass
    schedule_status = Column(
        String(32), nullable=False, default=ScheduleStatus.UNSCHEDULED.value
    )
    unscheduled_hours = Column(Float, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    sessions = relationship(
        "StudySession", back_populates="task", cascade="all, delete-orphan"
    )
