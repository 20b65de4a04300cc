from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from studyblocks.db.base import Base


class BlockOrigin(str, PyEnum):
    WORK = "work"
    REVIEW = "review"


class StudySession(Base):
    """A persisted study block, either scheduler-generated or pinned by the user."""

    __tablename__ = "study_sessions"

    id = Column(String(36), primary_key=True)
    task_id = Column(
        Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    # Manually created or moved blocks survive every recompute
    is_pinned = Column(Boolean, nullable=False, default=False)
    origin = Column(SQLEnum(BlockOrigin), nullable=False, default=BlockOrigin.WORK)
    score = Column(Float, nullable=True)
    energy_level = Column(String(16), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    task = relationship("Task", back_populates="sessions")
