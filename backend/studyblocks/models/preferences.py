from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer

from studyblocks.db.base import Base


class PlannerPreferences(Base):
    """Single-row store for the scheduling policy and the energy curve."""

    __tablename__ = "planner_preferences"

    id = Column(Integer, primary_key=True, default=1)
    # SchedulerConfig as JSON; missing keys fall back to defaults
    scheduler_config = Column(JSON, nullable=True, default=None)
    # EnergyProfile as JSON: {"hourly": {"9": 0.9, ...}, "weekday_multipliers": {...}}
    energy_profile = Column(JSON, nullable=True, default=None)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )
