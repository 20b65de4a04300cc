from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Literal

from pydantic import BaseModel, Field, field_validator

EnergyLabel = Literal["low", "medium", "high"]

# (first hour, last hour exclusive, level); hours not listed sit at the floor
DEFAULT_ENERGY_CURVE = (
    (6, 9, 0.7),
    (9, 12, 0.9),
    (12, 14, 0.6),
    (14, 17, 0.8),
    (17, 20, 0.7),
    (20, 22, 0.5),
)
ENERGY_FLOOR = 0.3

DEFAULT_WEEKDAY_MULTIPLIERS = {
    0: 0.9,
    1: 1.0,
    2: 0.95,
    3: 0.85,
    4: 0.7,
    5: 0.8,
    6: 0.9,
}


def _default_hourly() -> dict[int, float]:
    levels = {hour: ENERGY_FLOOR for hour in range(24)}
    for first, last, level in DEFAULT_ENERGY_CURVE:
        for hour in range(first, last):
            levels[hour] = level
    return levels


class EnergyProfile(BaseModel):
    """Hourly productivity curve plus a per-weekday multiplier (Monday is 0)."""

    hourly: dict[int, float] = Field(default_factory=_default_hourly)
    weekday_multipliers: dict[int, float] = Field(
        default_factory=lambda: dict(DEFAULT_WEEKDAY_MULTIPLIERS)
    )

    @field_validator("hourly")
    @classmethod
    def _check_hourly(cls, value: dict[int, float]) -> dict[int, float]:
        levels = _default_hourly()
        for hour, level in value.items():
            if not 0 <= hour <= 23:
                raise ValueError(f"hour {hour} is outside 0-23")
            if not 0 <= level <= 1:
                raise ValueError(f"energy level {level} for hour {hour} is outside [0, 1]")
            levels[hour] = level
        return levels

    @field_validator("weekday_multipliers")
    @classmethod
    def _check_weekdays(cls, value: dict[int, float]) -> dict[int, float]:
        multipliers = dict(DEFAULT_WEEKDAY_MULTIPLIERS)
        for weekday, multiplier in value.items():
            if not 0 <= weekday <= 6:
                raise ValueError(f"weekday {weekday} is outside 0-6")
            if not 0 < multiplier <= 1.5:
                raise ValueError(f"weekday multiplier {multiplier} is outside (0, 1.5]")
            multipliers[weekday] = multiplier
        return multipliers

    def day_multiplier(self, day: date) -> float:
        return self.weekday_multipliers.get(day.weekday(), 1.0)

    def level_at(self, moment: datetime) -> float:
        level = self.hourly.get(moment.hour, ENERGY_FLOOR) * self.day_multiplier(moment.date())
        return min(1.0, level)

    def average_level(self, start: datetime, end: datetime) -> float:
        """Time-weighted mean energy across an interval."""
        if end <= start:
            return self.level_at(start)
        total = 0.0
        cursor = start
        while cursor < end:
            next_hour = cursor.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
            boundary = min(end, next_hour)
            total += self.level_at(cursor) * (boundary - cursor).total_seconds()
            cursor = boundary
        return total / (end - start).total_seconds()

    def label_at(self, moment: datetime) -> EnergyLabel:
        level = self.level_at(moment)
        if level >= 0.75:
            return "high"
        if level >= 0.5:
            return "medium"
        return "low"

    def with_feedback(
        self, hour: int, observed: float, learning_rate: float = 0.2
    ) -> "EnergyProfile":
        """Return a copy nudged toward an observed productivity reading."""
        current = self.hourly.get(hour, ENERGY_FLOOR)
        updated = current + learning_rate * (observed - current)
        hourly = dict(self.hourly)
        hourly[hour] = round(min(1.0, max(0.0, updated)), 4)
        return self.model_copy(update={"hourly": hourly})


class EnergyFeedback(BaseModel):
    hour: int = Field(..., ge=0, le=23)
    observed: float = Field(..., ge=0, le=1)
    learning_rate: float = Field(default=0.2, gt=0, le=1)
