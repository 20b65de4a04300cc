"""Busy-interval merging and free-gap derivation for a single calendar day."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Iterable, NamedTuple, Sequence

from studyblocks.core.timeutils import days_touched
from studyblocks.models.fixed_event import EventType
from studyblocks.schemas.energy import EnergyProfile
from studyblocks.schemas.event import FixedEventPublic
from studyblocks.schemas.schedule import StudyBlock
from studyblocks.schemas.scheduler_config import SchedulerConfig

logger = logging.getLogger(__name__)


class Interval(NamedTuple):
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end


def merge_intervals(intervals: Iterable[Interval]) -> list[Interval]:
    """Sort by start and merge intervals that overlap or touch."""
    merged: list[Interval] = []
    for interval in sorted(intervals):
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Interval(last.start, max(last.end, interval.end))
        else:
            merged.append(interval)
    return merged


def subtract_intervals(window: Interval, busy: Sequence[Interval]) -> list[Interval]:
    """Free pieces of ``window`` left after removing merged ``busy`` intervals."""
    gaps = []
    cursor = window.start
    for interval in busy:
        if interval.end <= cursor:
            continue
        if interval.start >= window.end:
            break
        if interval.start > cursor:
            gaps.append(Interval(cursor, interval.start))
        cursor = max(cursor, interval.end)
    if cursor < window.end:
        gaps.append(Interval(cursor, window.end))
    return gaps


def suppress_exam_day_lectures(
    events: Iterable[FixedEventPublic],
) -> list[FixedEventPublic]:
    """Drop lectures on days their course sits an exam."""
    events = list(events)
    exam_days = {
        (event.course_id, day)
        for event in events
        if event.type == EventType.EXAM and event.course_id
        for day in days_touched(event.start_at, event.end_at)
    }
    kept = []
    for event in events:
        if (
            event.type == EventType.LECTURE
            and event.course_id
            and (event.course_id, event.start_at.date()) in exam_days
        ):
            logger.debug(f"Lecture {event.id} suppressed by same-day exam for {event.course_id}")
            continue
        kept.append(event)
    return kept


class AvailabilityResolver:
    """Day-indexed view of fixed events and placed study blocks.

    Blocks added during a pass are visible to every later query, so tasks
    allocated later see the sessions placed for earlier ones.
    """

    def __init__(
        self,
        events: Iterable[FixedEventPublic],
        blocks: Iterable[StudyBlock],
        config: SchedulerConfig,
    ) -> None:
        self.config = config
        self._events_by_day: dict[date, list[Interval]] = defaultdict(list)
        self._blocks_by_day: dict[date, list[StudyBlock]] = defaultdict(list)
        self._blocked_days: set[date] = set()
        self.blocks: list[StudyBlock] = []

        for event in suppress_exam_day_lectures(events):
            blocks_day = event.all_day or event.type in config.all_day_event_types
            for day in days_touched(event.start_at, event.end_at):
                self._events_by_day[day].append(Interval(event.start_at, event.end_at))
                if blocks_day:
                    self._blocked_days.add(day)
        for block in blocks:
            self.add_block(block)

    def add_block(self, block: StudyBlock) -> None:
        self.blocks.append(block)
        for day in days_touched(block.start_time, block.end_time):
            self._blocks_by_day[day].append(block)

    def is_blocked_day(self, day: date) -> bool:
        return day in self._blocked_days

    def busy_intervals(self, day: date) -> list[Interval]:
        """Merged busy time for a day; study blocks carry a break on each side."""
        pad = timedelta(minutes=self.config.break_minutes)
        busy = list(self._events_by_day.get(day, []))
        busy.extend(
            Interval(block.start_time - pad, block.end_time + pad)
            for block in self._blocks_by_day.get(day, [])
        )
        return merge_intervals(busy)

    def free_gaps(
        self,
        day: date,
        not_before: datetime | None = None,
        not_after: datetime | None = None,
    ) -> list[Interval]:
        if self.is_blocked_day(day):
            return []
        start = datetime.combine(day, self.config.study_hours_start)
        end = datetime.combine(day, self.config.study_hours_end)
        if not_before is not None:
            start = max(start, not_before)
        if not_after is not None:
            end = min(end, not_after)
        if end <= start:
            return []
        minimum = timedelta(minutes=self.config.min_session_minutes)
        gaps = subtract_intervals(Interval(start, end), self.busy_intervals(day))
        return [gap for gap in gaps if gap.duration >= minimum]

    def scheduled_hours(self, day: date) -> float:
        return sum(
            block.duration_hours
            for block in self._blocks_by_day.get(day, [])
            if block.start_time.date() == day
        )

    def daily_capacity(self, day: date, energy_profile: EnergyProfile) -> float:
        if self.is_blocked_day(day):
            return 0.0
        return self.config.daily_cap(day) * energy_profile.day_multiplier(day)

    def remaining_capacity(self, day: date, energy_profile: EnergyProfile) -> float:
        return max(0.0, self.daily_capacity(day, energy_profile) - self.scheduled_hours(day))
