"""Carves a task's required hours into study blocks inside its scheduling window."""

from __future__ import annotations

import logging
import math
import random
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from studyblocks.core.timeutils import date_range, start_of_day
from studyblocks.models.study_session import BlockOrigin
from studyblocks.models.task import TaskType
from studyblocks.schemas.energy import EnergyProfile
from studyblocks.schemas.schedule import StudyBlock
from studyblocks.schemas.scheduler_config import SchedulerConfig, SpreadStrategy
from studyblocks.schemas.task import TaskPublic
from studyblocks.services.availability import AvailabilityResolver
from studyblocks.services.slot_scoring import SlotScorer

logger = logging.getLogger(__name__)

EPSILON = 1e-6
# Share of the daily cap one task is assumed to get when sizing its window
DAILY_SHARE = 0.5
COMPRESSED_SPAN_FACTOR = 1.5


def round_to_half_hour(hours: float) -> float:
    return max(0.5, math.floor(hours * 2 + 0.5) / 2)


def _floor_hours(hours: float, granularity_minutes: int) -> float:
    minutes = int(hours * 60 + EPSILON)
    return (minutes - minutes % granularity_minutes) / 60


def base_hours(task: TaskPublic, config: SchedulerConfig) -> float:
    if task.estimated_hours is None:
        return config.default_hours_for(task.type)
    return task.estimated_hours


def required_hours(task: TaskPublic, config: SchedulerConfig) -> float:
    """Estimate scaled by complexity, type and buffer; exams add a review share."""
    hours = (
        base_hours(task, config)
        * config.complexity_multiplier_for(task.complexity)
        * config.type_multiplier_for(task.type)
        * (1 + task.buffer_percentage / 100)
    )
    if task.type == TaskType.EXAM:
        hours *= 1 + config.review_percentage
    return round_to_half_hour(hours)


def days_needed(hours: float, config: SchedulerConfig) -> int:
    return max(1, math.ceil(hours / (config.daily_max_hours * DAILY_SHARE)))


def sessions_needed(hours: float, config: SchedulerConfig) -> int:
    return max(1, math.ceil(hours / config.preferred_session_hours - EPSILON))


@dataclass
class SchedulingWindow:
    start: datetime
    soft_deadline: datetime
    due: datetime
    overdue: bool = False

    @property
    def primary_days(self) -> list[date]:
        return date_range(self.start.date(), self.soft_deadline.date())

    @property
    def overflow_days(self) -> list[date]:
        if self.soft_deadline >= self.due:
            return []
        return date_range(self.soft_deadline.date(), self.due.date())


def scheduling_window(
    task: TaskPublic, hours: float, now: datetime, config: SchedulerConfig
) -> SchedulingWindow | None:
    """Days a task may be worked on, or None when nothing can be placed."""
    if task.due_at <= now:
        if task.hard_deadline:
            return None
        # Overdue but within grace: catch up today and the next few days
        horizon_day = now.date() + timedelta(days=config.overdue_reschedule_days)
        horizon = datetime.combine(horizon_day, config.study_hours_end)
        return SchedulingWindow(start=now, soft_deadline=horizon, due=horizon, overdue=True)

    lead = task.lead_time_days
    if lead is None:
        lead = config.lead_time_for(task.type)
    buffer = task.buffer_days
    if buffer is None:
        buffer = config.buffer_days_for(task.type)

    soft_deadline = task.due_at - timedelta(days=buffer)
    ideal = min(
        task.due_at - timedelta(days=lead),
        soft_deadline - timedelta(days=days_needed(hours, config)),
    )
    ideal = max(
        start_of_day(ideal.date()),
        task.due_at - timedelta(days=config.max_search_days),
    )
    start = max(ideal, now)
    if soft_deadline <= start:
        soft_deadline = task.due_at
    return SchedulingWindow(start=start, soft_deadline=soft_deadline, due=task.due_at)


@dataclass
class Allocation:
    task: TaskPublic
    requested_hours: float
    window: SchedulingWindow | None = None
    blocks: list[StudyBlock] = field(default_factory=list)

    @property
    def scheduled_hours(self) -> float:
        return sum(block.duration_hours for block in self.blocks)

    @property
    def remaining_hours(self) -> float:
        return max(0.0, self.requested_hours - self.scheduled_hours)


class BlockAllocator:
    def __init__(
        self,
        resolver: AvailabilityResolver,
        scorer: SlotScorer,
        energy_profile: EnergyProfile,
        config: SchedulerConfig,
        rng: random.Random,
        now: datetime,
    ) -> None:
        self.resolver = resolver
        self.scorer = scorer
        self.energy_profile = energy_profile
        self.config = config
        self.rng = rng
        self.now = now

    def _new_block_id(self) -> str:
        return str(uuid.UUID(int=self.rng.getrandbits(128)))

    def place(
        self,
        task: TaskPublic,
        day: date,
        hours: float,
        origin: BlockOrigin = BlockOrigin.WORK,
        not_after: datetime | None = None,
    ) -> StudyBlock | None:
        """Place one session of up to ``hours`` on ``day``; None when it cannot fit."""
        config = self.config
        capacity = self.resolver.remaining_capacity(day, self.energy_profile)
        desired = min(
            hours,
            config.max_session_minutes / 60,
            _floor_hours(capacity, config.slot_granularity_minutes),
        )
        if desired < config.min_session_hours - EPSILON:
            return None
        gaps = self.resolver.free_gaps(day, not_before=self.now, not_after=not_after)
        if not gaps:
            return None
        slot = self.scorer.best_slot(
            gaps,
            task.type,
            timedelta(hours=desired),
            self.resolver.blocks,
            origin,
        )
        if slot is None:
            return None
        block = StudyBlock(
            id=self._new_block_id(),
            task_id=task.id,
            start_time=slot.start,
            end_time=slot.end,
            origin=origin,
            score=slot.score,
            energy_level=self.energy_profile.label_at(slot.start),
        )
        self.resolver.add_block(block)
        return block

    def _work_day(
        self,
        allocation: Allocation,
        day: date,
        not_after: datetime,
        max_sessions: int | None,
    ) -> None:
        config = self.config
        placed = 0
        while allocation.remaining_hours > EPSILON:
            if max_sessions is not None and placed >= max_sessions:
                return
            request = max(
                min(allocation.remaining_hours, config.preferred_session_hours),
                config.min_session_hours,
            )
            block = self.place(allocation.task, day, request, not_after=not_after)
            if block is None:
                return
            allocation.blocks.append(block)
            placed += 1

    def _primary_pass(self, window: SchedulingWindow, hours: float) -> tuple[list[date], int | None]:
        days = window.primary_days
        if not days:
            return [], None
        if self.config.spread_strategy == SpreadStrategy.COMPRESSED:
            span = math.ceil(days_needed(hours, self.config) * COMPRESSED_SPAN_FACTOR)
            return days[-span:], None
        stride = max(1, len(days) // sessions_needed(hours, self.config))
        return days[::stride], 1

    def allocate(
        self,
        task: TaskPublic,
        hours: float,
        total_hours: float | None = None,
    ) -> Allocation:
        """Schedule ``hours`` of work for ``task``.

        ``total_hours`` is the task's full requirement and sizes the window;
        ``hours`` is what is still missing after pinned blocks.
        """
        total_hours = hours if total_hours is None else total_hours
        window = scheduling_window(task, total_hours, self.now, self.config)
        allocation = Allocation(task=task, requested_hours=hours, window=window)
        if window is None or hours <= EPSILON:
            return allocation

        primary_days, per_day = self._primary_pass(window, hours)
        passes = (
            (primary_days, window.soft_deadline, per_day),
            (window.primary_days, window.soft_deadline, None),
            (window.overflow_days, window.due, None),
        )
        for days, not_after, max_sessions in passes:
            for day in days:
                self._work_day(allocation, day, not_after, max_sessions)
                if allocation.remaining_hours <= EPSILON:
                    logger.debug(
                        f"Task {task.id} fully scheduled in {len(allocation.blocks)} blocks"
                    )
                    return allocation

        logger.debug(
            f"Task {task.id} short by {allocation.remaining_hours:.2f}h "
            f"between {window.start:%Y-%m-%d %H:%M} and {window.due:%Y-%m-%d %H:%M}"
        )
        return allocation
