"""The scheduling pass: prioritize, allocate, add reviews.

``compute_schedule`` is pure. It reads snapshots of tasks, events and pinned
blocks and returns a brand-new block list; callers own persistence.
"""

from __future__ import annotations

import logging
import random
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Iterable, Sequence

from studyblocks.core.timeutils import local_now, to_local_naive
from studyblocks.models.study_session import BlockOrigin
from studyblocks.models.task import ScheduleStatus, TaskStatus
from studyblocks.schemas.energy import EnergyProfile
from studyblocks.schemas.event import FixedEventPublic
from studyblocks.schemas.schedule import ScheduleResult, StudyBlock, TaskScheduleReport
from studyblocks.schemas.scheduler_config import SchedulerConfig
from studyblocks.schemas.task import TaskPublic
from studyblocks.services.allocator import (
    EPSILON,
    Allocation,
    BlockAllocator,
    required_hours,
)
from studyblocks.services.availability import AvailabilityResolver
from studyblocks.services.prioritizer import prioritize
from studyblocks.services.review import ReviewOutcome, generate_review_blocks
from studyblocks.services.slot_scoring import SlotScorer

logger = logging.getLogger(__name__)


def validate_task(task: TaskPublic, now: datetime, config: SchedulerConfig) -> str | None:
    """Reason a task cannot enter the pass, or None when it is schedulable."""
    if task.estimated_hours is not None and task.estimated_hours <= 0:
        return "estimated hours must be positive"
    if task.due_at < now - timedelta(days=config.overdue_grace_days):
        return f"due date passed more than {config.overdue_grace_days} days ago"
    return None


def _build_report(
    allocation: Allocation,
    required: float,
    pinned_hours: float,
    review: ReviewOutcome,
) -> TaskScheduleReport:
    scheduled = pinned_hours + allocation.scheduled_hours
    shortfall = max(0.0, required - scheduled)
    reason = None
    if shortfall <= EPSILON:
        status = ScheduleStatus.FULLY_SCHEDULED
        shortfall = 0.0
    elif scheduled > EPSILON:
        status = ScheduleStatus.PARTIALLY_SCHEDULED
        reason = "not enough free time before the deadline"
    else:
        status = ScheduleStatus.UNSCHEDULED
        if allocation.window is None:
            reason = "hard deadline has already passed"
        else:
            reason = "no free time before the deadline"
    return TaskScheduleReport(
        task_id=allocation.task.id,
        status=status,
        required_hours=required,
        scheduled_hours=round(scheduled, 4),
        shortfall_hours=round(shortfall, 4),
        review_hours=round(review.hours, 4),
        review_days_missed=review.days_missed,
        reason=reason,
    )


def compute_schedule(
    tasks: Iterable[TaskPublic],
    fixed_events: Iterable[FixedEventPublic],
    pinned_blocks: Sequence[StudyBlock] = (),
    energy_profile: EnergyProfile | None = None,
    config: SchedulerConfig | None = None,
    now: datetime | None = None,
    seed: int | None = None,
) -> ScheduleResult:
    """Build a full replacement set of generated study blocks.

    Args:
        tasks: Task snapshot; completed tasks are ignored.
        fixed_events: Immovable commitments, read as busy time.
        pinned_blocks: Blocks that must survive (manual or already completed);
            they occupy time and count toward their task's hours.
        energy_profile: Productivity curve; defaults when omitted.
        config: Scheduling policy; defaults when omitted.
        now: Reference time (local); the current time when omitted.
        seed: Seed for slot selection. Same inputs and seed give the same output.
    """
    config = config or SchedulerConfig()
    energy_profile = energy_profile or EnergyProfile()
    now = to_local_naive(now) if now else local_now()
    tasks = list(tasks)
    pinned_blocks = sorted(pinned_blocks, key=lambda block: (block.start_time, block.id))

    rng = random.Random(seed)
    resolver = AvailabilityResolver(fixed_events, pinned_blocks, config)
    scorer = SlotScorer(config, energy_profile, rng)
    allocator = BlockAllocator(resolver, scorer, energy_profile, config, rng, now)

    pinned_hours: dict[int, float] = defaultdict(float)
    for block in pinned_blocks:
        if block.origin == BlockOrigin.WORK:
            pinned_hours[block.task_id] += block.duration_hours

    reports: dict[int, TaskScheduleReport] = {}
    schedulable = []
    for task in tasks:
        if task.status == TaskStatus.COMPLETED:
            continue
        reason = validate_task(task, now, config)
        if reason:
            logger.info(f"Skipping task {task.id}: {reason}")
            reports[task.id] = TaskScheduleReport(
                task_id=task.id, status=ScheduleStatus.SKIPPED, reason=reason
            )
            continue
        schedulable.append(task)

    blocks: list[StudyBlock] = []
    for weighted in prioritize(schedulable, now, config):
        task = weighted.task
        required = required_hours(task, config)
        missing = max(0.0, required - pinned_hours[task.id])
        allocation = allocator.allocate(task, missing, required)
        review = generate_review_blocks(task, allocator, config, now, pinned_blocks)
        blocks.extend(allocation.blocks)
        blocks.extend(review.blocks)
        reports[task.id] = _build_report(allocation, required, pinned_hours[task.id], review)

    ordered = [reports[task.id] for task in tasks if task.id in reports]
    unscheduled = [
        report.task_id
        for report in ordered
        if report.status != ScheduleStatus.FULLY_SCHEDULED
    ]
    if unscheduled:
        logger.warning(
            f"{len(unscheduled)} of {len(ordered)} tasks not fully scheduled: {unscheduled}"
        )
    logger.info(
        f"Schedule pass placed {len(blocks)} blocks for {len(schedulable)} tasks "
        f"({len(pinned_blocks)} pinned kept)"
    )
    return ScheduleResult(
        blocks=sorted(blocks, key=lambda block: (block.start_time, block.id)),
        unscheduled=unscheduled,
        reports=ordered,
        generated_at=now,
        seed=seed,
    )
