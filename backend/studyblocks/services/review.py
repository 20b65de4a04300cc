from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable

from studyblocks.models.study_session import BlockOrigin
from studyblocks.models.task import TaskType
from studyblocks.schemas.schedule import StudyBlock
from studyblocks.schemas.scheduler_config import SchedulerConfig
from studyblocks.schemas.task import TaskPublic
from studyblocks.services.allocator import BlockAllocator

logger = logging.getLogger(__name__)


@dataclass
class ReviewOutcome:
    blocks: list[StudyBlock] = field(default_factory=list)
    days_missed: int = 0

    @property
    def hours(self) -> float:
        return sum(block.duration_hours for block in self.blocks)


def generate_review_blocks(
    task: TaskPublic,
    allocator: BlockAllocator,
    config: SchedulerConfig,
    now: datetime,
    existing: Iterable[StudyBlock] = (),
) -> ReviewOutcome:
    """Place one review block on each of the days right before an exam.

    Days that already hold a review block for the task (pinned or completed)
    are left alone; days in the past or without room are counted as missed.
    """
    outcome = ReviewOutcome()
    if task.type != TaskType.EXAM or task.due_at <= now:
        return outcome

    covered = {
        block.start_time.date()
        for block in existing
        if block.task_id == task.id and block.origin == BlockOrigin.REVIEW
    }
    for offset in range(1, config.buffer_before_exam + 1):
        day = task.due_at.date() - timedelta(days=offset)
        if day in covered:
            continue
        if day < now.date():
            outcome.days_missed += 1
            continue
        block = allocator.place(
            task,
            day,
            config.review_session_hours,
            origin=BlockOrigin.REVIEW,
            not_after=task.due_at,
        )
        if block is None:
            outcome.days_missed += 1
            continue
        outcome.blocks.append(block)

    if outcome.days_missed:
        logger.info(f"Exam task {task.id}: {outcome.days_missed} review day(s) without a slot")
    return outcome
