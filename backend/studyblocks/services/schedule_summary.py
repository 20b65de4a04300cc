from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Sequence

from studyblocks.models.study_session import BlockOrigin
from studyblocks.models.task import ScheduleStatus
from studyblocks.schemas.schedule import ScheduleStatistics, StudyBlock, TaskScheduleReport


def summarize_schedule(
    blocks: Iterable[StudyBlock],
    reports: Sequence[TaskScheduleReport] = (),
) -> ScheduleStatistics:
    """Totals and completion figures for a block set, for UI reporting."""
    blocks = list(blocks)
    hours_by_day: dict = defaultdict(float)
    hours_by_origin: dict = defaultdict(float)
    completed_blocks = 0
    completed_hours = 0.0
    for block in blocks:
        hours = block.duration_hours
        hours_by_day[block.start_time.date()] += hours
        hours_by_origin[block.origin] += hours
        if block.completed:
            completed_blocks += 1
            completed_hours += hours

    total_hours = sum(hours_by_day.values())
    overcommitted = [
        report.task_id
        for report in reports
        if report.status
        in (ScheduleStatus.PARTIALLY_SCHEDULED, ScheduleStatus.UNSCHEDULED)
    ]
    return ScheduleStatistics(
        total_blocks=len(blocks),
        completed_blocks=completed_blocks,
        total_hours=round(total_hours, 2),
        completed_hours=round(completed_hours, 2),
        completion_rate=round(completed_blocks / len(blocks), 4) if blocks else 0.0,
        hours_by_day={day: round(hours, 2) for day, hours in sorted(hours_by_day.items())},
        hours_by_origin={
            origin: round(hours_by_origin.get(origin, 0.0), 2) for origin in BlockOrigin
        },
        overcommitted_task_ids=overcommitted,
        shortfall_hours=round(sum(report.shortfall_hours for report in reports), 2),
    )
