"""Task ordering by urgency (time to deadline) and importance (type and weight)."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from studyblocks.models.task import TaskType
from studyblocks.schemas.scheduler_config import SchedulerConfig
from studyblocks.schemas.task import TaskPublic

MAX_SCORE = 10.0

IMPORTANCE_WEIGHT = {
    TaskType.EXAM: 10,
    TaskType.PROJECT: 8,
    TaskType.CLINICAL: 8,
    TaskType.REMEDIATION: 8,
    TaskType.PRESENTATION: 8,
    TaskType.PAPER: 7,
    TaskType.LECTURE: 7,
    TaskType.QUIZ: 7,
    TaskType.VSIM: 7,
    TaskType.ASSIGNMENT: 6,
    TaskType.SIMULATION: 6,
    TaskType.DRILL: 6,
    TaskType.LAB: 5,
    TaskType.DISCUSSION: 5,
    TaskType.TUTORIAL: 4,
    TaskType.VIDEO: 4,
    TaskType.READING: 3,
    TaskType.PREP: 2.5,
    TaskType.ADMIN: 2,
}
DEFAULT_IMPORTANCE = 5

# (days until due upper bound, urgency)
URGENCY_STEPS = (
    (0, 10.0),
    (1, 9.0),
    (3, 7.0),
    (7, 5.0),
    (14, 3.0),
)

COMPLEXITY_IMPORTANCE = 0.5
HARD_DEADLINE_IMPORTANCE = 2.0


@dataclass(order=True)
class WeightedTask:
    sort_index: tuple = field(init=False, repr=False, compare=True)
    weight: float = field(compare=False)
    task: TaskPublic = field(compare=False)
    position: int = field(compare=False)
    urgency: float = field(compare=False, default=0.0)
    importance: float = field(compare=False, default=0.0)

    def __post_init__(self) -> None:
        # highest weight first, then earlier due date, then input order
        self.sort_index = (-self.weight, self.task.due_at, self.position)


def days_until_due(task: TaskPublic, now: datetime) -> float:
    return (task.due_at - now).total_seconds() / 86400


def urgency_score(task: TaskPublic, now: datetime) -> float:
    """Stepped urgency that decays exponentially past two weeks."""
    days = days_until_due(task, now)
    for horizon, urgency in URGENCY_STEPS:
        if days <= horizon:
            return urgency
    return max(1.0, MAX_SCORE * math.exp(-days / 7))


def importance_score(task: TaskPublic) -> float:
    score = IMPORTANCE_WEIGHT.get(task.type, DEFAULT_IMPORTANCE)
    score += task.complexity * COMPLEXITY_IMPORTANCE
    if task.hard_deadline:
        score += HARD_DEADLINE_IMPORTANCE
    return min(MAX_SCORE, score)


def prioritize(
    tasks: Iterable[TaskPublic],
    now: datetime,
    config: SchedulerConfig | None = None,
) -> list[WeightedTask]:
    """Rank tasks most urgent/important first. Pure: reads only its arguments."""
    config = config or SchedulerConfig()
    weighted = []
    for position, task in enumerate(tasks):
        urgency = urgency_score(task, now)
        importance = importance_score(task)
        weight = urgency * config.urgency_weight + importance * config.importance_weight
        weighted.append(
            WeightedTask(
                weight=round(weight, 6),
                task=task,
                position=position,
                urgency=urgency,
                importance=importance,
            )
        )
    return sorted(weighted)
