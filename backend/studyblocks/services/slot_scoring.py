from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterator, Sequence

from studyblocks.models.study_session import BlockOrigin
from studyblocks.models.task import TaskType
from studyblocks.schemas.energy import EnergyProfile
from studyblocks.schemas.schedule import StudyBlock
from studyblocks.schemas.scheduler_config import SchedulerConfig
from studyblocks.services.availability import Interval

BASE_SCORE = 100.0

PERIOD_BOUNDS = (
    ("morning", 12),
    ("afternoon", 17),
    ("evening", 20),
)

# Preferred periods per task type, best first
PERIOD_PREFERENCES = {
    TaskType.EXAM: ("morning", "afternoon"),
    TaskType.QUIZ: ("morning", "afternoon"),
    TaskType.PROJECT: ("afternoon", "morning"),
    TaskType.PRESENTATION: ("afternoon", "morning"),
    TaskType.PAPER: ("morning", "afternoon"),
    TaskType.ASSIGNMENT: ("afternoon", "evening"),
    TaskType.READING: ("evening", "afternoon"),
    TaskType.VIDEO: ("evening", "afternoon"),
    TaskType.LAB: ("morning", "afternoon"),
}
DEFAULT_PERIOD_PREFERENCE = ("morning", "afternoon", "evening")
REVIEW_PERIOD_PREFERENCE = ("morning", "afternoon")

HIGH_ENERGY = 0.85
MEDIUM_ENERGY = 0.6
LOW_ENERGY = 0.4

REQUIRED_ENERGY = {
    TaskType.EXAM: HIGH_ENERGY,
    TaskType.PROJECT: HIGH_ENERGY,
    TaskType.PRESENTATION: HIGH_ENERGY,
    TaskType.VSIM: HIGH_ENERGY,
    TaskType.PREP: HIGH_ENERGY,
    TaskType.READING: LOW_ENERGY,
    TaskType.VIDEO: LOW_ENERGY,
    TaskType.ADMIN: LOW_ENERGY,
    TaskType.DISCUSSION: LOW_ENERGY,
}


def period_of(hour: int) -> str:
    for name, upper in PERIOD_BOUNDS:
        if hour < upper:
            return name
    return "night"


def required_energy(task_type: TaskType, origin: BlockOrigin = BlockOrigin.WORK) -> float:
    if origin == BlockOrigin.REVIEW:
        return HIGH_ENERGY
    return REQUIRED_ENERGY.get(task_type, MEDIUM_ENERGY)


def period_affinity(
    task_type: TaskType, moment: datetime, origin: BlockOrigin = BlockOrigin.WORK
) -> int:
    """3 for the first-choice period, 2 for the second, 0 when not preferred."""
    if origin == BlockOrigin.REVIEW:
        preferences = REVIEW_PERIOD_PREFERENCE
    else:
        preferences = PERIOD_PREFERENCES.get(task_type, DEFAULT_PERIOD_PREFERENCE)
    period = period_of(moment.hour)
    if period not in preferences:
        return 0
    return 3 - preferences.index(period)


def _ceil_to_step(moment: datetime, minutes: int) -> datetime:
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    elapsed = (moment - midnight).total_seconds()
    step = minutes * 60
    steps = -(-elapsed // step)
    return midnight + timedelta(seconds=steps * step)


def _floor_duration(duration: timedelta, minutes: int) -> timedelta:
    whole = int(duration.total_seconds() // 60)
    return timedelta(minutes=whole - whole % minutes)


@dataclass
class CandidateSlot:
    start: datetime
    end: datetime
    score: float

    @property
    def hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600


class SlotScorer:
    """Proposes and ranks session slots inside free gaps.

    Selection among the best candidates is randomized through the injected
    ``random.Random`` so a seeded pass is fully reproducible.
    """

    def __init__(
        self,
        config: SchedulerConfig,
        energy_profile: EnergyProfile,
        rng: random.Random,
    ) -> None:
        self.config = config
        self.energy_profile = energy_profile
        self.rng = rng

    def _candidate_intervals(
        self, gaps: Sequence[Interval], desired: timedelta
    ) -> Iterator[Interval]:
        granularity = self.config.slot_granularity_minutes
        step = timedelta(minutes=granularity)
        minimum = timedelta(minutes=self.config.min_session_minutes)
        for gap in gaps:
            start = _ceil_to_step(gap.start, granularity)
            while start + minimum <= gap.end:
                length = _floor_duration(min(desired, gap.end - start), granularity)
                if length < minimum:
                    break
                yield Interval(start, start + length)
                start += step

    def score(
        self,
        slot: Interval,
        task_type: TaskType,
        desired: timedelta,
        placed: Sequence[StudyBlock],
        origin: BlockOrigin = BlockOrigin.WORK,
    ) -> float:
        weights = self.config.slot_weights
        energy = self.energy_profile.average_level(slot.start, slot.end)
        match = 1 - abs(energy - required_energy(task_type, origin))
        value = BASE_SCORE + match * weights.energy
        value += period_affinity(task_type, slot.start, origin) * weights.affinity

        window = timedelta(minutes=self.config.clustering_window_minutes)
        nearby = sum(1 for block in placed if abs(block.start_time - slot.start) < window)
        same_hour = sum(1 for block in placed if block.start_time.hour == slot.start.hour)
        value -= nearby * weights.clustering
        value -= same_hour * weights.hour_repeat

        value += (slot.duration / desired) * weights.fit
        return max(0.0, value)

    def rank(
        self,
        gaps: Sequence[Interval],
        task_type: TaskType,
        desired: timedelta,
        placed: Sequence[StudyBlock],
        origin: BlockOrigin = BlockOrigin.WORK,
    ) -> list[CandidateSlot]:
        candidates = [
            CandidateSlot(
                start=slot.start,
                end=slot.end,
                score=round(self.score(slot, task_type, desired, placed, origin), 6),
            )
            for slot in self._candidate_intervals(gaps, desired)
        ]
        candidates.sort(key=lambda candidate: (-candidate.score, candidate.start))
        return candidates

    def choose(self, candidates: Sequence[CandidateSlot]) -> CandidateSlot | None:
        if not candidates:
            return None
        return self.rng.choice(list(candidates[: self.config.top_n_candidates]))

    def best_slot(
        self,
        gaps: Sequence[Interval],
        task_type: TaskType,
        desired: timedelta,
        placed: Sequence[StudyBlock],
        origin: BlockOrigin = BlockOrigin.WORK,
    ) -> CandidateSlot | None:
        return self.choose(self.rank(gaps, task_type, desired, placed, origin))
