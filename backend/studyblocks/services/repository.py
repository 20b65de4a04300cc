"""Snapshot reads and atomic block replacement for the rescheduler."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, Protocol, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studyblocks.models.fixed_event import FixedEvent
from studyblocks.models.preferences import PlannerPreferences
from studyblocks.models.study_session import StudySession
from studyblocks.models.task import Task
from studyblocks.schemas.energy import EnergyProfile
from studyblocks.schemas.event import FixedEventPublic
from studyblocks.schemas.schedule import StudyBlock, TaskScheduleReport
from studyblocks.schemas.scheduler_config import SchedulerConfig
from studyblocks.schemas.task import TaskPublic

logger = logging.getLogger(__name__)

PREFERENCES_ID = 1


@dataclass
class PlannerSnapshot:
    tasks: list[TaskPublic] = field(default_factory=list)
    fixed_events: list[FixedEventPublic] = field(default_factory=list)
    blocks: list[StudyBlock] = field(default_factory=list)
    energy_profile: EnergyProfile = field(default_factory=EnergyProfile)
    config: SchedulerConfig = field(default_factory=SchedulerConfig)


class ScheduleRepository(Protocol):
    def load_snapshot(self) -> PlannerSnapshot:
        ...

    def replace_generated_blocks(
        self,
        keep_ids: set[str],
        blocks: Sequence[StudyBlock],
        reports: Sequence[TaskScheduleReport],
    ) -> None:
        """Drop every unpinned block not in ``keep_ids`` and store ``blocks`` in one step."""
        ...


def get_preferences(db: Session) -> PlannerPreferences:
    preferences = db.get(PlannerPreferences, PREFERENCES_ID)
    if preferences is None:
        preferences = PlannerPreferences(id=PREFERENCES_ID)
        db.add(preferences)
        db.flush()
    return preferences


def read_scheduler_config(preferences: PlannerPreferences) -> SchedulerConfig:
    return SchedulerConfig.model_validate(preferences.scheduler_config or {})


def read_energy_profile(preferences: PlannerPreferences) -> EnergyProfile:
    return EnergyProfile.model_validate(preferences.energy_profile or {})


def _session_from_block(block: StudyBlock) -> StudySession:
    return StudySession(
        id=block.id,
        task_id=block.task_id,
        start_time=block.start_time,
        end_time=block.end_time,
        completed=block.completed,
        is_pinned=block.is_pinned,
        origin=block.origin,
        score=block.score,
        energy_level=block.energy_level,
    )


class SqlScheduleRepository:
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    def load_snapshot(self) -> PlannerSnapshot:
        db = self.session_factory()
        try:
            tasks = db.query(Task).order_by(Task.id).all()
            events = db.query(FixedEvent).order_by(FixedEvent.start_at, FixedEvent.id).all()
            sessions = db.query(StudySession).order_by(StudySession.start_time).all()
            preferences = get_preferences(db)
            snapshot = PlannerSnapshot(
                tasks=[TaskPublic.model_validate(task) for task in tasks],
                fixed_events=[FixedEventPublic.model_validate(event) for event in events],
                blocks=[StudyBlock.model_validate(session) for session in sessions],
                energy_profile=read_energy_profile(preferences),
                config=read_scheduler_config(preferences),
            )
            db.commit()
            return snapshot
        finally:
            db.close()

    def replace_generated_blocks(
        self,
        keep_ids: set[str],
        blocks: Sequence[StudyBlock],
        reports: Sequence[TaskScheduleReport],
    ) -> None:
        db = self.session_factory()
        try:
            # Blocks pinned after the snapshot was taken are not in keep_ids
            stale = db.query(StudySession).filter(StudySession.is_pinned.is_(False))
            if keep_ids:
                stale = stale.filter(StudySession.id.notin_(sorted(keep_ids)))
            removed = stale.delete(synchronize_session=False)
            db.add_all(_session_from_block(block) for block in blocks)

            by_task = {report.task_id: report for report in reports}
            if by_task:
                for task in db.query(Task).filter(Task.id.in_(by_task)).all():
                    report = by_task[task.id]
                    task.schedule_status = report.status.value
                    task.unscheduled_hours = report.shortfall_hours
            db.commit()
            logger.debug(f"Replaced {removed} generated blocks with {len(blocks)}")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to publish schedule: {e}")
            raise
        finally:
            db.close()


class InMemoryScheduleRepository:
    """Repository over plain lists; each publish swaps in a new block list."""

    def __init__(
        self,
        tasks: Iterable[TaskPublic] = (),
        fixed_events: Iterable[FixedEventPublic] = (),
        blocks: Iterable[StudyBlock] = (),
        energy_profile: EnergyProfile | None = None,
        config: SchedulerConfig | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self.tasks = {task.id: task for task in tasks}
        self.fixed_events = {event.id: event for event in fixed_events}
        self.blocks: list[StudyBlock] = list(blocks)
        self.energy_profile = energy_profile or EnergyProfile()
        self.config = config or SchedulerConfig()
        self.reports: dict[int, TaskScheduleReport] = {}
        self.publish_count = 0

    def load_snapshot(self) -> PlannerSnapshot:
        with self._lock:
            return PlannerSnapshot(
                tasks=list(self.tasks.values()),
                fixed_events=list(self.fixed_events.values()),
                blocks=list(self.blocks),
                energy_profile=self.energy_profile,
                config=self.config,
            )

    def replace_generated_blocks(
        self,
        keep_ids: set[str],
        blocks: Sequence[StudyBlock],
        reports: Sequence[TaskScheduleReport],
    ) -> None:
        with self._lock:
            kept = [block for block in self.blocks if block.is_pinned or block.id in keep_ids]
            self.blocks = kept + list(blocks)
            for report in reports:
                self.reports[report.task_id] = report
                task = self.tasks.get(report.task_id)
                if task is not None:
                    self.tasks[task.id] = task.model_copy(
                        update={
                            "schedule_status": report.status,
                            "unscheduled_hours": report.shortfall_hours,
                        }
                    )
            self.publish_count += 1
