"""Event-driven recomputation of the study plan.

Every hook records the change and requests a pass. Requests arriving within
the debounce window collapse into one pass; a request that lands while a pass
is running makes that pass stale, and its result is thrown away instead of
published. Passes never run concurrently.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, Callable

from studyblocks.core.timeutils import local_now
from studyblocks.models.task import TaskStatus
from studyblocks.schemas.energy import EnergyProfile
from studyblocks.schemas.event import FixedEventPublic
from studyblocks.schemas.schedule import ScheduleResult
from studyblocks.schemas.scheduler_config import SchedulerConfig
from studyblocks.schemas.task import TaskPublic
from studyblocks.services.repository import PlannerSnapshot, ScheduleRepository
from studyblocks.services.scheduling import compute_schedule

logger = logging.getLogger(__name__)

# Task fields whose change invalidates the current plan
SCHEDULING_FIELDS = frozenset(
    {
        "due_at",
        "estimated_hours",
        "type",
        "complexity",
        "is_hard_deadline",
        "buffer_percentage",
        "lead_time_days",
        "buffer_days",
        "status",
    }
)


class RescheduleState(str, PyEnum):
    IDLE = "idle"
    RECOMPUTING = "recomputing"


@dataclass
class ChangeRecord:
    kind: str
    subject_id: int | str | None
    at: datetime
    detail: dict[str, Any] = field(default_factory=dict)


class DynamicRescheduler:
    def __init__(
        self,
        repository: ScheduleRepository,
        debounce_seconds: float = 0.5,
        seed: int | None = None,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self.repository = repository
        self.debounce_seconds = debounce_seconds
        self.seed = seed
        self._clock = clock

        self._lock = threading.Lock()
        self._pass_lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._generation = 0
        self._pending = False
        self._excluded: set[int] = set()

        self.state = RescheduleState.IDLE
        self.history: list[ChangeRecord] = []
        self.last_result: ScheduleResult | None = None
        self.completed_passes = 0
        self.discarded_passes = 0

    # Hooks

    def on_task_completed(self, task_id: int) -> None:
        with self._lock:
            self._excluded.add(task_id)
        self._record("task_completed", task_id)

    def on_task_added(self, task: TaskPublic) -> None:
        # The database may hand out the id of a task removed earlier
        with self._lock:
            self._excluded.discard(task.id)
        self._record("task_added", task.id, {"title": task.title})

    def on_task_changed(self, task_id: int, patch: dict[str, Any]) -> None:
        changed = SCHEDULING_FIELDS.intersection(patch)
        status = patch.get("status")
        with self._lock:
            if status == TaskStatus.COMPLETED:
                self._excluded.add(task_id)
            elif status is not None:
                self._excluded.discard(task_id)
        if not changed:
            self._record("task_changed", task_id, {"fields": sorted(patch)}, recompute=False)
            return
        self._record("task_changed", task_id, {"fields": sorted(changed)})

    def on_task_removed(self, task_id: int) -> None:
        with self._lock:
            self._excluded.discard(task_id)
        self._record("task_removed", task_id)

    def on_event_added(self, event: FixedEventPublic) -> None:
        self._record("event_added", event.id, {"type": event.type.value})

    def on_event_removed(self, event_id: int) -> None:
        self._record("event_removed", event_id)

    def on_block_changed(self, block_id: str) -> None:
        self._record("block_changed", block_id)

    def on_energy_profile_updated(self, profile: EnergyProfile) -> None:
        self._record("energy_profile_updated", None)

    def on_config_updated(self, config: SchedulerConfig) -> None:
        self._record("config_updated", None, {"spread_strategy": config.spread_strategy.value})

    def _record(
        self,
        kind: str,
        subject_id: int | str | None,
        detail: dict[str, Any] | None = None,
        recompute: bool = True,
    ) -> None:
        record = ChangeRecord(kind=kind, subject_id=subject_id, at=self._clock(), detail=detail or {})
        with self._lock:
            self.history.append(record)
        logger.debug(f"Change recorded: {kind} {subject_id}")
        if recompute:
            self.request_recompute()

    # Pass control

    def request_recompute(self) -> None:
        with self._lock:
            self._generation += 1
            self._pending = True
            if self.debounce_seconds > 0:
                if self._timer is not None:
                    self._timer.cancel()
                self._timer = threading.Timer(self.debounce_seconds, self._on_timer)
                self._timer.daemon = True
                self._timer.start()
                return
        self._drain()

    def recompute_now(self) -> ScheduleResult | None:
        """Run a pass immediately, regardless of pending changes."""
        with self._lock:
            self._generation += 1
            self._pending = True
        return self.flush()

    def flush(self) -> ScheduleResult | None:
        """Run any pending work now, waiting for an in-flight pass if needed."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        return self._drain(blocking=True)

    def _on_timer(self) -> None:
        with self._lock:
            self._timer = None
        try:
            self._drain()
        except Exception:
            logger.exception("Background schedule pass failed")

    def _drain(self, blocking: bool = False) -> ScheduleResult | None:
        if not self._pass_lock.acquire(blocking=blocking):
            # The pass in flight will observe the new generation
            return None
        held = True
        try:
            while True:
                with self._lock:
                    # A pending timer owns the next pass
                    if not self._pending or self._timer is not None:
                        self.state = RescheduleState.IDLE
                        self._pass_lock.release()
                        held = False
                        return self.last_result
                    self._pending = False
                    generation = self._generation
                    excluded = set(self._excluded)
                    self.state = RescheduleState.RECOMPUTING

                snapshot = self.repository.load_snapshot()
                result, keep_ids = self._compute(snapshot, excluded)

                with self._lock:
                    stale = generation != self._generation
                    if stale:
                        self.discarded_passes += 1
                if stale:
                    logger.info(f"Discarding stale schedule pass (generation {generation})")
                    continue

                self.repository.replace_generated_blocks(keep_ids, result.blocks, result.reports)
                with self._lock:
                    self.last_result = result
                    self.completed_passes += 1
        finally:
            if held:
                with self._lock:
                    self.state = RescheduleState.IDLE
                self._pass_lock.release()

    def _compute(
        self, snapshot: PlannerSnapshot, excluded: set[int]
    ) -> tuple[ScheduleResult, set[str]]:
        active = [
            task
            for task in snapshot.tasks
            if task.status != TaskStatus.COMPLETED and task.id not in excluded
        ]
        active_ids = {task.id for task in active}
        # Pinned blocks always stay; completed work stays only for live tasks
        kept = [
            block
            for block in snapshot.blocks
            if block.is_pinned or (block.completed and block.task_id in active_ids)
        ]
        result = compute_schedule(
            active,
            snapshot.fixed_events,
            kept,
            energy_profile=snapshot.energy_profile,
            config=snapshot.config,
            now=self._clock(),
            seed=self.seed,
        )
        return result, {block.id for block in kept}
