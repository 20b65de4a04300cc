from datetime import datetime, timedelta

from studyblocks.models.fixed_event import EventType
from studyblocks.models.task import ScheduleStatus, TaskStatus, TaskType
from studyblocks.schemas.event import FixedEventPublic
from studyblocks.schemas.schedule import StudyBlock
from studyblocks.schemas.task import TaskPublic
from studyblocks.services.repository import InMemoryScheduleRepository
from studyblocks.services.rescheduler import DynamicRescheduler, RescheduleState

NOW = datetime(2025, 3, 3, 8, 0)


def _build_task(task_id: int, **overrides) -> TaskPublic:
    values = {
        "id": task_id,
        "title": f"Task {task_id}",
        "type": TaskType.ASSIGNMENT,
        "due_at": NOW + timedelta(days=4),
        "estimated_hours": 3,
    }
    values.update(overrides)
    return TaskPublic(**values)


def _build_rescheduler(repository, debounce_seconds: float = 0) -> DynamicRescheduler:
    return DynamicRescheduler(
        repository, debounce_seconds=debounce_seconds, seed=13, clock=lambda: NOW
    )


def _complete(repository: InMemoryScheduleRepository, task_id: int) -> None:
    task = repository.tasks[task_id]
    repository.tasks[task_id] = task.model_copy(update={"status": TaskStatus.COMPLETED})


def test_completing_a_task_removes_its_generated_blocks():
    repository = InMemoryScheduleRepository(tasks=[_build_task(1), _build_task(2)])
    rescheduler = _build_rescheduler(repository)

    rescheduler.recompute_now()
    assert {block.task_id for block in repository.blocks} == {1, 2}

    _complete(repository, 1)
    rescheduler.on_task_completed(1)

    assert {block.task_id for block in repository.blocks} == {2}
    assert rescheduler.state == RescheduleState.IDLE
    assert rescheduler.completed_passes == 2


def test_pinned_blocks_survive_every_recompute():
    pinned = StudyBlock(
        id="manual",
        task_id=1,
        start_time=datetime(2025, 3, 4, 18, 0),
        end_time=datetime(2025, 3, 4, 21, 0),
        is_pinned=True,
    )
    repository = InMemoryScheduleRepository(tasks=[_build_task(1), _build_task(2)], blocks=[pinned])
    rescheduler = _build_rescheduler(repository)

    rescheduler.recompute_now()
    _complete(repository, 1)
    rescheduler.on_task_completed(1)

    assert pinned in repository.blocks
    assert [block for block in repository.blocks if block.task_id == 1] == [pinned]


def test_completed_blocks_of_active_tasks_are_kept_and_counted():
    done = StudyBlock(
        id="done",
        task_id=1,
        start_time=datetime(2025, 3, 3, 9, 0),
        end_time=datetime(2025, 3, 3, 11, 0),
        completed=True,
    )
    repository = InMemoryScheduleRepository(tasks=[_build_task(1)], blocks=[done])
    rescheduler = _build_rescheduler(repository)

    result = rescheduler.recompute_now()
    generated_hours = sum(block.duration_hours for block in result.blocks)

    assert done in repository.blocks
    assert result.report_for(1).required_hours == 3.5
    assert generated_hours == 1.5


def test_rapid_changes_are_coalesced_into_one_pass():
    repository = InMemoryScheduleRepository(tasks=[_build_task(1)])
    rescheduler = _build_rescheduler(repository, debounce_seconds=30)

    rescheduler.on_task_changed(1, {"estimated_hours": 4})
    rescheduler.on_task_changed(1, {"due_at": NOW + timedelta(days=5)})
    rescheduler.on_event_added(
        FixedEventPublic(
            id=1,
            title="Lecture",
            type=EventType.LECTURE,
            start_at=datetime(2025, 3, 4, 9),
            end_at=datetime(2025, 3, 4, 11),
        )
    )

    assert repository.publish_count == 0
    rescheduler.flush()

    assert repository.publish_count == 1
    assert rescheduler.completed_passes == 1
    assert [record.kind for record in rescheduler.history] == [
        "task_changed",
        "task_changed",
        "event_added",
    ]


def test_change_to_non_scheduling_field_does_not_recompute():
    repository = InMemoryScheduleRepository(tasks=[_build_task(1)])
    rescheduler = _build_rescheduler(repository)

    rescheduler.on_task_changed(1, {"title": "Renamed"})

    assert repository.publish_count == 0
    assert rescheduler.history[-1].kind == "task_changed"


class _InterruptingRepository(InMemoryScheduleRepository):
    """Fires one extra change while the first pass is reading its snapshot."""

    rescheduler = None
    interrupted = False

    def load_snapshot(self):
        snapshot = super().load_snapshot()
        if not self.interrupted:
            self.interrupted = True
            self.tasks[3] = _build_task(3, type=TaskType.READING)
            self.rescheduler.on_task_added(self.tasks[3])
        return snapshot


def test_stale_pass_is_discarded_and_rerun():
    repository = _InterruptingRepository(tasks=[_build_task(1)])
    rescheduler = _build_rescheduler(repository)
    repository.rescheduler = rescheduler

    rescheduler.recompute_now()

    assert rescheduler.discarded_passes == 1
    assert rescheduler.completed_passes == 1
    assert repository.publish_count == 1
    assert {block.task_id for block in repository.blocks} == {1, 3}


def test_recompute_is_idempotent_without_changes():
    repository = InMemoryScheduleRepository(tasks=[_build_task(1), _build_task(2, type=TaskType.EXAM)])
    rescheduler = _build_rescheduler(repository)

    first = rescheduler.recompute_now()
    second = rescheduler.recompute_now()

    assert first.blocks == second.blocks
    assert repository.tasks[1].schedule_status == first.report_for(1).status


def test_task_added_with_reused_id_is_scheduled():
    repository = InMemoryScheduleRepository(tasks=[_build_task(1)])
    rescheduler = _build_rescheduler(repository)

    _complete(repository, 1)
    rescheduler.on_task_completed(1)
    del repository.tasks[1]
    rescheduler.on_task_removed(1)

    repository.tasks[1] = _build_task(1, title="Replacement", type=TaskType.READING)
    rescheduler.on_task_added(repository.tasks[1])

    assert {block.task_id for block in repository.blocks} == {1}
    assert repository.tasks[1].schedule_status == ScheduleStatus.FULLY_SCHEDULED


class _ChangingOnPublishRepository(InMemoryScheduleRepository):
    """Records a change from inside the first publish."""

    rescheduler = None
    fired = False

    def replace_generated_blocks(self, keep_ids, blocks, reports):
        super().replace_generated_blocks(keep_ids, blocks, reports)
        if not self.fired:
            self.fired = True
            self.rescheduler.on_task_changed(1, {"estimated_hours": 2})


def test_hooks_fired_during_publish_trigger_a_follow_up_pass():
    repository = _ChangingOnPublishRepository(tasks=[_build_task(1)])
    rescheduler = _build_rescheduler(repository)
    repository.rescheduler = rescheduler

    rescheduler.recompute_now()

    assert repository.publish_count == 2
    assert rescheduler.completed_passes == 2
    assert rescheduler.state == RescheduleState.IDLE
