from datetime import date, datetime, timedelta

from studyblocks.models.study_session import BlockOrigin
from studyblocks.models.task import TaskType
from studyblocks.schemas.scheduler_config import SchedulerConfig
from studyblocks.schemas.schedule import StudyBlock
from studyblocks.schemas.task import TaskPublic
from studyblocks.services.scheduling import compute_schedule

NOW = datetime(2025, 3, 3, 8, 0)


def _build_exam(**overrides) -> TaskPublic:
    values = {
        "id": 1,
        "title": "Pharmacology midterm",
        "type": TaskType.EXAM,
        "course_id": "PHARM210",
        "due_at": datetime(2025, 3, 13, 9, 0),
        "estimated_hours": 4,
    }
    values.update(overrides)
    return TaskPublic(**values)


def test_exam_gets_review_blocks_on_each_preceding_day():
    exam = _build_exam()

    result = compute_schedule([exam], [], [], config=SchedulerConfig(buffer_before_exam=2), now=NOW, seed=5)
    review = [block for block in result.blocks if block.origin == BlockOrigin.REVIEW]
    work = [block for block in result.blocks if block.origin == BlockOrigin.WORK]
    report = result.report_for(exam.id)

    assert sorted(block.start_time.date() for block in review) == [
        date(2025, 3, 11),
        date(2025, 3, 12),
    ]
    assert all(block.duration_hours == 2 for block in review)
    assert not {block.id for block in review} & {block.id for block in work}
    assert report.review_hours == 4
    assert report.review_days_missed == 0


def test_review_blocks_only_for_exams():
    paper = _build_exam(type=TaskType.PAPER)

    result = compute_schedule([paper], [], [], now=NOW, seed=5)

    assert all(block.origin == BlockOrigin.WORK for block in result.blocks)


def test_review_days_in_the_past_are_reported_missed():
    exam = _build_exam(due_at=NOW + timedelta(days=1, hours=4))

    result = compute_schedule([exam], [], [], now=NOW, seed=5)
    report = result.report_for(exam.id)

    assert report.review_days_missed >= 1
    assert all(block.end_time <= exam.due_at for block in result.blocks)


def test_existing_review_block_covers_its_day():
    exam = _build_exam()
    pinned = StudyBlock(
        id="manual-review",
        task_id=exam.id,
        start_time=datetime(2025, 3, 12, 18, 0),
        end_time=datetime(2025, 3, 12, 19, 0),
        is_pinned=True,
        origin=BlockOrigin.REVIEW,
    )

    result = compute_schedule([exam], [], [pinned], now=NOW, seed=5)
    review_days = [block.start_time.date() for block in result.blocks if block.origin == BlockOrigin.REVIEW]

    assert review_days == [date(2025, 3, 11)]
