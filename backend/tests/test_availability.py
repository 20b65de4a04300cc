from datetime import date, datetime

from studyblocks.models.fixed_event import EventType
from studyblocks.schemas.energy import EnergyProfile
from studyblocks.schemas.event import FixedEventPublic
from studyblocks.schemas.schedule import StudyBlock
from studyblocks.schemas.scheduler_config import SchedulerConfig
from studyblocks.services.availability import (
    AvailabilityResolver,
    Interval,
    merge_intervals,
    suppress_exam_day_lectures,
)

MONDAY = date(2025, 3, 3)
SATURDAY = date(2025, 3, 8)


def _at(hour: int, minute: int = 0, day: date = MONDAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


def _build_event(event_id: int, start: datetime, end: datetime, **overrides) -> FixedEventPublic:
    values = {
        "id": event_id,
        "title": f"Event {event_id}",
        "type": EventType.LECTURE,
        "start_at": start,
        "end_at": end,
    }
    values.update(overrides)
    return FixedEventPublic(**values)


def _build_block(start: datetime, end: datetime) -> StudyBlock:
    return StudyBlock(id="block", task_id=1, start_time=start, end_time=end)


def test_merge_intervals_joins_overlapping_and_touching():
    merged = merge_intervals(
        [
            Interval(_at(12), _at(13)),
            Interval(_at(10), _at(11)),
            Interval(_at(9), _at(10)),
            Interval(_at(12, 30), _at(14)),
        ]
    )

    assert merged == [Interval(_at(9), _at(11)), Interval(_at(12), _at(14))]


def test_free_gaps_subtract_events_from_study_window():
    resolver = AvailabilityResolver(
        [_build_event(1, _at(10), _at(12))], [], SchedulerConfig()
    )

    gaps = resolver.free_gaps(MONDAY)

    assert gaps == [Interval(_at(9), _at(10)), Interval(_at(12), _at(22))]


def test_free_gaps_drop_slivers_shorter_than_minimum_session():
    resolver = AvailabilityResolver(
        [_build_event(1, _at(9, 20), _at(22))], [], SchedulerConfig()
    )

    assert resolver.free_gaps(MONDAY) == []


def test_clinical_or_all_day_event_blocks_the_whole_day():
    clinical = _build_event(1, _at(7), _at(15), type=EventType.CLINICAL)
    all_day = _build_event(
        2, _at(0, day=SATURDAY), _at(1, day=SATURDAY), type=EventType.OTHER, all_day=True
    )
    resolver = AvailabilityResolver([clinical, all_day], [], SchedulerConfig())

    assert resolver.free_gaps(MONDAY) == []
    assert resolver.free_gaps(SATURDAY) == []
    assert resolver.remaining_capacity(MONDAY, EnergyProfile()) == 0
    assert resolver.free_gaps(date(2025, 3, 4)) == [
        Interval(_at(9, day=date(2025, 3, 4)), _at(22, day=date(2025, 3, 4)))
    ]


def test_exam_suppresses_same_course_lecture_on_same_day():
    lecture = _build_event(1, _at(10), _at(12), course_id="BIO101")
    exam = _build_event(2, _at(14), _at(16), type=EventType.EXAM, course_id="BIO101")
    other_lecture = _build_event(3, _at(17), _at(18), course_id="CHEM200")

    kept = suppress_exam_day_lectures([lecture, exam, other_lecture])
    resolver = AvailabilityResolver([lecture, exam, other_lecture], [], SchedulerConfig())

    assert [event.id for event in kept] == [2, 3]
    assert resolver.free_gaps(MONDAY) == [
        Interval(_at(9), _at(14)),
        Interval(_at(16), _at(17)),
        Interval(_at(18), _at(22)),
    ]


def test_lecture_on_another_day_is_not_suppressed():
    lecture = _build_event(1, _at(10, day=date(2025, 3, 4)), _at(12, day=date(2025, 3, 4)), course_id="BIO101")
    exam = _build_event(2, _at(14), _at(16), type=EventType.EXAM, course_id="BIO101")

    assert [event.id for event in suppress_exam_day_lectures([lecture, exam])] == [1, 2]


def test_placed_blocks_are_padded_with_breaks():
    resolver = AvailabilityResolver([], [_build_block(_at(10), _at(12))], SchedulerConfig())

    assert resolver.free_gaps(MONDAY) == [
        Interval(_at(9), _at(9, 45)),
        Interval(_at(12, 15), _at(22)),
    ]


def test_added_blocks_are_visible_to_later_queries():
    resolver = AvailabilityResolver([], [], SchedulerConfig())
    resolver.add_block(_build_block(_at(9), _at(21, 30)))

    assert resolver.free_gaps(MONDAY) == []
    assert resolver.scheduled_hours(MONDAY) == 12.5


def test_free_gaps_respect_not_before_and_not_after():
    resolver = AvailabilityResolver([], [], SchedulerConfig())

    gaps = resolver.free_gaps(MONDAY, not_before=_at(13, 10), not_after=_at(18))

    assert gaps == [Interval(_at(13, 10), _at(18))]


def test_remaining_capacity_uses_weekday_caps_and_multipliers():
    resolver = AvailabilityResolver([], [_build_block(_at(9), _at(11))], SchedulerConfig())
    profile = EnergyProfile()

    assert round(resolver.remaining_capacity(MONDAY, profile), 4) == 3.4
    assert round(resolver.remaining_capacity(SATURDAY, profile), 4) == 3.2
