from studyblocks.models.fixed_event import EventType, FixedEvent
from studyblocks.models.preferences import PlannerPreferences
from studyblocks.models.study_session import BlockOrigin, StudySession
from studyblocks.models.task import ScheduleStatus, Task, TaskStatus, TaskType

__all__ = [
    "BlockOrigin",
    "EventType",
    "FixedEvent",
    "PlannerPreferences",
    "ScheduleStatus",
    "StudySession",
    "Task",
    "TaskStatus",
    "TaskType",
]
