import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from studyblocks.api import deps
from studyblocks.models.study_session import StudySession
from studyblocks.models.task import ScheduleStatus, Task, TaskStatus
from studyblocks.schemas.schedule import (
    SchedulePreviewRequest,
    ScheduleResult,
    ScheduleStatusResponse,
    StudyBlock,
    TaskScheduleReport,
)
from studyblocks.schemas.scheduler_config import SchedulerConfig
from studyblocks.services.repository import get_preferences, read_scheduler_config
from studyblocks.services.rescheduler import DynamicRescheduler
from studyblocks.services.schedule_summary import summarize_schedule
from studyblocks.services.scheduling import compute_schedule

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/recompute", response_model=ScheduleResult | None)
def recompute_schedule(
    rescheduler: DynamicRescheduler = Depends(deps.get_rescheduler),
) -> ScheduleResult | None:
    return rescheduler.recompute_now()


@router.get("/status", response_model=ScheduleStatusResponse)
def get_schedule_status(
    db: Session = Depends(deps.get_db),
    rescheduler: DynamicRescheduler = Depends(deps.get_rescheduler),
) -> ScheduleStatusResponse:
    tasks = (
        db.query(Task)
        .filter(Task.status != TaskStatus.COMPLETED.value)
        .order_by(Task.id)
        .all()
    )
    reports = []
    for task in tasks:
        last = rescheduler.last_result.report_for(task.id) if rescheduler.last_result else None
        reports.append(
            last
            or TaskScheduleReport(
                task_id=task.id,
                status=ScheduleStatus(task.schedule_status),
                shortfall_hours=task.unscheduled_hours,
            )
        )
    blocks = [
        StudyBlock.model_validate(session)
        for session in db.query(StudySession).order_by(StudySession.start_time).all()
    ]
    return ScheduleStatusResponse(
        state=rescheduler.state.value,
        reports=reports,
        statistics=summarize_schedule(blocks, reports),
        last_generated_at=(
            rescheduler.last_result.generated_at if rescheduler.last_result else None
        ),
        discarded_passes=rescheduler.discarded_passes,
    )


@router.get("/config", response_model=SchedulerConfig)
def get_scheduler_config(db: Session = Depends(deps.get_db)) -> SchedulerConfig:
    config = read_scheduler_config(get_preferences(db))
    db.commit()
    return config


@router.put("/config", response_model=SchedulerConfig)
def update_scheduler_config(
    payload: SchedulerConfig,
    db: Session = Depends(deps.get_db),
    rescheduler: DynamicRescheduler = Depends(deps.get_rescheduler),
) -> SchedulerConfig:
    preferences = get_preferences(db)
    preferences.scheduler_config = payload.model_dump(mode="json")
    db.commit()
    logger.info("Scheduler config updated")

    rescheduler.on_config_updated(payload)
    return payload


@router.post("/preview", response_model=ScheduleResult)
def preview_schedule(payload: SchedulePreviewRequest) -> ScheduleResult:
    """Run a pass over the supplied data without touching stored state."""
    return compute_schedule(
        payload.tasks,
        payload.fixed_events,
        payload.pinned_blocks,
        energy_profile=payload.energy_profile,
        config=payload.config,
        now=payload.now,
        seed=payload.seed,
    )
