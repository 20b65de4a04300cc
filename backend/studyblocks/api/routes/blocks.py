import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from studyblocks.api import deps
from studyblocks.core.timeutils import to_local_naive
from studyblocks.models.study_session import StudySession
from studyblocks.models.task import Task
from studyblocks.schemas.schedule import StudyBlock, StudyBlockCreate, StudyBlockUpdate
from studyblocks.services.rescheduler import DynamicRescheduler

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_block_or_404(db: Session, block_id: str) -> StudySession:
    block = db.get(StudySession, block_id)
    if not block:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Study block not found",
        )
    return block


@router.get("/", response_model=list[StudyBlock])
def list_blocks(
    start: datetime | None = None,
    end: datetime | None = None,
    task_id: int | None = None,
    db: Session = Depends(deps.get_db),
) -> list[StudySession]:
    query = db.query(StudySession)
    if start is not None:
        query = query.filter(StudySession.end_time > to_local_naive(start))
    if end is not None:
        query = query.filter(StudySession.start_time < to_local_naive(end))
    if task_id is not None:
        query = query.filter(StudySession.task_id == task_id)
    return query.order_by(StudySession.start_time).all()


@router.post("/", response_model=StudyBlock, status_code=status.HTTP_201_CREATED)
def create_block(
    payload: StudyBlockCreate,
    db: Session = Depends(deps.get_db),
    rescheduler: DynamicRescheduler = Depends(deps.get_rescheduler),
) -> StudyBlock:
    """Manually place a block. Manual blocks are pinned and survive recomputes."""
    if not db.get(Task, payload.task_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found",
        )
    block = StudySession(id=str(uuid.uuid4()), is_pinned=True, **payload.model_dump())
    db.add(block)
    db.commit()
    logger.info(f"Pinned block {block.id} for task {block.task_id}")

    created = StudyBlock.model_validate(block)
    rescheduler.on_block_changed(block.id)
    return created


@router.patch("/{block_id}", response_model=StudyBlock)
def update_block(
    block_id: str,
    payload: StudyBlockUpdate,
    db: Session = Depends(deps.get_db),
    rescheduler: DynamicRescheduler = Depends(deps.get_rescheduler),
) -> StudyBlock:
    block = _get_block_or_404(db, block_id)
    patch = payload.model_dump(exclude_unset=True, exclude_none=True)
    start = patch.get("start_time", block.start_time)
    end = patch.get("end_time", block.end_time)
    if end <= start:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="end_time must be after start_time",
        )
    # Moving a block by hand pins it; ticking it off does not
    if "start_time" in patch or "end_time" in patch:
        block.is_pinned = True
    for field, value in patch.items():
        setattr(block, field, value)
    db.commit()

    # The recompute may drop a generated block, so answer with the state just saved
    updated = StudyBlock.model_validate(block)
    rescheduler.on_block_changed(block_id)
    return updated


@router.delete("/{block_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_block(
    block_id: str,
    db: Session = Depends(deps.get_db),
    rescheduler: DynamicRescheduler = Depends(deps.get_rescheduler),
) -> None:
    block = _get_block_or_404(db, block_id)
    db.delete(block)
    db.commit()
    rescheduler.on_block_changed(block_id)
