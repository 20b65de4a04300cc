import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from studyblocks.api import deps
from studyblocks.models.task import Task, TaskStatus
from studyblocks.schemas.task import TaskCreate, TaskPublic, TaskUpdate
from studyblocks.services.rescheduler import DynamicRescheduler

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_task_or_404(db: Session, task_id: int) -> Task:
    task = db.get(Task, task_id)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found",
        )
    return task


@router.get("/", response_model=list[TaskPublic])
def list_tasks(db: Session = Depends(deps.get_db)) -> list[Task]:
    return db.query(Task).order_by(Task.due_at, Task.id).all()


@router.get("/{task_id}", response_model=TaskPublic)
def get_task(task_id: int, db: Session = Depends(deps.get_db)) -> Task:
    return _get_task_or_404(db, task_id)


@router.post("/", response_model=TaskPublic, status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskCreate,
    db: Session = Depends(deps.get_db),
    rescheduler: DynamicRescheduler = Depends(deps.get_rescheduler),
) -> Task:
    data = payload.model_dump()
    data["status"] = payload.status.value
    task = Task(**data)
    db.add(task)
    db.commit()
    db.refresh(task)
    logger.info(f"Created task {task.id} ({task.type.value}) due {task.due_at}")

    rescheduler.on_task_added(TaskPublic.model_validate(task))
    db.refresh(task)
    return task


@router.patch("/{task_id}", response_model=TaskPublic)
def update_task(
    task_id: int,
    payload: TaskUpdate,
    db: Session = Depends(deps.get_db),
    rescheduler: DynamicRescheduler = Depends(deps.get_rescheduler),
) -> Task:
    task = _get_task_or_404(db, task_id)
    patch = payload.model_dump(exclude_unset=True)
    for field, value in patch.items():
        if field == "status" and value is not None:
            value = TaskStatus(value).value
        setattr(task, field, value)
    db.commit()

    rescheduler.on_task_changed(task_id, patch)
    db.refresh(task)
    return task


@router.post("/{task_id}/complete", response_model=TaskPublic)
def complete_task(
    task_id: int,
    db: Session = Depends(deps.get_db),
    rescheduler: DynamicRescheduler = Depends(deps.get_rescheduler),
) -> Task:
    task = _get_task_or_404(db, task_id)
    task.status = TaskStatus.COMPLETED.value
    db.commit()
    logger.info(f"Task {task_id} marked completed")

    rescheduler.on_task_completed(task_id)
    db.refresh(task)
    return task


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: int,
    db: Session = Depends(deps.get_db),
    rescheduler: DynamicRescheduler = Depends(deps.get_rescheduler),
) -> None:
    task = _get_task_or_404(db, task_id)
    db.delete(task)
    db.commit()
    rescheduler.on_task_removed(task_id)
