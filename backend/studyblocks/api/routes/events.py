import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from studyblocks.api import deps
from studyblocks.models.fixed_event import FixedEvent
from studyblocks.schemas.event import FixedEventCreate, FixedEventPublic
from studyblocks.services.rescheduler import DynamicRescheduler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=list[FixedEventPublic])
def list_events(db: Session = Depends(deps.get_db)) -> list[FixedEvent]:
    return db.query(FixedEvent).order_by(FixedEvent.start_at, FixedEvent.id).all()


@router.post("/", response_model=FixedEventPublic, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: FixedEventCreate,
    db: Session = Depends(deps.get_db),
    rescheduler: DynamicRescheduler = Depends(deps.get_rescheduler),
) -> FixedEvent:
    event = FixedEvent(**payload.model_dump())
    db.add(event)
    db.commit()
    db.refresh(event)

    rescheduler.on_event_added(FixedEventPublic.model_validate(event))
    return event


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    event_id: int,
    db: Session = Depends(deps.get_db),
    rescheduler: DynamicRescheduler = Depends(deps.get_rescheduler),
) -> None:
    event = db.get(FixedEvent, event_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found",
        )
    db.delete(event)
    db.commit()
    rescheduler.on_event_removed(event_id)
