from collections.abc import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from studyblocks.services.rescheduler import DynamicRescheduler


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_rescheduler(request: Request) -> DynamicRescheduler:
    return request.app.state.rescheduler
