import logging

from sqlalchemy.engine import Engine

from studyblocks.db.base import Base
from studyblocks.models import FixedEvent, PlannerPreferences, StudySession, Task  # noqa: F401

logger = logging.getLogger(__name__)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)
    logger.debug("Database tables created")
