import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import sessionmaker

from studyblocks.api.routes import api_router
from studyblocks.core.config import Settings, get_settings
from studyblocks.db.session import build_engine, build_session_factory
from studyblocks.init_db import init_db
from studyblocks.services.repository import SqlScheduleRepository
from studyblocks.services.rescheduler import DynamicRescheduler

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    session_factory: sessionmaker | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if session_factory is None:
        engine = build_engine(settings.database_url)
        init_db(engine)
        session_factory = build_session_factory(engine)

    app = FastAPI(
        title="Study Block Scheduler",
        docs_url="/docs" if settings.environment == "development" else None,
        redoc_url="/redoc" if settings.environment == "development" else None,
    )
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.rescheduler = DynamicRescheduler(
        SqlScheduleRepository(session_factory),
        debounce_seconds=settings.reschedule_debounce_seconds,
        seed=settings.schedule_seed,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router)
    logger.info(f"Study block scheduler ready ({settings.environment})")
    return app
