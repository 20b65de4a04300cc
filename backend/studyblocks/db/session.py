import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

logger = logging.getLogger(__name__)


def build_engine(database_url: str, **kwargs) -> Engine:
    # SQLite connections are shared with the background reschedule thread
    is_sqlite = database_url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}
    logger.debug(f"Database connection: {'SQLite' if is_sqlite else 'PostgreSQL'}")
    return create_engine(database_url, connect_args=connect_args, **kwargs)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
