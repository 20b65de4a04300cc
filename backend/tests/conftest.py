import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from studyblocks.core.config import Settings
from studyblocks.db.session import build_engine, build_session_factory
from studyblocks.init_db import init_db
from studyblocks.main import create_app

TEST_DATABASE_URL = "sqlite://"


@pytest.fixture
def session_factory():
    """Fresh in-memory database per test; StaticPool keeps one shared connection."""
    engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    init_db(engine)
    try:
        yield build_session_factory(engine)
    finally:
        engine.dispose()


@pytest.fixture
def client(session_factory):
    settings = Settings(
        database_url=TEST_DATABASE_URL,
        reschedule_debounce_seconds=0,
        schedule_seed=42,
    )
    app = create_app(settings=settings, session_factory=session_factory)
    with TestClient(app) as test_client:
        yield test_client
