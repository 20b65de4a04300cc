"""Startup script: creates missing tables, then serves the API with uvicorn."""

import uvicorn

from studyblocks.core.config import get_settings
from studyblocks.db.session import build_engine
from studyblocks.init_db import init_db


def main():
    settings = get_settings()
    init_db(build_engine(settings.database_url))
    uvicorn.run(
        "studyblocks.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
    )


if __name__ == "__main__":
    main()
