from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    environment: Literal["development", "staging", "production"] = Field(
        default="development"
    )
    database_url: str = Field(default="sqlite:///./studyblocks.db")
    timezone: str = Field(default="UTC")
    log_level: str = Field(default="INFO")

    # Seconds to wait for further changes before a recompute pass runs.
    reschedule_debounce_seconds: float = Field(default=0.5, ge=0)
    schedule_seed: int | None = Field(default=None)

    cors_origins: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
