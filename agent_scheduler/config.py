"""Application settings loaded from environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env relative to the project root (one level above agent_scheduler/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DATABASE_URL: str = f"sqlite:///{_PROJECT_ROOT / 'agent_scheduler.db'}"
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000
    ROOT_PATH: str = ""  # Set when behind a reverse proxy with a path prefix

    # Cron trigger
    CRON_SECRET_TOKEN: str = ""  # Empty rejects every trigger request
    CRON_MAX_SCHEDULES_PER_RUN: int = 100  # Admission ceiling per invocation
    CRON_INCLUDE_ONCE_SCHEDULES: bool = False  # Admit never-run "once" schedules to the scan
    CRON_SCHEDULE_CONCURRENCY: int = 4  # Schedules processed at the same time
    CRON_RECORD_CONCURRENCY: int = 5  # Action calls in flight per step
    CRON_RUN_BUDGET_SECONDS: float = 0  # 0 = no wall-clock budget
    DEFAULT_INTERVAL_HOURS: float = 24

    # Action executor
    ACTION_EXECUTOR_URL: str = "http://localhost:3000/api/agent/execute"
    ACTION_EXECUTOR_TOKEN: str = ""
    ACTION_EXECUTOR_TIMEOUT_SECONDS: float = 120


settings = Settings()
