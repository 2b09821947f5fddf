from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path.home() / ".retainly" / "data"
    sqlite_filename: str = "retainly.db"
    store_backend: Literal["sqlite", "memory"] = "sqlite"
    log_level: str = "INFO"
    due_stream_interval_seconds: float = 1.0  # SSE re-evaluation cadence
    max_sessions: int = 100  # live review sessions kept in memory

    model_config = {"env_prefix": "RETAINLY_"}


settings = Settings()
