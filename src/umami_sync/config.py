from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str
    LEDGER_RPC_URL: str
    LEDGER_API_KEY: Optional[str] = None
    LEDGER_TIMEOUT_SEC: float = 30.0
    SOURCE_NAME: str = "umami"

    # batching
    BATCH_SIZE: int = 10
    BATCH_TIMEOUT_SEC: float = 5.0
    RESCHEDULE_DELAY_SEC: float = 0.1

    # retry
    MAX_RETRIES: int = 3
    RETRY_DELAY_MS: int = 1000

    RETENTION_DAYS: int = 30
    WRITE_TIMEOUT_SEC: Optional[float] = 30.0
    DRAIN_TIMEOUT_SEC: float = 30.0
    RECONNECT_DELAY_SEC: float = 5.0
    PROVISION_TRIGGERS: bool = True

    DLQ_PATH: Optional[str] = None
    METRICS_PORT: Optional[int] = None
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    return Settings()
