from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

DEFAULT_DATA_DIR = Path("data")
DEFAULT_LOG_DIR = DEFAULT_DATA_DIR / "logs"
DEFAULT_LOG_FILENAME = "memobridge.log"
DEFAULT_LOG_FILE_PATH = DEFAULT_LOG_DIR / DEFAULT_LOG_FILENAME
TOKEN_DB_FILENAME = "memobridge.db"


class Settings(BaseSettings):
    server_addr: str = Field(..., alias="SERVER_ADDR")
    bot_token: str = Field(..., alias="BOT_TOKEN")
    bot_proxy_addr: str | None = Field(None, alias="BOT_PROXY_ADDR")
    data_dir: Path = Field(DEFAULT_DATA_DIR, alias="DATA")
    blinko_timeout: float = Field(30.0, alias="BLINKO_TIMEOUT")
    media_group_ttl_hours: float = Field(24.0, alias="MEDIA_GROUP_TTL_HOURS")
    cache_sweep_interval_seconds: float = Field(300.0, alias="CACHE_SWEEP_INTERVAL_SECONDS")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_dir: Path = Field(DEFAULT_LOG_DIR, alias="LOG_DIR")
    log_file_path: Path = Field(DEFAULT_LOG_FILE_PATH, alias="LOG_FILE_PATH")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "populate_by_name": True,
    }

    @model_validator(mode="after")
    def _apply_log_dir(self) -> "Settings":
        if "log_file_path" not in self.model_fields_set:
            filename = self.log_file_path.name
            self.log_file_path = self.log_dir / filename
        return self

    @property
    def token_db_path(self) -> Path:
        return self.data_dir / TOKEN_DB_FILENAME

    @property
    def media_group_ttl_seconds(self) -> float:
        return self.media_group_ttl_hours * 3600.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.log_file_path.parent.mkdir(parents=True, exist_ok=True)
    return settings
