"""Application settings loaded from environment variables."""
import json
from pathlib import Path
from typing import Annotated, List

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

ENV_FILE = Path(__file__).parent.parent / ".env"


def _parse_list(v):
    if isinstance(v, str):
        v = v.strip()
        if not v:
            return []
        try:
            return json.loads(v)
        except json.JSONDecodeError:
            return [item.strip() for item in v.split(",") if item.strip()]
    return v


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "propfeed"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: Annotated[List[str], NoDecode] = ["http://localhost:8081", "http://localhost:8000"]

    # Browser session
    headless: bool = True
    use_proxy: bool = False
    proxy_list: Annotated[List[str], NoDecode] = []
    solve_captcha: bool = True
    captcha_api_key: str = ""
    navigation_timeout_ms: int = 60_000
    retry_attempts: int = 3
    pacing_scale: float = 1.0

    # Orchestration
    stagger_delay_seconds: float = 30.0
    history_limit: int = 100

    # Scheduler (cron expressions, scheduler timezone)
    scheduler_enabled: bool = False
    scheduler_timezone: str = "Asia/Riyadh"
    cron_bayut: str = "0 2,6,10,14,18,22 * * *"
    cron_aqar: str = "0 3,7,11,15,19,23 * * *"
    cron_wasalt: str = "0 4,8,12,16,20 * * *"
    cron_srem: str = "30 5 * * *"
    cron_full: str = "0 1 * * *"

    @field_validator("cors_origins", "proxy_list", mode="before")
    @classmethod
    def parse_list_fields(cls, v):
        return _parse_list(v)

    @field_validator("pacing_scale")
    @classmethod
    def validate_pacing_scale(cls, v: float) -> float:
        if v < 0:
            raise ValueError("pacing_scale must be >= 0")
        return v

    @field_validator("proxy_list")
    @classmethod
    def warn_empty_proxy_pool(cls, v: List[str], info) -> List[str]:
        if info.data.get("use_proxy") and not v:
            import warnings
            warnings.warn(
                "USE_PROXY is enabled but PROXY_LIST is empty; sessions will run without a proxy.",
                stacklevel=2,
            )
        return v

    def cron_schedules(self) -> dict[str, str]:
        """Cron expression per scheduled job name."""
        return {
            "bayut": self.cron_bayut,
            "aqar": self.cron_aqar,
            "wasalt": self.cron_wasalt,
            "srem": self.cron_srem,
            "full": self.cron_full,
        }


settings = Settings()
