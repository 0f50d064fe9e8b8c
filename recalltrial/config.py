from __future__ import annotations
from typing import Optional

from pydantic import Field, AliasChoices, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_POLICY_NAMES = ("adaptive", "fixed", "three_two_one")


class Settings(BaseSettings):
    # === Storage / DB ===
    DATABASE_URL: Optional[str] = None
    POSTGRES_DSN: Optional[str] = None

    # === Users ===
    DEFAULT_TIMEZONE: str = "Asia/Qatar"

    # === Reminder planning ===
    REMINDER_POLICY: str = Field("adaptive", description="adaptive | fixed | three_two_one")
    REMINDER_SAFETY_MARGIN_MINUTES: int = 5

    # === Dispatch / scheduler ===
    SCHEDULER_ENABLED: bool = True
    DISPATCH_INTERVAL_MINUTES: int = 5
    DISPATCH_BATCH_SIZE: Optional[int] = None
    CRON_KEY: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("CRON_KEY", "CRON_SECRET"),
    )

    # === Email (Resend) ===
    RESEND_API_KEY: Optional[str] = None
    RESEND_API_URL: str = "https://api.resend.com/emails"
    EMAIL_FROM: str = "RecallTrial <reminders@recalltrial.com>"
    EMAIL_TIMEOUT_SECONDS: float = 10.0
    APP_URL: str = "http://localhost:5000"

    # === Web app ===
    WEBAPP_HOST: str = "0.0.0.0"
    WEBAPP_PORT: int = 8080

    # === SQL debug ===
    SQL_ECHO: bool = False

    # === Logs ===
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")
    log_sql: str = Field(default="WARNING", alias="LOG_SQL")

    @field_validator("REMINDER_POLICY", mode="before")
    @classmethod
    def _v_policy(cls, v):
        if v is None or v == "":
            return "adaptive"
        name = str(v).strip().lower()
        if name not in _POLICY_NAMES:
            raise ValueError(f"REMINDER_POLICY must be one of {', '.join(_POLICY_NAMES)}, got {v!r}")
        return name

    @field_validator("DISPATCH_BATCH_SIZE", mode="before")
    @classmethod
    def _v_batch(cls, v):
        # empty / 0 means no limit
        if v in (None, "", 0, "0"):
            return None
        return v

    def model_post_init(self, __context) -> None:
        # DSN/URL compatibility
        if not self.DATABASE_URL and self.POSTGRES_DSN:
            self.DATABASE_URL = self.POSTGRES_DSN
        if not self.DATABASE_URL:
            self.DATABASE_URL = "postgresql+asyncpg://app:app@db:5432/app"

        if self.APP_URL:
            self.APP_URL = self.APP_URL.rstrip("/")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


settings = Settings()
