from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables can come from:
    - docker-compose.yml environment section
    - .env file (for secrets like BOT_TOKEN)
    - System environment

    Variable names match docker-compose conventions:
    - POSTGRES_HOST, POSTGRES_PORT, etc. (for the submission ledger)
    - REDIS_URL (for the duplicate window and the job queue)
    - BOT_TOKEN, ADMIN_ID, WEBHOOK_SECRET (for Telegram)
    """

    # Environment
    environment: str = "development"

    # Telegram (from .env)
    bot_token: str = ""
    admin_id: str = ""
    webhook_secret: Optional[str] = None
    telegram_api_url: str = "https://api.telegram.org"
    telegram_timeout_seconds: float = 30.0

    # PostgreSQL (from docker-compose)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "vigil_user"
    postgres_password: str = "vigil_pass"
    postgres_db: str = "vigil"

    # Redis
    redis_url: str = "redis://localhost:6379"
    submission_queue: str = "queue:submission:high"

    # Deadlines (seconds) for I/O made while deciding a submission
    store_timeout_seconds: float = 5.0
    ledger_timeout_seconds: float = 10.0
    decision_budget_seconds: float = 15.0

    # Daily summary
    report_hour: int = 18
    report_timezone: str = "Asia/Tashkent"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra env vars

    @field_validator('admin_id', mode='before')
    @classmethod
    def normalize_admin_id(cls, v):
        """Telegram ids arrive as ints from some env loaders"""
        if v is None:
            return ""
        return str(v).strip()

    @field_validator('report_hour')
    @classmethod
    def check_report_hour(cls, v):
        if not 0 <= v <= 23:
            raise ValueError(f"report_hour must be 0-23, got {v}")
        return v

    def is_admin(self, user_id) -> bool:
        """Check whether a Telegram user id is the configured admin"""
        return bool(self.admin_id) and str(user_id) == self.admin_id


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
