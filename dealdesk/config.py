"""DealDesk configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class DealDeskSettings(BaseSettings):
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///dealdesk.db"
    echo_sql: bool = False
    app_title: str = "DealDesk"
    log_level: str = "INFO"

    # Session resolution. Tokens are issued elsewhere; this service only verifies them.
    auth_secret: str = ""
    auth_cookie_name: str = "dealdesk_session"
    auth_session_ttl_seconds: int = 86400
    password_iterations: int = 200_000

    page_size_default: int = 10
    page_size_max: int = 100

    model_config = {"env_prefix": "DEALDESK_", "env_file": ".env", "extra": "ignore"}

    @property
    def base_dir(self) -> Path:
        return Path(__file__).resolve().parent

    @property
    def alembic_ini(self) -> Path:
        return self.base_dir / "alembic.ini"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}


settings = DealDeskSettings()
