from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "form-builder-service"

    ADMIN_JWT_TTL_MINUTES: int = 240
    ADMIN_JWT_SECRET: str = "change_me_admin"

    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8081"

    DATABASE_URL: str = "sqlite+pysqlite:///./form_builder.db"
    REDIS_URL: str = "redis://localhost:6379/0"

    # Origin that serves the embed loader script referenced by generated snippets
    PUBLIC_BASE_URL: str = "http://localhost:3000"
    EMBED_SCRIPT_PATH: str = "/static/js/form-embed.js"

    PUBLIC_SUBMIT_RATE_LIMIT: int = 20
    PUBLIC_SUBMIT_RATE_LIMIT_WINDOW_SECONDS: int = 300

    FORM_HISTORY_LIMIT: int = 100

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def embed_script_url(self) -> str:
        return self.PUBLIC_BASE_URL.rstrip("/") + "/" + self.EMBED_SCRIPT_PATH.lstrip("/")

settings = Settings()
