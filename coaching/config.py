from typing import List, cast
from pydantic import AnyHttpUrl, computed_field
from pydantic_core import MultiHostUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Application
    PROJECT_NAME: str = "Coaching Calendar"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    APP_ENV: str = "development"

    # Security
    # Tokens are issued by the external auth provider and only verified here.
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    APP_TIMEZONE: str = "UTC"

    # Validation
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    # Calendar
    MAX_CALENDAR_RANGE_DAYS: int = 62
    DEFAULT_LESSON_MINUTES: int = 60

    # Notifications
    PUSH_ENABLED: bool = False
    PUSH_API_URL: str | None = None
    PUSH_API_TOKEN: str | None = None
    EMAIL_ENABLED: bool = False
    EMAIL_API_URL: str | None = None
    EMAIL_API_TOKEN: str | None = None
    EMAIL_FROM: str = "no-reply@coaching.local"
    NOTIFICATION_DRY_RUN: bool = True
    NOTIFICATION_TIMEOUT_SECONDS: int = 10

    # Database
    DATABASE_URL: str | None = None
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "coaching"

    @computed_field
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return str(cast(MultiHostUrl, MultiHostUrl.build(
            scheme="postgresql+asyncpg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_HOST,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )))

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

settings = Settings()  # type: ignore
