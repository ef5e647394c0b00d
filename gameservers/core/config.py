# gameservers/core/config.py
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./gameservers.db"

    JWT_SECRET: str = "development_secret_key"
    JWT_ALG: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 7 * 24 * 60
    AUTH_COOKIE_NAME: str = "auth_token"
    AUTH_COOKIE_SECURE: bool = False

    CORS_ORIGINS: List[str] = [
        "http://localhost:5000",
        "http://127.0.0.1:5000",
    ]

    # live status probes
    QUERY_TIMEOUT_SECONDS: float = 3.0
    QUERY_MAX_ATTEMPTS: int = 2

    # SMTP is skipped entirely when EMAIL_HOST is empty
    EMAIL_FROM: str = "noreply@gameservers.com"
    EMAIL_HOST: str = ""
    EMAIL_PORT: int = 587
    EMAIL_USER: str = ""
    EMAIL_PASS: str = ""
    APP_URL: str = "http://localhost:5000"

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
