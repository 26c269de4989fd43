from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./documents.db"
    database_echo: bool = False

    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # Documents
    default_document_title: str = "Untitled"
    thumbnails_enabled: bool = True
    thumbnail_timeout_seconds: float = 2.0

    model_config = {"env_file": ".env", "extra": "ignore"}

settings = Settings()
