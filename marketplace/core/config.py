# marketplace/core/config.py
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./marketplace.db"

    JWT_ACCESS_SECRET: str = "change-this-secret"
    JWT_ALG: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 120

    # 비워두면 이미지 업로드가 storage_not_configured 로 실패
    AZURE_STORAGE_CONNECTION_STRING: str = ""
    AZURE_CONTAINER_NAME: str = "listing-images"

    OFFER_TTL_DAYS: int = 7
    MIN_LISTING_IMAGES: int = 3
    REPORTS_PAGE_SIZE: int = 10

    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
