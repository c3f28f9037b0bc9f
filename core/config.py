from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    DATABASE_URL: str
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15

    # Upper bound for one discovery page
    DISCOVERY_PAGE_SIZE: int = 20

    CORS_ORIGINS: List[str] = ["*"]
    DEBUG: bool = False


# Global settings object, imported everywhere
settings = Settings()
