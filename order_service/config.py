from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./orders.db"
    PRODUCT_SERVICE_URL: str = "http://localhost:8081"
    PRODUCT_SERVICE_TIMEOUT: float = 10.0
    CB_PRODUCT_FAIL_MAX: int = 5
    CB_PRODUCT_RESET_TIMEOUT: int = 60

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
