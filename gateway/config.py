from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PRODUCT_SERVICE_URL: str = "http://localhost:8081"
    ORDER_SERVICE_URL: str = "http://localhost:8082"
    HEALTH_CHECK_TIMEOUT: float = 5.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def service_urls(self) -> dict[str, str]:
        return {
            "product-service": self.PRODUCT_SERVICE_URL,
            "order-service": self.ORDER_SERVICE_URL,
        }


@lru_cache
def get_settings() -> Settings:
    return Settings()
