"""
Централизованная конфигурация клиента
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings

from bookworm_client.constants import (
    DEFAULT_API_TIMEOUT,
    DEFAULT_PAGE_SIZE,
    DEFAULT_STALE_TIME_SECONDS,
)


class Settings(BaseSettings):
    """Настройки клиента с валидацией через Pydantic"""

    # API
    api_url: str = "http://localhost:3000/api/"
    api_timeout: Optional[float] = DEFAULT_API_TIMEOUT

    # Лента
    feed_page_size: int = DEFAULT_PAGE_SIZE
    feed_stale_time_seconds: float = DEFAULT_STALE_TIME_SECONDS

    # Постоянное хранилище сессии: memory | file | redis
    storage_backend: str = "file"
    storage_path: str = ".bookworm/session.json"
    redis_url: str = "redis://localhost:6379"
    storage_namespace: str = "bookworm"

    # Логирование
    log_level: str = "INFO"
    json_logs: bool = False
    log_file: Optional[str] = None

    class Config:
        env_file = ".env"
        env_prefix = "BOOKWORM_"
        case_sensitive = False

    @property
    def base_url(self) -> str:
        """Базовый URL, всегда заканчивающийся на "/" """
        return self.api_url if self.api_url.endswith("/") else f"{self.api_url}/"


@lru_cache()
def get_settings() -> Settings:
    """Возвращает синглтон настроек"""
    return Settings()
