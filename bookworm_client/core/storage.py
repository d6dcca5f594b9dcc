"""
Постоянное хранилище ключ-значение для токена и профиля пользователя
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from bookworm_client.config import Settings
from bookworm_client.core.exceptions import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Асинхронное хранилище строковых значений (get/set/remove)"""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Возвращает значение или None, если ключа нет"""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Сохраняет значение"""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Удаляет ключ (отсутствующий ключ не ошибка)"""

    async def close(self) -> None:
        """Освобождает ресурсы хранилища"""


class MemoryKeyValueStore(KeyValueStore):
    """Хранилище в памяти процесса (тесты и одноразовые сессии)"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileKeyValueStore(KeyValueStore):
    """
    Хранилище в JSON файле.

    Весь файл читается и перезаписывается при каждом изменении; файловые
    операции выполняются в отдельном потоке, чтобы не блокировать event loop.
    Изменения сериализуются через asyncio.Lock.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _load_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning(f"Storage file {self.path} is corrupt, starting empty: {e}")
            return {}
        except OSError as e:
            raise StorageError(details={"path": str(self.path), "error": str(e)}) from e
        if not isinstance(data, dict):
            logger.warning(f"Storage file {self.path} has unexpected layout, starting empty")
            return {}
        return data

    def _write_all(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as e:
            raise StorageError(details={"path": str(self.path), "error": str(e)}) from e

    async def get(self, key: str) -> Optional[str]:
        data = await asyncio.to_thread(self._load_all)
        return data.get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._load_all)
            data[key] = value
            await asyncio.to_thread(self._write_all, data)
        logger.debug(f"Stored key '{key}' in {self.path}")

    async def remove(self, key: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._load_all)
            if key not in data:
                return
            del data[key]
            await asyncio.to_thread(self._write_all, data)
        logger.debug(f"Removed key '{key}' from {self.path}")


class RedisKeyValueStore(KeyValueStore):
    """Хранилище на базе Redis с пространством имен для ключей"""

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        namespace: str = "bookworm",
        client: Optional[aioredis.Redis] = None,
    ):
        """
        Args:
            redis_url: URL для подключения к Redis
            namespace: Префикс ключей
            client: Готовый клиент (если не задан, создается при первом обращении)
        """
        self.redis_url = redis_url
        self.namespace = namespace
        self.redis: Optional[aioredis.Redis] = client

    async def connect(self) -> aioredis.Redis:
        """Подключение к Redis"""
        if self.redis is None:
            self.redis = aioredis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            logger.info("Connected to Redis")
        return self.redis

    async def close(self) -> None:
        """Отключение от Redis"""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            logger.info("Disconnected from Redis")

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[str]:
        redis = await self.connect()
        try:
            return await redis.get(self._key(key))
        except RedisError as e:
            raise StorageError(details={"key": key, "error": str(e)}) from e

    async def set(self, key: str, value: str) -> None:
        redis = await self.connect()
        try:
            await redis.set(self._key(key), value)
        except RedisError as e:
            raise StorageError(details={"key": key, "error": str(e)}) from e

    async def remove(self, key: str) -> None:
        redis = await self.connect()
        try:
            await redis.delete(self._key(key))
        except RedisError as e:
            raise StorageError(details={"key": key, "error": str(e)}) from e


def create_key_value_store(settings: Settings) -> KeyValueStore:
    """
    Создает хранилище по настройкам.

    Raises:
        ValueError: Неизвестный storage_backend
    """
    backend = settings.storage_backend.lower()
    if backend == "memory":
        return MemoryKeyValueStore()
    if backend == "file":
        return JsonFileKeyValueStore(settings.storage_path)
    if backend == "redis":
        return RedisKeyValueStore(settings.redis_url, namespace=settings.storage_namespace)
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
