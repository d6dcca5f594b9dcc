"""
Сборка клиента BookWorm из конфигурации
"""

import logging
from typing import Optional

from bookworm_client.api_client import APIClient
from bookworm_client.config import Settings, get_settings
from bookworm_client.core.compose import ComposeSession
from bookworm_client.core.feed_cache import FeedCache
from bookworm_client.core.image_source import LocalFileReader
from bookworm_client.core.logging_config import setup_logging
from bookworm_client.core.session_store import SessionStore
from bookworm_client.core.storage import KeyValueStore, create_key_value_store
from bookworm_client.core.upload_encoder import MediaPicker, UploadEncoder
from bookworm_client.models.session import Session

logger = logging.getLogger(__name__)


class BookwormClient:
    """
    Владелец всех компонентов клиента.

    Лента читает токен из SessionStore и очищается, когда пользователь выходит.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        api_client: Optional[APIClient] = None,
        storage: Optional[KeyValueStore] = None,
        picker: Optional[MediaPicker] = None,
        file_reader: Optional[LocalFileReader] = None,
    ):
        self.settings = settings or get_settings()
        self.api_client = api_client or APIClient(
            base_url=self.settings.base_url,
            timeout=self.settings.api_timeout,
        )
        self.storage = storage or create_key_value_store(self.settings)

        self.session = SessionStore(self.api_client, self.storage)
        self.feed = FeedCache(
            self.api_client,
            token_provider=lambda: self.session.token,
            page_size=self.settings.feed_page_size,
            stale_time=self.settings.feed_stale_time_seconds,
        )
        self.encoder = UploadEncoder(self.api_client, picker=picker, file_reader=file_reader)

        self._signed_in = False
        self._unsubscribe = self.session.subscribe(self._on_session_change)

    def _on_session_change(self, session: Session) -> None:
        if self._signed_in and not session.is_signed_in:
            logger.info("Session ended, clearing feed cache")
            self.feed.clear()
        self._signed_in = session.is_signed_in

    def compose(self) -> ComposeSession:
        """Новая форма публикации"""
        return ComposeSession(
            self.encoder,
            self.feed,
            token_provider=lambda: self.session.token,
        )

    async def close(self) -> None:
        """Дожидается фоновых загрузок и освобождает ресурсы"""
        self._unsubscribe()
        await self.feed.wait_for_pending()
        await self.storage.close()
        self.api_client.close()


def create_client(
    settings: Optional[Settings] = None,
    picker: Optional[MediaPicker] = None,
    file_reader: Optional[LocalFileReader] = None,
) -> BookwormClient:
    """Настраивает логирование по конфигурации и собирает клиент"""
    settings = settings or get_settings()
    setup_logging(level=settings.log_level, json_logs=settings.json_logs, log_file=settings.log_file)
    return BookwormClient(settings=settings, picker=picker, file_reader=file_reader)
