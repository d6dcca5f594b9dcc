"""
Получение base64 содержимого выбранного изображения.

Picker может вернуть base64 сразу, а может только URI файла. Оба варианта
сводятся к ImageSource, и оба возвращают канонический base64 (без пробелов и
переносов), поэтому для одного и того же файла результат побайтно совпадает.
"""

import asyncio
import base64
import binascii
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Protocol
from urllib.parse import unquote, urlparse

from bookworm_client.constants import MSG_IMAGE_PICK_ERROR
from bookworm_client.core.exceptions import ValidationError
from bookworm_client.models.upload import PickedAsset

logger = logging.getLogger(__name__)


def canonical_base64(value: str) -> str:
    """
    Нормализует base64 строку.

    Raises:
        ValidationError: Строка не является корректным base64
    """
    compact = "".join(value.split())
    try:
        raw = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(MSG_IMAGE_PICK_ERROR, field="image") from e
    return base64.b64encode(raw).decode("ascii")


class LocalFileReader(Protocol):
    """Читает локальный ресурс по URI и возвращает его содержимое в base64"""

    async def read_base64(self, uri: str) -> str:
        ...


class FileSystemReader:
    """Чтение локальных файлов (URI вида file:///... или обычный путь)"""

    @staticmethod
    def path_from_uri(uri: str) -> Path:
        parsed = urlparse(uri)
        if parsed.scheme == "file":
            return Path(unquote(parsed.path))
        return Path(uri)

    async def read_base64(self, uri: str) -> str:
        path = self.path_from_uri(uri)
        data = await asyncio.to_thread(path.read_bytes)
        return base64.b64encode(data).decode("ascii")


class ImageSource(ABC):
    """Источник base64 содержимого изображения"""

    def __init__(self, uri: str):
        self.uri = uri

    @abstractmethod
    async def read_base64(self) -> str:
        """Возвращает канонический base64"""


class InlineImageSource(ImageSource):
    """base64, переданный picker вместе с URI"""

    def __init__(self, uri: str, payload: str):
        super().__init__(uri)
        self.payload = payload

    async def read_base64(self) -> str:
        return canonical_base64(self.payload)


class FileImageSource(ImageSource):
    """Чтение ресурса из локального хранилища"""

    def __init__(self, uri: str, reader: LocalFileReader):
        super().__init__(uri)
        self.reader = reader

    async def read_base64(self) -> str:
        try:
            payload = await self.reader.read_base64(self.uri)
        except OSError as e:
            logger.error(f"Failed to read image from {self.uri}: {e}")
            raise ValidationError(MSG_IMAGE_PICK_ERROR, field="image") from e
        return canonical_base64(payload)


def resolve_image_source(asset: PickedAsset, reader: LocalFileReader) -> ImageSource:
    """Выбирает источник: inline base64, если он есть, иначе чтение файла"""
    if asset.base64:
        return InlineImageSource(asset.uri, asset.base64)
    logger.debug(f"Picker returned no inline base64 for {asset.uri}, reading file")
    return FileImageSource(asset.uri, reader)
