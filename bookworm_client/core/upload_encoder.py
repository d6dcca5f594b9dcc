import logging
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol
from urllib.parse import urlparse

from bookworm_client.constants import (
    DEFAULT_IMAGE_TYPE,
    MAX_RATING,
    MIN_RATING,
    MSG_FILL_ALL_FIELDS,
    MSG_PERMISSION_DENIED,
    MSG_RATING_OUT_OF_RANGE,
)
from bookworm_client.core.exceptions import PermissionDeniedError, ValidationError
from bookworm_client.core.image_source import (
    FileSystemReader,
    LocalFileReader,
    resolve_image_source,
)
from bookworm_client.models.upload import (
    CapturedImage,
    PickerOptions,
    PickResult,
    UploadPayload,
)

if TYPE_CHECKING:
    from bookworm_client.api_client import APIClient

logger = logging.getLogger(__name__)


class MediaPicker(Protocol):
    """Внешний media picker"""

    async def request_permission(self) -> bool:
        """True, если доступ к медиатеке разрешен"""
        ...

    async def pick_image(self, options: PickerOptions) -> PickResult:
        ...


def image_type_from_uri(uri: Optional[str]) -> str:
    """
    Тип изображения по расширению файла в URI (в нижнем регистре).

    Returns:
        Расширение без точки или "jpeg", если расширения нет
    """
    if not uri:
        return DEFAULT_IMAGE_TYPE
    path = urlparse(uri).path or uri
    suffix = PurePosixPath(path).suffix
    return suffix[1:].lower() if len(suffix) > 1 else DEFAULT_IMAGE_TYPE


def build_data_url(mime_type: str, base64_payload: str) -> str:
    return f"data:{mime_type};base64,{base64_payload}"


class UploadEncoder:
    """Кодирование изображения в data URL, валидация и отправка публикации"""

    def __init__(
        self,
        api_client: "APIClient",
        picker: Optional[MediaPicker] = None,
        file_reader: Optional[LocalFileReader] = None,
        picker_options: Optional[PickerOptions] = None,
    ):
        self.api_client = api_client
        self.picker = picker
        self.file_reader = file_reader or FileSystemReader()
        self.picker_options = picker_options or PickerOptions()

    async def capture_image(self) -> Optional[CapturedImage]:
        """
        Выбор изображения через media picker.

        Returns:
            CapturedImage или None, если пользователь отменил выбор

        Raises:
            PermissionDeniedError: Доступ к медиатеке не выдан
            ValidationError: Содержимое изображения не удалось прочитать
        """
        if self.picker is None:
            raise RuntimeError("UploadEncoder has no media picker configured")

        if not await self.picker.request_permission():
            logger.info("Media library permission denied")
            raise PermissionDeniedError(MSG_PERMISSION_DENIED)

        result = await self.picker.pick_image(self.picker_options)
        if result.canceled or not result.assets:
            logger.debug("Image selection canceled")
            return None

        asset = result.assets[0]
        source = resolve_image_source(asset, self.file_reader)
        payload = await source.read_base64()
        logger.info(
            f"Selected image {asset.uri}",
            extra={"source": type(source).__name__, "base64_length": len(payload)},
        )
        return CapturedImage(uri=asset.uri, base64=payload)

    def build_payload(
        self,
        title: str,
        caption: str,
        rating: int,
        local_uri: Optional[str],
        base64_payload: Optional[str],
    ) -> UploadPayload:
        """
        Проверка черновика и сборка data URL.

        Raises:
            ValidationError: Первое невыполненное требование (title, caption, image, rating)
        """
        required = (
            ("title", title),
            ("caption", caption),
            ("image", base64_payload),
            ("rating", rating),
        )
        for field, value in required:
            if not value:
                raise ValidationError(MSG_FILL_ALL_FIELDS.format(field=field), field=field)

        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError(
                MSG_RATING_OUT_OF_RANGE.format(min=MIN_RATING, max=MAX_RATING),
                field="rating",
            )

        mime_type = f"image/{image_type_from_uri(local_uri)}"
        return UploadPayload(
            title=title,
            caption=caption,
            rating=rating,
            mime_type=mime_type,
            image_data_url=build_data_url(mime_type, base64_payload),
        )

    async def submit(self, payload: UploadPayload, token: Optional[str]) -> Dict[str, Any]:
        """
        Отправка публикации.

        Returns:
            Созданная запись

        Raises:
            NetworkError: Транспортная ошибка
            ServerError: Ответ не 2xx с сообщением сервера
            ProtocolError: Ответ не JSON
        """
        logger.info(
            "Submitting book recommendation",
            extra={"mime_type": payload.mime_type, "data_url_length": len(payload.image_data_url)},
        )
        return await self.api_client.create_book(payload.to_request_body(), token)
