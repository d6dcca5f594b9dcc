from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel

from bookworm_client.constants import (
    DEFAULT_RATING,
    PICKER_ASPECT,
    PICKER_QUALITY,
)


class UploadDraft(BaseModel):
    """Черновик публикации, живет от открытия формы до успешной отправки или отмены"""

    title: str = ""
    caption: str = ""
    rating: int = DEFAULT_RATING
    local_image_uri: Optional[str] = None
    base64_payload: Optional[str] = None

    class Config:
        frozen = True


class UploadPayload(BaseModel):
    """Провалидированная публикация, готовая к отправке"""

    title: str
    caption: str
    rating: int
    mime_type: str
    image_data_url: str

    class Config:
        frozen = True

    def to_request_body(self) -> Dict[str, Any]:
        """JSON тело для POST books (рейтинг передается строкой)"""
        return {
            "title": self.title,
            "caption": self.caption,
            "rating": str(self.rating),
            "image": self.image_data_url,
        }


class ComposeState(BaseModel):
    """Снимок формы публикации для слоя представления"""

    draft: UploadDraft = UploadDraft()
    is_loading: bool = False
    message: Optional[str] = None

    class Config:
        frozen = True


@dataclass(frozen=True)
class CapturedImage:
    """Выбранное изображение: локальный URI и base64 содержимого"""

    uri: str
    base64: str


@dataclass(frozen=True)
class PickedAsset:
    """Ресурс, возвращенный media picker (base64 может отсутствовать)"""

    uri: str
    base64: Optional[str] = None


@dataclass(frozen=True)
class PickResult:
    """Результат запуска media picker"""

    canceled: bool = False
    assets: List[PickedAsset] = field(default_factory=list)


@dataclass(frozen=True)
class PickerOptions:
    """Параметры запуска media picker"""

    allows_editing: bool = True
    aspect: Tuple[int, int] = PICKER_ASPECT
    quality: float = PICKER_QUALITY
    base64: bool = True
