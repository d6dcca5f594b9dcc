from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field

from bookworm_client.constants import MAX_RATING, MIN_RATING


class FeedAuthor(BaseModel):
    """Автор записи в ленте"""

    username: str
    profile_image: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("profileImage", "profile_image"),
        serialization_alias="profileImage",
    )

    class Config:
        frozen = True


class FeedItem(BaseModel):
    """Запись ленты (рекомендация книги), неизменяемый снимок"""

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    title: str
    caption: str
    rating: int = Field(ge=MIN_RATING, le=MAX_RATING)
    image: str
    created_at: datetime = Field(validation_alias=AliasChoices("createdAt", "created_at"))
    user: FeedAuthor

    class Config:
        frozen = True


class FeedPage(BaseModel):
    """Страница ленты: записи и общее число страниц по данным сервера"""

    page: int = 1
    books: List[FeedItem] = Field(default_factory=list)
    total_pages: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("totalPages", "total_pages"),
    )

    class Config:
        frozen = True


class FeedState(BaseModel):
    """Публикуемый снимок ленты для слоя представления"""

    items: List[FeedItem] = Field(default_factory=list)
    has_next_page: bool = False
    is_loading: bool = False
    is_fetching_next_page: bool = False
    is_refreshing: bool = False
    error_message: Optional[str] = None

    class Config:
        frozen = True
