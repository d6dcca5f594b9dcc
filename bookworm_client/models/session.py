from typing import Optional

from pydantic import AliasChoices, BaseModel, Field


class UserProfile(BaseModel):
    """Профиль пользователя, принадлежит серверу и кэшируется по значению"""

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    username: str
    email: str
    profile_image: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("profileImage", "profile_image"),
        serialization_alias="profileImage",
    )

    class Config:
        frozen = True


class Session(BaseModel):
    """
    Состояние сессии.

    user и token либо оба заданы, либо оба None (кроме переходов в процессе запроса).
    """

    user: Optional[UserProfile] = None
    token: Optional[str] = None
    is_loading: bool = False
    is_checking_auth: bool = True

    class Config:
        frozen = True

    @property
    def is_signed_in(self) -> bool:
        return self.user is not None and bool(self.token)
