import logging
from typing import Callable, Optional

from bookworm_client.constants import (
    FIRST_PAGE,
    MSG_GENERIC_ERROR,
    MSG_IMAGE_PICK_ERROR,
    MSG_POST_CREATED,
    MSG_UPLOAD_IN_PROGRESS,
)
from bookworm_client.core.exceptions import AppException
from bookworm_client.core.feed_cache import FeedCache
from bookworm_client.core.state import ObservableState
from bookworm_client.core.upload_encoder import UploadEncoder
from bookworm_client.models.results import OperationResult
from bookworm_client.models.upload import ComposeState, UploadDraft

logger = logging.getLogger(__name__)


class ComposeSession(ObservableState[ComposeState]):
    """
    Форма новой публикации: черновик, индикатор загрузки и сообщение для пользователя.

    Любая ошибка дает ровно одно сообщение и оставляет черновик без изменений;
    индикатор загрузки сбрасывается на каждом пути выхода из submit().
    """

    def __init__(
        self,
        encoder: UploadEncoder,
        feed_cache: FeedCache,
        token_provider: Callable[[], Optional[str]],
    ):
        super().__init__(ComposeState())
        self.encoder = encoder
        self.feed_cache = feed_cache
        self._token_provider = token_provider

    @property
    def draft(self) -> UploadDraft:
        return self.snapshot.draft

    def _update_draft(self, **changes) -> None:
        self._set(draft=self.draft.model_copy(update=changes), message=None)

    def set_title(self, title: str) -> None:
        self._update_draft(title=title)

    def set_caption(self, caption: str) -> None:
        self._update_draft(caption=caption)

    def set_rating(self, rating: int) -> None:
        self._update_draft(rating=rating)

    def _fail(self, message: str) -> OperationResult:
        self._set(message=message)
        return OperationResult.failure(message)

    async def pick_image(self) -> OperationResult:
        """Выбор изображения; отмена выбора не считается ошибкой"""
        try:
            captured = await self.encoder.capture_image()
        except AppException as e:
            logger.warning(f"Image selection failed: {e.message}")
            return self._fail(e.user_message)
        except Exception as e:
            logger.error(f"Error picking image: {e}", exc_info=True)
            return self._fail(MSG_IMAGE_PICK_ERROR)

        if captured is None:
            return OperationResult.ok()

        self._update_draft(local_image_uri=captured.uri, base64_payload=captured.base64)
        return OperationResult.ok()

    async def submit(self) -> OperationResult:
        """Проверка и отправка черновика; при успехе черновик очищается, а первая страница ленты инвалидируется"""
        if self.snapshot.is_loading:
            logger.debug("Submit ignored, upload already in progress")
            return OperationResult.failure(MSG_UPLOAD_IN_PROGRESS)

        draft = self.draft
        self._set(is_loading=True, message=None)
        try:
            payload = self.encoder.build_payload(
                draft.title,
                draft.caption,
                draft.rating,
                draft.local_image_uri,
                draft.base64_payload,
            )
            await self.encoder.submit(payload, self._token_provider())
        except AppException as e:
            logger.warning(f"Error creating post: {e.message}", extra={"error_code": e.error_code})
            return self._fail(e.user_message)
        except Exception as e:
            logger.error(f"Error creating post: {e}", exc_info=True)
            return self._fail(MSG_GENERIC_ERROR)
        finally:
            self._set(is_loading=False)

        self._set(draft=UploadDraft(), message=MSG_POST_CREATED)
        await self.feed_cache.invalidate(FIRST_PAGE)
        logger.info("Book recommendation posted")
        return OperationResult.ok(MSG_POST_CREATED)

    def cancel(self) -> None:
        """Отмена публикации: черновик уничтожается"""
        self._set(draft=UploadDraft(), message=None)
