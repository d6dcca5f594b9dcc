import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from bookworm_client.constants import (
    MSG_AUTH_SUPERSEDED,
    MSG_GENERIC_ERROR,
    MSG_MALFORMED_RESPONSE,
    STORAGE_TOKEN_KEY,
    STORAGE_USER_KEY,
)
from bookworm_client.core.exceptions import AppException, ProtocolError, StorageError
from bookworm_client.core.state import ObservableState
from bookworm_client.core.storage import KeyValueStore
from bookworm_client.models.results import OperationResult
from bookworm_client.models.session import Session, UserProfile

if TYPE_CHECKING:
    from bookworm_client.api_client import APIClient

logger = logging.getLogger(__name__)


class SessionStore(ObservableState[Session]):
    """
    Владелец токена и профиля пользователя.

    Каждый вызов register/login/logout/check_auth получает номер поколения.
    Результат запроса фиксируется только если после него не было выдано
    более нового запроса. Внутри одного вызова запись в хранилище всегда
    завершается раньше обновления состояния в памяти. Запись и фиксация
    выполняются под одной блокировкой с logout() и check_auth(); если во время
    записи вызов был вытеснен, хранилище возвращается к паре из памяти.
    """

    def __init__(self, api_client: "APIClient", storage: KeyValueStore):
        super().__init__(Session())
        self.api_client = api_client
        self.storage = storage
        self._generation = 0
        # Сериализует проверку поколения, запись в хранилище и фиксацию в памяти
        self._commit_lock = asyncio.Lock()

    @property
    def session(self) -> Session:
        return self.snapshot

    @property
    def token(self) -> Optional[str]:
        return self.snapshot.token

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def register(self, username: str, email: str, password: str) -> OperationResult:
        """Регистрация нового пользователя"""
        return await self._authenticate(
            "register",
            lambda: self.api_client.register(username, email, password),
        )

    async def login(self, email: str, password: str) -> OperationResult:
        """Вход по email и паролю"""
        return await self._authenticate(
            "login",
            lambda: self.api_client.login(email, password),
        )

    async def _authenticate(
        self,
        action: str,
        call: Callable[[], Awaitable[Dict[str, Any]]],
    ) -> OperationResult:
        generation = self._next_generation()
        self._set(is_loading=True)
        try:
            data = await call()
            try:
                user = UserProfile.model_validate(data["user"])
            except PydanticValidationError as e:
                raise ProtocolError(MSG_MALFORMED_RESPONSE, details={"errors": e.errors()}) from e
            token = data["token"]

            async with self._commit_lock:
                if not self._is_current(generation):
                    logger.info(f"Discarding superseded {action} response (generation {generation})")
                    return OperationResult.failure(MSG_AUTH_SUPERSEDED)

                await self._persist(user, token)
                if not self._is_current(generation):
                    logger.info(f"{action.capitalize()} superseded while persisting, restoring storage")
                    await self._restore_persisted()
                    return OperationResult.failure(MSG_AUTH_SUPERSEDED)

                self._set(user=user, token=token)
            logger.info(f"{action.capitalize()} succeeded for user {user.username}")
            return OperationResult.ok()
        except AppException as e:
            logger.warning(f"{action.capitalize()} failed: {e.message}")
            return OperationResult.failure(e.user_message)
        except Exception as e:
            logger.error(f"{action.capitalize()} failed unexpectedly: {e}", exc_info=True)
            return OperationResult.failure(MSG_GENERIC_ERROR)
        finally:
            if self._is_current(generation):
                self._set(is_loading=False)

    async def _persist(self, user: UserProfile, token: str) -> None:
        await self.storage.set(STORAGE_USER_KEY, user.model_dump_json(by_alias=True))
        await self.storage.set(STORAGE_TOKEN_KEY, token)

    async def _restore_persisted(self) -> None:
        """Приводит хранилище к паре user/token, зафиксированной в памяти"""
        current = self.snapshot
        try:
            if current.user is not None and current.token:
                await self._persist(current.user, current.token)
            else:
                for key in (STORAGE_USER_KEY, STORAGE_TOKEN_KEY):
                    await self.storage.remove(key)
        except StorageError as e:
            logger.error(f"Failed to restore persisted session: {e.message}", extra=e.details)

    def _parse_persisted_user(self, raw_user: Optional[str]) -> Optional[UserProfile]:
        if not raw_user:
            return None
        try:
            return UserProfile.model_validate(json.loads(raw_user))
        except (ValueError, PydanticValidationError) as e:
            logger.warning(f"Persisted user is corrupt, treating as signed out: {e}")
            return None

    async def check_auth(self) -> None:
        """
        Восстанавливает сессию из постоянного хранилища.

        Ошибки логируются и не пробрасываются; is_checking_auth сбрасывается
        при любом исходе.
        """
        generation = self._generation
        try:
            async with self._commit_lock:
                raw_user = await self.storage.get(STORAGE_USER_KEY)
                token = await self.storage.get(STORAGE_TOKEN_KEY)
                user = self._parse_persisted_user(raw_user)

                if user is None or not token:
                    if user is not None or token:
                        logger.warning("Persisted session is incomplete, treating as signed out")
                    user, token = None, None

                if self._is_current(generation):
                    self._set(user=user, token=token)
                    logger.info(f"Session restored: signed_in={user is not None}")
                else:
                    logger.info("Session changed while restoring, keeping newer state")
        except StorageError as e:
            logger.error(f"Failed to check auth: {e.message}", extra=e.details)
        except Exception as e:
            logger.error(f"Failed to check auth: {e}", exc_info=True)
        finally:
            self._set(is_checking_auth=False)

    async def logout(self) -> None:
        """Удаляет оба ключа из хранилища, затем очищает состояние в памяти"""
        self._next_generation()
        async with self._commit_lock:
            for key in (STORAGE_USER_KEY, STORAGE_TOKEN_KEY):
                try:
                    await self.storage.remove(key)
                except StorageError as e:
                    logger.error(f"Failed to remove '{key}' from storage: {e.message}", extra=e.details)
            self._set(user=None, token=None, is_loading=False)
        logger.info("User logged out")
