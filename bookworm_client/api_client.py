"""HTTP клиент для взаимодействия с backend BookWorm."""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import requests

from bookworm_client.config import get_settings
from bookworm_client.constants import (
    ENDPOINT_AUTH_LOGIN,
    ENDPOINT_AUTH_REGISTER,
    ENDPOINT_BOOKS,
    HTTP_MULTIPLE_CHOICES,
    HTTP_OK,
    MSG_GENERIC_ERROR,
    MSG_MALFORMED_RESPONSE,
    MSG_NON_JSON_RESPONSE,
    RAW_BODY_LOG_LIMIT,
)
from bookworm_client.core.exceptions import NetworkError, ProtocolError, ServerError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JsonBody:
    """Тело ответа, успешно разобранное как JSON"""

    data: Any


@dataclass(frozen=True)
class RawBody:
    """Тело ответа, которое не является JSON"""

    text: str


DecodedBody = Union[JsonBody, RawBody]


def decode_body(response: requests.Response) -> DecodedBody:
    """
    Явный шаг декодирования ответа.

    Args:
        response: Ответ от сервера

    Returns:
        JsonBody, если тело разбирается как JSON, иначе RawBody с исходным текстом
    """
    text = response.text
    try:
        return JsonBody(json.loads(text))
    except ValueError:
        return RawBody(text)


def _is_success(status_code: int) -> bool:
    return HTTP_OK <= status_code < HTTP_MULTIPLE_CHOICES


class APIClient:
    """Асинхронный клиент BookWorm API поверх requests."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Args:
            base_url: Базовый URL API (по умолчанию из конфигурации)
            timeout: Таймаут запросов в секундах (по умолчанию из конфигурации)
            session: HTTP сессия requests (для переиспользования соединений и тестов)
        """
        settings = get_settings()
        base_url = base_url or settings.base_url
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self.timeout = timeout if timeout is not None else settings.api_timeout
        self.session = session or requests.Session()

    def _get_headers(self, token: Optional[str] = None) -> Dict[str, str]:
        """Заголовки запроса с bearer авторизацией, если есть токен"""
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        token: Optional[str] = None,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        """
        Выполняет запрос в отдельном потоке, не блокируя event loop.

        Raises:
            NetworkError: Транспортная ошибка или таймаут
        """
        url = f"{self.base_url}{endpoint}"
        try:
            return await asyncio.to_thread(
                self.session.request,
                method,
                url,
                json=json_body,
                params=params,
                headers=self._get_headers(token),
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"{method} {endpoint} timed out: {e}")
            raise NetworkError(details={"endpoint": endpoint, "reason": "timeout"}) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {endpoint} failed: {e}")
            raise NetworkError(details={"endpoint": endpoint, "reason": str(e)}) from e

    def _handle_response(self, response: requests.Response, endpoint: str) -> Any:
        """
        Обработка ответа от сервера.

        Returns:
            Разобранное JSON тело успешного ответа

        Raises:
            ProtocolError: Тело не JSON (текст сохраняется для диагностики)
            ServerError: Статус не 2xx
        """
        body = decode_body(response)

        if isinstance(body, RawBody):
            logger.error(
                f"Non-JSON response from {endpoint} with status {response.status_code}: "
                f"{body.text[:RAW_BODY_LOG_LIMIT]}"
            )
            raise ProtocolError(
                MSG_NON_JSON_RESPONSE,
                raw_text=body.text,
                status_code=response.status_code,
            )

        if not _is_success(response.status_code):
            message = None
            if isinstance(body.data, dict):
                message = body.data.get("message")
            logger.warning(
                f"Request to {endpoint} failed with status {response.status_code}: {message}"
            )
            raise ServerError(
                message or MSG_GENERIC_ERROR,
                details={"endpoint": endpoint},
                status_code=response.status_code,
            )

        return body.data

    def _expect_auth_payload(self, data: Any, endpoint: str) -> Dict[str, Any]:
        """Проверяет, что ответ авторизации содержит user и token"""
        if not isinstance(data, dict) or not data.get("token") or not isinstance(data.get("user"), dict):
            logger.error(f"Auth response from {endpoint} is missing user or token")
            raise ProtocolError(MSG_MALFORMED_RESPONSE, details={"endpoint": endpoint})
        return data

    async def register(self, username: str, email: str, password: str) -> Dict[str, Any]:
        """
        Регистрация нового пользователя.

        Returns:
            Ответ сервера {user, token}
        """
        response = await self._request(
            "POST",
            ENDPOINT_AUTH_REGISTER,
            json_body={"username": username, "email": email, "password": password},
        )
        data = self._handle_response(response, ENDPOINT_AUTH_REGISTER)
        return self._expect_auth_payload(data, ENDPOINT_AUTH_REGISTER)

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Вход пользователя.

        Returns:
            Ответ сервера {user, token}
        """
        response = await self._request(
            "POST",
            ENDPOINT_AUTH_LOGIN,
            json_body={"email": email, "password": password},
        )
        data = self._handle_response(response, ENDPOINT_AUTH_LOGIN)
        return self._expect_auth_payload(data, ENDPOINT_AUTH_LOGIN)

    async def get_books(self, page: int, limit: int, token: Optional[str]) -> Dict[str, Any]:
        """
        Получение страницы ленты.

        Returns:
            Ответ сервера {books, totalPages}
        """
        response = await self._request(
            "GET",
            ENDPOINT_BOOKS,
            token=token,
            params={"page": page, "limit": limit},
        )
        data = self._handle_response(response, ENDPOINT_BOOKS)
        if not isinstance(data, dict):
            raise ProtocolError(MSG_MALFORMED_RESPONSE, details={"endpoint": ENDPOINT_BOOKS})
        return data

    async def create_book(self, body: Dict[str, Any], token: Optional[str]) -> Dict[str, Any]:
        """
        Публикация новой рекомендации.

        Returns:
            Созданная запись
        """
        response = await self._request("POST", ENDPOINT_BOOKS, token=token, json_body=body)
        return self._handle_response(response, ENDPOINT_BOOKS)

    def close(self) -> None:
        """Закрывает HTTP сессию"""
        self.session.close()
