"""
Исключения клиента
"""

from typing import Any, Dict, Optional

from bookworm_client.constants import (
    MSG_GENERIC_ERROR,
    MSG_NETWORK_ERROR,
    MSG_NON_JSON_RESPONSE,
    MSG_STORAGE_ERROR,
)


class AppException(Exception):
    """Базовое исключение клиента с кодом ошибки и HTTP статусом ответа (если был)"""

    status_code: Optional[int] = None
    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str = MSG_GENERIC_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.details = details or {}
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)

    @property
    def user_message(self) -> str:
        """Сообщение, которое показывается пользователю"""
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Сериализация исключения в словарь (структурированное значение ошибки)"""
        return {
            "error": self.error_code,
            "message": self.user_message,
            "status_code": self.status_code,
            "details": self.details,
        }


class ValidationError(AppException):
    """Некорректные или отсутствующие входные данные"""

    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message=message, details={"field": field} if field else None)
        self.field = field


class PermissionDeniedError(AppException):
    """Нет доступа к медиатеке"""

    error_code = "PERMISSION_DENIED"


class NetworkError(AppException):
    """Транспортная ошибка или таймаут"""

    error_code = "NETWORK_ERROR"

    def __init__(self, message: str = MSG_NETWORK_ERROR, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details)


class ServerError(AppException):
    """Ответ не 2xx с разбираемым JSON телом"""

    error_code = "SERVER_ERROR"


class ProtocolError(AppException):
    """Тело ответа не JSON или не соответствует ожидаемой схеме"""

    error_code = "PROTOCOL_ERROR"

    def __init__(
        self,
        message: str = MSG_NON_JSON_RESPONSE,
        raw_text: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if raw_text is not None:
            details["raw_text"] = raw_text
        super().__init__(message=message, details=details, status_code=status_code)
        self.raw_text = raw_text


class StorageError(AppException):
    """Ошибки постоянного хранилища ключ-значение"""

    error_code = "STORAGE_ERROR"

    def __init__(self, message: str = MSG_STORAGE_ERROR, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details)
