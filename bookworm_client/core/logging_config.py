"""
Конфигурация структурированного логирования
"""

import copy
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Стандартные атрибуты LogRecord, которые не попадают в JSON как extra поля
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", logging.NOTSET, "", 0, "", (), None).__dict__
) | {"message", "asctime"}

# extra поля, значения которых не пишутся в лог
_REDACTED_KEYS = frozenset({"token", "password", "image", "base64_payload"})
_REDACTED = "***"

# Библиотеки, чьи логи приглушаются до WARNING
_NOISY_LOGGERS = ("urllib3", "requests", "redis", "asyncio")


class JSONFormatter(logging.Formatter):
    """
    Форматтер для структурированных JSON логов.

    Поля из extra добавляются в запись как есть, кроме token, password и
    содержимого изображения: их значения заменяются на "***".
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            log_data[key] = _REDACTED if key in _REDACTED_KEYS else value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_data["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """Форматтер с цветным выводом для консоли (для разработки)."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Копия, чтобы цвет не попал в записи других handlers
        colored = copy.copy(record)
        color = self.COLORS.get(record.levelname, self.RESET)
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


def setup_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Настройка логирования для клиента.

    Args:
        level: Уровень логирования (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Использовать JSON формат в консоли
        log_file: Путь к файлу логов (опционально, всегда JSON)

    Example:
        >>> setup_logging(level="DEBUG")
        >>> logging.getLogger(__name__).info("Feed page loaded", extra={"page": 2})
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    if json_logs:
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(
            ColoredFormatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(
        "Logging configured",
        extra={"log_level": level, "json_logs": json_logs, "log_file": log_file},
    )


def get_logger(name: str) -> logging.Logger:
    """Получает logger с заданным именем (обычно __name__)."""
    return logging.getLogger(name)
