"""
Core модуль: сессия, лента, публикация и инфраструктура
"""

from .compose import ComposeSession
from .exceptions import (
    AppException,
    NetworkError,
    PermissionDeniedError,
    ProtocolError,
    ServerError,
    StorageError,
    ValidationError,
)
from .feed_cache import FeedCache, flatten, next_page_param
from .image_source import (
    FileImageSource,
    FileSystemReader,
    ImageSource,
    InlineImageSource,
    resolve_image_source,
)
from .logging_config import get_logger, setup_logging
from .session_store import SessionStore
from .state import ObservableState
from .storage import (
    JsonFileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    RedisKeyValueStore,
    create_key_value_store,
)
from .upload_encoder import MediaPicker, UploadEncoder, image_type_from_uri

__all__ = [
    # Session
    "SessionStore",
    # Feed
    "FeedCache",
    "flatten",
    "next_page_param",
    # Upload
    "UploadEncoder",
    "MediaPicker",
    "image_type_from_uri",
    "ComposeSession",
    "ImageSource",
    "InlineImageSource",
    "FileImageSource",
    "FileSystemReader",
    "resolve_image_source",
    # State
    "ObservableState",
    # Storage
    "KeyValueStore",
    "MemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "RedisKeyValueStore",
    "create_key_value_store",
    # Logging
    "setup_logging",
    "get_logger",
    # Exceptions
    "AppException",
    "ValidationError",
    "PermissionDeniedError",
    "NetworkError",
    "ServerError",
    "ProtocolError",
    "StorageError",
]
