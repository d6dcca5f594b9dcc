"""Константы клиента."""

from typing import Final, Optional

# ===== HTTP STATUS CODES =====
HTTP_OK: Final[int] = 200
HTTP_CREATED: Final[int] = 201
HTTP_MULTIPLE_CHOICES: Final[int] = 300

# ===== API ENDPOINTS =====
# Относительно базового URL, который всегда заканчивается на "/"
ENDPOINT_AUTH_REGISTER: Final[str] = "auth/register"
ENDPOINT_AUTH_LOGIN: Final[str] = "auth/login"
ENDPOINT_BOOKS: Final[str] = "books"

# ===== DURABLE STORAGE KEYS =====
STORAGE_USER_KEY: Final[str] = "user"
STORAGE_TOKEN_KEY: Final[str] = "token"

# ===== TIMEOUTS =====
DEFAULT_API_TIMEOUT: Final[float] = 60.0

# ===== FEED =====
FIRST_PAGE: Final[int] = 1
DEFAULT_PAGE_SIZE: Final[int] = 3
DEFAULT_STALE_TIME_SECONDS: Final[float] = 5 * 60
NO_MORE_PAGES: Final[Optional[int]] = None

# ===== UPLOAD =====
MIN_RATING: Final[int] = 1
MAX_RATING: Final[int] = 5
DEFAULT_RATING: Final[int] = 3
DEFAULT_IMAGE_TYPE: Final[str] = "jpeg"
PICKER_ASPECT: Final[tuple] = (4, 3)
PICKER_QUALITY: Final[float] = 0.5

# ===== USER MESSAGES =====
MSG_GENERIC_ERROR: Final[str] = "Something went wrong"
MSG_NETWORK_ERROR: Final[str] = "Could not reach the server. Please try again"
MSG_NON_JSON_RESPONSE: Final[str] = "Server returned non-JSON response"
MSG_MALFORMED_RESPONSE: Final[str] = "Server returned an unexpected response"
MSG_FILL_ALL_FIELDS: Final[str] = "Please fill in all fields (missing {field})"
MSG_RATING_OUT_OF_RANGE: Final[str] = "Rating must be between {min} and {max}"
MSG_PERMISSION_DENIED: Final[str] = "We need camera roll permissions to upload an image"
MSG_IMAGE_PICK_ERROR: Final[str] = "There was a problem selecting your image"
MSG_POST_CREATED: Final[str] = "Your book recommendation has been posted!"
MSG_AUTH_SUPERSEDED: Final[str] = "Request superseded by a newer sign-in attempt"
MSG_STORAGE_ERROR: Final[str] = "Could not access local storage"
MSG_UPLOAD_IN_PROGRESS: Final[str] = "Upload already in progress"

# ===== LOGGING =====
RAW_BODY_LOG_LIMIT: Final[int] = 200
