from .feed import FeedAuthor, FeedItem, FeedPage, FeedState
from .results import OperationResult
from .session import Session, UserProfile
from .upload import (
    CapturedImage,
    ComposeState,
    PickedAsset,
    PickerOptions,
    PickResult,
    UploadDraft,
    UploadPayload,
)

__all__ = [
    "CapturedImage",
    "ComposeState",
    "FeedAuthor",
    "FeedItem",
    "FeedPage",
    "FeedState",
    "OperationResult",
    "PickedAsset",
    "PickerOptions",
    "PickResult",
    "Session",
    "UploadDraft",
    "UploadPayload",
    "UserProfile",
]
