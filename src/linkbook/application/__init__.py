"""Application layer: use cases, ports, and DTOs. Depends only on domain."""

from linkbook.application.discovery import DiscoveryService
from linkbook.application.dto import (
    AccountDeleted,
    AlreadyFriends,
    Blocked,
    CannotSelfAccept,
    ContactLinkDraft,
    FriendEntry,
    FriendListPrivate,
    FriendPage,
    FriendshipRemoved,
    Invalid,
    MarkedRead,
    NoPendingRequest,
    NotFound,
    NotificationNotFound,
    PendingRequest,
    ProfileView,
    RequestAccepted,
    RequestAlreadyPending,
    RequestSent,
    SearchResults,
    SelfRequest,
    Suggestion,
    UserNotFound,
)
from linkbook.application.friend_service import FriendService
from linkbook.application.notifications import FriendshipNotifier, NotificationService
from linkbook.application.ports import (
    ContactLinkRepository,
    FriendshipRepository,
    NotificationRepository,
    NotificationSink,
    StorageError,
    UserRepository,
)
from linkbook.application.profile_service import ProfileService
from linkbook.application.visibility import VisibilityResolver

__all__ = [
    "AccountDeleted",
    "AlreadyFriends",
    "Blocked",
    "CannotSelfAccept",
    "ContactLinkDraft",
    "ContactLinkRepository",
    "DiscoveryService",
    "FriendEntry",
    "FriendListPrivate",
    "FriendPage",
    "FriendService",
    "FriendshipNotifier",
    "FriendshipRemoved",
    "FriendshipRepository",
    "Invalid",
    "MarkedRead",
    "NoPendingRequest",
    "NotFound",
    "NotificationNotFound",
    "NotificationRepository",
    "NotificationService",
    "NotificationSink",
    "PendingRequest",
    "ProfileService",
    "ProfileView",
    "RequestAccepted",
    "RequestAlreadyPending",
    "RequestSent",
    "SearchResults",
    "SelfRequest",
    "StorageError",
    "Suggestion",
    "UserNotFound",
    "UserRepository",
    "VisibilityResolver",
]
