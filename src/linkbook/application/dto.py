"""Application DTOs: use-case inputs and typed results (success and failure)."""

from dataclasses import dataclass, field
from datetime import datetime

from linkbook.domain import User

# --- Friendship transitions ---


@dataclass(frozen=True)
class RequestSent:
    from_id: str
    to_id: str


@dataclass(frozen=True)
class RequestAccepted:
    accepting_id: str
    requester_id: str


@dataclass(frozen=True)
class FriendshipRemoved:
    user_id: str
    other_id: str


@dataclass(frozen=True)
class SelfRequest:
    reason: str = "Cannot friend yourself"


@dataclass(frozen=True)
class AlreadyFriends:
    reason: str = "Already friends"


@dataclass(frozen=True)
class RequestAlreadyPending:
    reason: str = "Request already pending"


@dataclass(frozen=True)
class Blocked:
    reason: str = "Cannot send request"


@dataclass(frozen=True)
class NoPendingRequest:
    reason: str = "No pending request found"


@dataclass(frozen=True)
class CannotSelfAccept:
    reason: str = "Cannot accept your own request"


@dataclass(frozen=True)
class NotFound:
    reason: str = "No friendship found"


SendRequestFailure = SelfRequest | AlreadyFriends | RequestAlreadyPending | Blocked
AcceptRequestFailure = NoPendingRequest | CannotSelfAccept

# --- Friend queries ---


@dataclass(frozen=True)
class FriendEntry:
    user: User
    since: datetime


@dataclass(frozen=True)
class FriendPage:
    friends: list[FriendEntry]
    total: int


@dataclass(frozen=True)
class PendingRequest:
    user: User
    requested_at: datetime


@dataclass(frozen=True)
class Suggestion:
    user: User
    mutual_friend_count: int


@dataclass(frozen=True)
class SearchResults:
    query: str
    results: list[User]


# --- Profiles ---


@dataclass(frozen=True)
class ContactLinkDraft:
    """Incoming contact link before validation (as sent by a client)."""

    type: str
    label: str
    value: str
    sort_order: int | None = None
    visibility: str | None = None


@dataclass(frozen=True)
class ProfileView:
    """A user's profile as seen by one viewer. relationship is None for anonymous views."""

    user: User
    contact_links: list = field(default_factory=list)
    relationship: str | None = None
    mutual_friend_count: int | None = None


@dataclass(frozen=True)
class UserNotFound:
    reason: str = "User not found"


@dataclass(frozen=True)
class FriendListPrivate:
    reason: str = "This user's friend list is private"


@dataclass(frozen=True)
class Invalid:
    reason: str


@dataclass(frozen=True)
class AccountDeleted:
    user_id: str
    friendships_removed: int


# --- Notifications ---


@dataclass(frozen=True)
class MarkedRead:
    notification_id: str


@dataclass(frozen=True)
class NotificationNotFound:
    notification_id: str
    reason: str = "Notification not found"
