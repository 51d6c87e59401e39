"""Domain entities: User, Friendship, ContactLink, Notification."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

# Max length for profile fields.
BIO_MAX_LENGTH = 2000
NAME_MAX_LENGTH = 500


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FriendshipStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    BLOCKED = "blocked"


# Returned by relationship lookups when no friendship row exists.
NO_RELATIONSHIP = "none"


class Visibility(str, Enum):
    EVERYONE = "everyone"
    FRIENDS_ONLY = "friends_only"
    FRIENDS_OF_FRIENDS = "friends_of_friends"


class ContactLinkType(str, Enum):
    PHONE = "phone"
    WHATSAPP = "whatsapp"
    TELEGRAM = "telegram"
    SIGNAL = "signal"
    EMAIL = "email"
    SNAPCHAT = "snapchat"
    INSTAGRAM = "instagram"
    CUSTOM = "custom"


# Link types whose value is a phone number.
PHONE_LINK_TYPES = frozenset(
    {ContactLinkType.PHONE, ContactLinkType.WHATSAPP, ContactLinkType.SIGNAL}
)


class NotificationType(str, Enum):
    FRIEND_REQUEST = "friend_request"
    FRIEND_ACCEPTED = "friend_accepted"


def canonical_pair(user_id: str, other_id: str) -> tuple[str, str]:
    """Order two user ids so that one unordered pair always maps to the same tuple."""
    return (user_id, other_id) if user_id < other_id else (other_id, user_id)


@dataclass(frozen=True)
class User:
    """
    A registered user. Owned by the account layer; the graph only references it.
    is_public controls whether non-friends may see the friend list.
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    handle: str = ""
    display_name: str = ""
    email: str = ""
    bio: str = ""
    avatar_url: str | None = None
    is_public: bool = True
    notify_friend_requests: bool = True
    notify_friend_accepted: bool = True
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        if not self.handle or not self.handle.strip():
            raise ValueError("User handle must be non-empty.")
        object.__setattr__(self, "handle", self.handle.strip())
        name = (self.display_name or "").strip()
        if len(name) > NAME_MAX_LENGTH:
            raise ValueError(f"Display name must be at most {NAME_MAX_LENGTH} chars.")
        object.__setattr__(self, "display_name", name)
        bio = (self.bio or "").strip()
        if len(bio) > BIO_MAX_LENGTH:
            raise ValueError(f"Bio must be at most {BIO_MAX_LENGTH} chars.")
        object.__setattr__(self, "bio", bio)


@dataclass(frozen=True)
class Friendship:
    """
    One row per unordered pair of users, stored with user_a < user_b.
    initiated_by is the requester and is always one of the pair.
    """

    user_a: str
    user_b: str
    initiated_by: str
    status: FriendshipStatus = FriendshipStatus.PENDING
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        if self.user_a == self.user_b:
            raise ValueError("A user cannot be friends with themselves.")
        if not self.user_a < self.user_b:
            raise ValueError("Friendship pair must be in canonical order (user_a < user_b).")
        if self.initiated_by not in (self.user_a, self.user_b):
            raise ValueError("initiated_by must be one of the pair.")
        object.__setattr__(self, "status", FriendshipStatus(self.status))

    @property
    def pair(self) -> tuple[str, str]:
        return (self.user_a, self.user_b)

    def involves(self, user_id: str) -> bool:
        return user_id in (self.user_a, self.user_b)

    def other(self, user_id: str) -> str:
        """Return the member of the pair that is not user_id."""
        if user_id == self.user_a:
            return self.user_b
        if user_id == self.user_b:
            return self.user_a
        raise ValueError(f"User {user_id} is not part of this friendship.")


@dataclass(frozen=True)
class ContactLink:
    """
    A way to reach a user (phone, handle, ...). Visibility is evaluated per link
    and per viewer; it is stored as given so unknown values fail closed on read.
    """

    user_id: str
    type: ContactLinkType
    label: str
    value: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    sort_order: int = 0
    visibility: str = Visibility.FRIENDS_ONLY.value

    def __post_init__(self):
        object.__setattr__(self, "type", ContactLinkType(self.type))
        if not self.value or not self.value.strip():
            raise ValueError("Contact link value must be non-empty.")


@dataclass(frozen=True)
class Notification:
    user_id: str
    type: NotificationType
    message: str
    from_user_id: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    read: bool = False
    created_at: datetime = field(default_factory=_utcnow)
