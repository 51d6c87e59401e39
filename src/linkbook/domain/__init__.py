"""Domain layer: entities and value objects. No dependencies on outer layers."""

from linkbook.domain.entities import (
    NO_RELATIONSHIP,
    ContactLink,
    ContactLinkType,
    Friendship,
    FriendshipStatus,
    Notification,
    NotificationType,
    User,
    Visibility,
    canonical_pair,
)

__all__ = [
    "NO_RELATIONSHIP",
    "ContactLink",
    "ContactLinkType",
    "Friendship",
    "FriendshipStatus",
    "Notification",
    "NotificationType",
    "User",
    "Visibility",
    "canonical_pair",
]
