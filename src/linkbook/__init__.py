"""
Linkbook core: clean-architecture layout.

- domain: entities (User, Friendship, ContactLink, Notification). No outer dependencies.
- application: use cases (FriendService, VisibilityResolver, DiscoveryService,
  ProfileService, notifications), ports, DTOs.
- infrastructure: adapters (in-memory and Neo4j repositories, phone normalisation).
"""

from linkbook.application import (
    DiscoveryService,
    FriendService,
    FriendshipNotifier,
    NotificationService,
    ProfileService,
    StorageError,
    VisibilityResolver,
)
from linkbook.domain import (
    ContactLink,
    ContactLinkType,
    Friendship,
    FriendshipStatus,
    Notification,
    User,
    Visibility,
    canonical_pair,
)

__all__ = [
    "ContactLink",
    "ContactLinkType",
    "DiscoveryService",
    "FriendService",
    "Friendship",
    "FriendshipNotifier",
    "FriendshipStatus",
    "Notification",
    "NotificationService",
    "ProfileService",
    "StorageError",
    "User",
    "Visibility",
    "VisibilityResolver",
    "canonical_pair",
]
