"""Infrastructure layer: concrete implementations of application ports."""

from linkbook.infrastructure.memory_repository import (
    InMemoryContactLinkRepository,
    InMemoryFriendshipRepository,
    InMemoryNotificationRepository,
    InMemoryUserRepository,
)
from linkbook.infrastructure.persistence.neo4j_repository import (
    Neo4jContactLinkRepository,
    Neo4jFriendshipRepository,
    Neo4jNotificationRepository,
    Neo4jUserRepository,
    ensure_constraints,
)
from linkbook.infrastructure.phone import PhoneNormalizer

__all__ = [
    "InMemoryContactLinkRepository",
    "InMemoryFriendshipRepository",
    "InMemoryNotificationRepository",
    "InMemoryUserRepository",
    "Neo4jContactLinkRepository",
    "Neo4jFriendshipRepository",
    "Neo4jNotificationRepository",
    "Neo4jUserRepository",
    "PhoneNormalizer",
    "ensure_constraints",
]
