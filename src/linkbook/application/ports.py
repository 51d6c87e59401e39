"""Application ports (interfaces). Implemented by infrastructure adapters."""

from collections.abc import Iterable
from typing import Protocol

from linkbook.domain import (
    ContactLink,
    Friendship,
    FriendshipStatus,
    Notification,
    NotificationType,
    User,
)


class StorageError(RuntimeError):
    """Store-level failure (connectivity, constraint violation). Not recovered by the core."""


class FriendshipRepository(Protocol):
    """Friendship rows keyed by canonical pair (user_a < user_b). Every write is atomic."""

    def get(self, pair: tuple[str, str]) -> Friendship | None:
        """Return the row for the canonical pair, or None."""
        ...

    def insert_if_absent(self, friendship: Friendship) -> bool:
        """Insert the row unless one exists for its pair. Returns True if inserted."""
        ...

    def update_status(
        self,
        pair: tuple[str, str],
        expected: FriendshipStatus,
        new: FriendshipStatus,
    ) -> bool:
        """Set status to new only if it currently equals expected. Returns True if updated."""
        ...

    def delete(self, pair: tuple[str, str]) -> bool:
        """Delete the row for the pair. Returns True if a row was deleted."""
        ...

    def delete_all_for_user(self, user_id: str) -> int:
        """Delete every row where user_id is either member. Returns the number deleted."""
        ...

    def list_for_user(
        self, user_id: str, status: FriendshipStatus
    ) -> list[Friendship]:
        """Return rows with the given status where user_id is either member."""
        ...


class UserRepository(Protocol):
    def add(self, user: User) -> None:
        ...

    def get_by_id(self, user_id: str) -> User | None:
        ...

    def get_by_handle(self, handle: str) -> User | None:
        ...

    def get_many(self, user_ids: Iterable[str]) -> list[User]:
        """Bulk lookup. Unknown ids are skipped; order is store order."""
        ...

    def update(self, user: User) -> None:
        """Replace the stored record with the same id."""
        ...

    def delete(self, user_id: str) -> bool:
        ...

    def search(self, needle: str, limit: int, offset: int) -> list[User]:
        """Case-insensitive substring match on display name or handle."""
        ...


class ContactLinkRepository(Protocol):
    def list_for_user(self, user_id: str) -> list[ContactLink]:
        """Return the user's links ordered by sort_order, ties by insertion."""
        ...

    def replace_all(self, user_id: str, links: list[ContactLink]) -> None:
        """Delete every link of the user and insert the given ones."""
        ...

    def delete_all_for_user(self, user_id: str) -> None:
        ...


class NotificationSink(Protocol):
    """Outbound notification delivery. Callers treat it as fire-and-forget."""

    def notify(
        self,
        user_id: str,
        type: NotificationType,
        from_user_id: str | None,
        message: str,
    ) -> None:
        ...


class NotificationRepository(NotificationSink, Protocol):
    def list_for_user(self, user_id: str, limit: int, offset: int) -> list[Notification]:
        """Newest first."""
        ...

    def mark_read(self, notification_id: str, user_id: str) -> bool:
        ...

    def mark_all_read(self, user_id: str) -> None:
        ...

    def delete_all_for_user(self, user_id: str) -> None:
        """Delete the user's inbox."""
        ...

    def unread_count(self, user_id: str) -> int:
        ...
