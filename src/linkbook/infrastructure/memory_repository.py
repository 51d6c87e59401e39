"""In-memory implementations of the application ports (no DB).

Each repository guards its state with one lock, taken by readers and writers
alike, so conditional writes (insert-if-absent, compare-and-set) are atomic
and readers never see a dict mid-update.
"""

import threading
from collections.abc import Iterable
from dataclasses import replace

from linkbook.domain import (
    ContactLink,
    Friendship,
    FriendshipStatus,
    Notification,
    NotificationType,
    User,
)


class InMemoryFriendshipRepository:
    """Rows keyed by canonical pair. Order preserved by insertion."""

    def __init__(self) -> None:
        self._rows: dict[tuple[str, str], Friendship] = {}
        self._lock = threading.Lock()

    def get(self, pair: tuple[str, str]) -> Friendship | None:
        with self._lock:
            return self._rows.get(pair)

    def insert_if_absent(self, friendship: Friendship) -> bool:
        with self._lock:
            if friendship.pair in self._rows:
                return False
            self._rows[friendship.pair] = friendship
            return True

    def update_status(
        self,
        pair: tuple[str, str],
        expected: FriendshipStatus,
        new: FriendshipStatus,
    ) -> bool:
        with self._lock:
            row = self._rows.get(pair)
            if row is None or row.status != expected:
                return False
            self._rows[pair] = replace(row, status=new)
            return True

    def delete(self, pair: tuple[str, str]) -> bool:
        with self._lock:
            return self._rows.pop(pair, None) is not None

    def delete_all_for_user(self, user_id: str) -> int:
        with self._lock:
            pairs = [pair for pair, row in self._rows.items() if row.involves(user_id)]
            for pair in pairs:
                del self._rows[pair]
            return len(pairs)

    def list_for_user(
        self, user_id: str, status: FriendshipStatus
    ) -> list[Friendship]:
        with self._lock:
            return [
                row
                for row in self._rows.values()
                if row.status == status and row.involves(user_id)
            ]

    def count(self) -> int:
        with self._lock:
            return len(self._rows)


class InMemoryUserRepository:
    def __init__(self) -> None:
        self._by_id: dict[str, User] = {}
        self._lock = threading.Lock()

    def add(self, user: User) -> None:
        with self._lock:
            if user.id in self._by_id:
                raise ValueError(f"User {user.id} already exists.")
            if self._find_handle(user.handle) is not None:
                raise ValueError(f"Handle {user.handle!r} is taken.")
            self._by_id[user.id] = user

    def get_by_id(self, user_id: str) -> User | None:
        with self._lock:
            return self._by_id.get(user_id)

    def get_by_handle(self, handle: str) -> User | None:
        with self._lock:
            return self._find_handle((handle or "").strip())

    def get_many(self, user_ids: Iterable[str]) -> list[User]:
        wanted = set(user_ids)
        with self._lock:
            return [user for uid, user in self._by_id.items() if uid in wanted]

    def update(self, user: User) -> None:
        with self._lock:
            if user.id not in self._by_id:
                raise KeyError(user.id)
            self._by_id[user.id] = user

    def delete(self, user_id: str) -> bool:
        with self._lock:
            return self._by_id.pop(user_id, None) is not None

    def search(self, needle: str, limit: int, offset: int) -> list[User]:
        needle = needle.lower()
        with self._lock:
            matches = [
                user
                for user in self._by_id.values()
                if needle in user.display_name.lower() or needle in user.handle.lower()
            ]
        return matches[offset : offset + limit]

    def _find_handle(self, handle: str) -> User | None:
        # Caller holds the lock.
        for user in self._by_id.values():
            if user.handle == handle:
                return user
        return None


class InMemoryContactLinkRepository:
    def __init__(self) -> None:
        self._by_user: dict[str, list[ContactLink]] = {}
        self._lock = threading.Lock()

    def list_for_user(self, user_id: str) -> list[ContactLink]:
        with self._lock:
            links = list(self._by_user.get(user_id, []))
        # sorted() is stable, so equal sort_order keeps insertion order.
        return sorted(links, key=lambda link: link.sort_order)

    def replace_all(self, user_id: str, links: list[ContactLink]) -> None:
        with self._lock:
            self._by_user[user_id] = list(links)

    def delete_all_for_user(self, user_id: str) -> None:
        with self._lock:
            self._by_user.pop(user_id, None)


class InMemoryNotificationRepository:
    """Notification inbox. Also the NotificationSink used by FriendshipNotifier."""

    def __init__(self) -> None:
        self._items: list[Notification] = []
        self._lock = threading.Lock()

    def notify(
        self,
        user_id: str,
        type: NotificationType,
        from_user_id: str | None,
        message: str,
    ) -> None:
        with self._lock:
            self._items.append(
                Notification(
                    user_id=user_id,
                    type=NotificationType(type),
                    from_user_id=from_user_id,
                    message=message,
                )
            )

    def list_for_user(self, user_id: str, limit: int, offset: int) -> list[Notification]:
        # Newest first; later inserts win ties.
        with self._lock:
            own = [n for n in reversed(self._items) if n.user_id == user_id]
        own.sort(key=lambda n: n.created_at, reverse=True)
        return own[offset : offset + limit]

    def mark_read(self, notification_id: str, user_id: str) -> bool:
        with self._lock:
            for i, item in enumerate(self._items):
                if item.id == notification_id and item.user_id == user_id:
                    self._items[i] = replace(item, read=True)
                    return True
        return False

    def mark_all_read(self, user_id: str) -> None:
        with self._lock:
            self._items = [
                replace(item, read=True) if item.user_id == user_id else item
                for item in self._items
            ]

    def delete_all_for_user(self, user_id: str) -> None:
        with self._lock:
            self._items = [item for item in self._items if item.user_id != user_id]

    def unread_count(self, user_id: str) -> int:
        with self._lock:
            return sum(1 for n in self._items if n.user_id == user_id and not n.read)
