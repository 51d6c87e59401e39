"""Neo4j implementations of the application ports.

Graph:
(:User {id, handle, ...})
(:Friendship {user_a, user_b, status, initiated_by, created_at}), unique on (user_a, user_b)
(:User)-[:HAS_LINK]->(:ContactLink {id, type, label, value, sort_order, visibility, position})
(:Notification {id, user_id, type, from_user_id, message, read, created_at})

Friendship rows are nodes rather than relationships so the canonical pair can be
guarded by a uniqueness constraint. Call ensure_constraints at startup.
"""

import uuid
from collections.abc import Iterable
from contextlib import contextmanager
from datetime import datetime, timezone

from neo4j.exceptions import ConstraintError, DriverError, Neo4jError

from linkbook.application.ports import StorageError
from linkbook.domain import (
    ContactLink,
    Friendship,
    FriendshipStatus,
    Notification,
    NotificationType,
    User,
)

_CONSTRAINTS = (
    """
    CREATE CONSTRAINT friendship_pair_unique IF NOT EXISTS
    FOR (f:Friendship) REQUIRE (f.user_a, f.user_b) IS UNIQUE
    """,
    """
    CREATE CONSTRAINT user_id_unique IF NOT EXISTS
    FOR (u:User) REQUIRE u.id IS UNIQUE
    """,
    """
    CREATE CONSTRAINT user_handle_unique IF NOT EXISTS
    FOR (u:User) REQUIRE u.handle IS UNIQUE
    """,
)

_ENTITY_NOT_FOUND = "Neo.ClientError.Statement.EntityNotFound"


def _datetime_to_iso(dt: datetime) -> str:
    return dt.isoformat()


def _iso_to_datetime(s: str) -> datetime:
    dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


@contextmanager
def _session(driver):
    """Driver session whose failures surface as StorageError."""
    try:
        with driver.session() as session:
            yield session
    except (Neo4jError, DriverError) as e:
        raise StorageError(str(e)) from e


def ensure_constraints(driver) -> None:
    """Create uniqueness constraints (friendship pair, user id, handle) if missing."""
    with _session(driver) as session:
        for query in _CONSTRAINTS:
            session.run(query)


class Neo4jFriendshipRepository:
    def __init__(self, driver: object) -> None:
        self._driver = driver

    def get(self, pair: tuple[str, str]) -> Friendship | None:
        with _session(self._driver) as session:
            record = session.run(
                """
                MATCH (f:Friendship {user_a: $user_a, user_b: $user_b})
                RETURN f
                """,
                user_a=pair[0],
                user_b=pair[1],
            ).single()
        if not record:
            return None
        return _record_to_friendship(record["f"])

    def insert_if_absent(self, friendship: Friendship) -> bool:
        token = str(uuid.uuid4())
        try:
            with _session(self._driver) as session:
                record = session.run(
                    """
                    MERGE (f:Friendship {user_a: $user_a, user_b: $user_b})
                    ON CREATE SET f.status = $status,
                                  f.initiated_by = $initiated_by,
                                  f.created_at = $created_at,
                                  f.insert_token = $token
                    RETURN f.insert_token = $token AS inserted
                    """,
                    user_a=friendship.user_a,
                    user_b=friendship.user_b,
                    status=friendship.status.value,
                    initiated_by=friendship.initiated_by,
                    created_at=_datetime_to_iso(friendship.created_at),
                    token=token,
                ).single()
        except StorageError as e:
            # Concurrent MERGE on the same pair: the constraint rejected the loser.
            if isinstance(e.__cause__, ConstraintError):
                return False
            raise
        return bool(record and record["inserted"])

    def update_status(
        self,
        pair: tuple[str, str],
        expected: FriendshipStatus,
        new: FriendshipStatus,
    ) -> bool:
        try:
            with _session(self._driver) as session:
                return session.execute_write(
                    _update_status_tx, pair, expected.value, new.value
                )
        except StorageError as e:
            # The row was deleted between MATCH and the lock.
            if getattr(e.__cause__, "code", None) == _ENTITY_NOT_FOUND:
                return False
            raise

    def delete(self, pair: tuple[str, str]) -> bool:
        with _session(self._driver) as session:
            record = session.run(
                """
                MATCH (f:Friendship {user_a: $user_a, user_b: $user_b})
                DELETE f
                RETURN count(f) AS deleted
                """,
                user_a=pair[0],
                user_b=pair[1],
            ).single()
        return bool(record and record["deleted"])

    def delete_all_for_user(self, user_id: str) -> int:
        with _session(self._driver) as session:
            record = session.run(
                """
                MATCH (f:Friendship)
                WHERE f.user_a = $user_id OR f.user_b = $user_id
                DELETE f
                RETURN count(f) AS deleted
                """,
                user_id=user_id,
            ).single()
        return record["deleted"] if record else 0

    def list_for_user(
        self, user_id: str, status: FriendshipStatus
    ) -> list[Friendship]:
        with _session(self._driver) as session:
            result = session.run(
                """
                MATCH (f:Friendship)
                WHERE (f.user_a = $user_id OR f.user_b = $user_id) AND f.status = $status
                RETURN f
                ORDER BY f.created_at
                """,
                user_id=user_id,
                status=status.value,
            )
            return [_record_to_friendship(rec["f"]) for rec in result]


def _update_status_tx(tx, pair: tuple[str, str], expected: str, new: str) -> bool:
    # The first SET takes the write lock, so status is re-read under it.
    record = tx.run(
        """
        MATCH (f:Friendship {user_a: $user_a, user_b: $user_b})
        SET f._lock = true
        WITH f, f.status = $expected AS matches
        SET f.status = CASE WHEN matches THEN $new ELSE f.status END
        REMOVE f._lock
        RETURN matches
        """,
        user_a=pair[0],
        user_b=pair[1],
        expected=expected,
        new=new,
    ).single()
    return bool(record and record["matches"])


class Neo4jUserRepository:
    def __init__(self, driver: object) -> None:
        self._driver = driver

    def add(self, user: User) -> None:
        try:
            with _session(self._driver) as session:
                session.run(
                    "CREATE (u:User $props)",
                    props=_user_to_props(user),
                ).consume()
        except StorageError as e:
            if isinstance(e.__cause__, ConstraintError):
                raise ValueError(f"User {user.id} or handle {user.handle!r} already exists.") from e
            raise

    def get_by_id(self, user_id: str) -> User | None:
        return self._single("MATCH (u:User {id: $value}) RETURN u", user_id)

    def get_by_handle(self, handle: str) -> User | None:
        return self._single("MATCH (u:User {handle: $value}) RETURN u", (handle or "").strip())

    def get_many(self, user_ids: Iterable[str]) -> list[User]:
        ids = list(set(user_ids))
        if not ids:
            return []
        with _session(self._driver) as session:
            result = session.run(
                """
                MATCH (u:User)
                WHERE u.id IN $ids
                RETURN u
                ORDER BY u.created_at
                """,
                ids=ids,
            )
            return [_record_to_user(rec["u"]) for rec in result]

    def update(self, user: User) -> None:
        with _session(self._driver) as session:
            record = session.run(
                """
                MATCH (u:User {id: $id})
                SET u += $props
                RETURN 1 AS ok
                """,
                id=user.id,
                props=_user_to_props(user),
            ).single()
        if record is None:
            raise KeyError(user.id)

    def delete(self, user_id: str) -> bool:
        """Delete the user node and its contact links."""
        with _session(self._driver) as session:
            return session.execute_write(_delete_user_tx, user_id)

    def search(self, needle: str, limit: int, offset: int) -> list[User]:
        with _session(self._driver) as session:
            result = session.run(
                """
                MATCH (u:User)
                WHERE toLower(u.display_name) CONTAINS $needle
                   OR toLower(u.handle) CONTAINS $needle
                RETURN u
                ORDER BY u.created_at
                SKIP $offset
                LIMIT $limit
                """,
                needle=needle.lower(),
                offset=offset,
                limit=limit,
            )
            return [_record_to_user(rec["u"]) for rec in result]

    def _single(self, query: str, value: str) -> User | None:
        with _session(self._driver) as session:
            record = session.run(query, value=value).single()
        if not record:
            return None
        return _record_to_user(record["u"])


def _delete_user_tx(tx, user_id: str) -> bool:
    tx.run(
        """
        MATCH (:User {id: $user_id})-[:HAS_LINK]->(l:ContactLink)
        DETACH DELETE l
        """,
        user_id=user_id,
    )
    record = tx.run(
        """
        MATCH (u:User {id: $user_id})
        DETACH DELETE u
        RETURN count(u) AS deleted
        """,
        user_id=user_id,
    ).single()
    return bool(record and record["deleted"])


class Neo4jContactLinkRepository:
    def __init__(self, driver: object) -> None:
        self._driver = driver

    def list_for_user(self, user_id: str) -> list[ContactLink]:
        with _session(self._driver) as session:
            result = session.run(
                """
                MATCH (:User {id: $user_id})-[:HAS_LINK]->(l:ContactLink)
                RETURN l
                ORDER BY l.sort_order, l.position
                """,
                user_id=user_id,
            )
            return [_record_to_link(rec["l"], user_id) for rec in result]

    def replace_all(self, user_id: str, links: list[ContactLink]) -> None:
        rows = [
            {
                "id": link.id,
                "type": link.type.value,
                "label": link.label,
                "value": link.value,
                "sort_order": link.sort_order,
                "visibility": link.visibility,
                "position": position,
            }
            for position, link in enumerate(links)
        ]
        with _session(self._driver) as session:
            session.execute_write(_replace_links_tx, user_id, rows)

    def delete_all_for_user(self, user_id: str) -> None:
        with _session(self._driver) as session:
            session.run(
                """
                MATCH (:User {id: $user_id})-[:HAS_LINK]->(l:ContactLink)
                DETACH DELETE l
                """,
                user_id=user_id,
            ).consume()


def _replace_links_tx(tx, user_id: str, rows: list[dict]) -> None:
    tx.run(
        """
        MATCH (:User {id: $user_id})-[:HAS_LINK]->(l:ContactLink)
        DETACH DELETE l
        """,
        user_id=user_id,
    )
    tx.run(
        """
        MATCH (u:User {id: $user_id})
        UNWIND $rows AS row
        CREATE (u)-[:HAS_LINK]->(l:ContactLink)
        SET l = row
        """,
        user_id=user_id,
        rows=rows,
    )


class Neo4jNotificationRepository:
    def __init__(self, driver: object) -> None:
        self._driver = driver

    def notify(
        self,
        user_id: str,
        type: NotificationType,
        from_user_id: str | None,
        message: str,
    ) -> None:
        notification = Notification(
            user_id=user_id,
            type=NotificationType(type),
            from_user_id=from_user_id,
            message=message,
        )
        with _session(self._driver) as session:
            session.run(
                """
                CREATE (n:Notification {
                    id: $id,
                    user_id: $user_id,
                    type: $type,
                    from_user_id: $from_user_id,
                    message: $message,
                    read: false,
                    created_at: $created_at
                })
                """,
                id=notification.id,
                user_id=notification.user_id,
                type=notification.type.value,
                from_user_id=notification.from_user_id,
                message=notification.message,
                created_at=_datetime_to_iso(notification.created_at),
            ).consume()

    def list_for_user(self, user_id: str, limit: int, offset: int) -> list[Notification]:
        with _session(self._driver) as session:
            result = session.run(
                """
                MATCH (n:Notification {user_id: $user_id})
                RETURN n
                ORDER BY n.created_at DESC
                SKIP $offset
                LIMIT $limit
                """,
                user_id=user_id,
                offset=offset,
                limit=limit,
            )
            return [_record_to_notification(rec["n"]) for rec in result]

    def mark_read(self, notification_id: str, user_id: str) -> bool:
        with _session(self._driver) as session:
            record = session.run(
                """
                MATCH (n:Notification {id: $id, user_id: $user_id})
                SET n.read = true
                RETURN 1 AS ok
                """,
                id=notification_id,
                user_id=user_id,
            ).single()
        return record is not None

    def mark_all_read(self, user_id: str) -> None:
        with _session(self._driver) as session:
            session.run(
                "MATCH (n:Notification {user_id: $user_id}) SET n.read = true",
                user_id=user_id,
            ).consume()

    def delete_all_for_user(self, user_id: str) -> None:
        with _session(self._driver) as session:
            session.run(
                "MATCH (n:Notification {user_id: $user_id}) DELETE n",
                user_id=user_id,
            ).consume()

    def unread_count(self, user_id: str) -> int:
        with _session(self._driver) as session:
            record = session.run(
                """
                MATCH (n:Notification {user_id: $user_id})
                WHERE n.read = false
                RETURN count(n) AS unread
                """,
                user_id=user_id,
            ).single()
        return record["unread"] if record else 0


def _user_to_props(user: User) -> dict:
    return {
        "id": user.id,
        "handle": user.handle,
        "display_name": user.display_name,
        "email": user.email,
        "bio": user.bio,
        "avatar_url": user.avatar_url,
        "is_public": user.is_public,
        "notify_friend_requests": user.notify_friend_requests,
        "notify_friend_accepted": user.notify_friend_accepted,
        "created_at": _datetime_to_iso(user.created_at),
    }


def _record_to_user(u) -> User:
    return User(
        id=u["id"],
        handle=u["handle"],
        display_name=u.get("display_name") or "",
        email=u.get("email") or "",
        bio=u.get("bio") or "",
        avatar_url=u.get("avatar_url"),
        is_public=u.get("is_public", True),
        notify_friend_requests=u.get("notify_friend_requests", True),
        notify_friend_accepted=u.get("notify_friend_accepted", True),
        created_at=_iso_to_datetime(u["created_at"]),
    )


def _record_to_friendship(f) -> Friendship:
    return Friendship(
        user_a=f["user_a"],
        user_b=f["user_b"],
        initiated_by=f["initiated_by"],
        status=FriendshipStatus(f["status"]),
        created_at=_iso_to_datetime(f["created_at"]),
    )


def _record_to_link(node, user_id: str) -> ContactLink:
    return ContactLink(
        id=node["id"],
        user_id=user_id,
        type=node["type"],
        label=node.get("label") or "",
        value=node["value"],
        sort_order=node.get("sort_order", 0),
        visibility=node["visibility"],
    )


def _record_to_notification(n) -> Notification:
    return Notification(
        id=n["id"],
        user_id=n["user_id"],
        type=NotificationType(n["type"]),
        from_user_id=n.get("from_user_id"),
        message=n["message"],
        read=bool(n.get("read")),
        created_at=_iso_to_datetime(n["created_at"]),
    )
