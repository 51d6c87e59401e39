"""FriendshipNotifier preferences and the notification inbox."""

import logging

from linkbook.application import (
    FriendshipNotifier,
    MarkedRead,
    NotificationNotFound,
    NotificationService,
)
from linkbook.domain import NotificationType, User
from linkbook.infrastructure import InMemoryNotificationRepository, InMemoryUserRepository


def _setup(**prefs):
    users = InMemoryUserRepository()
    users.add(User(id="alice", handle="alice", display_name="Alice"))
    users.add(User(id="bob", handle="bob", display_name="Bob", **prefs))
    users.add(User(id="anon", handle="anon"))
    inbox_repo = InMemoryNotificationRepository()
    return FriendshipNotifier(users, inbox_repo), NotificationService(inbox_repo)


def test_request_sent_notifies_recipient() -> None:
    notifier, inbox = _setup()
    assert notifier.request_sent("alice", "bob") is True

    items = inbox.list_for_user("bob")
    assert len(items) == 1
    assert items[0].type == NotificationType.FRIEND_REQUEST
    assert items[0].from_user_id == "alice"
    assert items[0].message == "Alice sent you a friend request."
    assert inbox.list_for_user("alice") == []


def test_request_accepted_notifies_requester() -> None:
    notifier, inbox = _setup()
    notifier.request_accepted("bob", "alice")
    items = inbox.list_for_user("alice")
    assert [n.type for n in items] == [NotificationType.FRIEND_ACCEPTED]
    assert items[0].message == "Bob accepted your friend request."


def test_sender_without_name_is_someone() -> None:
    notifier, inbox = _setup()
    notifier.request_sent("anon", "bob")
    assert inbox.list_for_user("bob")[0].message == "Someone sent you a friend request."


def test_recipient_preferences_respected() -> None:
    notifier, inbox = _setup(notify_friend_requests=False, notify_friend_accepted=False)
    assert notifier.request_sent("alice", "bob") is False
    assert notifier.request_accepted("alice", "bob") is False
    assert inbox.unread_count("bob") == 0


def test_sink_failure_is_logged_not_raised(caplog) -> None:
    class BrokenSink:
        def notify(self, user_id, type, from_user_id, message):
            raise ConnectionError("mail server down")

    users = InMemoryUserRepository()
    users.add(User(id="alice", handle="alice"))
    users.add(User(id="bob", handle="bob"))
    notifier = FriendshipNotifier(users, BrokenSink())

    with caplog.at_level(logging.ERROR):
        assert notifier.request_sent("alice", "bob") is False
    assert "friend_request" in caplog.text


def test_inbox_unread_and_mark_read() -> None:
    notifier, inbox = _setup()
    notifier.request_sent("alice", "bob")
    notifier.request_sent("anon", "bob")
    assert inbox.unread_count("bob") == 2

    first = inbox.list_for_user("bob")[0]
    assert isinstance(inbox.mark_read(first.id, "bob"), MarkedRead)
    assert inbox.unread_count("bob") == 1

    assert isinstance(inbox.mark_read(first.id, "alice"), NotificationNotFound)
    assert isinstance(inbox.mark_read("missing", "bob"), NotificationNotFound)

    inbox.mark_all_read("bob")
    assert inbox.unread_count("bob") == 0
    assert all(n.read for n in inbox.list_for_user("bob"))


def test_inbox_pagination() -> None:
    notifier, inbox = _setup()
    for _ in range(3):
        notifier.request_sent("alice", "bob")
    assert len(inbox.list_for_user("bob", limit=2)) == 2
    assert len(inbox.list_for_user("bob", limit=2, offset=2)) == 1
