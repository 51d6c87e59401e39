"""Notifications for friendship transitions, and the per-user notification inbox."""

import logging

from linkbook.application.dto import MarkedRead, NotificationNotFound
from linkbook.application.friend_service import DEFAULT_PAGE_SIZE
from linkbook.application.ports import (
    NotificationRepository,
    NotificationSink,
    UserRepository,
)
from linkbook.domain import Notification, NotificationType, User

logger = logging.getLogger(__name__)


def _display_name(user: User | None) -> str:
    if user is None or not user.display_name:
        return "Someone"
    return user.display_name


class FriendshipNotifier:
    """Tells users about requests and acceptances, honouring each recipient's preferences.

    Called after a transition has succeeded. Delivery failures are logged, never raised.
    """

    def __init__(self, users: UserRepository, sink: NotificationSink) -> None:
        self._users = users
        self._sink = sink

    def request_sent(self, from_id: str, to_id: str) -> bool:
        """Notify to_id of a new request. Returns True if a notification was sent."""
        recipient = self._users.get_by_id(to_id)
        if recipient is None or not recipient.notify_friend_requests:
            return False
        sender = self._users.get_by_id(from_id)
        return self._deliver(
            to_id,
            NotificationType.FRIEND_REQUEST,
            from_id,
            f"{_display_name(sender)} sent you a friend request.",
        )

    def request_accepted(self, accepting_id: str, requester_id: str) -> bool:
        """Notify the original requester that accepting_id accepted."""
        requester = self._users.get_by_id(requester_id)
        if requester is None or not requester.notify_friend_accepted:
            return False
        acceptor = self._users.get_by_id(accepting_id)
        return self._deliver(
            requester_id,
            NotificationType.FRIEND_ACCEPTED,
            accepting_id,
            f"{_display_name(acceptor)} accepted your friend request.",
        )

    def _deliver(
        self,
        user_id: str,
        type: NotificationType,
        from_user_id: str,
        message: str,
    ) -> bool:
        try:
            self._sink.notify(user_id, type, from_user_id, message)
        except Exception:
            logger.exception("Failed to deliver %s notification to %s", type.value, user_id)
            return False
        return True


class NotificationService:
    """Inbox: list, unread count, mark read."""

    def __init__(self, notifications: NotificationRepository) -> None:
        self._notifications = notifications

    def list_for_user(
        self,
        user_id: str,
        *,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> list[Notification]:
        return self._notifications.list_for_user(user_id, max(limit, 0), max(offset, 0))

    def unread_count(self, user_id: str) -> int:
        return self._notifications.unread_count(user_id)

    def mark_read(
        self, notification_id: str, user_id: str
    ) -> MarkedRead | NotificationNotFound:
        """Mark one of user_id's notifications as read. Other users' notifications are not found."""
        if not self._notifications.mark_read(notification_id, user_id):
            return NotificationNotFound(notification_id=notification_id)
        return MarkedRead(notification_id=notification_id)

    def mark_all_read(self, user_id: str) -> None:
        self._notifications.mark_all_read(user_id)
