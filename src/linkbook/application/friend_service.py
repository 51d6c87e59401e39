"""Friendship state machine and adjacency queries over canonical pairs."""

import logging

from linkbook.application.dto import (
    AlreadyFriends,
    Blocked,
    CannotSelfAccept,
    FriendEntry,
    FriendPage,
    FriendshipRemoved,
    NoPendingRequest,
    NotFound,
    PendingRequest,
    RequestAccepted,
    RequestAlreadyPending,
    RequestSent,
    SelfRequest,
    SendRequestFailure,
)
from linkbook.application.ports import FriendshipRepository, UserRepository
from linkbook.domain import (
    NO_RELATIONSHIP,
    Friendship,
    FriendshipStatus,
    User,
    canonical_pair,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20

_EXISTING_ROW_FAILURES = {
    FriendshipStatus.ACCEPTED: AlreadyFriends,
    FriendshipStatus.PENDING: RequestAlreadyPending,
    FriendshipStatus.BLOCKED: Blocked,
}


def _failure_for_existing(existing: Friendship) -> SendRequestFailure:
    return _EXISTING_ROW_FAILURES[existing.status]()


class FriendService:
    """Core flow: absent -> pending -> accepted; any state -> removed. Adjacency queries."""

    def __init__(
        self,
        friendships: FriendshipRepository,
        users: UserRepository,
    ) -> None:
        self._friendships = friendships
        self._users = users

    def get_friendship(self, user_id: str, other_id: str) -> Friendship | None:
        """Return the row for the pair in either argument order, or None."""
        return self._friendships.get(canonical_pair(user_id, other_id))

    # --- Transitions ---

    def send_request(
        self, from_id: str, to_id: str
    ) -> RequestSent | SendRequestFailure:
        """Create a pending row for the pair, initiated by from_id."""
        if from_id == to_id:
            return SelfRequest()

        existing = self.get_friendship(from_id, to_id)
        if existing is not None:
            return _failure_for_existing(existing)

        user_a, user_b = canonical_pair(from_id, to_id)
        row = Friendship(
            user_a=user_a,
            user_b=user_b,
            initiated_by=from_id,
            status=FriendshipStatus.PENDING,
        )
        if not self._friendships.insert_if_absent(row):
            # Lost a race with a concurrent writer; report what is there now.
            current = self.get_friendship(from_id, to_id)
            if current is None:
                return RequestAlreadyPending()
            return _failure_for_existing(current)

        logger.info("Friend request %s -> %s", from_id, to_id)
        return RequestSent(from_id=from_id, to_id=to_id)

    def accept_request(
        self, accepting_id: str, from_id: str
    ) -> RequestAccepted | NoPendingRequest | CannotSelfAccept:
        """Accept a pending request. Only the non-initiator may accept; created_at is kept."""
        existing = self.get_friendship(accepting_id, from_id)
        if existing is None or existing.status != FriendshipStatus.PENDING:
            return NoPendingRequest()
        if existing.initiated_by == accepting_id:
            return CannotSelfAccept()

        updated = self._friendships.update_status(
            existing.pair,
            expected=FriendshipStatus.PENDING,
            new=FriendshipStatus.ACCEPTED,
        )
        if not updated:
            return NoPendingRequest()

        logger.info("Friend request %s -> %s accepted", from_id, accepting_id)
        return RequestAccepted(accepting_id=accepting_id, requester_id=from_id)

    def remove_friendship(
        self, user_id: str, other_id: str
    ) -> FriendshipRemoved | NotFound:
        """Unfriend or cancel a pending request. Deletes the row whatever its status."""
        if not self._friendships.delete(canonical_pair(user_id, other_id)):
            return NotFound()
        logger.info("Friendship %s <-> %s removed", user_id, other_id)
        return FriendshipRemoved(user_id=user_id, other_id=other_id)

    def remove_all_for_user(self, user_id: str) -> int:
        """Delete every row user_id is part of, whichever side of the pair. Returns the count."""
        removed = self._friendships.delete_all_for_user(user_id)
        logger.info("Removed %d friendship rows of %s", removed, user_id)
        return removed

    # --- Queries ---

    def get_relationship(self, user_id: str, other_id: str) -> str:
        """Return the row status ("pending", "accepted", "blocked") or "none".

        Pending does not say who sent the request.
        """
        friendship = self.get_friendship(user_id, other_id)
        if friendship is None:
            return NO_RELATIONSHIP
        return friendship.status.value

    def get_all_friend_ids(self, user_id: str) -> set[str]:
        rows = self._friendships.list_for_user(user_id, FriendshipStatus.ACCEPTED)
        return {row.other(user_id) for row in rows}

    def list_friends(
        self,
        user_id: str,
        *,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> FriendPage:
        """Accepted friends, most recent friendship first, paginated. total is the unpaged count."""
        rows = self._friendships.list_for_user(user_id, FriendshipStatus.ACCEPTED)
        edges = sorted(
            ((row.other(user_id), row.created_at) for row in rows),
            key=lambda edge: edge[1],
            reverse=True,
        )
        offset = max(offset, 0)
        page = edges[offset : offset + max(limit, 0)]
        if not page:
            return FriendPage(friends=[], total=len(edges))

        by_id = self._users_by_id(friend_id for friend_id, _ in page)
        friends = [
            FriendEntry(user=by_id[friend_id], since=since)
            for friend_id, since in page
            if friend_id in by_id
        ]
        return FriendPage(friends=friends, total=len(edges))

    def list_pending_requests(self, user_id: str) -> list[PendingRequest]:
        """Requests received by user_id (not the ones it sent)."""
        rows = [
            row
            for row in self._friendships.list_for_user(user_id, FriendshipStatus.PENDING)
            if row.initiated_by != user_id
        ]
        if not rows:
            return []
        by_id = self._users_by_id(row.initiated_by for row in rows)
        return [
            PendingRequest(user=by_id[row.initiated_by], requested_at=row.created_at)
            for row in rows
            if row.initiated_by in by_id
        ]

    def get_mutual_friend_ids(self, user_id: str, other_id: str) -> set[str]:
        return self.get_all_friend_ids(user_id) & self.get_all_friend_ids(other_id)

    def get_mutual_friends(self, user_id: str, other_id: str) -> list[User]:
        """Users who are accepted friends of both. Order is store order."""
        mutual_ids = self.get_mutual_friend_ids(user_id, other_id)
        if not mutual_ids:
            return []
        return self._users.get_many(mutual_ids)

    def _users_by_id(self, user_ids) -> dict[str, User]:
        return {user.id: user for user in self._users.get_many(set(user_ids))}
