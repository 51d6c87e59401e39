"""Friend suggestions (friends-of-friends ranking) and user search."""

from collections import Counter

from linkbook.application.dto import Invalid, SearchResults, Suggestion
from linkbook.application.friend_service import DEFAULT_PAGE_SIZE, FriendService
from linkbook.application.ports import UserRepository

MIN_SEARCH_LENGTH = 2


class DiscoveryService:
    def __init__(self, friends: FriendService, users: UserRepository) -> None:
        self._friends = friends
        self._users = users

    def suggest_friends(
        self, user_id: str, limit: int = DEFAULT_PAGE_SIZE
    ) -> list[Suggestion]:
        """Rank friends-of-friends by how many of the user's friends they are friends with.

        Self and direct friends are never suggested. Ties keep first-encountered order.
        """
        friend_ids = self._friends.get_all_friend_ids(user_id)
        if not friend_ids or limit <= 0:
            return []

        counts: Counter[str] = Counter()
        for friend_id in sorted(friend_ids):
            for candidate in sorted(self._friends.get_all_friend_ids(friend_id)):
                if candidate == user_id or candidate in friend_ids:
                    continue
                counts[candidate] += 1

        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)[:limit]
        if not ranked:
            return []

        by_id = {user.id: user for user in self._users.get_many(cid for cid, _ in ranked)}
        return [
            Suggestion(user=by_id[cid], mutual_friend_count=count)
            for cid, count in ranked
            if cid in by_id
        ]

    def search_users(
        self,
        query: str,
        *,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> SearchResults | Invalid:
        """Case-insensitive partial match on display name or handle."""
        needle = (query or "").strip()
        if len(needle) < MIN_SEARCH_LENGTH:
            return Invalid(reason=f"Query must be at least {MIN_SEARCH_LENGTH} characters")
        results = self._users.search(needle, max(limit, 0), max(offset, 0))
        return SearchResults(query=needle, results=results)
