"""Per-link, per-viewer visibility of contact links."""

from collections.abc import Sequence
from typing import TypeVar

from linkbook.application.friend_service import FriendService
from linkbook.domain import FriendshipStatus, Visibility

T = TypeVar("T")


class _ViewerContext:
    """Relationship facts for one (owner, viewer) pair, looked up at most once each."""

    def __init__(self, friends: FriendService, owner_id: str, viewer_id: str) -> None:
        self._friends = friends
        self._owner_id = owner_id
        self._viewer_id = viewer_id
        self._is_friend: bool | None = None
        self._has_mutual: bool | None = None

    def is_friend(self) -> bool:
        if self._is_friend is None:
            relationship = self._friends.get_relationship(self._owner_id, self._viewer_id)
            self._is_friend = relationship == FriendshipStatus.ACCEPTED.value
        return self._is_friend

    def has_mutual_friend(self) -> bool:
        if self._has_mutual is None:
            mutual = self._friends.get_mutual_friend_ids(self._owner_id, self._viewer_id)
            self._has_mutual = bool(mutual)
        return self._has_mutual


def _allows(visibility: str, owner_id: str, viewer_id: str | None, ctx) -> bool:
    if viewer_id is not None and viewer_id == owner_id:
        return True
    if visibility == Visibility.EVERYONE.value:
        return True
    if viewer_id is None:
        return False
    if visibility == Visibility.FRIENDS_ONLY.value:
        return ctx().is_friend()
    if visibility == Visibility.FRIENDS_OF_FRIENDS.value:
        context = ctx()
        return context.is_friend() or context.has_mutual_friend()
    return False


def _visibility_value(visibility) -> str:
    return visibility.value if isinstance(visibility, Visibility) else str(visibility)


class VisibilityResolver:
    """Decides which contact links a viewer may see. Always reads the current graph."""

    def __init__(self, friends: FriendService) -> None:
        self._friends = friends

    def can_view(
        self,
        visibility: Visibility | str,
        owner_id: str,
        viewer_id: str | None,
    ) -> bool:
        """Owner always sees; everyone is public; friends levels need a signed-in viewer.

        Unrecognised visibility values are never visible to anyone but the owner.
        """
        return _allows(
            _visibility_value(visibility),
            owner_id,
            viewer_id,
            lambda: _ViewerContext(self._friends, owner_id, viewer_id),
        )

    def filter_contact_links(
        self,
        links: Sequence[T],
        owner_id: str,
        viewer_id: str | None,
    ) -> list[T]:
        """Return the links the viewer may see, in their original order."""
        context: _ViewerContext | None = None

        def ctx() -> _ViewerContext:
            nonlocal context
            if context is None:
                context = _ViewerContext(self._friends, owner_id, viewer_id)
            return context

        return [
            link
            for link in links
            if _allows(_visibility_value(link.visibility), owner_id, viewer_id, ctx)
        ]
