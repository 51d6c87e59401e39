"""Profiles, contact links, per-viewer profile views and account deletion."""

import logging
from collections.abc import Callable
from dataclasses import replace

from linkbook.application.dto import (
    AccountDeleted,
    ContactLinkDraft,
    FriendListPrivate,
    FriendPage,
    Invalid,
    ProfileView,
    UserNotFound,
)
from linkbook.application.friend_service import DEFAULT_PAGE_SIZE, FriendService
from linkbook.application.ports import (
    ContactLinkRepository,
    NotificationRepository,
    UserRepository,
)
from linkbook.application.visibility import VisibilityResolver
from linkbook.domain import (
    NO_RELATIONSHIP,
    ContactLink,
    ContactLinkType,
    FriendshipStatus,
    User,
    Visibility,
)
from linkbook.domain.entities import PHONE_LINK_TYPES

logger = logging.getLogger(__name__)

_LINK_TYPES = {t.value for t in ContactLinkType}
_VISIBILITIES = {v.value for v in Visibility}


class ProfileService:
    def __init__(
        self,
        users: UserRepository,
        contact_links: ContactLinkRepository,
        friends: FriendService,
        visibility: VisibilityResolver,
        *,
        normalize_phone: Callable[[str], str | None] | None = None,
        notifications: NotificationRepository | None = None,
    ) -> None:
        self._users = users
        self._links = contact_links
        self._friends = friends
        self._visibility = visibility
        self._normalize_phone = normalize_phone
        self._notifications = notifications

    def register(
        self,
        handle: str,
        *,
        display_name: str = "",
        email: str = "",
    ) -> User | Invalid:
        """Create a user. Handles are unique."""
        handle = (handle or "").strip()
        if not handle:
            return Invalid(reason="Handle is required.")
        if self._users.get_by_handle(handle) is not None:
            return Invalid(reason=f"Handle {handle!r} is taken.")
        try:
            user = User(handle=handle, display_name=display_name, email=email)
            self._users.add(user)
        except ValueError as e:
            return Invalid(reason=str(e))
        return user

    def get_profile(
        self, handle: str, viewer_id: str | None = None
    ) -> ProfileView | UserNotFound:
        """Profile with the contact links the viewer may see.

        A signed-in viewer also gets relationship and mutual count, which are
        "none" and 0 on their own profile.
        """
        user = self._users.get_by_handle(handle)
        if user is None:
            return UserNotFound()

        links = self._links.list_for_user(user.id)
        visible = self._visibility.filter_contact_links(links, user.id, viewer_id)

        if viewer_id is None:
            return ProfileView(user=user, contact_links=visible)
        if viewer_id == user.id:
            return ProfileView(
                user=user,
                contact_links=visible,
                relationship=NO_RELATIONSHIP,
                mutual_friend_count=0,
            )
        return ProfileView(
            user=user,
            contact_links=visible,
            relationship=self._friends.get_relationship(user.id, viewer_id),
            mutual_friend_count=len(self._friends.get_mutual_friend_ids(user.id, viewer_id)),
        )

    def get_contact_links(self, user_id: str) -> list[ContactLink]:
        """All of the user's own links, ordered by sort_order."""
        return self._links.list_for_user(user_id)

    def replace_contact_links(
        self, user_id: str, drafts: list[ContactLinkDraft]
    ) -> list[ContactLink] | Invalid:
        """Validate drafts, then replace every link of the user with them."""
        links: list[ContactLink] = []
        for index, draft in enumerate(drafts):
            link_type = (draft.type or "").strip().lower()
            if link_type not in _LINK_TYPES:
                return Invalid(reason=f"Unknown contact link type: {draft.type!r}")
            visibility = draft.visibility or Visibility.FRIENDS_ONLY.value
            if visibility not in _VISIBILITIES:
                return Invalid(reason=f"Unknown visibility: {draft.visibility!r}")
            value = (draft.value or "").strip()
            if not value:
                return Invalid(reason="Contact link value is required.")
            if self._normalize_phone and ContactLinkType(link_type) in PHONE_LINK_TYPES:
                value = self._normalize_phone(value) or value
            links.append(
                ContactLink(
                    user_id=user_id,
                    type=ContactLinkType(link_type),
                    label=(draft.label or "").strip(),
                    value=value,
                    sort_order=draft.sort_order if draft.sort_order is not None else index,
                    visibility=visibility,
                )
            )
        self._links.replace_all(user_id, links)
        return links

    def list_friends_of(
        self,
        handle: str,
        viewer_id: str | None = None,
        *,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> FriendPage | UserNotFound | FriendListPrivate:
        """Friend list of another user. Private users only show it to themselves and friends."""
        user = self._users.get_by_handle(handle)
        if user is None:
            return UserNotFound()
        if not user.is_public and viewer_id != user.id:
            if viewer_id is None:
                return FriendListPrivate()
            relationship = self._friends.get_relationship(user.id, viewer_id)
            if relationship != FriendshipStatus.ACCEPTED.value:
                return FriendListPrivate()
        return self._friends.list_friends(user.id, limit=limit, offset=offset)

    def mutual_friends_with(
        self, handle: str, viewer_id: str
    ) -> list[User] | UserNotFound:
        user = self._users.get_by_handle(handle)
        if user is None:
            return UserNotFound()
        return self._friends.get_mutual_friends(user.id, viewer_id)

    def update_profile(
        self,
        user_id: str,
        *,
        display_name: str | None = None,
        bio: str | None = None,
        is_public: bool | None = None,
    ) -> User | UserNotFound | Invalid:
        changes = {}
        if display_name is not None:
            changes["display_name"] = display_name
        if bio is not None:
            changes["bio"] = bio
        if is_public is not None:
            changes["is_public"] = is_public
        return self._apply(user_id, changes)

    def update_settings(
        self,
        user_id: str,
        *,
        is_public: bool | None = None,
        notify_friend_requests: bool | None = None,
        notify_friend_accepted: bool | None = None,
    ) -> User | UserNotFound | Invalid:
        changes = {
            key: value
            for key, value in (
                ("is_public", is_public),
                ("notify_friend_requests", notify_friend_requests),
                ("notify_friend_accepted", notify_friend_accepted),
            )
            if value is not None
        }
        return self._apply(user_id, changes)

    def _apply(self, user_id: str, changes: dict) -> User | UserNotFound | Invalid:
        if not changes:
            return Invalid(reason="No fields to update")
        user = self._users.get_by_id(user_id)
        if user is None:
            return UserNotFound()
        try:
            updated = replace(user, **changes)
        except ValueError as e:
            return Invalid(reason=str(e))
        self._users.update(updated)
        return updated

    def delete_account(
        self, user_id: str, confirm: bool = False
    ) -> AccountDeleted | UserNotFound | Invalid:
        """Remove the user with every friendship row, contact link and notification they own.

        Friendship rows go first so no former friend is left with a dangling edge.
        """
        if not confirm:
            return Invalid(reason="Account deletion requires confirm=true")
        if self._users.get_by_id(user_id) is None:
            return UserNotFound()

        removed = self._friends.remove_all_for_user(user_id)
        self._links.delete_all_for_user(user_id)
        if self._notifications is not None:
            self._notifications.delete_all_for_user(user_id)
        self._users.delete(user_id)
        logger.info("Deleted account %s", user_id)
        return AccountDeleted(user_id=user_id, friendships_removed=removed)
