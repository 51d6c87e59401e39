"""Domain entity validation."""

import pytest

from linkbook.domain import (
    ContactLink,
    ContactLinkType,
    Friendship,
    FriendshipStatus,
    User,
    canonical_pair,
)


def test_canonical_pair_orders_ids():
    assert canonical_pair("b", "a") == ("a", "b")
    assert canonical_pair("a", "b") == ("a", "b")
    assert canonical_pair("A", "a") == ("A", "a")


def test_friendship_requires_canonical_distinct_pair():
    with pytest.raises(ValueError):
        Friendship(user_a="a", user_b="a", initiated_by="a")
    with pytest.raises(ValueError):
        Friendship(user_a="b", user_b="a", initiated_by="a")
    with pytest.raises(ValueError):
        Friendship(user_a="a", user_b="b", initiated_by="c")


def test_friendship_coerces_status_and_other():
    row = Friendship(user_a="a", user_b="b", initiated_by="b", status="accepted")
    assert row.status is FriendshipStatus.ACCEPTED
    assert row.other("a") == "b"
    assert row.other("b") == "a"
    assert row.involves("a") and not row.involves("c")
    with pytest.raises(ValueError):
        row.other("c")


def test_user_fields_stripped_and_limited():
    user = User(handle="  alice ", display_name=" Alice ")
    assert user.handle == "alice"
    assert user.display_name == "Alice"
    assert user.is_public is True
    assert user.created_at.tzinfo is not None
    with pytest.raises(ValueError):
        User(handle=" ")
    with pytest.raises(ValueError):
        User(handle="x", display_name="n" * 501)


def test_contact_link_requires_value_and_known_type():
    link = ContactLink(user_id="u", type="signal", label="Signal", value="+12025551234")
    assert link.type is ContactLinkType.SIGNAL
    assert link.visibility == "friends_only"
    with pytest.raises(ValueError):
        ContactLink(user_id="u", type="phone", label="x", value=" ")
    with pytest.raises(ValueError):
        ContactLink(user_id="u", type="pager", label="x", value="1")
