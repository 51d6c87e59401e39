"""API tests against in-memory repositories. No Neo4j needed."""

import pytest
from fastapi.testclient import TestClient

from api.main import app, in_memory_services


@pytest.fixture
def client():
    app.state.services = in_memory_services()
    yield TestClient(app)
    app.state.services = None


def _register(client, handle, **extra) -> str:
    r = client.post("/users", json={"handle": handle, "display_name": handle.title(), **extra})
    assert r.status_code == 201
    return r.json()["id"]


def _as(user_id: str) -> dict:
    return {"X-User-Id": user_id}


def _befriend(client, a: str, b: str) -> None:
    assert client.post(f"/friends/request/{b}", headers=_as(a)).status_code == 201
    assert client.post(f"/friends/accept/{a}", headers=_as(b)).status_code == 200


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_register_duplicate_handle(client):
    _register(client, "alice")
    r = client.post("/users", json={"handle": "alice"})
    assert r.status_code == 400


def test_missing_user_header_is_401(client):
    assert client.get("/users/me/friends").status_code == 401
    assert client.post("/friends/request/anyone").status_code == 401
    assert client.get("/discover/suggestions", headers={"X-User-Id": "  "}).status_code == 401


def test_friend_request_flow_with_notifications(client):
    alice = _register(client, "alice")
    bob = _register(client, "bob")

    r = client.post(f"/friends/request/{bob}", headers=_as(alice))
    assert r.status_code == 201
    assert r.json() == {"message": "Friend request sent"}

    again = client.post(f"/friends/request/{alice}", headers=_as(bob))
    assert again.status_code == 400
    assert again.json()["detail"] == "Request already pending"

    requests = client.get("/users/me/friends/requests", headers=_as(bob)).json()["requests"]
    assert [p["id"] for p in requests] == [alice]

    inbox = client.get("/users/me/notifications", headers=_as(bob)).json()
    assert inbox["unread_count"] == 1
    assert inbox["notifications"][0]["type"] == "friend_request"
    assert inbox["notifications"][0]["message"] == "Alice sent you a friend request."

    own = client.post(f"/friends/accept/{bob}", headers=_as(alice))
    assert own.status_code == 400
    assert own.json()["detail"] == "Cannot accept your own request"

    assert client.post(f"/friends/accept/{alice}", headers=_as(bob)).status_code == 200
    page = client.get("/users/me/friends", headers=_as(alice)).json()
    assert page["total"] == 1
    assert page["friends"][0]["id"] == bob
    assert "since" in page["friends"][0]

    accepted = client.get("/users/me/notifications", headers=_as(alice)).json()
    assert accepted["notifications"][0]["type"] == "friend_accepted"

    assert client.delete(f"/friends/{alice}", headers=_as(bob)).status_code == 200
    assert client.delete(f"/friends/{alice}", headers=_as(bob)).status_code == 404
    assert client.get("/users/me/friends", headers=_as(alice)).json()["total"] == 0


def test_request_to_self_and_unknown_user(client):
    alice = _register(client, "alice")
    r = client.post(f"/friends/request/{alice}", headers=_as(alice))
    assert r.status_code == 400
    assert r.json()["detail"] == "Cannot friend yourself"
    assert client.post("/friends/request/nobody", headers=_as(alice)).status_code == 404


def test_notification_preferences(client):
    alice = _register(client, "alice")
    bob = _register(client, "bob")
    r = client.patch("/settings", json={"notify_friend_requests": False}, headers=_as(bob))
    assert r.status_code == 200
    assert r.json()["notify_friend_requests"] is False

    client.post(f"/friends/request/{bob}", headers=_as(alice))
    inbox = client.get("/users/me/notifications", headers=_as(bob)).json()
    assert inbox == {"notifications": [], "unread_count": 0}


def test_mark_notifications_read(client):
    alice = _register(client, "alice")
    bob = _register(client, "bob")
    client.post(f"/friends/request/{bob}", headers=_as(alice))
    item = client.get("/users/me/notifications", headers=_as(bob)).json()["notifications"][0]

    assert client.post(f"/users/me/notifications/{item['id']}/read", headers=_as(alice)).status_code == 404
    assert client.post(f"/users/me/notifications/{item['id']}/read", headers=_as(bob)).status_code == 200
    assert client.get("/users/me/notifications", headers=_as(bob)).json()["unread_count"] == 0
    r = client.post("/users/me/notifications/read-all", headers=_as(bob))
    assert r.json() == {"message": "All notifications marked as read"}


def test_profile_shows_links_per_viewer(client):
    alice = _register(client, "alice")
    bob = _register(client, "bob")
    _register(client, "carol")
    r = client.put(
        "/users/me/contacts",
        json={
            "contacts": [
                {"type": "phone", "label": "Mobile", "value": "+1 202 555 1234"},
                {"type": "instagram", "label": "IG", "value": "@alice", "visibility": "everyone"},
            ]
        },
        headers=_as(alice),
    )
    assert r.status_code == 200
    assert r.json()["contacts"][0]["value"] == "+12025551234"

    anonymous = client.get("/users/alice").json()
    assert [c["label"] for c in anonymous["contact_links"]] == ["IG"]
    assert anonymous["relationship"] is None

    _befriend(client, alice, bob)
    as_bob = client.get("/users/alice", headers=_as(bob)).json()
    assert [c["label"] for c in as_bob["contact_links"]] == ["Mobile", "IG"]
    assert all("visibility" not in c for c in as_bob["contact_links"])
    assert as_bob["relationship"] == "accepted"
    assert as_bob["mutual_friend_count"] == 0

    own = client.get("/users/alice", headers=_as(alice)).json()
    assert own["relationship"] == "none"
    assert own["mutual_friend_count"] == 0

    assert client.get("/users/nobody").status_code == 404


def test_invalid_contact_links_rejected(client):
    alice = _register(client, "alice")
    r = client.put(
        "/users/me/contacts",
        json={"contacts": [{"type": "phone", "value": "1", "visibility": "public"}]},
        headers=_as(alice),
    )
    assert r.status_code == 400
    assert client.get("/users/me/contacts", headers=_as(alice)).json() == {"contacts": []}


def test_private_friend_list_forbidden(client):
    alice = _register(client, "alice")
    bob = _register(client, "bob")
    carol = _register(client, "carol")
    _befriend(client, alice, bob)
    client.patch("/settings", json={"is_public": False}, headers=_as(alice))

    assert client.get("/users/alice/friends", headers=_as(carol)).status_code == 403
    assert client.get("/users/alice/friends").status_code == 403
    r = client.get("/users/alice/friends", headers=_as(bob))
    assert r.status_code == 200
    assert [f["id"] for f in r.json()["friends"]] == [bob]


def test_mutuals_and_suggestions(client):
    a = _register(client, "anna")
    b = _register(client, "ben")
    c = _register(client, "cleo")
    d = _register(client, "dave")
    _befriend(client, a, b)
    _befriend(client, a, c)
    _befriend(client, b, d)
    _befriend(client, c, d)

    mutuals = client.get("/users/dave/mutuals", headers=_as(a)).json()
    assert mutuals["count"] == 2
    assert {u["id"] for u in mutuals["mutuals"]} == {b, c}

    ranked = client.get("/discover/suggestions", headers=_as(a)).json()["suggestions"]
    assert [(s["id"], s["mutual_friend_count"]) for s in ranked] == [(d, 2)]


def test_search(client):
    alice = _register(client, "alice")
    _register(client, "malik")
    r = client.get("/discover/search", params={"q": "ali"}, headers=_as(alice))
    assert r.status_code == 200
    assert r.json()["query"] == "ali"
    assert len(r.json()["results"]) == 2
    assert client.get("/discover/search", params={"q": "a"}, headers=_as(alice)).status_code == 400


def test_update_profile(client):
    alice = _register(client, "alice")
    r = client.patch("/users/me", json={"bio": "hello"}, headers=_as(alice))
    assert r.status_code == 200
    assert r.json()["bio"] == "hello"
    assert client.patch("/users/me", json={}, headers=_as(alice)).status_code == 400
    assert client.patch("/users/me", json={"bio": "x"}, headers=_as("ghost")).status_code == 404


def test_update_profile_privacy(client):
    alice = _register(client, "alice")
    carol = _register(client, "carol")
    r = client.patch("/users/me", json={"is_public": False}, headers=_as(alice))
    assert r.status_code == 200
    assert client.get("/settings", headers=_as(alice)).json()["is_public"] is False
    assert client.get("/users/alice/friends", headers=_as(carol)).status_code == 403


def test_delete_account(client):
    alice = _register(client, "alice")
    bob = _register(client, "bob")
    _befriend(client, alice, bob)

    r = client.request("DELETE", "/settings/account", json={"confirm": False}, headers=_as(alice))
    assert r.status_code == 400
    assert client.request("DELETE", "/settings/account", headers=_as(alice)).status_code == 400

    r = client.request("DELETE", "/settings/account", json={"confirm": True}, headers=_as(alice))
    assert r.status_code == 200
    assert r.json() == {"message": "Account deleted successfully"}

    assert client.get("/users/alice").status_code == 404
    assert client.get("/users/me/friends", headers=_as(bob)).json()["total"] == 0
    again = client.request("DELETE", "/settings/account", json={"confirm": True}, headers=_as(alice))
    assert again.status_code == 404
