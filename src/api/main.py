"""
FastAPI backend: profiles, contact links, friendships, discovery, notifications.
Run with uvicorn: uvicorn api.main:app --reload

The caller is identified by the X-User-Id header (token issuance lives elsewhere).
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

# Load .env from repo root (when run from repo root or from Docker)
for path in (
    Path(__file__).resolve().parent.parent.parent / ".env",
    Path.cwd() / ".env",
):
    if path.exists():
        load_dotenv(path)
        break

from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from neo4j import GraphDatabase
from pydantic import BaseModel

from linkbook.application import (
    ContactLinkDraft,
    DiscoveryService,
    FriendListPrivate,
    FriendPage,
    FriendService,
    FriendshipNotifier,
    Invalid,
    NotFound,
    NotificationNotFound,
    NotificationService,
    ProfileService,
    RequestAccepted,
    RequestSent,
    StorageError,
    UserNotFound,
    UserRepository,
    VisibilityResolver,
)
from linkbook.domain import ContactLink, Notification, User
from linkbook.infrastructure import (
    InMemoryContactLinkRepository,
    InMemoryFriendshipRepository,
    InMemoryNotificationRepository,
    InMemoryUserRepository,
    Neo4jContactLinkRepository,
    Neo4jFriendshipRepository,
    Neo4jNotificationRepository,
    Neo4jUserRepository,
    PhoneNormalizer,
    ensure_constraints,
)

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
)
logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"
STORE_MEMORY = "memory"
STORE_NEO4J = "neo4j"


def _store_backend() -> str:
    return os.environ.get("LINKBOOK_STORE", STORE_NEO4J).strip().lower() or STORE_NEO4J


def _get_driver():
    uri = os.environ.get("NEO4J_URI", "bolt://localhost:7687").strip()
    user = os.environ.get("NEO4J_USER", "neo4j").strip()
    password = os.environ.get("NEO4J_PASSWORD", "password").strip()
    return GraphDatabase.driver(uri, auth=(user, password))


@dataclass
class Services:
    """Use cases wired to one set of repositories."""

    users: UserRepository
    friends: FriendService
    visibility: VisibilityResolver
    discovery: DiscoveryService
    profiles: ProfileService
    notifier: FriendshipNotifier
    inbox: NotificationService


def build_services(users, friendships, contact_links, notifications) -> Services:
    friends = FriendService(friendships, users)
    visibility = VisibilityResolver(friends)
    default_region = os.environ.get("DEFAULT_PHONE_REGION", "").strip() or None
    return Services(
        users=users,
        friends=friends,
        visibility=visibility,
        discovery=DiscoveryService(friends, users),
        profiles=ProfileService(
            users,
            contact_links,
            friends,
            visibility,
            normalize_phone=PhoneNormalizer(default_region),
            notifications=notifications,
        ),
        notifier=FriendshipNotifier(users, notifications),
        inbox=NotificationService(notifications),
    )


def in_memory_services() -> Services:
    return build_services(
        InMemoryUserRepository(),
        InMemoryFriendshipRepository(),
        InMemoryContactLinkRepository(),
        InMemoryNotificationRepository(),
    )


def neo4j_services(driver) -> Services:
    return build_services(
        Neo4jUserRepository(driver),
        Neo4jFriendshipRepository(driver),
        Neo4jContactLinkRepository(driver),
        Neo4jNotificationRepository(driver),
    )


def get_services(app: FastAPI) -> Services:
    if getattr(app.state, "services", None) is None:
        if _store_backend() == STORE_MEMORY:
            app.state.services = in_memory_services()
        else:
            if getattr(app.state, "driver", None) is None:
                app.state.driver = _get_driver()
            app.state.services = neo4j_services(app.state.driver)
    return app.state.services


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.driver = None
    app.state.services = None
    backend = _store_backend()
    logger.info("Linkbook API starting with %s store", backend)
    try:
        if backend == STORE_NEO4J:
            app.state.driver = _get_driver()
            ensure_constraints(app.state.driver)
        yield
    finally:
        if getattr(app.state, "driver", None) is not None:
            app.state.driver.close()


app = FastAPI(title="Linkbook API", lifespan=lifespan)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def _require_user(x_user_id: str | None) -> str:
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail=f"Missing {USER_ID_HEADER} header")
    return user_id


def _viewer(x_user_id: str | None) -> str | None:
    return (x_user_id or "").strip() or None


# --- Response models ---


class UserOut(BaseModel):
    id: str
    handle: str
    display_name: str
    bio: str = ""
    avatar_url: str | None = None

    @classmethod
    def of(cls, user: User) -> "UserOut":
        return cls(
            id=user.id,
            handle=user.handle,
            display_name=user.display_name,
            bio=user.bio,
            avatar_url=user.avatar_url,
        )


class FriendOut(UserOut):
    since: datetime


class FriendPageOut(BaseModel):
    friends: list[FriendOut]
    total: int


class PendingRequestOut(UserOut):
    requested_at: datetime


class SuggestionOut(UserOut):
    mutual_friend_count: int


class ContactLinkOut(BaseModel):
    id: str
    type: str
    label: str
    value: str
    sort_order: int
    visibility: str

    @classmethod
    def of(cls, link: ContactLink) -> "ContactLinkOut":
        return cls(
            id=link.id,
            type=link.type.value,
            label=link.label,
            value=link.value,
            sort_order=link.sort_order,
            visibility=link.visibility,
        )


class PublicContactLinkOut(BaseModel):
    """A contact link as shown on a profile. The visibility level stays private to the owner."""

    id: str
    type: str
    label: str
    value: str
    sort_order: int

    @classmethod
    def of(cls, link: ContactLink) -> "PublicContactLinkOut":
        return cls(
            id=link.id,
            type=link.type.value,
            label=link.label,
            value=link.value,
            sort_order=link.sort_order,
        )


class ProfileOut(UserOut):
    is_public: bool
    created_at: datetime
    contact_links: list[PublicContactLinkOut]
    relationship: str | None = None
    mutual_friend_count: int | None = None


class SettingsOut(BaseModel):
    is_public: bool
    notify_friend_requests: bool
    notify_friend_accepted: bool

    @classmethod
    def of(cls, user: User) -> "SettingsOut":
        return cls(
            is_public=user.is_public,
            notify_friend_requests=user.notify_friend_requests,
            notify_friend_accepted=user.notify_friend_accepted,
        )


class NotificationOut(BaseModel):
    id: str
    type: str
    from_user_id: str | None
    message: str
    read: bool
    created_at: datetime

    @classmethod
    def of(cls, n: Notification) -> "NotificationOut":
        return cls(
            id=n.id,
            type=n.type.value,
            from_user_id=n.from_user_id,
            message=n.message,
            read=n.read,
            created_at=n.created_at,
        )


def _page_out(page: FriendPage) -> FriendPageOut:
    return FriendPageOut(
        friends=[
            FriendOut(**UserOut.of(entry.user).model_dump(), since=entry.since)
            for entry in page.friends
        ],
        total=page.total,
    )


# --- Request bodies ---


class RegisterBody(BaseModel):
    handle: str
    display_name: str = ""
    email: str = ""


class ContactLinkBody(BaseModel):
    type: str
    label: str = ""
    value: str
    sort_order: int | None = None
    visibility: str | None = None


class ReplaceContactsBody(BaseModel):
    contacts: list[ContactLinkBody]


class UpdateProfileBody(BaseModel):
    display_name: str | None = None
    bio: str | None = None
    is_public: bool | None = None


class UpdateSettingsBody(BaseModel):
    is_public: bool | None = None
    notify_friend_requests: bool | None = None
    notify_friend_accepted: bool | None = None


class DeleteAccountBody(BaseModel):
    confirm: bool = False


# --- REST: health ---


@app.get("/health")
def health():
    return {"status": "ok"}


# --- REST: users and profiles ---


@app.post("/users", status_code=201)
def register(body: RegisterBody, request: Request) -> UserOut:
    result = get_services(request.app).profiles.register(
        body.handle, display_name=body.display_name, email=body.email
    )
    if isinstance(result, Invalid):
        raise HTTPException(status_code=400, detail=result.reason)
    return UserOut.of(result)


@app.patch("/users/me")
def update_profile(
    body: UpdateProfileBody,
    request: Request,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> UserOut:
    user_id = _require_user(x_user_id)
    result = get_services(request.app).profiles.update_profile(
        user_id,
        display_name=body.display_name,
        bio=body.bio,
        is_public=body.is_public,
    )
    if isinstance(result, UserNotFound):
        raise HTTPException(status_code=404, detail=result.reason)
    if isinstance(result, Invalid):
        raise HTTPException(status_code=400, detail=result.reason)
    return UserOut.of(result)


@app.get("/users/me/contacts")
def list_own_contacts(
    request: Request,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
):
    user_id = _require_user(x_user_id)
    links = get_services(request.app).profiles.get_contact_links(user_id)
    return {"contacts": [ContactLinkOut.of(link) for link in links]}


@app.put("/users/me/contacts")
def replace_contacts(
    body: ReplaceContactsBody,
    request: Request,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
):
    user_id = _require_user(x_user_id)
    drafts = [ContactLinkDraft(**c.model_dump()) for c in body.contacts]
    result = get_services(request.app).profiles.replace_contact_links(user_id, drafts)
    if isinstance(result, Invalid):
        raise HTTPException(status_code=400, detail=result.reason)
    return {"contacts": [ContactLinkOut.of(link) for link in result]}


# --- REST: own friends ---


@app.get("/users/me/friends")
def list_my_friends(
    request: Request,
    limit: int = Query(20, ge=0),
    offset: int = Query(0, ge=0),
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> FriendPageOut:
    user_id = _require_user(x_user_id)
    page = get_services(request.app).friends.list_friends(user_id, limit=limit, offset=offset)
    return _page_out(page)


@app.get("/users/me/friends/requests")
def list_friend_requests(
    request: Request,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
):
    user_id = _require_user(x_user_id)
    pending = get_services(request.app).friends.list_pending_requests(user_id)
    return {
        "requests": [
            PendingRequestOut(**UserOut.of(p.user).model_dump(), requested_at=p.requested_at)
            for p in pending
        ]
    }


# --- REST: notifications ---


@app.get("/users/me/notifications")
def list_notifications(
    request: Request,
    limit: int = Query(20, ge=0),
    offset: int = Query(0, ge=0),
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
):
    user_id = _require_user(x_user_id)
    inbox = get_services(request.app).inbox
    items = inbox.list_for_user(user_id, limit=limit, offset=offset)
    return {
        "notifications": [NotificationOut.of(n) for n in items],
        "unread_count": inbox.unread_count(user_id),
    }


@app.post("/users/me/notifications/read-all")
def mark_all_notifications_read(
    request: Request,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
):
    user_id = _require_user(x_user_id)
    get_services(request.app).inbox.mark_all_read(user_id)
    return {"message": "All notifications marked as read"}


@app.post("/users/me/notifications/{notification_id}/read")
def mark_notification_read(
    notification_id: str,
    request: Request,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
):
    user_id = _require_user(x_user_id)
    result = get_services(request.app).inbox.mark_read(notification_id, user_id)
    if isinstance(result, NotificationNotFound):
        raise HTTPException(status_code=404, detail=result.reason)
    return {"message": "Marked as read"}


# --- REST: other users ---


@app.get("/users/{handle}")
def get_profile(
    handle: str,
    request: Request,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> ProfileOut:
    result = get_services(request.app).profiles.get_profile(handle, _viewer(x_user_id))
    if isinstance(result, UserNotFound):
        raise HTTPException(status_code=404, detail=result.reason)
    user = result.user
    return ProfileOut(
        **UserOut.of(user).model_dump(),
        is_public=user.is_public,
        created_at=user.created_at,
        contact_links=[PublicContactLinkOut.of(link) for link in result.contact_links],
        relationship=result.relationship,
        mutual_friend_count=result.mutual_friend_count,
    )


@app.get("/users/{handle}/friends")
def list_friends_of(
    handle: str,
    request: Request,
    limit: int = Query(20, ge=0),
    offset: int = Query(0, ge=0),
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> FriendPageOut:
    result = get_services(request.app).profiles.list_friends_of(
        handle, _viewer(x_user_id), limit=limit, offset=offset
    )
    if isinstance(result, UserNotFound):
        raise HTTPException(status_code=404, detail=result.reason)
    if isinstance(result, FriendListPrivate):
        raise HTTPException(status_code=403, detail=result.reason)
    return _page_out(result)


@app.get("/users/{handle}/mutuals")
def list_mutuals(
    handle: str,
    request: Request,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
):
    viewer_id = _require_user(x_user_id)
    result = get_services(request.app).profiles.mutual_friends_with(handle, viewer_id)
    if isinstance(result, UserNotFound):
        raise HTTPException(status_code=404, detail=result.reason)
    return {"mutuals": [UserOut.of(u) for u in result], "count": len(result)}


# --- REST: friendship transitions ---


@app.post("/friends/request/{user_id}", status_code=201)
def send_friend_request(
    user_id: str,
    request: Request,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
):
    from_id = _require_user(x_user_id)
    services = get_services(request.app)
    if services.users.get_by_id(user_id) is None:
        raise HTTPException(status_code=404, detail="User not found")
    result = services.friends.send_request(from_id, user_id)
    if not isinstance(result, RequestSent):
        raise HTTPException(status_code=400, detail=result.reason)
    services.notifier.request_sent(from_id, user_id)
    return {"message": "Friend request sent"}


@app.post("/friends/accept/{user_id}")
def accept_friend_request(
    user_id: str,
    request: Request,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
):
    accepting_id = _require_user(x_user_id)
    services = get_services(request.app)
    result = services.friends.accept_request(accepting_id, user_id)
    if not isinstance(result, RequestAccepted):
        raise HTTPException(status_code=400, detail=result.reason)
    services.notifier.request_accepted(accepting_id, user_id)
    return {"message": "Friend request accepted"}


@app.delete("/friends/{user_id}")
def remove_friend(
    user_id: str,
    request: Request,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
):
    me = _require_user(x_user_id)
    result = get_services(request.app).friends.remove_friendship(me, user_id)
    if isinstance(result, NotFound):
        raise HTTPException(status_code=404, detail=result.reason)
    return {"message": "Friendship removed"}


# --- REST: discovery ---


@app.get("/discover/suggestions")
def suggestions(
    request: Request,
    limit: int = Query(20, ge=0),
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
):
    user_id = _require_user(x_user_id)
    ranked = get_services(request.app).discovery.suggest_friends(user_id, limit)
    return {
        "suggestions": [
            SuggestionOut(
                **UserOut.of(s.user).model_dump(),
                mutual_friend_count=s.mutual_friend_count,
            )
            for s in ranked
        ]
    }


@app.get("/discover/search")
def search(
    request: Request,
    q: str = "",
    limit: int = Query(20, ge=0),
    offset: int = Query(0, ge=0),
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
):
    _require_user(x_user_id)
    result = get_services(request.app).discovery.search_users(q, limit=limit, offset=offset)
    if isinstance(result, Invalid):
        raise HTTPException(status_code=400, detail=result.reason)
    return {"results": [UserOut.of(u) for u in result.results], "query": result.query}


# --- REST: settings ---


@app.get("/settings")
def get_settings(
    request: Request,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> SettingsOut:
    user_id = _require_user(x_user_id)
    user = get_services(request.app).users.get_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return SettingsOut.of(user)


@app.patch("/settings")
def update_settings(
    body: UpdateSettingsBody,
    request: Request,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
) -> SettingsOut:
    user_id = _require_user(x_user_id)
    result = get_services(request.app).profiles.update_settings(
        user_id,
        is_public=body.is_public,
        notify_friend_requests=body.notify_friend_requests,
        notify_friend_accepted=body.notify_friend_accepted,
    )
    if isinstance(result, UserNotFound):
        raise HTTPException(status_code=404, detail=result.reason)
    if isinstance(result, Invalid):
        raise HTTPException(status_code=400, detail=result.reason)
    return SettingsOut.of(result)


@app.delete("/settings/account")
def delete_account(
    request: Request,
    body: DeleteAccountBody | None = None,
    x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
):
    user_id = _require_user(x_user_id)
    confirm = body.confirm if body is not None else False
    result = get_services(request.app).profiles.delete_account(user_id, confirm)
    if isinstance(result, Invalid):
        raise HTTPException(status_code=400, detail=result.reason)
    if isinstance(result, UserNotFound):
        raise HTTPException(status_code=404, detail=result.reason)
    return {"message": "Account deleted successfully"}
