"""Fakes and app factory shared by the admin API tests."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.admin.dependencies import get_audit_service
from app.admin.router import router as admin_router
from app.application.auth_rate_limit import LoginRateLimiter
from app.auth import rbac_contract
from app.auth.sessions import SessionStore
from app.dependencies import (
    get_admin_user_repository,
    get_login_rate_limiter,
    get_session_store,
)
from app.routers.auth import router as login_router
from app.utils.security import hash_password

ADMIN_EMAIL = "owner@example.com"
ADMIN_PASSWORD = "correct-horse-battery"
# Minimum bcrypt cost keeps the login tests fast
ADMIN_PASSWORD_HASH = hash_password(ADMIN_PASSWORD, rounds=4)


@dataclass
class FakeAdminUser:
    uid: str
    email: str
    role: str
    permissions: list[str]
    display_name: str | None = None
    is_active: bool = True
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_login_at: datetime | None = None


class FakeAdminUserRepository:
    """In-memory stand-in for AdminUserRepository."""

    def __init__(self, users: list[FakeAdminUser] | None = None) -> None:
        self.users: dict[str, FakeAdminUser] = {u.uid: u for u in users or []}

    def add(self, uid: str, email: str, role: str, permissions, **kwargs) -> FakeAdminUser:
        user = FakeAdminUser(
            uid=uid,
            email=email,
            role=role,
            permissions=sorted({getattr(p, "value", p) for p in permissions}),
            **kwargs,
        )
        self.users[uid] = user
        return user

    async def get_by_uid(self, uid: str) -> FakeAdminUser | None:
        return self.users.get(uid)

    async def get_by_email(self, email: str) -> FakeAdminUser | None:
        return next((u for u in self.users.values() if u.email == email), None)

    async def list_all(self, include_inactive: bool = False) -> list[FakeAdminUser]:
        return [u for u in self.users.values() if include_inactive or u.is_active]

    async def create(self, uid, email, role, permissions=None, display_name=None) -> FakeAdminUser:
        if permissions is None:
            permissions = rbac_contract.default_permissions_for(role)
        return self.add(uid, email, role, permissions, display_name=display_name)

    async def update_role(self, admin_user: FakeAdminUser, role: str) -> FakeAdminUser:
        admin_user.role = role
        return admin_user

    async def update_permissions(self, admin_user: FakeAdminUser, permissions) -> FakeAdminUser:
        admin_user.permissions = sorted(set(permissions))
        return admin_user

    async def touch_last_login(self, admin_user: FakeAdminUser) -> None:
        admin_user.last_login_at = datetime.now(timezone.utc)

    async def delete(self, admin_user: FakeAdminUser) -> None:
        self.users.pop(admin_user.uid, None)


class FakeRedisClient:
    """Dict-backed stand-in for infrastructure.redis.RedisClient.

    Keys expire against a manual clock moved with ``advance``.
    """

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.now = 0.0
        self._expires_at: dict[str, float] = {}

    def advance(self, seconds: float) -> None:
        self.now += seconds
        self._evict_expired()

    def _evict_expired(self) -> None:
        for key, expires_at in list(self._expires_at.items()):
            if expires_at <= self.now:
                self._forget(key)

    def _forget(self, key: str) -> None:
        self.values.pop(key, None)
        self.ttls.pop(key, None)
        self._expires_at.pop(key, None)

    async def set_expiring(self, key: str, value: str, ttl_seconds: int) -> None:
        self.values[key] = value
        self.ttls[key] = ttl_seconds
        self._expires_at[key] = self.now + ttl_seconds

    async def incr_expiring(self, key: str, ttl_seconds: int) -> int:
        self._evict_expired()
        count = int(self.values.get(key, 0)) + 1
        self.values[key] = str(count)
        if count == 1:
            self.ttls[key] = ttl_seconds
            self._expires_at[key] = self.now + ttl_seconds
        return count

    async def get(self, key: str) -> str | None:
        self._evict_expired()
        return self.values.get(key)

    async def delete(self, key: str) -> None:
        self._forget(key)


def make_admin_client(
    repo: FakeAdminUserRepository,
    redis_client: FakeRedisClient,
    audit=None,
    ttl_seconds: int = 3600,
) -> TestClient:
    # app.main builds the full application at import time, so import it late
    from app.main import register_exception_handlers

    app = FastAPI()
    app.include_router(login_router)
    app.include_router(admin_router)
    register_exception_handlers(app)

    sessions = SessionStore(redis_client, ttl_seconds)  # type: ignore[arg-type]

    app.dependency_overrides[get_admin_user_repository] = lambda: repo
    app.dependency_overrides[get_session_store] = lambda: sessions
    app.dependency_overrides[get_login_rate_limiter] = lambda: LoginRateLimiter(redis_client)  # type: ignore[arg-type]
    if audit is not None:
        app.dependency_overrides[get_audit_service] = lambda: audit

    return TestClient(app)
