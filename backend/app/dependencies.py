import logging
from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from .application.auth_rate_limit import LoginRateLimiter
from .auth.principal import AdminPrincipal
from .auth.sessions import SessionStore
from .config import settings
from .crud.admin_user import AdminUserRepository
from .database import get_session
from .errors import AuthError
from .infrastructure.redis import get_redis

logger = logging.getLogger("storefront_admin.auth")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


def get_admin_user_repository(db: AsyncSession = Depends(get_db)) -> AdminUserRepository:
    return AdminUserRepository(db)


def get_session_store() -> SessionStore:
    return SessionStore(get_redis(), settings.session_ttl_seconds)


def get_login_rate_limiter() -> LoginRateLimiter:
    return LoginRateLimiter(get_redis())


def get_session_id(request: Request) -> str | None:
    return request.cookies.get(settings.session_cookie_name)


async def get_current_principal_optional(
    session_id: str | None = Depends(get_session_id),
    sessions: SessionStore = Depends(get_session_store),
    repo: AdminUserRepository = Depends(get_admin_user_repository),
) -> AdminPrincipal | None:
    """Resolve the signed-in admin, or None when there is no usable session."""
    email = await sessions.get(session_id)
    if email is None:
        return None

    admin_user = await repo.get_by_email(email)
    if admin_user is None or not admin_user.is_active:
        logger.warning("Session bound to unknown or inactive admin user")
        return None

    return AdminPrincipal.from_record(admin_user)


async def get_current_principal(
    principal: AdminPrincipal | None = Depends(get_current_principal_optional),
) -> AdminPrincipal:
    if principal is None:
        raise AuthError("Not authenticated")
    return principal
