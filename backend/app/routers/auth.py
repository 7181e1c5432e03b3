import logging

from fastapi import APIRouter, Depends, Request, Response, status

from ..admin.dependencies import get_audit_service
from ..admin.services.audit_service import AuditService
from ..application.auth_rate_limit import LoginRateLimiter, RateLimitExceededError
from ..auth.sessions import SessionStore
from ..config import settings
from ..crud.admin_user import AdminUserRepository
from ..dependencies import (
    get_admin_user_repository,
    get_login_rate_limiter,
    get_session_id,
    get_session_store,
)
from ..errors import AuthError, RateLimitError, ValidationError
from ..schemas.auth import AdminLoginRequest, AdminLoginResponse, AdminSessionStatus
from ..utils.security import verify_admin_credentials

logger = logging.getLogger("storefront_admin.auth")

router = APIRouter(prefix="/admin/login", tags=["auth"])


def _client_ip(request: Request) -> str:
    client_host = request.client.host if request.client else None
    return client_host or "unknown-ip"


@router.post("", response_model=AdminLoginResponse)
async def login(
    payload: AdminLoginRequest,
    request: Request,
    response: Response,
    sessions: SessionStore = Depends(get_session_store),
    repo: AdminUserRepository = Depends(get_admin_user_repository),
    audit: AuditService = Depends(get_audit_service),
    limiter: LoginRateLimiter = Depends(get_login_rate_limiter),
) -> AdminLoginResponse:
    if not payload.email or not payload.password:
        raise ValidationError("Email and password are required")

    client_ip = _client_ip(request)
    try:
        limit_key = await limiter.check(payload.email, client_ip)
    except RateLimitExceededError:
        raise RateLimitError() from None

    if not verify_admin_credentials(
        payload.email,
        payload.password,
        expected_email=settings.admin_email,
        expected_password_hash=settings.admin_password_hash,
    ):
        await limiter.record_failure(limit_key)
        await audit.log_admin_action(
            actor_id=None,
            action="admin.login.failed",
            target_type="session",
            target_id=client_ip,
        )
        raise AuthError("Invalid email or password")

    await limiter.reset(limit_key)
    session_id = await sessions.create(settings.admin_email)

    admin_user = await repo.get_by_email(settings.admin_email)
    if admin_user is not None:
        await repo.touch_last_login(admin_user)
    else:
        logger.warning("Admin login succeeded but no admin user record exists for the account")

    await audit.log_admin_action(
        actor_id=admin_user.uid if admin_user else None,
        action="admin.login",
        target_type="session",
        target_id=client_ip,
    )

    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        max_age=settings.session_ttl_seconds,
        path="/",
    )
    return AdminLoginResponse(success=True, message="Login successful")


@router.get("", response_model=AdminSessionStatus)
async def session_status(
    session_id: str | None = Depends(get_session_id),
    sessions: SessionStore = Depends(get_session_store),
) -> AdminSessionStatus:
    return AdminSessionStatus(authenticated=await sessions.get(session_id) is not None)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    session_id: str | None = Depends(get_session_id),
    sessions: SessionStore = Depends(get_session_store),
) -> Response:
    await sessions.revoke(session_id)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(settings.session_cookie_name, path="/")
    return response
