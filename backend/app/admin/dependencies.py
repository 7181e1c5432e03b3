"""
Admin Dependencies - permission gates for admin endpoints.

Every privileged route re-checks the caller's permissions server-side with
the permission evaluator. UI checks are a usability aid only.

Each gate verifies:
- User is authenticated (401 if not)
- User has the required permission(s) (403 if not)

Denials are audit-logged with the reason they were denied. The reason never
changes the decision.
"""
from __future__ import annotations

from typing import Any, Callable

from fastapi import Depends, Request

from app.admin.services.audit_service import AuditService
from app.auth.evaluator import DenialReason, explain_denial, has_all_permissions
from app.auth.principal import AdminPrincipal
from app.dependencies import get_current_principal_optional
from app.errors import AccessDeniedError, AuthError


def get_audit_service() -> AuditService:
    return AuditService()


def _permission_names(permissions: tuple[Any, ...]) -> list[str]:
    return [getattr(p, "value", p) for p in permissions]


def _first_denial(
    principal: AdminPrincipal | None, permission_names: list[str]
) -> DenialReason:
    for name in permission_names:
        reason = explain_denial(principal, name)
        if reason is not None:
            return reason
    return DenialReason.MISSING_PERMISSION


def require_admin_permissions(*permissions: Any) -> Callable:
    """
    Enforce that the caller holds ALL of ``permissions``.

    Args:
        *permissions: AdminPermission members or identifier strings

    Returns:
        Dependency function returning the resolved principal
    """
    permission_names = _permission_names(permissions)

    async def dependency(
        request: Request,
        principal: AdminPrincipal | None = Depends(get_current_principal_optional),
        audit: AuditService = Depends(get_audit_service),
    ) -> AdminPrincipal:
        # An empty requirement list is not a free pass for anonymous callers
        if principal is not None and has_all_permissions(principal, permission_names):
            return principal

        reason = (
            DenialReason.UNAUTHENTICATED
            if principal is None
            else _first_denial(principal, permission_names)
        )
        await audit.log_permission_denied(
            principal=principal,
            required_permissions=permission_names,
            reason=reason,
            request_method=request.method,
            request_path=request.url.path,
        )

        if principal is None:
            raise AuthError("Not authenticated")
        raise AccessDeniedError(
            details={"required_permissions": permission_names},
        )

    return dependency


def require_admin_permission(permission: Any) -> Callable:
    """Enforce a single permission. See ``require_admin_permissions``."""
    return require_admin_permissions(permission)
