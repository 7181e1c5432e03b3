"""
Tests for admin permission denial logging.

This test suite verifies that:
1. Permission denials are audit-logged with the reason they were denied
2. Successful permission checks are NOT logged
3. Unauthenticated callers get 401, authenticated callers get 403
4. Audit logging failures don't break 403 responses
"""
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import Request, status

from app.admin.dependencies import require_admin_permission, require_admin_permissions
from app.admin.services.audit_service import AuditService
from app.auth.evaluator import DenialReason
from app.auth.principal import AdminPrincipal
from app.auth.rbac_contract import AdminPermission
from app.errors import AccessDeniedError, AuthError


def _request(method: str = "GET", path: str = "/admin/users") -> MagicMock:
    request = MagicMock(spec=Request)
    request.method = method
    request.url.path = path
    return request


def _principal(role: str = "general", permissions=("admin.login",)) -> AdminPrincipal:
    return AdminPrincipal(
        uid="staff-1",
        email="staff@example.com",
        role=role,
        permissions=permissions,
    )


class TestPermissionDenialAudit:
    """Test audit logging for permission denials."""

    @pytest.mark.anyio
    async def test_single_permission_denial_creates_audit_log(self):
        audit = MagicMock(spec=AuditService)
        audit.log_permission_denied = AsyncMock()
        dependency = require_admin_permission(AdminPermission.ADMIN_LIST_EDIT)

        with pytest.raises(AccessDeniedError) as exc_info:
            await dependency(request=_request(), principal=_principal(), audit=audit)

        assert exc_info.value.status_code == status.HTTP_403_FORBIDDEN
        assert exc_info.value.details == {"required_permissions": ["admin.list.edit"]}

        audit.log_permission_denied.assert_called_once()
        call_kwargs = audit.log_permission_denied.call_args.kwargs
        assert call_kwargs["principal"].uid == "staff-1"
        assert call_kwargs["required_permissions"] == ["admin.list.edit"]
        assert call_kwargs["reason"] == DenialReason.MISSING_PERMISSION
        assert call_kwargs["request_method"] == "GET"
        assert call_kwargs["request_path"] == "/admin/users"

    @pytest.mark.anyio
    async def test_multiple_permissions_denial_reports_first_missing(self):
        audit = MagicMock(spec=AuditService)
        audit.log_permission_denied = AsyncMock()
        dependency = require_admin_permissions(
            AdminPermission.ADMIN_LIST_EDIT,
            AdminPermission.ADMIN_PERMISSIONS_EDIT,
        )
        principal = _principal(role="admin", permissions=("admin.login", "admin.list.edit"))

        with pytest.raises(AccessDeniedError):
            await dependency(
                request=_request("POST", "/admin/users"), principal=principal, audit=audit
            )

        call_kwargs = audit.log_permission_denied.call_args.kwargs
        assert call_kwargs["required_permissions"] == [
            "admin.list.edit",
            "admin.permissions.edit",
        ]
        assert call_kwargs["reason"] == DenialReason.MISSING_PERMISSION
        assert call_kwargs["request_method"] == "POST"

    @pytest.mark.anyio
    async def test_unknown_role_reason(self):
        audit = MagicMock(spec=AuditService)
        audit.log_permission_denied = AsyncMock()
        dependency = require_admin_permission(AdminPermission.ORDERS_EDIT)

        with pytest.raises(AccessDeniedError):
            await dependency(
                request=_request(), principal=_principal(role="owner"), audit=audit
            )

        call_kwargs = audit.log_permission_denied.call_args.kwargs
        assert call_kwargs["reason"] == DenialReason.UNKNOWN_ROLE

    @pytest.mark.anyio
    async def test_unauthenticated_is_401(self):
        audit = MagicMock(spec=AuditService)
        audit.log_permission_denied = AsyncMock()
        dependency = require_admin_permission(AdminPermission.ADMIN_LOGIN)

        with pytest.raises(AuthError) as exc_info:
            await dependency(request=_request(), principal=None, audit=audit)

        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED
        call_kwargs = audit.log_permission_denied.call_args.kwargs
        assert call_kwargs["principal"] is None
        assert call_kwargs["reason"] == DenialReason.UNAUTHENTICATED

    @pytest.mark.anyio
    async def test_empty_requirement_still_needs_a_principal(self):
        audit = MagicMock(spec=AuditService)
        audit.log_permission_denied = AsyncMock()
        dependency = require_admin_permissions()

        with pytest.raises(AuthError):
            await dependency(request=_request(), principal=None, audit=audit)

        principal = _principal(permissions=())
        assert await dependency(request=_request(), principal=principal, audit=audit) is principal

    @pytest.mark.anyio
    async def test_successful_permission_check_no_audit_log(self):
        audit = MagicMock(spec=AuditService)
        audit.log_permission_denied = AsyncMock()
        dependency = require_admin_permission(AdminPermission.ADMIN_LOGIN)
        principal = _principal()

        result = await dependency(request=_request(), principal=principal, audit=audit)

        assert result is principal
        audit.log_permission_denied.assert_not_called()

    @pytest.mark.anyio
    async def test_multiple_permissions_successful_no_audit(self):
        audit = MagicMock(spec=AuditService)
        audit.log_permission_denied = AsyncMock()
        dependency = require_admin_permissions(
            AdminPermission.ADMIN_LIST_EDIT,
            AdminPermission.ADMIN_PERMISSIONS_EDIT,
        )
        principal = _principal(
            role="super_admin",
            permissions=("admin.list.edit", "admin.permissions.edit"),
        )

        await dependency(request=_request("POST"), principal=principal, audit=audit)

        audit.log_permission_denied.assert_not_called()

    @pytest.mark.anyio
    async def test_high_role_without_permission_is_denied(self):
        audit = MagicMock(spec=AuditService)
        audit.log_permission_denied = AsyncMock()
        dependency = require_admin_permission(AdminPermission.SECURITY_MANAGE)

        with pytest.raises(AccessDeniedError):
            await dependency(
                request=_request(),
                principal=_principal(role="super_admin", permissions=()),
                audit=audit,
            )

    @pytest.mark.anyio
    async def test_audit_failure_still_returns_403(self, caplog):
        """A failing audit sink never turns a denial into an allow."""
        dependency = require_admin_permission(AdminPermission.ADMIN_LIST_EDIT)
        audit = AuditService()
        audit._emit = MagicMock(side_effect=Exception("sink down"))  # type: ignore[method-assign]

        with caplog.at_level(logging.ERROR):
            with pytest.raises(AccessDeniedError) as exc_info:
                await dependency(request=_request(), principal=_principal(), audit=audit)

        assert exc_info.value.status_code == status.HTTP_403_FORBIDDEN
        audit._emit.assert_called_once()
        assert "Audit logging failed" in caplog.text


class TestAuditServiceEntries:
    """Test the JSON lines written by the audit service."""

    @pytest.mark.anyio
    async def test_permission_denied_entry(self, caplog):
        audit = AuditService()

        with caplog.at_level(logging.INFO, logger="app.admin.services.audit_service"):
            await audit.log_permission_denied(
                principal=_principal(),
                required_permissions=["admin.list.edit"],
                reason=DenialReason.MISSING_PERMISSION,
                request_method="DELETE",
                request_path="/admin/users/abc",
            )

        record = next(r for r in caplog.records if r.getMessage().startswith("AUDIT:"))
        entry = record.audit_entry
        assert entry["actor_id"] == "staff-1"
        assert entry["action"] == "permission_denied"
        assert entry["target_type"] == "admin_permission"
        assert entry["target_id"] == "admin.list.edit"
        assert entry["payload"]["reason"] == "missing_permission"
        assert entry["payload"]["role"] == "general"
        assert entry["payload"]["request_path"] == "/admin/users/abc"
        assert "timestamp" in entry

    @pytest.mark.anyio
    async def test_admin_action_entry(self, caplog):
        audit = AuditService()

        with caplog.at_level(logging.INFO, logger="app.admin.services.audit_service"):
            await audit.log_admin_action(
                actor_id="staff-1",
                action="admin.users.role.update",
                target_type="admin_user",
                target_id="staff-2",
                payload={"before": "general", "after": "admin"},
            )

        assert '"action": "admin.users.role.update"' in caplog.text
        assert '"after": "admin"' in caplog.text
