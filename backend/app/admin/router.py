"""
Admin Router - admin-user management, access checks and the permission catalog.

Every write re-checks permissions server-side:
- GET    /admin/users                      admin.login
- POST   /admin/users                      admin.list.edit + admin.permissions.edit
- PUT    /admin/users/{uid}/role           admin.list.edit + admin.permissions.edit
- PUT    /admin/users/{uid}/permissions    admin.list.edit + admin.permissions.edit
- DELETE /admin/users/{uid}                admin.list.edit + admin.permissions.edit

All write actions are audited with fire-and-forget logging.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from app.admin.dependencies import (
    get_audit_service,
    require_admin_permission,
    require_admin_permissions,
)
from app.admin.services.audit_service import AuditService
from app.auth import rbac_contract
from app.auth.evaluator import accessible_features, get_role_level, has_permission
from app.auth.principal import AdminPrincipal
from app.auth.rbac_contract import AdminPermission
from app.crud.admin_user import AdminUserRepository
from app.dependencies import get_admin_user_repository, get_current_principal
from app.errors import ConflictError, NotFoundError, ValidationError
from app.models.admin_user import AdminUser
from app.schemas.admin_user import (
    AdminUserCreate,
    AdminUserList,
    AdminUserPermissionsUpdate,
    AdminUserResponse,
    AdminUserRoleUpdate,
    PermissionCatalogResponse,
    PrincipalResponse,
    RoleTier,
)
from app.schemas.auth import CheckAccessRequest, CheckAccessResponse

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
)

require_user_management = require_admin_permissions(
    AdminPermission.ADMIN_LIST_EDIT,
    AdminPermission.ADMIN_PERMISSIONS_EDIT,
)


def _validate_role(role: str) -> None:
    try:
        rbac_contract.validate_role(role)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def _validate_permissions(permissions: list[str]) -> None:
    try:
        for permission in permissions:
            rbac_contract.validate_permission(permission)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


async def _get_admin_user_or_404(repo: AdminUserRepository, uid: str) -> AdminUser:
    admin_user = await repo.get_by_uid(uid)
    if admin_user is None:
        raise NotFoundError(f"Admin user '{uid}' not found")
    return admin_user


@router.post("/check-access", response_model=CheckAccessResponse)
async def check_access(
    payload: CheckAccessRequest,
    repo: AdminUserRepository = Depends(get_admin_user_repository),
) -> CheckAccessResponse:
    """Whether an identity-provider user may enter the admin console."""
    admin_user = await repo.get_by_uid(payload.uid)
    if admin_user is None or not admin_user.is_active:
        return CheckAccessResponse(hasAccess=False)
    principal = AdminPrincipal.from_record(admin_user)
    return CheckAccessResponse(
        hasAccess=has_permission(principal, AdminPermission.ADMIN_LOGIN)
    )


@router.get("/me", response_model=PrincipalResponse)
async def get_me(
    principal: AdminPrincipal = Depends(get_current_principal),
) -> PrincipalResponse:
    return PrincipalResponse(
        uid=principal.uid,
        email=principal.email,
        display_name=principal.display_name,
        role=principal.role,
        role_level=get_role_level(principal.role),
        permissions=sorted(principal.permissions or ()),
        features=accessible_features(principal),
    )


@router.get("/permissions/catalog", response_model=PermissionCatalogResponse)
async def get_permission_catalog(
    _: AdminPrincipal = Depends(require_admin_permission(AdminPermission.ADMIN_LOGIN)),
) -> PermissionCatalogResponse:
    return PermissionCatalogResponse(
        version=rbac_contract.CATALOG_VERSION,
        permissions=[p.value for p in AdminPermission],
        groups={name: list(members) for name, members in rbac_contract.PERMISSION_GROUPS.items()},
        roles=[
            RoleTier(name=role, level=level)
            for role, level in rbac_contract.ROLE_LEVELS.items()
        ],
    )


@router.get("/users", response_model=AdminUserList)
async def list_admin_users(
    _: AdminPrincipal = Depends(require_admin_permission(AdminPermission.ADMIN_LOGIN)),
    repo: AdminUserRepository = Depends(get_admin_user_repository),
) -> AdminUserList:
    admin_users = await repo.list_all()
    return AdminUserList(
        users=[AdminUserResponse.model_validate(u) for u in admin_users],
        total=len(admin_users),
    )


@router.post("/users", response_model=AdminUserResponse, status_code=status.HTTP_201_CREATED)
async def create_admin_user(
    payload: AdminUserCreate,
    principal: AdminPrincipal = Depends(require_user_management),
    repo: AdminUserRepository = Depends(get_admin_user_repository),
    audit: AuditService = Depends(get_audit_service),
) -> AdminUserResponse:
    _validate_role(payload.role)
    if payload.permissions is not None:
        _validate_permissions(payload.permissions)

    if await repo.get_by_uid(payload.uid) is not None:
        raise ConflictError(f"Admin user '{payload.uid}' already exists")
    if await repo.get_by_email(payload.email) is not None:
        raise ConflictError(f"Admin user with email '{payload.email}' already exists")

    admin_user = await repo.create(
        uid=payload.uid,
        email=payload.email,
        role=payload.role,
        permissions=payload.permissions,
        display_name=payload.display_name,
    )
    await audit.log_admin_action(
        actor_id=principal.uid,
        action="admin.users.create",
        target_type="admin_user",
        target_id=admin_user.uid,
        payload={"role": admin_user.role, "permissions": list(admin_user.permissions)},
    )
    return AdminUserResponse.model_validate(admin_user)


@router.put("/users/{uid}/role", response_model=AdminUserResponse)
async def update_admin_user_role(
    uid: str,
    payload: AdminUserRoleUpdate,
    principal: AdminPrincipal = Depends(require_user_management),
    repo: AdminUserRepository = Depends(get_admin_user_repository),
    audit: AuditService = Depends(get_audit_service),
) -> AdminUserResponse:
    _validate_role(payload.role)
    admin_user = await _get_admin_user_or_404(repo, uid)
    previous_role = admin_user.role

    admin_user = await repo.update_role(admin_user, payload.role)
    await audit.log_admin_action(
        actor_id=principal.uid,
        action="admin.users.role.update",
        target_type="admin_user",
        target_id=uid,
        payload={"before": previous_role, "after": admin_user.role},
    )
    return AdminUserResponse.model_validate(admin_user)


@router.put("/users/{uid}/permissions", response_model=AdminUserResponse)
async def update_admin_user_permissions(
    uid: str,
    payload: AdminUserPermissionsUpdate,
    principal: AdminPrincipal = Depends(require_user_management),
    repo: AdminUserRepository = Depends(get_admin_user_repository),
    audit: AuditService = Depends(get_audit_service),
) -> AdminUserResponse:
    _validate_permissions(payload.permissions)
    admin_user = await _get_admin_user_or_404(repo, uid)
    previous_permissions = list(admin_user.permissions)

    admin_user = await repo.update_permissions(admin_user, payload.permissions)
    await audit.log_admin_action(
        actor_id=principal.uid,
        action="admin.users.permissions.update",
        target_type="admin_user",
        target_id=uid,
        payload={"before": previous_permissions, "after": list(admin_user.permissions)},
    )
    return AdminUserResponse.model_validate(admin_user)


@router.delete("/users/{uid}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_admin_user(
    uid: str,
    principal: AdminPrincipal = Depends(require_user_management),
    repo: AdminUserRepository = Depends(get_admin_user_repository),
    audit: AuditService = Depends(get_audit_service),
) -> Response:
    if uid == principal.uid:
        raise ConflictError("Admins cannot delete their own account")
    admin_user = await _get_admin_user_or_404(repo, uid)

    await repo.delete(admin_user)
    await audit.log_admin_action(
        actor_id=principal.uid,
        action="admin.users.delete",
        target_type="admin_user",
        target_id=uid,
        payload={"email": admin_user.email, "role": admin_user.role},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
