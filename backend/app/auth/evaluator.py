"""
Permission Evaluator - pure access predicates over the RBAC catalog.

Every function here is total and side-effect free: an absent principal, an
unknown role or an unknown permission identifier all map to ``False``
(deny-by-default). Nothing is raised.

Role tier and permission membership are independent checks. A high role
never grants a specific permission; write paths must check permissions.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Collection, Iterable, Protocol

from . import rbac_contract


class Principal(Protocol):
    role: str
    permissions: Collection[str] | None


class DenialReason(str, Enum):
    """Audit label for a denied ``has_permission`` check."""

    UNAUTHENTICATED = "unauthenticated"
    UNKNOWN_ROLE = "unknown_role"
    UNKNOWN_PERMISSION = "unknown_permission"
    MISSING_PERMISSION = "missing_permission"


def _identifier(value: Any) -> str | None:
    if isinstance(value, Enum):
        value = value.value
    return value if isinstance(value, str) else None


def has_permission(principal: Principal | None, permission: Any) -> bool:
    """Exact membership of ``permission`` in the principal's permission set."""
    if principal is None or not principal.permissions:
        return False
    identifier = _identifier(permission)
    if identifier is None:
        return False
    return identifier in principal.permissions


def has_any_permission(principal: Principal | None, permissions: Iterable[Any]) -> bool:
    """True if at least one of ``permissions`` is granted. False for empty input."""
    if principal is None or principal.permissions is None:
        return False
    return any(has_permission(principal, p) for p in permissions)


def has_all_permissions(principal: Principal | None, permissions: Iterable[Any]) -> bool:
    """True if every one of ``permissions`` is granted.

    Vacuously true for empty input when the principal has a permission set
    (even an empty one). Callers that treat an empty requirement list as
    "no requirement" must check for that themselves.
    """
    if principal is None or principal.permissions is None:
        return False
    return all(has_permission(principal, p) for p in permissions)


def get_role_level(role: Any) -> int:
    """Tier of ``role``: 1 for the lowest catalog role upward, 0 if unknown."""
    identifier = _identifier(role)
    if identifier is None:
        return 0
    return rbac_contract.ROLE_LEVELS.get(identifier, 0)


def can_access_by_role(principal: Principal | None, required_role: Any) -> bool:
    """Threshold check: the principal's tier is at least ``required_role``'s."""
    if principal is None:
        return False
    return get_role_level(principal.role) >= get_role_level(required_role)


def can_access_feature(principal: Principal | None, feature: Any) -> bool:
    """Any-of check against the named permission group."""
    if principal is None:
        return False
    group = _identifier(feature)
    required = rbac_contract.PERMISSION_GROUPS.get(group, ()) if group else ()
    return has_any_permission(principal, required)


def accessible_features(principal: Principal | None) -> list[str]:
    """Names of every permission group the principal can access, sorted."""
    return sorted(
        group
        for group in rbac_contract.PERMISSION_GROUPS
        if can_access_feature(principal, group)
    )


def explain_denial(principal: Principal | None, permission: Any) -> DenialReason | None:
    """Label why ``has_permission`` denies, or ``None`` if it allows.

    Does not change any decision; used only to enrich audit records.
    """
    if has_permission(principal, permission):
        return None
    if principal is None:
        return DenialReason.UNAUTHENTICATED
    if get_role_level(principal.role) == 0:
        return DenialReason.UNKNOWN_ROLE
    if _identifier(permission) not in rbac_contract.ALLOWED_PERMISSIONS:
        return DenialReason.UNKNOWN_PERMISSION
    return DenialReason.MISSING_PERMISSION
