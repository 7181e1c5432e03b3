"""
RBAC Contract - permission catalog, permission groups and role tiers.

The catalog is loaded from ``permission_catalog.json`` (shipped with this
package) once at import time and validated fail-fast. It defines:
- Every grantable permission identifier (``area.resource[.action]``)
- Named permission groups used for feature-area gating
- The ordered role tiers used for threshold checks
- Default permission sets per role (seeding and new accounts only)

The identifier strings and the group table are the interface version
(``CATALOG_VERSION``). Renaming an identifier is a breaking change for every
consumer and must bump the version.

Runtime access decisions MUST go through ``app.auth.evaluator``, never
through ``ROLE_DEFAULT_PERMISSIONS``.
"""
from __future__ import annotations

import json
import re
from enum import Enum
from importlib import resources
from types import MappingProxyType
from typing import Final, Mapping

from pydantic import BaseModel, Field


CATALOG_RESOURCE: Final[str] = "permission_catalog.json"

# area.resource[.action], lowercase segments
_IDENTIFIER_RE: Final[re.Pattern[str]] = re.compile(r"^[a-z_]+(\.[a-z_]+){1,2}$")


class PermissionCatalog(BaseModel):
    """Schema of the catalog data file."""

    version: int = Field(..., ge=1)
    permissions: dict[str, str]
    groups: dict[str, list[str]]
    roles: list[str] = Field(..., min_length=1)
    role_defaults: dict[str, list[str]] = Field(default_factory=dict)


def load_catalog(raw: str | None = None) -> PermissionCatalog:
    """Parse and validate a catalog document.

    Args:
        raw: JSON text; the packaged catalog is read when omitted

    Returns:
        PermissionCatalog: The validated catalog

    Raises:
        RuntimeError: If the document violates any catalog invariant
    """
    if raw is None:
        raw = resources.files(__package__).joinpath(CATALOG_RESOURCE).read_text(
            encoding="utf-8"
        )
    catalog = PermissionCatalog.model_validate(json.loads(raw))
    _validate_catalog(catalog)
    return catalog


def _validate_catalog(catalog: PermissionCatalog) -> None:
    """Check catalog invariants and raise one error listing every violation."""
    errors: list[str] = []

    identifiers = list(catalog.permissions.values())
    known = set(identifiers)
    if len(known) != len(identifiers):
        errors.append("Duplicate permission identifiers in catalog")

    for name, identifier in catalog.permissions.items():
        if "*" in identifier:
            errors.append(f"Wildcard permission '{identifier}' ({name}) is FORBIDDEN")
        elif not _IDENTIFIER_RE.match(identifier):
            errors.append(
                f"Permission '{identifier}' ({name}) must look like area.resource[.action]"
            )

    for group, members in catalog.groups.items():
        for identifier in members:
            if identifier not in known:
                errors.append(f"Group '{group}' references unknown permission '{identifier}'")

    if len(set(catalog.roles)) != len(catalog.roles):
        errors.append("Duplicate role names in catalog")

    for role, members in catalog.role_defaults.items():
        if role not in catalog.roles:
            errors.append(f"Defaults given for unknown role '{role}'")
            continue
        for identifier in members:
            if identifier not in known:
                errors.append(f"Role '{role}' default references unknown permission '{identifier}'")

    if errors:
        raise RuntimeError(
            "Permission catalog validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


_CATALOG: Final[PermissionCatalog] = load_catalog()

CATALOG_VERSION: Final[int] = _CATALOG.version

# Members compare equal to their identifier strings but hash by name,
# so always use ``.value`` when building sets or dict keys.
AdminPermission = Enum(  # type: ignore[misc]
    "AdminPermission", dict(_CATALOG.permissions), type=str, module=__name__
)

AdminRole = Enum(  # type: ignore[misc]
    "AdminRole",
    {role.upper(): role for role in _CATALOG.roles},
    type=str,
    module=__name__,
)

ALLOWED_PERMISSIONS: Final[frozenset[str]] = frozenset(_CATALOG.permissions.values())

ALL_ROLES: Final[tuple[str, ...]] = tuple(_CATALOG.roles)

PERMISSION_GROUPS: Final[Mapping[str, tuple[str, ...]]] = MappingProxyType(
    {group: tuple(members) for group, members in _CATALOG.groups.items()}
)

# Tier 0 is reserved for unknown or missing roles
ROLE_LEVELS: Final[Mapping[str, int]] = MappingProxyType(
    {role: tier for tier, role in enumerate(_CATALOG.roles, start=1)}
)

ROLE_DEFAULT_PERMISSIONS: Final[Mapping[str, frozenset[str]]] = MappingProxyType(
    {role: frozenset(members) for role, members in _CATALOG.role_defaults.items()}
)


def validate_permission(permission: str) -> None:
    """
    Validate that a permission is explicitly in the catalog.

    Used on write paths (granting permissions). The evaluator never calls
    this: unknown identifiers are legal inputs there and simply never match.

    Raises:
        ValueError: If permission contains wildcards or is not allowed
    """
    if permission.endswith("*"):
        raise ValueError(
            f"SECURITY VIOLATION: Wildcard permission '{permission}' is FORBIDDEN. "
            "All permissions must be explicit."
        )

    if permission not in ALLOWED_PERMISSIONS:
        raise ValueError(f"Invalid permission '{permission}'")


def validate_role(role: str) -> None:
    """
    Validate that a role is one of the catalog tiers.

    Raises:
        ValueError: If role is unknown
    """
    if role not in ROLE_LEVELS:
        raise ValueError(
            f"Invalid role '{role}'. Must be one of: {', '.join(ALL_ROLES)}"
        )


def default_permissions_for(role: str) -> frozenset[str]:
    """Default permission set for a newly created account with ``role``."""
    return ROLE_DEFAULT_PERMISSIONS.get(role, frozenset())
