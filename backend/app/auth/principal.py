from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Protocol


class AdminUserRecord(Protocol):
    uid: str
    email: str
    display_name: str | None
    role: str
    permissions: list[str] | None


def normalize_permissions(permissions: Iterable[Any] | None) -> frozenset[str] | None:
    """Convert an iterable of identifiers (or enum members) to a frozenset of str."""
    if permissions is None:
        return None
    return frozenset(
        p.value if isinstance(p, Enum) else str(p) for p in permissions
    )


@dataclass(frozen=True)
class AdminPrincipal:
    """An authenticated staff member as seen by the permission evaluator.

    ``role`` is a coarse tier used for redirects and default-access heuristics.
    ``permissions`` is the authorization source of truth. ``None`` means the
    record carried no permission set at all, which is different from an
    empty set only for ``has_all_permissions``.
    """

    uid: str
    email: str
    role: str
    permissions: frozenset[str] | None = field(default_factory=frozenset)
    display_name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "permissions", normalize_permissions(self.permissions))
        if isinstance(self.role, Enum):
            object.__setattr__(self, "role", self.role.value)

    @classmethod
    def from_record(cls, record: AdminUserRecord) -> "AdminPrincipal":
        return cls(
            uid=record.uid,
            email=record.email,
            display_name=record.display_name,
            role=record.role,
            permissions=normalize_permissions(record.permissions),
        )
