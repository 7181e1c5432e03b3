import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class AdminUserBase(BaseModel):
    uid: str = Field(..., min_length=1, max_length=128)
    email: str = Field(..., min_length=3, max_length=255)
    display_name: str | None = Field(None, max_length=255)


class AdminUserCreate(AdminUserBase):
    role: str = Field(..., min_length=1, max_length=50)
    # None means "use the role's default permission set"
    permissions: list[str] | None = None


class AdminUserRoleUpdate(BaseModel):
    role: str = Field(..., min_length=1, max_length=50)


class AdminUserPermissionsUpdate(BaseModel):
    permissions: list[str]


class AdminUserResponse(AdminUserBase):
    id: uuid.UUID
    role: str
    permissions: list[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime
    last_login_at: datetime | None = None

    class Config:
        from_attributes = True


class AdminUserList(BaseModel):
    users: list[AdminUserResponse]
    total: int


class PrincipalResponse(BaseModel):
    uid: str
    email: str
    display_name: str | None = None
    role: str
    role_level: int
    permissions: list[str]
    features: list[str]


class RoleTier(BaseModel):
    name: str
    level: int


class PermissionCatalogResponse(BaseModel):
    version: int
    permissions: list[str]
    groups: dict[str, list[str]]
    roles: list[RoleTier]
