from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import rbac_contract
from ..auth.principal import normalize_permissions
from ..models.admin_user import AdminUser


class AdminUserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_uid(self, uid: str) -> AdminUser | None:
        result = await self.session.execute(
            select(AdminUser).where(AdminUser.uid == uid)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> AdminUser | None:
        result = await self.session.execute(
            select(AdminUser).where(AdminUser.email == email)
        )
        return result.scalar_one_or_none()

    async def list_all(self, include_inactive: bool = False) -> list[AdminUser]:
        query = select(AdminUser).order_by(AdminUser.created_at)
        if not include_inactive:
            query = query.where(AdminUser.is_active)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def create(
        self,
        uid: str,
        email: str,
        role: str,
        permissions: Iterable[str] | None = None,
        display_name: str | None = None,
    ) -> AdminUser:
        if permissions is None:
            granted = rbac_contract.default_permissions_for(role)
        else:
            granted = normalize_permissions(permissions) or frozenset()
        admin_user = AdminUser(
            uid=uid,
            email=email,
            display_name=display_name,
            role=role,
            permissions=list(granted),
        )
        self.session.add(admin_user)
        await self.session.commit()
        await self.session.refresh(admin_user)
        return admin_user

    async def update_role(self, admin_user: AdminUser, role: str) -> AdminUser:
        admin_user.role = role
        await self.session.commit()
        await self.session.refresh(admin_user)
        return admin_user

    async def update_permissions(
        self, admin_user: AdminUser, permissions: Iterable[str]
    ) -> AdminUser:
        admin_user.permissions = list(normalize_permissions(permissions) or ())
        await self.session.commit()
        await self.session.refresh(admin_user)
        return admin_user

    async def set_active(self, admin_user: AdminUser, is_active: bool) -> AdminUser:
        admin_user.is_active = is_active
        await self.session.commit()
        await self.session.refresh(admin_user)
        return admin_user

    async def touch_last_login(self, admin_user: AdminUser) -> None:
        admin_user.last_login_at = datetime.now(timezone.utc)
        await self.session.commit()

    async def delete(self, admin_user: AdminUser) -> None:
        await self.session.delete(admin_user)
        await self.session.commit()
