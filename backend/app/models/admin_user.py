import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, validates

from .base import Base
from ..auth import rbac_contract


class AdminUser(Base):
    __tablename__ = "admin_users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    uid: Mapped[str] = mapped_column(
        String(128), unique=True, nullable=False, index=True
    )  # identity provider user id
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    display_name: Mapped[str | None] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    permissions: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )  # sorted, unique catalog identifiers
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="true", default=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    @validates("role")
    def validate_role(self, key: str, value: str) -> str:
        rbac_contract.validate_role(value)
        return value

    @validates("permissions")
    def validate_permissions(self, key: str, value: list[str]) -> list[str]:
        for permission in value:
            rbac_contract.validate_permission(permission)
        return sorted(set(value))
