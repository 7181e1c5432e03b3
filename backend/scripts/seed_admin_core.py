"""
Seed the bootstrap super_admin account.

Creates (or refreshes and reactivates) the admin-user record for ADMIN_EMAIL
with the super_admin role and every catalog permission, so the account that signs in
through /admin/login resolves to a principal.

Usage:
    python -m scripts.seed_admin_core [--uid UID] [--display-name NAME]
"""
import argparse
import asyncio
import logging

from app.auth import rbac_contract
from app.config import settings
from app.crud.admin_user import AdminUserRepository
from app.database import AsyncSessionLocal, dispose_engine

logger = logging.getLogger("storefront_admin.seed")

BOOTSTRAP_ROLE = "super_admin"


async def seed_admin_core(uid: str, display_name: str | None = None) -> None:
    email = settings.admin_email
    permissions = sorted(rbac_contract.ALLOWED_PERMISSIONS)

    async with AsyncSessionLocal() as session:
        repo = AdminUserRepository(session)
        admin_user = await repo.get_by_email(email)

        if admin_user is None:
            admin_user = await repo.create(
                uid=uid,
                email=email,
                role=BOOTSTRAP_ROLE,
                permissions=permissions,
                display_name=display_name,
            )
            logger.info("Created bootstrap admin uid=%s", admin_user.uid)
        else:
            if not admin_user.is_active:
                await repo.set_active(admin_user, True)
                logger.warning("Reactivated bootstrap admin uid=%s", admin_user.uid)
            await repo.update_role(admin_user, BOOTSTRAP_ROLE)
            await repo.update_permissions(admin_user, permissions)
            logger.info("Refreshed bootstrap admin uid=%s", admin_user.uid)

    logger.info(
        "Catalog v%d: %d permissions, %d groups, roles=%s",
        rbac_contract.CATALOG_VERSION,
        len(rbac_contract.ALLOWED_PERMISSIONS),
        len(rbac_contract.PERMISSION_GROUPS),
        ", ".join(rbac_contract.ALL_ROLES),
    )


async def _main(args: argparse.Namespace) -> None:
    try:
        await seed_admin_core(args.uid, args.display_name)
    finally:
        await dispose_engine()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    parser = argparse.ArgumentParser(description="Seed the bootstrap super_admin account")
    parser.add_argument("--uid", default="bootstrap-admin", help="identity provider user id")
    parser.add_argument("--display-name", default=None)
    asyncio.run(_main(parser.parse_args()))
