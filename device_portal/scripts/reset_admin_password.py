"""
Rotate an admin's password; run this right after the first deploy.

The first-run seed creates an admin with well-known credentials; this
script replaces the password and logs that admin out everywhere.

Usage:
    python -m device_portal.scripts.reset_admin_password
"""

import asyncio
import getpass

from sqlalchemy.ext.asyncio import async_sessionmaker

from device_portal.core.config import settings
from device_portal.core.database import build_engine
from device_portal.schemas import PASSWORD_MIN_LENGTH
from device_portal.services import session_service, user_service


async def reset_admin_password() -> None:
    engine = build_engine(settings.DATABASE_URL)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    async with session_factory() as session:
        # ── Collect input ────────────────────────────────────────────
        print("\nDevice Portal: Admin Password Rotation\n")
        username = input(f"  Admin username [{settings.SEED_ADMIN_USERNAME}]: ").strip()
        username = username or settings.SEED_ADMIN_USERNAME
        password = getpass.getpass("  New password: ")
        confirm = getpass.getpass("  Confirm:      ")

        if password != confirm:
            print("\nPasswords do not match.")
            await engine.dispose()
            return

        if len(password) < PASSWORD_MIN_LENGTH:
            print(f"\nPassword must be at least {PASSWORD_MIN_LENGTH} characters.")
            await engine.dispose()
            return

        # ── Find the admin ───────────────────────────────────────────
        admin = await user_service.get_user_by_username(username, session)
        if admin is None or not admin.is_admin:
            print(f"\nNo admin named '{username}'.")
            await engine.dispose()
            return

        # ── Rotate & revoke ──────────────────────────────────────────
        await user_service.set_password(admin, password, session)
        revoked = await session_service.destroy_all_user_sessions(admin.id, session)
        await session.commit()

        print("\nPassword updated.")
        print(f"    Admin:    {admin.username}")
        print(f"    Sessions revoked: {revoked}")
        print("\n   Log in again via POST /api/auth/login\n")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(reset_admin_password())
