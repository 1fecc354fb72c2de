"""
First-run bootstrap.

When the users table is empty a single admin is created from
`SEED_ADMIN_USERNAME` / `SEED_ADMIN_PASSWORD`.  It is IDEMPOTENT: once
any user exists nothing happens.  The seeded credentials are
well-known and must be rotated (see `scripts/reset_admin_password`).

Usage:
    python -m device_portal.services.seed_service
"""

import asyncio
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from device_portal.core.config import settings
from device_portal.models import Base  # registers every table
from device_portal.models.user import User, UserRole
from device_portal.services import user_service

logger = logging.getLogger(__name__)


async def seed_admin(session: AsyncSession) -> User | None:
    """Create the bootstrap admin if no users exist.  Returns it, or None."""
    user_count = (await session.execute(select(func.count(User.id)))).scalar_one()
    if user_count:
        return None

    admin = await user_service.create_user(
        username=settings.SEED_ADMIN_USERNAME,
        password=settings.SEED_ADMIN_PASSWORD,
        role=UserRole.ADMIN,
        db=session,
    )
    await session.commit()
    logger.warning(
        "Seeded admin user %r with the default password; rotate it before real use.",
        admin.username,
    )
    return admin


# ── CLI entrypoint:  python -m device_portal.services.seed_service ────
async def main() -> None:
    from device_portal.core.database import async_session_factory, engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with async_session_factory() as session:
        admin = await seed_admin(session)
    await engine.dispose()
    print("Admin seeded." if admin else "Users already exist; nothing to seed.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
