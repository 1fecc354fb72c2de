"""
User service: agent management & query helpers.

Deletion makes the two ownership rules explicit instead of leaning on
the database's ON DELETE clauses:
- sessions are *owned* by the user → deleted with it;
- devices are only *referenced* → their owner is set to NULL and the
  devices survive as unowned.
"""

import logging
import uuid

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from device_portal.core.errors import Conflict, Forbidden, NotFound, ValidationError
from device_portal.core.security import hash_password
from device_portal.models.device import Device
from device_portal.models.user import User, UserRole
from device_portal.services import session_service

logger = logging.getLogger(__name__)


async def get_user_by_id(
    user_id: uuid.UUID,
    db: AsyncSession,
) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_username(
    username: str,
    db: AsyncSession,
) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def get_agent_or_404(
    agent_id: uuid.UUID,
    db: AsyncSession,
) -> User:
    """Load a user that must exist and must be an agent."""
    user = await get_user_by_id(agent_id, db)
    if user is None:
        raise NotFound("Agent not found")
    if not user.is_agent:
        raise ValidationError("Target user must be an agent")
    return user


async def create_user(
    username: str,
    password: str,
    db: AsyncSession,
    role: UserRole = UserRole.AGENT,
    company_name: str | None = None,
    email: str | None = None,
    phone: str | None = None,
    contact_person: str | None = None,
) -> User:
    """Create a user.  Usernames are unique across both roles."""
    if await get_user_by_username(username, db) is not None:
        raise Conflict("Username already exists")

    user = User(
        id=uuid.uuid4(),
        username=username,
        password_hash=hash_password(password),
        role=role,
        company_name=company_name,
        email=email,
        phone=phone,
        contact_person=contact_person,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        # Lost a race with a concurrent insert of the same username
        await db.rollback()
        raise Conflict("Username already exists")
    logger.info("Created %s account %s.", role.value, username)
    return user


async def list_agents(db: AsyncSession) -> list[tuple[User, int]]:
    """All agents, newest first, each with the number of devices they own."""
    device_count = func.count(Device.id)
    stmt = (
        select(User, device_count)
        .outerjoin(Device, Device.agent_id == User.id)
        .where(User.role == UserRole.AGENT)
        .group_by(User.id)
        .order_by(User.created_at.desc())
    )
    result = await db.execute(stmt)
    return [(user, count) for user, count in result.all()]


async def get_agent_profile(
    agent_id: uuid.UUID,
    db: AsyncSession,
) -> User | None:
    """The agent's extended profile, or None if missing / not an agent."""
    user = await get_user_by_id(agent_id, db)
    if user is None or not user.is_agent:
        return None
    return user


async def delete_user(
    target_user_id: uuid.UUID,
    acting_user: User,
    db: AsyncSession,
) -> None:
    """
    Admin action: delete an account.

    An admin can never delete the account behind their own session.
    Sessions are removed, owned devices become unowned.
    """
    if target_user_id == acting_user.id:
        raise Forbidden("You cannot delete your own account")

    user = await get_user_by_id(target_user_id, db)
    if user is None:
        raise NotFound("Agent not found")

    released = await release_devices(target_user_id, db)
    revoked = await session_service.destroy_all_user_sessions(target_user_id, db)
    await db.execute(
        delete(User)
        .where(User.id == target_user_id)
        .execution_options(synchronize_session=False)
    )
    db.expunge(user)
    await db.flush()
    logger.info(
        "User %s deleted by %s (%d device(s) released, %d session(s) revoked).",
        user.username,
        acting_user.username,
        released,
        revoked,
    )


async def release_devices(
    user_id: uuid.UUID,
    db: AsyncSession,
) -> int:
    """Null the owner of every device owned by *user_id*.  Returns the count."""
    result = await db.execute(
        update(Device)
        .where(Device.agent_id == user_id)
        .values(agent_id=None)
    )
    await db.flush()
    return result.rowcount or 0


async def set_password(
    user: User,
    new_password: str,
    db: AsyncSession,
) -> None:
    user.password_hash = hash_password(new_password)
    await db.flush()


async def change_agent_password(
    agent_id: uuid.UUID,
    new_password: str,
    db: AsyncSession,
) -> User:
    """
    Admin override, no current-password check.

    Every existing session of the agent is destroyed afterwards, so the
    agent has to log in again with the new password.
    """
    agent = await get_agent_or_404(agent_id, db)
    await set_password(agent, new_password, db)
    revoked = await session_service.destroy_all_user_sessions(agent.id, db)
    logger.info("Password of agent %s reset by admin; %d session(s) revoked.", agent.username, revoked)
    return agent
