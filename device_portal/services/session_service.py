"""
Session service: CRUD & lifecycle helpers for login sessions.

Handles:
- Issuing a session (random token, expiry now + TTL)
- Looking up a *valid* session (expired rows behave like misses)
- Destroying a single session (logout)
- Destroying all sessions for a user (forced password rotation, deletion)
- Sweeping expired rows (housekeeping, see `session_sweeper`)
"""

import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from device_portal.core.config import settings
from device_portal.core.security import generate_session_token
from device_portal.models.session import UserSession


def default_ttl() -> timedelta:
    return timedelta(days=settings.SESSION_TTL_DAYS)


async def create_session(
    user_id: uuid.UUID,
    db: AsyncSession,
    ttl: timedelta | None = None,
) -> UserSession:
    """Persist a new session for *user_id* and return it."""
    now = datetime.now(timezone.utc)
    session = UserSession(
        id=generate_session_token(),
        user_id=user_id,
        created_at=now,
        expires_at=now + (ttl or default_ttl()),
    )
    db.add(session)
    await db.flush()
    return session


async def find_valid_session(
    session_id: str,
    db: AsyncSession,
) -> UserSession | None:
    """
    Return the session (with its user loaded) if it exists and has not
    expired.  A row past its expiry is indistinguishable from a miss.
    """
    if not session_id:
        return None
    stmt = select(UserSession).where(
        UserSession.id == session_id,
        UserSession.expires_at > datetime.now(timezone.utc),
    )
    result = await db.execute(stmt)
    return result.unique().scalar_one_or_none()


async def destroy_session(
    session_id: str,
    db: AsyncSession,
) -> None:
    """Delete a single session.  Deleting a missing id is a no-op."""
    await db.execute(
        delete(UserSession)
        .where(UserSession.id == session_id)
    )
    await db.flush()


async def destroy_all_user_sessions(
    user_id: uuid.UUID,
    db: AsyncSession,
) -> int:
    """
    Delete every session belonging to *user_id*.

    Returns the number of sessions removed.
    Used by admin-forced password changes and user deletion.
    """
    result = await db.execute(
        delete(UserSession)
        .where(UserSession.user_id == user_id)
    )
    await db.flush()
    return result.rowcount or 0


async def sweep_expired_sessions(db: AsyncSession) -> int:
    """Delete all rows with ``expires_at <= now``.  Returns the count."""
    result = await db.execute(
        delete(UserSession)
        .where(UserSession.expires_at <= datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    return result.rowcount or 0
