"""
Authentication service.

Handles:
- Login (username + password → new server-side session)
- Self-service agent registration (no auto-login)
- Logout
- Changing one's own password

Login failures use ONE message for unknown usernames and wrong
passwords so the response never reveals which usernames exist.

All business logic lives here; controllers call service methods
and shape the result.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from device_portal.core.errors import Unauthenticated, ValidationError
from device_portal.core.security import verify_password
from device_portal.models.session import UserSession
from device_portal.models.user import User, UserRole
from device_portal.services import session_service, user_service

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid username or password"


def landing_path(user: User) -> str:
    """Where the client should go after logging in."""
    return "/admin" if user.is_admin else "/agent"


# ── Login / logout ───────────────────────────────────────────────────

async def authenticate_user(
    username: str,
    password: str,
    db: AsyncSession,
) -> tuple[User, UserSession]:
    """Validate credentials and open a session for the user."""
    user = await user_service.get_user_by_username(username, db)

    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed login attempt for username %r.", username)
        raise Unauthenticated(INVALID_CREDENTIALS)

    session = await session_service.create_session(user.id, db)
    logger.info("User %s logged in.", user.username)
    return user, session


async def logout(session_id: str | None, db: AsyncSession) -> None:
    """Destroy the caller's session.  Always succeeds."""
    if session_id:
        await session_service.destroy_session(session_id, db)


# ── Registration ─────────────────────────────────────────────────────

async def register_agent(
    username: str,
    password: str,
    db: AsyncSession,
    company_name: str | None = None,
    email: str | None = None,
    phone: str | None = None,
    contact_person: str | None = None,
) -> User:
    """
    Create a new agent account.  Input shape (lengths, confirmation)
    is validated by `RegisterRequest`; uniqueness is checked here.
    The caller is NOT logged in.
    """
    return await user_service.create_user(
        username=username,
        password=password,
        role=UserRole.AGENT,
        company_name=company_name,
        email=email,
        phone=phone,
        contact_person=contact_person,
        db=db,
    )


# ── Password changes ─────────────────────────────────────────────────

async def change_own_password(
    user: User,
    current_password: str,
    new_password: str,
    db: AsyncSession,
) -> None:
    """
    Change the caller's password after checking the current one.

    Unlike the admin reset, existing sessions (including the caller's)
    stay valid.
    """
    if not verify_password(current_password, user.password_hash):
        raise ValidationError(
            "Current password is incorrect",
            fields={"current_password": "Current password is incorrect"},
        )
    await user_service.set_password(user, new_password, db)
    logger.info("User %s changed their password.", user.username)
