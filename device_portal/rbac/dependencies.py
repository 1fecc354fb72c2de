"""
Access-control gate, consulted at the start of every privileged route.

`require_role` is a *dependency factory*: call it with a `RequiresRole`
and it returns a FastAPI dependency that will:

1. Read the session token (cookie first, then ``Authorization: Bearer``;
   a stale cookie does not hide a valid bearer token).
2. Resolve it to a valid, unexpired session and its user.
3. Compare the user's role with the one the route requires.
4. Raise `Unauthenticated` / `Forbidden` on failure, with NO details
   about which role would have been accepted.

Query-only routes use ``require_role(..., strict=False)``: instead of
raising, the dependency resolves to None and the route answers with an
empty result.

Usage in a route:
    @router.post("/devices")
    async def create(ctx: SessionContext = Depends(require_role(RequiresRole.AGENT))): ...
"""

import enum
import logging
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from device_portal.core.config import settings
from device_portal.core.database import get_db
from device_portal.core.errors import Forbidden, Unauthenticated
from device_portal.models.session import UserSession
from device_portal.models.user import User, UserRole
from device_portal.services import session_service

logger = logging.getLogger("rbac")


class RequiresRole(str, enum.Enum):
    ADMIN = "admin"
    AGENT = "agent"
    ANY = "any"

    def allows(self, role: UserRole) -> bool:
        return self is RequiresRole.ANY or self.value == role.value


@dataclass
class SessionContext:
    """The authenticated caller for the current request."""

    session: UserSession
    user: User

    @property
    def user_id(self):
        return self.user.id


def get_bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, credentials = auth_header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def get_session_token(request: Request) -> str | None:
    """Cookie first; fall back to a bearer token for non-browser callers."""
    return request.cookies.get(settings.SESSION_COOKIE_NAME) or get_bearer_token(request)


async def get_optional_session(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> SessionContext | None:
    """Resolve the caller's session, or None if there is no valid one."""
    cookie_token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if cookie_token:
        session = await session_service.find_valid_session(cookie_token, db)
        if session is not None:
            return SessionContext(session=session, user=session.user)
        # Expired or revoked: the response must drop the cookie
        request.state.clear_session_cookie = True

    bearer_token = get_bearer_token(request)
    if bearer_token and bearer_token != cookie_token:
        session = await session_service.find_valid_session(bearer_token, db)
        if session is not None:
            return SessionContext(session=session, user=session.user)
    return None


class require_role:
    """
    Dependency factory.

    Can be used as:
        Depends(require_role(RequiresRole.ADMIN))
        Depends(require_role(RequiresRole.ANY))
        Depends(require_role(RequiresRole.AGENT, strict=False))
    """

    def __init__(self, role: RequiresRole, *, strict: bool = True):
        self.role = role
        self.strict = strict

    async def __call__(
        self,
        request: Request,
        ctx: SessionContext | None = Depends(get_optional_session),
    ) -> SessionContext | None:
        if ctx is None:
            if not self.strict:
                return None
            raise Unauthenticated()

        if not self.role.allows(ctx.user.role):
            logger.warning(
                "Role check failed for user %s on %s %s: required %s, has %s",
                ctx.user.id,
                request.method,
                request.url.path,
                self.role.value,
                ctx.user.role.value,
            )
            if not self.strict:
                return None
            raise Forbidden()

        return ctx
