"""
Session cookie transport.

The cookie carries only the opaque session id: HTTP-only, SameSite
strict, `secure` in production, 30-day max age, path ``/``.
"""

from fastapi import Response

from device_portal.core.config import settings


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session_id,
        max_age=settings.SESSION_TTL_DAYS * 24 * 60 * 60,
        path="/",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
    )
