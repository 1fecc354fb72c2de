"""
Auth controller: login, registration, logout & own-password change.

Login, registration and logout are PUBLIC (no role dependency).
`me` and `change-password` accept any authenticated user.
"""

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from device_portal.core.cookies import clear_session_cookie, set_session_cookie
from device_portal.core.database import get_db
from device_portal.rbac.dependencies import (
    RequiresRole,
    SessionContext,
    get_session_token,
    require_role,
)
from device_portal.schemas import (
    AgentProfileOut,
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
)
from device_portal.services import auth_service

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """Authenticate with username + password → session cookie."""
    user, session = await auth_service.authenticate_user(body.username, body.password, db)
    set_session_cookie(response, session.id)
    return LoginResponse(
        success="Logged in",
        user_id=user.id,
        username=user.username,
        role=user.role.value,
        redirect_to=auth_service.landing_path(user),
        expires_at=session.expires_at,
    )


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Self-service agent registration.  Does not log the caller in."""
    await auth_service.register_agent(
        username=body.username,
        password=body.password,
        company_name=body.company_name,
        email=body.email,
        phone=body.phone,
        contact_person=body.contact_person,
        db=db,
    )
    return MessageResponse(success="Account created successfully. Please log in.")


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """Destroy the current session (server-side) and clear the cookie."""
    await auth_service.logout(get_session_token(request), db)
    clear_session_cookie(response)
    return MessageResponse(success="Logged out")


@router.get("/me", response_model=AgentProfileOut)
async def me(ctx: SessionContext = Depends(require_role(RequiresRole.ANY))):
    user = ctx.user
    return AgentProfileOut(
        id=user.id,
        username=user.username,
        role=user.role.value,
        created_at=user.created_at,
        company_name=user.company_name,
        email=user.email,
        phone=user.phone,
        contact_person=user.contact_person,
    )


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    ctx: SessionContext = Depends(require_role(RequiresRole.ANY)),
    db: AsyncSession = Depends(get_db),
):
    """Change the caller's own password.  The current session stays valid."""
    await auth_service.change_own_password(
        ctx.user, body.current_password, body.new_password, db,
    )
    return MessageResponse(success="Password changed successfully")
