"""
Admin controller: device review & agent management.

Every mutating route uses `Depends(require_role(RequiresRole.ADMIN))`.
Read-only listings use the lenient variant and answer with an empty
result (or null) for anyone who is not an admin.
Controllers are THIN: they delegate to services and return schemas.
"""

import uuid

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from device_portal.core.database import get_db
from device_portal.models.user import User
from device_portal.rbac.dependencies import RequiresRole, SessionContext, require_role
from device_portal.schemas import (
    AgentProfileOut,
    AgentSummaryOut,
    ChangeAgentPasswordRequest,
    CreateDeviceForAgentRequest,
    CSVImportRequest,
    DeviceCreatedResponse,
    DeviceCredentials,
    DeviceOut,
    ImportResponse,
    MessageResponse,
    RegisterRequest,
    TransferDeviceRequest,
)
from device_portal.services import device_service, user_service

router = APIRouter(prefix="/api/admin", tags=["Admin"])

require_admin = require_role(RequiresRole.ADMIN)
admin_or_none = require_role(RequiresRole.ADMIN, strict=False)


def _agent_profile(user: User) -> AgentProfileOut:
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


# ── Devices ──────────────────────────────────────────────────────────
@router.get("/devices", response_model=list[DeviceOut])
async def list_devices(
    ctx: SessionContext | None = Depends(admin_or_none),
    db: AsyncSession = Depends(get_db),
):
    if ctx is None:
        return []
    devices = await device_service.list_all_devices(db)
    return [DeviceOut.model_validate(d) for d in devices]


@router.get("/devices/pending", response_model=list[DeviceOut])
async def list_pending_devices(
    ctx: SessionContext | None = Depends(admin_or_none),
    db: AsyncSession = Depends(get_db),
):
    if ctx is None:
        return []
    devices = await device_service.list_pending_devices(db)
    return [DeviceOut.model_validate(d) for d in devices]


@router.post("/devices/import", response_model=ImportResponse)
async def import_devices(
    body: CSVImportRequest,
    ctx: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Bulk-import ``username,password`` lines as active, unowned devices."""
    report = await device_service.import_devices_from_csv(body.csv_data, db)
    if report.failures:
        # Rows that made it in are kept, so answer instead of raising
        err = report.as_error()
        return JSONResponse(status_code=err.status_code, content=err.to_body())
    return ImportResponse(
        success=f"Successfully imported {report.imported_count} device(s)",
        imported_count=report.imported_count,
        imported=report.imported,
    )


@router.post("/devices/{device_id}/approve", response_model=MessageResponse)
async def approve_device(
    device_id: uuid.UUID,
    ctx: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await device_service.approve_device(device_id, db)
    return MessageResponse(success="Device account approved")


@router.delete("/devices/{device_id}", response_model=MessageResponse)
async def delete_device(
    device_id: uuid.UUID,
    ctx: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await device_service.delete_device(device_id, db)
    return MessageResponse(success="Device account deleted")


@router.post("/devices/{device_id}/transfer", response_model=MessageResponse)
async def transfer_device(
    device_id: uuid.UUID,
    body: TransferDeviceRequest,
    ctx: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    _, new_agent = await device_service.transfer_ownership(device_id, body.new_agent_id, db)
    return MessageResponse(success=f"Device ownership transferred to {new_agent.username}")


@router.post("/devices/{device_id}/remove-ownership", response_model=MessageResponse)
async def remove_device_ownership(
    device_id: uuid.UUID,
    ctx: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await device_service.remove_ownership(device_id, db)
    return MessageResponse(success="Device ownership removed")


# ── Agents ───────────────────────────────────────────────────────────
@router.get("/agents", response_model=list[AgentSummaryOut])
async def list_agents(
    ctx: SessionContext | None = Depends(admin_or_none),
    db: AsyncSession = Depends(get_db),
):
    if ctx is None:
        return []
    rows = await user_service.list_agents(db)
    return [
        AgentSummaryOut(
            id=agent.id,
            username=agent.username,
            role=agent.role.value,
            created_at=agent.created_at,
            device_count=count,
        )
        for agent, count in rows
    ]


@router.post("/agents", response_model=MessageResponse, status_code=201)
async def create_agent(
    body: RegisterRequest,
    ctx: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create an agent account; same rules as self-service registration."""
    await user_service.create_user(
        username=body.username,
        password=body.password,
        company_name=body.company_name,
        email=body.email,
        phone=body.phone,
        contact_person=body.contact_person,
        db=db,
    )
    return MessageResponse(success="Agent created")


@router.get("/agents/{agent_id}", response_model=AgentProfileOut | None)
async def get_agent(
    agent_id: uuid.UUID,
    ctx: SessionContext | None = Depends(admin_or_none),
    db: AsyncSession = Depends(get_db),
):
    if ctx is None:
        return None
    agent = await user_service.get_agent_profile(agent_id, db)
    return _agent_profile(agent) if agent else None


@router.delete("/agents/{agent_id}", response_model=MessageResponse)
async def delete_agent(
    agent_id: uuid.UUID,
    ctx: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete an account.  Its sessions go with it; its devices become unowned."""
    await user_service.delete_user(agent_id, ctx.user, db)
    return MessageResponse(success="Agent deleted")


@router.post("/agents/{agent_id}/password", response_model=MessageResponse)
async def change_agent_password(
    agent_id: uuid.UUID,
    body: ChangeAgentPasswordRequest,
    ctx: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Reset an agent's password and log them out everywhere."""
    await user_service.change_agent_password(agent_id, body.new_password, db)
    return MessageResponse(
        success="Agent password changed. The agent must log in again.",
    )


@router.post("/agents/{agent_id}/devices", response_model=DeviceCreatedResponse, status_code=201)
async def create_device_for_agent(
    agent_id: uuid.UUID,
    body: CreateDeviceForAgentRequest | None = None,
    ctx: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    agent_name = body.agent_name if body else None
    device = await device_service.create_device_for_agent(agent_id, agent_name, db)
    return DeviceCreatedResponse(
        success=f"Device created: {device.username}",
        device=DeviceCredentials.model_validate(device, from_attributes=True),
    )
