"""
Agent controller: device self-service.

Creating a device requires the AGENT role.  Listing is lenient: any
other caller simply gets an empty list.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from device_portal.core.database import get_db
from device_portal.rbac.dependencies import RequiresRole, SessionContext, require_role
from device_portal.schemas import DeviceCreatedResponse, DeviceCredentials, DeviceOut
from device_portal.services import device_service

router = APIRouter(prefix="/api/agent", tags=["Agent"])


@router.post("/devices", response_model=DeviceCreatedResponse, status_code=201)
async def create_device(
    ctx: SessionContext = Depends(require_role(RequiresRole.AGENT)),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a pending device named ``<username>_<suffix>``.

    The plaintext credentials are returned here once; admins can see
    them again in their device listings.
    """
    device = await device_service.create_own_device(ctx.user, db)
    return DeviceCreatedResponse(
        success="Device account created successfully",
        device=DeviceCredentials.model_validate(device, from_attributes=True),
    )


@router.get("/devices", response_model=list[DeviceOut])
async def list_my_devices(
    ctx: SessionContext | None = Depends(require_role(RequiresRole.AGENT, strict=False)),
    db: AsyncSession = Depends(get_db),
):
    if ctx is None:
        return []
    devices = await device_service.list_agent_devices(ctx.user.id, db)
    return [DeviceOut.model_validate(d) for d in devices]
