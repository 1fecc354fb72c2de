"""
Device service: the device lifecycle.

    created (pending) ──approve──▶ active        (one-way)

Creation paths:
- agent self-service      → pending, owned by the agent
- admin on behalf of agent → pending, owned by that agent
- CSV import              → active, unowned (pre-vetted credentials)

Ownership (assign / transfer / remove) is independent of status.
Device passwords are generated or supplied and stored in cleartext.
"""

import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from device_portal.core.errors import NotFound, PartialImportError
from device_portal.core.security import generate_device_password, generate_device_username
from device_portal.models.device import Device, DeviceStatus
from device_portal.models.user import User
from device_portal.schemas import CSVDeviceRow
from device_portal.services import user_service
from device_portal.services.device_import import parse_device_csv

logger = logging.getLogger(__name__)


@dataclass
class ImportReport:
    imported: list[str] = field(default_factory=list)
    failures: list[dict] = field(default_factory=list)

    @property
    def imported_count(self) -> int:
        return len(self.imported)

    def as_error(self) -> PartialImportError:
        failed = "\n".join(f'Error creating device "{f["username"]}"' for f in self.failures)
        return PartialImportError(
            f"Some devices could not be imported:\n{failed}\n\n"
            f"Successfully imported: {self.imported_count} device(s)",
            imported_count=self.imported_count,
            imported=self.imported,
            failures=self.failures,
        )


# ── Lookups ──────────────────────────────────────────────────────────

async def get_device_or_404(device_id: uuid.UUID, db: AsyncSession) -> Device:
    result = await db.execute(select(Device).where(Device.id == device_id))
    device = result.unique().scalar_one_or_none()
    if device is None:
        raise NotFound("Device not found")
    return device


async def list_agent_devices(agent_id: uuid.UUID, db: AsyncSession) -> list[Device]:
    stmt = (
        select(Device)
        .where(Device.agent_id == agent_id)
        .order_by(Device.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.unique().scalars().all())


async def list_pending_devices(db: AsyncSession) -> list[Device]:
    stmt = (
        select(Device)
        .where(Device.status == DeviceStatus.PENDING)
        .order_by(Device.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.unique().scalars().all())


async def list_all_devices(db: AsyncSession) -> list[Device]:
    stmt = select(Device).order_by(Device.created_at.desc())
    result = await db.execute(stmt)
    return list(result.unique().scalars().all())


# ── Creation ─────────────────────────────────────────────────────────

async def _insert_device(
    db: AsyncSession,
    *,
    agent_id: uuid.UUID | None,
    username: str,
    password: str,
    status: DeviceStatus,
) -> Device:
    device = Device(
        id=uuid.uuid4(),
        agent_id=agent_id,
        username=username,
        password=password,
        status=status,
    )
    db.add(device)
    await db.flush()
    return device


async def create_own_device(agent: User, db: AsyncSession) -> Device:
    """Agent self-service: a pending device named after the agent."""
    device = await _insert_device(
        db,
        agent_id=agent.id,
        username=generate_device_username(agent.username),
        password=generate_device_password(),
        status=DeviceStatus.PENDING,
    )
    logger.info("Agent %s created device %s (pending).", agent.username, device.username)
    return device


async def create_device_for_agent(
    agent_id: uuid.UUID,
    agent_name: str | None,
    db: AsyncSession,
) -> Device:
    """Admin creates a pending device owned by *agent_id*."""
    agent = await user_service.get_agent_or_404(agent_id, db)
    device = await _insert_device(
        db,
        agent_id=agent.id,
        username=generate_device_username(agent_name or agent.username),
        password=generate_device_password(),
        status=DeviceStatus.PENDING,
    )
    logger.info("Admin created device %s for agent %s.", device.username, agent.username)
    return device


# ── State transitions ────────────────────────────────────────────────

async def approve_device(device_id: uuid.UUID, db: AsyncSession) -> Device:
    """pending → active.  Approving an active device is a successful no-op."""
    device = await get_device_or_404(device_id, db)
    if device.status != DeviceStatus.ACTIVE:
        device.status = DeviceStatus.ACTIVE
        await db.flush()
        logger.info("Device %s approved.", device.username)
    return device


async def delete_device(device_id: uuid.UUID, db: AsyncSession) -> None:
    """Hard delete; irreversible."""
    device = await get_device_or_404(device_id, db)
    await db.delete(device)
    await db.flush()
    logger.info("Device %s deleted.", device.username)


# ── Ownership ────────────────────────────────────────────────────────

async def transfer_ownership(
    device_id: uuid.UUID,
    new_agent_id: uuid.UUID,
    db: AsyncSession,
) -> tuple[Device, User]:
    """Move a device to another agent.  Status is left untouched."""
    device = await get_device_or_404(device_id, db)
    new_agent = await user_service.get_agent_or_404(new_agent_id, db)
    device.agent_id = new_agent.id
    await db.flush()
    await db.refresh(device)
    logger.info("Device %s transferred to %s.", device.username, new_agent.username)
    return device, new_agent


async def remove_ownership(device_id: uuid.UUID, db: AsyncSession) -> Device:
    """Make a device unowned.  Status is left untouched."""
    device = await get_device_or_404(device_id, db)
    device.agent_id = None
    await db.flush()
    await db.refresh(device)
    logger.info("Device %s is now unowned.", device.username)
    return device


# ── Bulk import ──────────────────────────────────────────────────────

async def import_devices_from_csv(raw_text: str, db: AsyncSession) -> ImportReport:
    """
    Import pre-vetted credentials as active, unowned devices.

    Parsing / validation is all-or-nothing (see `parse_device_csv`).
    Each row is then inserted in its own savepoint so a storage failure
    on one row does not undo the others.  The report lists what did and
    did not go in; `ImportReport.as_error` turns failures into the
    partial-success error body.
    """
    rows: list[CSVDeviceRow] = parse_device_csv(raw_text)
    report = ImportReport()

    for row in rows:
        try:
            async with db.begin_nested():
                await _insert_device(
                    db,
                    agent_id=None,
                    username=row.username,
                    password=row.password,
                    status=DeviceStatus.ACTIVE,
                )
        except SQLAlchemyError as exc:
            logger.exception("CSV import failed for device %r.", row.username)
            report.failures.append({"username": row.username, "reason": exc.__class__.__name__})
        else:
            report.imported.append(row.username)

    logger.info(
        "CSV import: %d imported, %d failed.", report.imported_count, len(report.failures)
    )

    return report
