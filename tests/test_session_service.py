"""Tests for the session manager and the expired-session sweeper"""
import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import select

from device_portal.models import UserRole, UserSession
from device_portal.services import session_service, user_service
from device_portal.services.session_sweeper import SessionSweeper


@pytest.fixture
async def user(db):
    user = await user_service.create_user("sam", "secret123", db, role=UserRole.AGENT)
    await db.commit()
    return user


async def _row_exists(db, session_id: str) -> bool:
    result = await db.execute(select(UserSession.id).where(UserSession.id == session_id))
    return result.scalar_one_or_none() is not None


async def test_create_and_find_valid_session(db, user):
    session = await session_service.create_session(user.id, db)
    await db.commit()

    found = await session_service.find_valid_session(session.id, db)
    assert found is not None
    assert found.user.username == "sam"
    assert found.is_valid()


async def test_default_ttl_is_thirty_days(db, user):
    session = await session_service.create_session(user.id, db)
    assert session.expires_at - session.created_at == timedelta(days=30)


async def test_expired_session_is_never_returned(db, user):
    session = await session_service.create_session(user.id, db, ttl=timedelta(seconds=-1))
    await db.commit()

    assert await session_service.find_valid_session(session.id, db) is None
    # The row is still there until the next sweep
    assert await _row_exists(db, session.id)


async def test_unknown_session_is_a_miss(db):
    assert await session_service.find_valid_session("no-such-token", db) is None
    assert await session_service.find_valid_session("", db) is None


async def test_destroy_is_idempotent(db, user):
    session = await session_service.create_session(user.id, db)
    await session_service.destroy_session(session.id, db)
    await session_service.destroy_session(session.id, db)
    await db.commit()
    assert await session_service.find_valid_session(session.id, db) is None


async def test_destroy_all_user_sessions(db, user):
    for _ in range(3):
        await session_service.create_session(user.id, db)
    await db.commit()

    removed = await session_service.destroy_all_user_sessions(user.id, db)
    await db.commit()

    assert removed == 3
    result = await db.execute(select(UserSession).where(UserSession.user_id == user.id))
    assert result.unique().scalars().all() == []


async def test_sweep_removes_only_expired(db, user):
    live = await session_service.create_session(user.id, db)
    dead = await session_service.create_session(user.id, db, ttl=timedelta(seconds=-5))
    await db.commit()

    removed = await session_service.sweep_expired_sessions(db)
    await db.commit()

    assert removed == 1
    assert await _row_exists(db, live.id)
    assert not await _row_exists(db, dead.id)


async def test_sweeper_run_once(session_factory, db, user):
    dead = await session_service.create_session(user.id, db, ttl=timedelta(seconds=-5))
    await db.commit()

    sweeper = SessionSweeper(session_factory, interval_seconds=3600)
    assert await sweeper.run_once() == 1
    assert await sweeper.run_once() == 0
    assert not await _row_exists(db, dead.id)


async def test_sweeper_start_stop(session_factory, db, user):
    dead = await session_service.create_session(user.id, db, ttl=timedelta(seconds=-5))
    await db.commit()

    sweeper = SessionSweeper(session_factory, interval_seconds=0.01)
    swept = asyncio.Event()
    run_once = sweeper.run_once

    async def run_once_and_signal():
        removed = await run_once()
        swept.set()
        return removed

    sweeper.run_once = run_once_and_signal
    sweeper.start()
    assert sweeper.running
    await asyncio.wait_for(swept.wait(), timeout=2)
    await sweeper.stop()

    assert not sweeper.running
    assert not await _row_exists(db, dead.id)
