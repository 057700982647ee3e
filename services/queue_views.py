"""
Read-only projections over application state. Nothing here is stored or written;
each call re-queries the applications table.
"""
from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Application
from models.enums import ApplicationStatus
from utils import start_of_day


async def waiting(session: AsyncSession) -> list[Application]:
    """Agent work queue: unclaimed applications in the work stage, oldest first."""
    result = await session.execute(
        select(Application)
        .where(
            Application.status == ApplicationStatus.LEVEL3_WORK.value,
            Application.assigned_agent_id.is_(None),
        )
        .order_by(Application.created_at, Application.id)
    )
    return list(result.scalars().all())


async def in_progress(session: AsyncSession, agent_id: str) -> list[Application]:
    result = await session.execute(
        select(Application)
        .where(Application.assigned_agent_id == agent_id)
        .order_by(Application.updated_at.desc())
    )
    return list(result.scalars().all())


async def completed_by(session: AsyncSession, agent_id: str) -> list[Application]:
    """Everything this agent finished, whatever the admin later decided."""
    result = await session.execute(
        select(Application)
        .where(
            Application.level3_completed_by == agent_id,
            Application.level3_completed_at.is_not(None),
        )
        .order_by(Application.level3_completed_at.desc())
    )
    return list(result.scalars().all())


async def pending_verification(session: AsyncSession) -> list[Application]:
    result = await session.execute(
        select(Application)
        .where(Application.status == ApplicationStatus.LEVEL4_VERIFICATION.value)
        .order_by(Application.level3_completed_at, Application.id)
    )
    return list(result.scalars().all())


async def by_status(session: AsyncSession, status: str | None = None) -> list[Application]:
    stmt = select(Application).order_by(Application.created_at.desc())
    if status:
        stmt = stmt.where(Application.status == status)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def status_counts(session: AsyncSession) -> dict[str, int]:
    result = await session.execute(
        select(Application.status, func.count(Application.id)).group_by(Application.status)
    )
    counts = {s.value: 0 for s in ApplicationStatus}
    counts.update({status: n for status, n in result.all()})
    return counts


async def agent_stats(session: AsyncSession, agent_id: str) -> dict[str, int]:
    return {
        "waiting": len(await waiting(session)),
        "in_progress": len(await in_progress(session, agent_id)),
        "completed_total": len(await completed_by(session, agent_id)),
    }


async def admin_stats(session: AsyncSession, admin_id: str) -> dict[str, int]:
    pending = await pending_verification(session)
    result = await session.execute(
        select(func.count(Application.id)).where(
            Application.status == ApplicationStatus.COMPLETED.value,
            Application.level4_verified_by == admin_id,
            Application.level4_verified_at >= start_of_day(),
        )
    )
    return {"pending": len(pending), "completed_today": result.scalar_one()}
