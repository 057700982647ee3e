"""
Reviewer callback queue: applicants wait for a call, reviewers claim and work entries FIFO.
Claims use the same conditional-update pattern as services.workflow.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models import Application, QueueEntry, User
from models.enums import ACTIVE_QUEUE_STATUSES, QueueOutcome, QueueStatus
from services import workflow
from services.errors import (
    AlreadyClaimedError,
    AlreadyInQueueError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from services.policy import Capability, require
from utils import new_id, start_of_day, utcnow

logger = logging.getLogger(__name__)


@dataclass
class QueuePosition:
    entry: QueueEntry
    position: Optional[int]
    estimated_wait_minutes: Optional[int]


def estimate_wait_minutes(position: int) -> int:
    return position * settings.call_queue_minutes_per_caller


async def get_entry(session: AsyncSession, entry_id: str) -> QueueEntry:
    entry = await session.get(QueueEntry, entry_id)
    if entry is None:
        raise NotFoundError("Queue entry not found")
    return entry


async def active_entry_for(session: AsyncSession, user_id: str) -> Optional[QueueEntry]:
    result = await session.execute(
        select(QueueEntry)
        .where(QueueEntry.user_id == user_id, QueueEntry.status.in_(ACTIVE_QUEUE_STATUSES))
        .order_by(QueueEntry.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def waiting_entries(session: AsyncSession) -> list[QueueEntry]:
    result = await session.execute(
        select(QueueEntry)
        .where(QueueEntry.status == QueueStatus.WAITING.value)
        .order_by(QueueEntry.created_at, QueueEntry.id)
    )
    return list(result.scalars().all())


async def position_of(session: AsyncSession, entry: QueueEntry) -> Optional[int]:
    """1-based rank among waiting entries by join time; None once the entry is no longer waiting."""
    if entry.status != QueueStatus.WAITING.value:
        return None
    ahead = await session.execute(
        select(func.count(QueueEntry.id)).where(
            QueueEntry.status == QueueStatus.WAITING.value,
            or_(
                QueueEntry.created_at < entry.created_at,
                and_(QueueEntry.created_at == entry.created_at, QueueEntry.id < entry.id),
            ),
        )
    )
    return ahead.scalar_one() + 1


async def join(
    session: AsyncSession,
    user: User,
    phone: Optional[str],
    *,
    application_id: Optional[str] = None,
    package_id: Optional[str] = None,
) -> QueueEntry:
    require(user.role, Capability.JOIN_CALL_QUEUE)
    phone = (phone or user.phone or "").strip()
    if not phone:
        raise ValidationError("A phone number is required to join the call queue", missing=["phone"])
    if application_id:
        app = await workflow.get_application(session, application_id)
        if app.user_id != user.id:
            raise PermissionDeniedError("You can only queue for your own application")
        package_id = package_id or app.package_id

    if await active_entry_for(session, user.id) is not None:
        raise AlreadyInQueueError("You are already in the queue")

    entry = QueueEntry(
        id=new_id("q"),
        user_id=user.id,
        application_id=application_id,
        package_id=package_id,
        phone=phone,
        status=QueueStatus.WAITING.value,
        created_at=utcnow(),
    )
    session.add(entry)
    try:
        await session.flush()
    except IntegrityError as e:
        # Another request for the same user got in between the check and the insert
        raise AlreadyInQueueError("You are already in the queue") from e
    logger.info("User %s joined the call queue (%s)", user.id, entry.id)
    return entry


async def leave(session: AsyncSession, user: User) -> QueueEntry:
    entry = await active_entry_for(session, user.id)
    if entry is None or entry.status != QueueStatus.WAITING.value:
        raise NotFoundError("Not in queue")
    await _move(
        session, entry, QueueStatus.WAITING,
        {"status": QueueStatus.DONE.value, "outcome": QueueOutcome.LEFT.value, "call_ended_at": utcnow()},
    )
    return entry


async def status_for(session: AsyncSession, user: User) -> Optional[QueuePosition]:
    entry = await active_entry_for(session, user.id)
    if entry is None:
        return None
    position = await position_of(session, entry)
    return QueuePosition(
        entry=entry,
        position=position,
        estimated_wait_minutes=estimate_wait_minutes(position) if position else None,
    )


async def _move(
    session: AsyncSession,
    entry: QueueEntry,
    expected: QueueStatus,
    values: dict,
    reviewer_id: Optional[str] = None,
) -> bool:
    conditions = [QueueEntry.id == entry.id, QueueEntry.status == expected.value]
    if reviewer_id is not None:
        conditions.append(QueueEntry.reviewer_id == reviewer_id)
    result = await session.execute(
        update(QueueEntry).where(*conditions).values(**values).execution_options(synchronize_session=False)
    )
    await session.refresh(entry)
    return result.rowcount == 1


def _ensure_holder(entry: QueueEntry, reviewer: User, allowed: tuple[QueueStatus, ...], action: str) -> None:
    if entry.status not in {s.value for s in allowed}:
        raise InvalidTransitionError(f"Cannot {action} a queue entry in status '{entry.status}'", current_status=entry.status)
    if entry.reviewer_id != reviewer.id:
        raise PermissionDeniedError("This caller is not assigned to you")


async def claim(session: AsyncSession, entry_id: str, reviewer: User) -> QueueEntry:
    require(reviewer.role, Capability.WORK_CALL_QUEUE)
    entry = await get_entry(session, entry_id)
    if entry.status != QueueStatus.WAITING.value:
        if entry.status in (QueueStatus.CLAIMED.value, QueueStatus.IN_CALL.value):
            raise AlreadyClaimedError("This caller has already been claimed")
        raise InvalidTransitionError(f"Cannot claim a queue entry in status '{entry.status}'", current_status=entry.status)

    won = await _move(
        session, entry, QueueStatus.WAITING,
        {"status": QueueStatus.CLAIMED.value, "reviewer_id": reviewer.id, "claimed_at": utcnow()},
    )
    if not won:
        if entry.status == QueueStatus.DONE.value:
            raise InvalidTransitionError("The caller left the queue", current_status=entry.status)
        raise AlreadyClaimedError("This caller has already been claimed")
    return entry


async def release(session: AsyncSession, entry_id: str, reviewer: User) -> QueueEntry:
    require(reviewer.role, Capability.WORK_CALL_QUEUE)
    entry = await get_entry(session, entry_id)
    _ensure_holder(entry, reviewer, (QueueStatus.CLAIMED,), "release")
    await _move(
        session, entry, QueueStatus.CLAIMED,
        {"status": QueueStatus.WAITING.value, "reviewer_id": None, "claimed_at": None},
        reviewer_id=reviewer.id,
    )
    return entry


async def start_call(session: AsyncSession, entry_id: str, reviewer: User) -> QueueEntry:
    require(reviewer.role, Capability.WORK_CALL_QUEUE)
    entry = await get_entry(session, entry_id)
    _ensure_holder(entry, reviewer, (QueueStatus.CLAIMED,), "start a call for")
    won = await _move(
        session, entry, QueueStatus.CLAIMED,
        {"status": QueueStatus.IN_CALL.value, "call_started_at": utcnow()},
        reviewer_id=reviewer.id,
    )
    if not won:
        raise InvalidTransitionError("Queue entry changed concurrently", current_status=entry.status)
    return entry


async def end_call(
    session: AsyncSession,
    entry_id: str,
    reviewer: User,
    outcome: QueueOutcome | str,
    notes: Optional[str] = None,
) -> tuple[QueueEntry, Optional[Application]]:
    """
    Close out a call. An approved/denied outcome on an entry linked to a pending application
    is applied to the application as the reviewer's decision; an application in any other
    status is returned as is and the call still closes.
    """
    require(reviewer.role, Capability.WORK_CALL_QUEUE)
    outcome = QueueOutcome(outcome)
    if outcome == QueueOutcome.LEFT:
        raise ValidationError("'left' is not a call outcome")
    entry = await get_entry(session, entry_id)
    _ensure_holder(entry, reviewer, (QueueStatus.CLAIMED, QueueStatus.IN_CALL), "end a call for")

    won = await _move(
        session, entry, QueueStatus(entry.status),
        {"status": QueueStatus.DONE.value, "outcome": outcome.value, "notes": notes, "call_ended_at": utcnow()},
        reviewer_id=reviewer.id,
    )
    if not won:
        raise InvalidTransitionError("Queue entry changed concurrently", current_status=entry.status)

    app = None
    if entry.application_id and outcome in (QueueOutcome.APPROVED, QueueOutcome.DENIED):
        try:
            app = await workflow.reviewer_decision(
                session, entry.application_id, reviewer, outcome == QueueOutcome.APPROVED, notes
            )
        except InvalidTransitionError:
            # Application is not pending; the failed transition wrote nothing
            app = await workflow.get_application(session, entry.application_id)
            logger.info(
                "Call %s ended %s; application %s is %s, decision not applied",
                entry.id, outcome.value, app.id, app.status,
            )
    return entry, app


async def stats(session: AsyncSession) -> dict[str, list[QueueEntry]]:
    waiting = await waiting_entries(session)
    in_call = await session.execute(
        select(QueueEntry)
        .where(QueueEntry.status.in_((QueueStatus.CLAIMED.value, QueueStatus.IN_CALL.value)))
        .order_by(QueueEntry.claimed_at)
    )
    done_today = await session.execute(
        select(QueueEntry)
        .where(
            QueueEntry.status == QueueStatus.DONE.value,
            QueueEntry.outcome != QueueOutcome.LEFT.value,
            QueueEntry.call_ended_at >= start_of_day(),
        )
        .order_by(QueueEntry.call_ended_at.desc())
    )
    return {
        "waiting": waiting,
        "in_call": list(in_call.scalars().all()),
        "completed": list(done_today.scalars().all()),
    }
