"""
Application lifecycle: the only code that writes an application's status, claim or milestone fields.

Every transition is a conditional UPDATE (... WHERE id = :id AND status = :expected [AND claim predicate]);
the affected row count decides whether this request won. Nothing is locked in-process, so the same
guarantees hold with several API workers sharing one database.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Any, Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models import Application, ApplicationEvent, Package, Payment, ReviewToken, User
from models.enums import TERMINAL_STATUSES, ApplicationStatus, PaymentStatus, Role
from services.errors import (
    AlreadyClaimedError,
    ApplicationNotFoundError,
    InvalidTransitionError,
    PaymentError,
    PermissionDeniedError,
    ReviewTokenNotFoundError,
    TokenConsumedError,
    TokenExpiredError,
    ValidationError,
)
from services.forms import validate_form_data
from services.payments import PaymentGateway, charge_or_raise
from services.policy import Capability, can, require
from utils import as_utc, new_id, utcnow

logger = logging.getLogger(__name__)

S = ApplicationStatus

ALLOWED_TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    S.PENDING: frozenset({S.LEVEL3_WORK, S.REJECTED, S.DOCTOR_REVIEW}),
    S.AWAITING_PAYMENT: frozenset({S.LEVEL3_WORK}),
    S.LEVEL3_WORK: frozenset({S.DOCTOR_REVIEW, S.LEVEL4_VERIFICATION}),
    # level3_work is the rework edge; rejected only once a rework cap is configured and reached
    S.LEVEL4_VERIFICATION: frozenset({S.COMPLETED, S.LEVEL3_WORK, S.REJECTED}),
    S.DOCTOR_REVIEW: frozenset({S.DOCTOR_APPROVED, S.DOCTOR_DENIED}),
    S.DOCTOR_APPROVED: frozenset({S.COMPLETED}),
    S.DOCTOR_DENIED: frozenset({S.REJECTED}),
    **{terminal: frozenset() for terminal in TERMINAL_STATUSES},
}

SEND_TO_DOCTOR_SOURCES = frozenset({S.PENDING, S.LEVEL3_WORK})


@dataclass
class DoctorReferral:
    application: Application
    review_token: ReviewToken
    review_url: str
    doctor: Optional[User]


def can_transition(current: str | ApplicationStatus, target: ApplicationStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[S(current)]


def claim_invariant_holds(app: Application) -> bool:
    """An application carries an agent exactly when it sits claimed in the agent work stage."""
    if app.assigned_agent_id is None:
        return True
    return app.status == S.LEVEL3_WORK.value


def review_url_for(token: str) -> str:
    return f"{settings.public_base_url.rstrip('/')}/review/{token}"


# ---------------------------------------------------------------------------
# Loading and low-level writes
# ---------------------------------------------------------------------------


async def get_application(session: AsyncSession, application_id: str) -> Application:
    app = await session.get(Application, application_id)
    if app is None:
        raise ApplicationNotFoundError(application_id)
    return app


def _ensure_status(app: Application, sources: Iterable[ApplicationStatus], action: str) -> None:
    allowed = {s.value for s in sources}
    if app.status not in allowed:
        raise InvalidTransitionError(
            f"Cannot {action} an application in status '{app.status}' "
            f"(allowed: {', '.join(sorted(allowed))})",
            current_status=app.status,
        )


async def _compare_and_set(
    session: AsyncSession,
    application_id: str,
    expected_status: ApplicationStatus,
    values: dict[str, Any],
    where: Iterable[Any] = (),
) -> bool:
    stmt = (
        update(Application)
        .where(Application.id == application_id, Application.status == expected_status.value, *where)
        .values(**values, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.rowcount == 1


def _record_event(
    session: AsyncSession,
    application_id: str,
    actor_id: Optional[str],
    action: str,
    from_status: Optional[str],
    to_status: Optional[str],
    notes: Optional[str] = None,
) -> None:
    session.add(
        ApplicationEvent(
            id=new_id("evt"),
            application_id=application_id,
            actor_id=actor_id,
            action=action,
            from_status=from_status,
            to_status=to_status,
            notes=notes,
            created_at=utcnow(),
        )
    )


async def _transition(
    session: AsyncSession,
    app: Application,
    target: ApplicationStatus,
    *,
    action: str,
    actor_id: Optional[str],
    values: Optional[dict[str, Any]] = None,
    where: Iterable[Any] = (),
    notes: Optional[str] = None,
) -> Application:
    current = S(app.status)
    if not can_transition(current, target):
        raise InvalidTransitionError(f"No transition from '{current.value}' to '{target.value}'", current_status=current.value)

    changes = {"status": target.value, **(values or {})}
    # Status hops never carry a claim; only claim() assigns an agent
    changes.setdefault("assigned_agent_id", None)

    won = await _compare_and_set(session, app.id, current, changes, where)
    await session.refresh(app)
    if not won:
        raise InvalidTransitionError(
            f"Application {app.id} changed concurrently (now '{app.status}'); refetch and retry",
            current_status=app.status,
        )
    _record_event(session, app.id, actor_id, action, current.value, target.value, notes)
    logger.info("Application %s: %s -> %s (%s by %s)", app.id, current.value, target.value, action, actor_id)
    return app


# ---------------------------------------------------------------------------
# Submission and payment
# ---------------------------------------------------------------------------


async def submit(
    session: AsyncSession,
    user: User,
    package: Package,
    form_data: dict[str, Any],
    *,
    gateway: Optional[PaymentGateway] = None,
    payment_token: Optional[str] = None,
) -> Application:
    """
    Create an application for `package`. A priced package without a processed payment lands in
    awaiting_payment; a free package, or one charged here via `payment_token`, lands in pending.

    The row is written before the card is charged, so a storage failure can never follow a
    successful charge. A declined charge removes the row again.
    """
    require(user.role, Capability.SUBMIT_APPLICATION)
    if not package.is_active:
        raise ValidationError(f"Package {package.id} is not available")
    validate_form_data(package.form_fields, form_data)

    price_cents = package.price_cents
    charging = price_cents > 0 and bool(payment_token)
    if charging and gateway is None:
        raise PaymentError("No payment gateway available")

    if price_cents == 0:
        status, payment_status = S.PENDING, PaymentStatus.PAID
    elif charging:
        status, payment_status = S.AWAITING_PAYMENT, PaymentStatus.PROCESSING
    else:
        status, payment_status = S.AWAITING_PAYMENT, PaymentStatus.UNPAID
    now = utcnow()
    app = Application(
        id=new_id("app"),
        user_id=user.id,
        package_id=package.id,
        status=status.value,
        form_data=dict(form_data),
        payment_status=payment_status.value,
        payment_amount=package.price or Decimal("0"),
        rework_count=0,
        created_at=now,
        updated_at=now,
    )
    session.add(app)
    await session.flush()

    if charging:
        try:
            charge = await charge_or_raise(
                gateway, price_cents, payment_token, order_id=app.id, description=package.name
            )
        except PaymentError:
            await session.delete(app)
            await session.flush()
            raise
        # Still uncommitted and invisible to other sessions, so no conditional update is needed
        status = S.PENDING
        app.status = status.value
        app.payment_status = PaymentStatus.PAID.value
        _add_payment(session, app, method="card", transaction_id=charge.transaction_id, recorded_by=user.id)

    _record_event(session, app.id, user.id, "submitted", None, status.value)
    await session.flush()
    logger.info("Application %s submitted by %s for package %s (%s)", app.id, user.id, package.id, status.value)
    return app


def _add_payment(session: AsyncSession, app: Application, *, method: str, transaction_id: Optional[str], recorded_by: Optional[str]) -> None:
    session.add(
        Payment(
            id=new_id("pay"),
            application_id=app.id,
            user_id=app.user_id,
            amount=app.payment_amount or Decimal("0"),
            status="succeeded",
            method=method,
            transaction_id=transaction_id,
            recorded_by=recorded_by,
            created_at=utcnow(),
        )
    )


async def process_payment(
    session: AsyncSession,
    application_id: str,
    actor: User,
    *,
    gateway: Optional[PaymentGateway] = None,
    payment_token: Optional[str] = None,
) -> Application:
    """
    Settle an awaiting_payment application and move it to the agent work stage.
    With a payment token the gateway is charged (the applicant or staff may do this); without one,
    staff record a manual payment.

    The row is reserved (payment_status unpaid -> processing) before any charge, so of two
    concurrent payers only the one holding the reservation reaches the gateway. A declined or
    failed charge releases the reservation and leaves the application as it was.
    """
    app = await get_application(session, application_id)
    is_staff = can(actor.role, Capability.PROCESS_PAYMENT)
    if not is_staff and not (payment_token and app.user_id == actor.id):
        raise PermissionDeniedError("Only staff or the applicant paying by card may process this payment")
    _ensure_status(app, {S.AWAITING_PAYMENT}, "process payment for")
    if payment_token and gateway is None:
        raise PaymentError("No payment gateway available")

    reserved = await _compare_and_set(
        session,
        app.id,
        S.AWAITING_PAYMENT,
        {"payment_status": PaymentStatus.PROCESSING.value},
        where=[Application.payment_status == PaymentStatus.UNPAID.value],
    )
    await session.refresh(app)
    if not reserved:
        raise InvalidTransitionError(
            f"Payment for application {app.id} is already in progress or settled (now '{app.status}')",
            current_status=app.status,
        )

    charge = None
    if payment_token:
        amount_cents = int(round((app.payment_amount or 0) * 100))
        try:
            charge = await charge_or_raise(gateway, amount_cents, payment_token, order_id=app.id)
        except PaymentError:
            await _compare_and_set(
                session,
                app.id,
                S.AWAITING_PAYMENT,
                {"payment_status": PaymentStatus.UNPAID.value},
                where=[Application.payment_status == PaymentStatus.PROCESSING.value],
            )
            await session.refresh(app)
            raise

    app = await _transition(
        session,
        app,
        S.LEVEL3_WORK,
        action="payment_processed",
        actor_id=actor.id,
        values={"payment_status": PaymentStatus.PAID.value},
        where=[Application.payment_status == PaymentStatus.PROCESSING.value],
    )
    _add_payment(
        session,
        app,
        method="card" if charge else "manual",
        transaction_id=charge.transaction_id if charge else None,
        recorded_by=actor.id,
    )
    await session.flush()
    return app


# ---------------------------------------------------------------------------
# Reviewer (level 2) and doctor review
# ---------------------------------------------------------------------------


async def reviewer_decision(
    session: AsyncSession,
    application_id: str,
    reviewer: User,
    approved: bool,
    notes: Optional[str] = None,
) -> Application:
    require(reviewer.role, Capability.REVIEWER_DECISION)
    app = await get_application(session, application_id)
    _ensure_status(app, {S.PENDING}, "record a reviewer decision for")
    now = utcnow()
    if approved:
        return await _transition(
            session,
            app,
            S.LEVEL3_WORK,
            action="reviewer_approved",
            actor_id=reviewer.id,
            values={"level2_notes": notes, "level2_approved_at": now, "level2_approved_by": reviewer.id},
            notes=notes,
        )
    return await _transition(
        session,
        app,
        S.REJECTED,
        action="reviewer_denied",
        actor_id=reviewer.id,
        values={"level2_notes": notes, "rejection_reason": notes},
        notes=notes,
    )


async def _pick_doctor(session: AsyncSession, doctor_id: Optional[str]) -> Optional[User]:
    if doctor_id:
        doctor = await session.get(User, doctor_id)
        if doctor is None or doctor.role != Role.DOCTOR.value or not doctor.is_active:
            raise ValidationError(f"User {doctor_id} is not an active doctor")
        return doctor
    result = await session.execute(
        select(User)
        .where(User.role == Role.DOCTOR.value, User.is_active.is_(True))
        .order_by(User.created_at, User.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def send_to_doctor(
    session: AsyncSession,
    application_id: str,
    actor: User,
    *,
    doctor_id: Optional[str] = None,
) -> DoctorReferral:
    """Issue a single-use, time-boxed review link and hand the application to a doctor."""
    require(actor.role, Capability.SEND_TO_DOCTOR)
    app = await get_application(session, application_id)
    _ensure_status(app, SEND_TO_DOCTOR_SOURCES, "send to doctor")
    doctor = await _pick_doctor(session, doctor_id)

    app = await _transition(
        session,
        app,
        S.DOCTOR_REVIEW,
        action="sent_to_doctor",
        actor_id=actor.id,
        values={"doctor_id": doctor.id if doctor else None},
    )
    now = utcnow()
    token = ReviewToken(
        token=secrets.token_urlsafe(32),
        application_id=app.id,
        doctor_id=doctor.id if doctor else None,
        expires_at=now + timedelta(days=settings.review_token_ttl_days),
        created_at=now,
    )
    session.add(token)
    await session.flush()
    return DoctorReferral(application=app, review_token=token, review_url=review_url_for(token.token), doctor=doctor)


async def open_review(session: AsyncSession, token: str) -> tuple[ReviewToken, Application]:
    """Resolve a review link for display; fails the same way a decision on it would."""
    review = await session.get(ReviewToken, token)
    if review is None:
        raise ReviewTokenNotFoundError()
    if review.consumed_at is not None:
        raise TokenConsumedError()
    if as_utc(review.expires_at) <= utcnow():
        raise TokenExpiredError()
    app = await get_application(session, review.application_id)
    return review, app


async def doctor_decision(
    session: AsyncSession,
    token: str,
    approved: bool,
    notes: Optional[str] = None,
) -> Application:
    """
    Consume a review token and record the doctor's decision.
    Approval passes through doctor_approved to completed; denial through doctor_denied to rejected.
    """
    review, app = await open_review(session, token)
    _ensure_status(app, {S.DOCTOR_REVIEW}, "record a doctor decision for")

    decision = "approved" if approved else "denied"
    now = utcnow()
    consumed = await session.execute(
        update(ReviewToken)
        .where(ReviewToken.token == token, ReviewToken.consumed_at.is_(None))
        .values(consumed_at=now, decision=decision)
        .execution_options(synchronize_session=False)
    )
    if consumed.rowcount != 1:
        raise TokenConsumedError()
    await session.refresh(review)

    doctor_fields = {"doctor_notes": notes, "doctor_decided_at": now}
    if approved:
        app = await _transition(
            session, app, S.DOCTOR_APPROVED,
            action="doctor_approved", actor_id=review.doctor_id, values=doctor_fields, notes=notes,
        )
        return await _transition(
            session, app, S.COMPLETED,
            action="completed", actor_id=review.doctor_id, values={"completed_at": now},
        )
    app = await _transition(
        session, app, S.DOCTOR_DENIED,
        action="doctor_denied", actor_id=review.doctor_id, values=doctor_fields, notes=notes,
    )
    return await _transition(
        session, app, S.REJECTED,
        action="rejected", actor_id=review.doctor_id, values={"rejection_reason": notes},
    )


# ---------------------------------------------------------------------------
# Agent claims (level 3)
# ---------------------------------------------------------------------------


async def claim(session: AsyncSession, application_id: str, agent: User) -> Application:
    """Take an unclaimed work item. Claiming an item you already hold is a no-op."""
    require(agent.role, Capability.WORK_AGENT_QUEUE)
    app = await get_application(session, application_id)
    _ensure_status(app, {S.LEVEL3_WORK}, "claim")
    if app.assigned_agent_id == agent.id:
        return app
    if app.assigned_agent_id is not None:
        raise AlreadyClaimedError("Application already claimed by another agent")

    won = await _compare_and_set(
        session,
        app.id,
        S.LEVEL3_WORK,
        {"assigned_agent_id": agent.id},
        where=[Application.assigned_agent_id.is_(None)],
    )
    await session.refresh(app)
    if not won:
        if app.status != S.LEVEL3_WORK.value:
            raise InvalidTransitionError(f"Cannot claim an application in status '{app.status}'", current_status=app.status)
        if app.assigned_agent_id == agent.id:
            return app
        # Lost the race; routine on a shared queue
        logger.debug("Claim race lost on %s by %s", app.id, agent.id)
        raise AlreadyClaimedError("Application already claimed by another agent")

    _record_event(session, app.id, agent.id, "claimed", app.status, app.status)
    return app


async def release(session: AsyncSession, application_id: str, agent: User) -> Application:
    require(agent.role, Capability.WORK_AGENT_QUEUE)
    app = await get_application(session, application_id)
    _ensure_status(app, {S.LEVEL3_WORK}, "release")
    if app.assigned_agent_id != agent.id:
        raise InvalidTransitionError("This application is not assigned to you", current_status=app.status)

    won = await _compare_and_set(
        session,
        app.id,
        S.LEVEL3_WORK,
        {"assigned_agent_id": None},
        where=[Application.assigned_agent_id == agent.id],
    )
    await session.refresh(app)
    if not won:
        raise InvalidTransitionError("This application is not assigned to you", current_status=app.status)
    _record_event(session, app.id, agent.id, "released", app.status, app.status)
    return app


async def complete_work(session: AsyncSession, application_id: str, agent: User, notes: Optional[str]) -> Application:
    require(agent.role, Capability.WORK_AGENT_QUEUE)
    app = await get_application(session, application_id)
    _ensure_status(app, {S.LEVEL3_WORK}, "complete work on")
    if app.assigned_agent_id != agent.id:
        raise InvalidTransitionError("This application is not assigned to you", current_status=app.status)
    if not notes or not notes.strip():
        raise ValidationError("Notes are required to complete work", missing=["notes"])

    return await _transition(
        session,
        app,
        S.LEVEL4_VERIFICATION,
        action="work_completed",
        actor_id=agent.id,
        values={
            "level3_notes": notes,
            "level3_completed_at": utcnow(),
            "level3_completed_by": agent.id,
        },
        where=[Application.assigned_agent_id == agent.id],
        notes=notes,
    )


# ---------------------------------------------------------------------------
# Admin verification (level 4)
# ---------------------------------------------------------------------------


async def verify(
    session: AsyncSession,
    application_id: str,
    admin: User,
    approved: bool,
    notes: Optional[str] = None,
) -> Application:
    """Approve agent work (-> completed) or send it back to the agent queue for rework."""
    require(admin.role, Capability.VERIFY)
    app = await get_application(session, application_id)
    _ensure_status(app, {S.LEVEL4_VERIFICATION}, "verify")
    now = utcnow()
    review_fields = {"level4_notes": notes, "level4_verified_at": now, "level4_verified_by": admin.id}

    if approved:
        return await _transition(
            session, app, S.COMPLETED,
            action="verified", actor_id=admin.id, values={**review_fields, "completed_at": now}, notes=notes,
        )

    cap = settings.max_rework_cycles
    if cap is not None and (app.rework_count or 0) >= cap:
        return await _transition(
            session, app, S.REJECTED,
            action="rework_limit_reached", actor_id=admin.id,
            values={**review_fields, "rejection_reason": notes or "Rework limit reached"}, notes=notes,
        )
    return await _transition(
        session,
        app,
        S.LEVEL3_WORK,
        action="sent_back_for_rework",
        actor_id=admin.id,
        values={
            **review_fields,
            "assigned_agent_id": None,
            "rework_count": Application.rework_count + 1,
        },
        notes=notes,
    )


async def list_events(session: AsyncSession, application_id: str) -> list[ApplicationEvent]:
    result = await session.execute(
        select(ApplicationEvent)
        .where(ApplicationEvent.application_id == application_id)
        .order_by(ApplicationEvent.created_at, ApplicationEvent.id)
    )
    return list(result.scalars().all())
