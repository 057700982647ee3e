from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_gateway, require_capability
from api.responses import application_to_response, event_to_response
from database import get_db
from models import Application, Package, User
from schemas.application import (
    ApplicationCreate,
    ProcessPaymentRequest,
    ReviewerDecisionRequest,
    SendToDoctorRequest,
)
from services import queue_views, workflow
from services.errors import NotFoundError, PermissionDeniedError, ValidationError
from services.notifications import send_review_link_email
from services.payments import PaymentGateway
from services.policy import Capability, can
from utils import isoformat

router = APIRouter(prefix="/api", tags=["applications"])


async def _get_visible_application(db: AsyncSession, application_id: str, user: User) -> Application:
    app = await workflow.get_application(db, application_id)
    if app.user_id != user.id and not can(user.role, Capability.VIEW_ALL_APPLICATIONS):
        raise PermissionDeniedError("Forbidden")
    return app


@router.post("/applications", status_code=201)
async def create_application(
    body: ApplicationCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
):
    package = await db.get(Package, body.package_id)
    if package is None:
        raise ValidationError("Invalid package")
    app = await workflow.submit(
        db,
        user,
        package,
        body.form_data,
        gateway=gateway,
        payment_token=body.payment_token,
    )
    return application_to_response(app)


@router.get("/applications")
async def list_my_applications(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Application).where(Application.user_id == user.id).order_by(Application.created_at.desc())
    )
    return [application_to_response(a) for a in result.scalars().all()]


@router.get("/applications/{application_id}")
async def get_application(
    application_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    app = await _get_visible_application(db, application_id, user)
    return application_to_response(app)


@router.get("/applications/{application_id}/events")
async def list_application_events(
    application_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _get_visible_application(db, application_id, user)
    return [event_to_response(e) for e in await workflow.list_events(db, application_id)]


@router.post("/applications/{application_id}/pay")
async def pay_application(
    application_id: str,
    body: ProcessPaymentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
):
    """Applicant checkout for an application left in awaiting_payment."""
    if not body.payment_token:
        raise ValidationError("paymentToken is required", missing=["paymentToken"])
    app = await workflow.process_payment(db, application_id, user, gateway=gateway, payment_token=body.payment_token)
    return application_to_response(app)


# ---------------------------------------------------------------------------
# Staff views and actions
# ---------------------------------------------------------------------------


@router.get("/admin/applications")
async def list_all_applications(
    status: Optional[str] = None,
    user: User = Depends(require_capability(Capability.VIEW_ALL_APPLICATIONS)),
    db: AsyncSession = Depends(get_db),
):
    apps = await queue_views.by_status(db, status)
    return [application_to_response(a) for a in apps]


@router.get("/admin/applications/stats")
async def application_status_counts(
    user: User = Depends(require_capability(Capability.VIEW_ALL_APPLICATIONS)),
    db: AsyncSession = Depends(get_db),
):
    return await queue_views.status_counts(db)


@router.post("/admin/applications/{application_id}/send-to-doctor")
async def send_to_doctor(
    application_id: str,
    background_tasks: BackgroundTasks,
    body: Optional[SendToDoctorRequest] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    referral = await workflow.send_to_doctor(
        db, application_id, user, doctor_id=body.doctor_id if body else None
    )
    app = referral.application
    doctor = referral.doctor
    applicant = await db.get(User, app.user_id)
    package = await db.get(Package, app.package_id)
    if doctor is not None:
        background_tasks.add_task(
            send_review_link_email,
            doctor.email,
            doctor.full_name,
            applicant.full_name if applicant else app.user_id,
            package.name if package else app.package_id,
            dict(app.form_data or {}),
            referral.review_url,
            isoformat(referral.review_token.expires_at),
        )
    return {
        "application": application_to_response(app),
        "reviewUrl": referral.review_url,
        "expiresAt": isoformat(referral.review_token.expires_at),
        "doctor": {"id": doctor.id, "name": doctor.full_name} if doctor else None,
    }


@router.post("/admin/applications/{application_id}/process-payment")
async def process_payment(
    application_id: str,
    body: Optional[ProcessPaymentRequest] = None,
    user: User = Depends(require_capability(Capability.PROCESS_PAYMENT)),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
):
    app = await workflow.process_payment(
        db, application_id, user, gateway=gateway, payment_token=body.payment_token if body else None
    )
    return application_to_response(app)


@router.post("/admin/applications/{application_id}/reviewer-decision")
async def reviewer_decision(
    application_id: str,
    body: ReviewerDecisionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    app = await workflow.reviewer_decision(db, application_id, user, body.approved, body.notes)
    return application_to_response(app)


@router.get("/users/{user_id}/applications")
async def list_user_applications(
    user_id: str,
    user: User = Depends(require_capability(Capability.VIEW_ALL_APPLICATIONS)),
    db: AsyncSession = Depends(get_db),
):
    if await db.get(User, user_id) is None:
        raise NotFoundError("User not found")
    result = await db.execute(
        select(Application).where(Application.user_id == user_id).order_by(Application.created_at.desc())
    )
    return [application_to_response(a) for a in result.scalars().all()]
