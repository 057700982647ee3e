from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import require_capability
from api.responses import application_to_response, package_to_response, payment_to_response
from database import get_db
from models import Package, Payment, User
from schemas.application import VerifyRequest
from schemas.package import PackageCreate, PackageUpdate
from services import queue_views, workflow
from services.errors import NotFoundError
from services.policy import Capability
from utils import dict_keys_to_camel, new_id

router = APIRouter(prefix="/api/admin", tags=["admin"])

MSG_PACKAGE_NOT_FOUND = "Package not found"

verifier = require_capability(Capability.VERIFY)


@router.get("/verification-queue")
async def verification_queue(user: User = Depends(verifier), db: AsyncSession = Depends(get_db)):
    return [application_to_response(a) for a in await queue_views.pending_verification(db)]


@router.get("/verification-queue/stats")
async def verification_queue_stats(user: User = Depends(verifier), db: AsyncSession = Depends(get_db)):
    return dict_keys_to_camel(await queue_views.admin_stats(db, user.id))


@router.post("/verification-queue/{application_id}/verify")
async def verify(
    application_id: str,
    body: VerifyRequest,
    user: User = Depends(verifier),
    db: AsyncSession = Depends(get_db),
):
    app = await workflow.verify(db, application_id, user, body.approved, body.notes)
    return application_to_response(app)


@router.get("/payments")
async def list_payments(
    user: User = Depends(require_capability(Capability.VIEW_PAYMENTS)),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Payment).order_by(Payment.created_at.desc(), Payment.id))
    return [payment_to_response(p) for p in result.scalars().all()]


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------


@router.get("/packages")
async def list_all_packages(
    user: User = Depends(require_capability(Capability.MANAGE_PACKAGES)),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Package).order_by(Package.sort_order, Package.name))
    return [package_to_response(p) for p in result.scalars().all()]


@router.post("/packages", status_code=201)
async def create_package(
    body: PackageCreate,
    user: User = Depends(require_capability(Capability.MANAGE_PACKAGES)),
    db: AsyncSession = Depends(get_db),
):
    package = Package(
        id=new_id("pkg"),
        name=body.name,
        description=body.description,
        price=body.price,
        state=body.state,
        form_fields=[f.model_dump() for f in body.form_fields],
        requires_level2_interaction=body.requires_level2_interaction,
        is_active=body.is_active,
        sort_order=body.sort_order,
    )
    db.add(package)
    await db.flush()
    await db.refresh(package)
    return package_to_response(package)


@router.patch("/packages/{package_id}")
async def update_package(
    package_id: str,
    body: PackageUpdate,
    user: User = Depends(require_capability(Capability.MANAGE_PACKAGES)),
    db: AsyncSession = Depends(get_db),
):
    package = await db.get(Package, package_id)
    if not package:
        raise NotFoundError(MSG_PACKAGE_NOT_FOUND)
    changes = body.model_dump(exclude_unset=True, by_alias=False)
    if "form_fields" in changes:
        changes["form_fields"] = [f.model_dump() for f in body.form_fields or []]
    for field, value in changes.items():
        setattr(package, field, value)
    await db.flush()
    await db.refresh(package)
    return package_to_response(package)


@router.delete("/packages/{package_id}", status_code=204)
async def delete_package(
    package_id: str,
    user: User = Depends(require_capability(Capability.DELETE_PACKAGES)),
    db: AsyncSession = Depends(get_db),
):
    """Packages referenced by applications are kept for audit; deleting only deactivates."""
    package = await db.get(Package, package_id)
    if not package:
        raise NotFoundError(MSG_PACKAGE_NOT_FOUND)
    package.is_active = False
    await db.flush()
    return None
