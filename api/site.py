from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import require_capability
from api.responses import package_to_response, site_config_to_response
from database import get_db
from models import Package, User
from schemas.site_config import SiteConfigUpdate
from services.errors import NotFoundError
from services.policy import Capability
from services.site_settings import get_site_config, update_site_config

router = APIRouter(prefix="/api", tags=["site"])


@router.get("/config")
async def get_config(db: AsyncSession = Depends(get_db)):
    return site_config_to_response(await get_site_config(db))


@router.put("/owner/config")
async def put_config(
    body: SiteConfigUpdate,
    user: User = Depends(require_capability(Capability.MANAGE_SITE_CONFIG)),
    db: AsyncSession = Depends(get_db),
):
    config = await update_site_config(db, body.model_dump(exclude_unset=True, by_alias=False))
    return site_config_to_response(config)


@router.get("/packages")
async def list_packages(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Package).where(Package.is_active.is_(True)).order_by(Package.sort_order, Package.name)
    )
    return [package_to_response(p) for p in result.scalars().all()]


@router.get("/packages/{package_id}")
async def get_package(package_id: str, db: AsyncSession = Depends(get_db)):
    package = await db.get(Package, package_id)
    if not package:
        raise NotFoundError("Package not found")
    return package_to_response(package)
