"""White-label site configuration: one row, created with defaults on first write."""
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from models import SiteConfig
from models.enums import Role
from models.site_config import DEFAULT_ROLE_NAMES, DEFAULT_SITE_NAME
from services.errors import ValidationError

CONFIG_ID = "default"


async def get_site_config(session: AsyncSession) -> Optional[SiteConfig]:
    return await session.get(SiteConfig, CONFIG_ID)


async def site_name(session: AsyncSession) -> str:
    config = await get_site_config(session)
    return config.site_name if config else DEFAULT_SITE_NAME


def role_names(config: Optional[SiteConfig]) -> dict[str, str]:
    names = dict(DEFAULT_ROLE_NAMES)
    if config and config.role_names:
        names.update(config.role_names)
    return names


async def update_site_config(session: AsyncSession, changes: dict[str, Any]) -> SiteConfig:
    config = await get_site_config(session)
    if config is None:
        config = SiteConfig(id=CONFIG_ID, role_names=dict(DEFAULT_ROLE_NAMES))
        session.add(config)

    for required in ("site_name", "role_names"):
        if required in changes and changes[required] is None:
            del changes[required]

    if "role_names" in changes:
        unknown = sorted(set(changes["role_names"]) - {r.value for r in Role})
        if unknown:
            raise ValidationError(f"Unknown roles: {', '.join(unknown)}")
        # Merge so a partial update keeps the other labels
        changes["role_names"] = {**role_names(config), **changes["role_names"]}

    for field, value in changes.items():
        setattr(config, field, value)
    await session.flush()
    await session.refresh(config)
    return config
