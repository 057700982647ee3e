from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class SiteConfigUpdate(BaseModel):
    site_name: Optional[str] = Field(None, alias="siteName", min_length=1)
    tagline: Optional[str] = None
    description: Optional[str] = None
    logo_url: Optional[str] = Field(None, alias="logoUrl")
    favicon_url: Optional[str] = Field(None, alias="faviconUrl")
    primary_color: Optional[str] = Field(None, alias="primaryColor", pattern=r"^#[0-9a-fA-F]{3,8}$")
    contact_email: Optional[str] = Field(None, alias="contactEmail")
    contact_phone: Optional[str] = Field(None, alias="contactPhone")
    address: Optional[str] = None
    # Display labels keyed by role, e.g. {"reviewer": "Counselor"}
    role_names: Optional[dict[str, str]] = Field(None, alias="roleNames")

    model_config = {"populate_by_name": True}
