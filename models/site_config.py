from sqlalchemy import JSON, Column, DateTime, String, Text, func

from database import Base

DEFAULT_SITE_NAME = "Application Portal"

DEFAULT_ROLE_NAMES = {
    "applicant": "Applicant",
    "reviewer": "Reviewer",
    "agent": "Agent",
    "admin": "Admin",
    "owner": "Owner",
    "doctor": "Doctor",
}


class SiteConfig(Base):
    """White-label branding; the service keeps a single row with id 'default'."""

    __tablename__ = "site_config"

    id = Column(String(32), primary_key=True, default="default")
    site_name = Column(String(256), nullable=False, default=DEFAULT_SITE_NAME)
    tagline = Column(String(512), nullable=True, default="Your trusted application processing platform")
    description = Column(Text, nullable=True)
    logo_url = Column(String(1024), nullable=True)
    favicon_url = Column(String(1024), nullable=True)
    primary_color = Column(String(16), nullable=True, default="#3b82f6")
    contact_email = Column(String(256), nullable=True)
    contact_phone = Column(String(32), nullable=True)
    address = Column(Text, nullable=True)
    role_names = Column(JSON, nullable=False, default=lambda: dict(DEFAULT_ROLE_NAMES))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
