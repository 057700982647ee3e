from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String, Text

from database import Base


class Application(Base):
    __tablename__ = "applications"

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    package_id = Column(String(64), ForeignKey("packages.id"), nullable=False, index=True)
    status = Column(String(32), nullable=False, default="pending", index=True)
    # Open bag of package-defined fields; opaque to the workflow
    form_data = Column(JSON, nullable=False, default=dict)

    payment_status = Column(String(16), nullable=False, default="unpaid")
    payment_amount = Column(Numeric(10, 2), nullable=True)

    # Set/cleared only by the claim operations in services.workflow
    assigned_agent_id = Column(String(64), ForeignKey("users.id"), nullable=True, index=True)

    level2_notes = Column(Text, nullable=True)
    level2_approved_at = Column(DateTime(timezone=True), nullable=True)
    level2_approved_by = Column(String(64), nullable=True)
    level3_notes = Column(Text, nullable=True)
    level3_completed_at = Column(DateTime(timezone=True), nullable=True)
    level3_completed_by = Column(String(64), nullable=True, index=True)
    level4_notes = Column(Text, nullable=True)
    level4_verified_at = Column(DateTime(timezone=True), nullable=True)
    level4_verified_by = Column(String(64), nullable=True)
    doctor_id = Column(String(64), nullable=True)
    doctor_notes = Column(Text, nullable=True)
    doctor_decided_at = Column(DateTime(timezone=True), nullable=True)
    rework_count = Column(Integer, nullable=False, default=0)
    rejection_reason = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class ApplicationEvent(Base):
    """Audit trail: one row per status hop or claim change."""

    __tablename__ = "application_events"

    id = Column(String(64), primary_key=True, index=True)
    application_id = Column(String(64), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)
    actor_id = Column(String(64), nullable=True)
    action = Column(String(32), nullable=False)
    from_status = Column(String(32), nullable=True)
    to_status = Column(String(32), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
