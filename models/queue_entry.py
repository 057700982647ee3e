from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text

from database import Base
from models.enums import ACTIVE_QUEUE_STATUSES


class QueueEntry(Base):
    __tablename__ = "queue_entries"

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    application_id = Column(String(64), ForeignKey("applications.id"), nullable=True)
    package_id = Column(String(64), ForeignKey("packages.id"), nullable=True)
    phone = Column(String(32), nullable=True)
    status = Column(String(16), nullable=False, default="waiting", index=True)
    reviewer_id = Column(String(64), ForeignKey("users.id"), nullable=True, index=True)
    notes = Column(Text, nullable=True)
    outcome = Column(String(16), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    call_started_at = Column(DateTime(timezone=True), nullable=True)
    call_ended_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        # One active entry per user, enforced by the database as well
        Index(
            "uq_queue_entries_active_user",
            "user_id",
            unique=True,
            sqlite_where=status.in_(ACTIVE_QUEUE_STATUSES),
            postgresql_where=status.in_(ACTIVE_QUEUE_STATUSES),
        ),
    )
