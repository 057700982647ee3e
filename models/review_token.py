from sqlalchemy import Column, DateTime, ForeignKey, String

from database import Base


class ReviewToken(Base):
    __tablename__ = "review_tokens"

    token = Column(String(128), primary_key=True)
    application_id = Column(String(64), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)
    doctor_id = Column(String(64), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    consumed_at = Column(DateTime(timezone=True), nullable=True)
    decision = Column(String(16), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
