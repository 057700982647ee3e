from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String

from database import Base


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(64), primary_key=True, index=True)
    application_id = Column(String(64), ForeignKey("applications.id"), nullable=False, index=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(String(16), nullable=False, default="succeeded")
    method = Column(String(16), nullable=False)
    transaction_id = Column(String(128), nullable=True)
    recorded_by = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
