from sqlalchemy import Column, DateTime, ForeignKey, String, Text

from database import Base


class UserNote(Base):
    """Staff-only note pinned to a customer account."""

    __tablename__ = "user_notes"

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
