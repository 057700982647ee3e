from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, Numeric, String, Text, func

from database import Base


class Package(Base):
    __tablename__ = "packages"

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(256), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    state = Column(String(32), nullable=True)
    # [{"name": ..., "type": ..., "required": bool, "options": [...]}]
    form_fields = Column(JSON, nullable=False, default=list)
    requires_level2_interaction = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def price_cents(self) -> int:
        return int(round((self.price or 0) * 100))
