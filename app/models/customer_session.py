"""
Customer session model.

A session is created after a successful code verification (or instant
access redemption) and is valid while ``now < expires_at``. Expired rows are
ignored on lookup and removed by the periodic cleanup task.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.security import generate_id


class CustomerSession(Base):
    __tablename__ = "customer_sessions"

    id = Column(String(21), primary_key=True, default=generate_id)
    customer_id = Column(String(21), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(255), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    customer = relationship("Customer", back_populates="sessions")

    def __repr__(self):
        return f"<CustomerSession(id={self.id}, customer_id={self.customer_id}, expires_at={self.expires_at})>"
