"""
Customer model.

Customers are scoped to a single store: the same email address may exist
once per store, and a session is only honoured for the store that owns
the customer.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.security import generate_id


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(21), primary_key=True, default=generate_id)
    store_id = Column(String(21), ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)

    email = Column(String(255), nullable=False)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    store = relationship("Store", back_populates="customers")
    sessions = relationship("CustomerSession", back_populates="customer", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("store_id", "email", name="uq_customers_store_email"),
    )

    def __repr__(self):
        return f"<Customer(id={self.id}, store_id={self.store_id})>"
