"""
Store model (the tenant).

Every customer, verification code and email log belongs to exactly one store.
Storefront requests address a store by its public slug; server-side
operations address it by its opaque id.
"""

from sqlalchemy import Column, String, Text, DateTime, func
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.security import generate_id


class Store(Base):
    __tablename__ = "stores"

    id = Column(String(21), primary_key=True, default=generate_id)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)

    # Contact details shown in customer emails
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)

    # Branding
    logo_url = Column(Text, nullable=True)
    primary_color = Column(String(20), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    customers = relationship("Customer", back_populates="store", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Store(id={self.id}, slug='{self.slug}')>"
