"""
Verification code model for storefront customer login.

Rows are single-use and time-limited. A row is valid only while
``used_at IS NULL`` and ``now < expires_at``; consumed rows are kept as an
audit trail until the retention cleanup task removes them.
"""

import enum
from sqlalchemy import Column, String, DateTime, Index, func
from app.core.database import Base
from app.core.security import generate_id


class VerificationCodeType(str, enum.Enum):
    """
    - CODE: 6-digit code emailed to the customer
    - INSTANT_ACCESS: opaque link token sent after a payment
    """
    CODE = "code"
    INSTANT_ACCESS = "instant_access"


class VerificationCode(Base):
    __tablename__ = "verification_codes"

    id = Column(String(21), primary_key=True, default=generate_id)
    email = Column(String(255), nullable=False)
    store_id = Column(String(21), nullable=False)

    code = Column(String(6), nullable=False)
    type = Column(String(20), nullable=False, default=VerificationCodeType.CODE.value)

    # Instant access links only
    token = Column(String(255), nullable=True, unique=True)
    reservation_id = Column(String(21), nullable=True)

    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("ix_verification_codes_lookup", "store_id", "email", "code"),
        Index("ix_verification_codes_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<VerificationCode(id={self.id}, store_id={self.store_id}, type={self.type})>"
