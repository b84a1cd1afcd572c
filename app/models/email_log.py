"""
Email log model.

One row per outbound email attempt, successful or not.
"""

from sqlalchemy import Column, String, Text, DateTime, func
from app.core.database import Base
from app.core.security import generate_id


class EmailLog(Base):
    __tablename__ = "email_logs"

    id = Column(String(21), primary_key=True, default=generate_id)
    store_id = Column(String(21), nullable=False, index=True)
    customer_id = Column(String(21), nullable=True)

    to = Column(String(255), nullable=False)
    subject = Column(String(500), nullable=False)
    template_type = Column(String(50), nullable=False)

    message_id = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default="sent")  # "sent" or "failed"
    error = Column(Text, nullable=True)

    sent_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<EmailLog(id={self.id}, template={self.template_type}, status={self.status})>"
