"""
CRUD operations for EmailLog model.
"""

import logging
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.models.email_log import EmailLog

logger = logging.getLogger(__name__)


def record(
    db: Session,
    store_id: str,
    to: str,
    subject: str,
    template_type: str,
    status: str,
    message_id: Optional[str] = None,
    error: Optional[str] = None,
    customer_id: Optional[str] = None,
) -> Optional[EmailLog]:
    """
    Record an email attempt.

    A failure to write the log is logged and swallowed; it must never turn a
    delivered email into a failed request.
    """
    entry = EmailLog(
        store_id=store_id,
        customer_id=customer_id,
        to=to,
        subject=subject,
        template_type=template_type,
        status=status,
        message_id=message_id,
        error=error,
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to record email log ({template_type}): {e}")
        return None
    return entry
