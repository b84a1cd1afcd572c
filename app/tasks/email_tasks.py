"""
Celery tasks for customer emails and login credential retention.
"""

import logging
from datetime import timedelta
from typing import Optional
from celery import shared_task

from app.core.clock import utc_now
from app.core.config import settings

logger = logging.getLogger(__name__)


@shared_task(name="send_instant_access_email_task")
def send_instant_access_email_task(
    store_id: str,
    email: str,
    reservation_id: Optional[str] = None,
    success_type: Optional[str] = None,
    locale: Optional[str] = None,
):
    """
    Issue an instant access token and email the login link.

    Queued by the payment flow once a reservation has been paid. Not retried:
    delivery failures are recorded in the email log, and a retry would issue
    a second token.

    Args:
        store_id: Store id
        email: Customer email
        reservation_id: Reservation to highlight after login
        success_type: "payment" or "deposit", shown as a confirmation
        locale: Email language
    """
    from app.core.database import SessionLocal
    from app.services.customer_auth import send_instant_access_link
    from app.services.email_service import email_service

    db = SessionLocal()
    try:
        access_url = send_instant_access_link(
            db, email_service,
            store_id=store_id,
            email=email,
            reservation_id=reservation_id,
            success_type=success_type,
            locale=locale,
        )
        if access_url is None:
            logger.warning(f"Instant access skipped: unknown store or customer (store {store_id})")
            return {"status": "skipped"}
        return {"status": "success"}
    finally:
        db.close()


@shared_task(name="cleanup_expired_verification_codes")
def cleanup_expired_verification_codes_task():
    """
    Periodic task to delete verification codes past their retention period.

    Scheduled daily by Celery beat (see app.core.celery_app).
    """
    from app.core.database import SessionLocal
    from app.core.verification import cleanup_expired_codes

    db = SessionLocal()
    try:
        deleted_count = cleanup_expired_codes(
            db,
            now=utc_now(),
            retention=timedelta(days=settings.VERIFICATION_CODE_RETENTION_DAYS),
        )
        logger.info(f"Cleaned up {deleted_count} expired verification codes")
        return {"status": "success", "deleted_count": deleted_count}
    except Exception as e:
        logger.error(f"Error cleaning up verification codes: {str(e)}")
        raise
    finally:
        db.close()


@shared_task(name="cleanup_expired_customer_sessions")
def cleanup_expired_customer_sessions_task():
    """
    Periodic task to delete expired customer sessions.

    Expired sessions are already rejected on lookup; this only reclaims rows.
    """
    from app.core.database import SessionLocal
    from app.crud import customer_session

    db = SessionLocal()
    try:
        deleted_count = customer_session.delete_expired(db, now=utc_now())
        logger.info(f"Cleaned up {deleted_count} expired customer sessions")
        return {"status": "success", "deleted_count": deleted_count}
    except Exception as e:
        logger.error(f"Error cleaning up customer sessions: {str(e)}")
        raise
    finally:
        db.close()
