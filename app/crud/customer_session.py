"""
CRUD operations for CustomerSession model.
"""

from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session
from app.core.security import generate_session_token
from app.models.customer_session import CustomerSession


def create(db: Session, customer_id: str, now: datetime, duration: timedelta) -> CustomerSession:
    """
    Create a session for a customer with a fresh random token.

    Args:
        db: Database session
        customer_id: Customer the session authenticates
        now: Current time (from the injected clock)
        duration: Session lifetime

    Returns:
        The persisted CustomerSession
    """
    session = CustomerSession(
        customer_id=customer_id,
        token=generate_session_token(),
        expires_at=now + duration,
        created_at=now,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def get_valid_by_token(db: Session, token: str, now: datetime) -> Optional[CustomerSession]:
    """Return the session for ``token`` if it has not expired."""
    return db.query(CustomerSession).filter(
        CustomerSession.token == token,
        CustomerSession.expires_at > now
    ).first()


def delete_by_token(db: Session, token: str) -> int:
    deleted = db.query(CustomerSession).filter(
        CustomerSession.token == token
    ).delete(synchronize_session=False)
    db.commit()
    return deleted


def delete_expired(db: Session, now: datetime) -> int:
    """Delete every session whose expiry has passed. Returns the row count."""
    deleted = db.query(CustomerSession).filter(
        CustomerSession.expires_at <= now
    ).delete(synchronize_session=False)
    db.commit()
    return deleted
