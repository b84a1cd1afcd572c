"""
Core verification code logic.

Handles issuing, consuming and retention of one-time login credentials:
6-digit email codes and instant access link tokens.

Consumption is a single conditional UPDATE (``used_at IS NULL`` and not
expired) whose affected row count decides the outcome, so two concurrent
requests can never both redeem the same code.
"""

import secrets
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session

from app.core.security import generate_verification_code
from app.models.verification_code import VerificationCode, VerificationCodeType

INSTANT_ACCESS_TOKEN_BYTES = 24


def create_verification_code(
    db: Session,
    store_id: str,
    email: str,
    now: datetime,
    ttl: timedelta,
) -> VerificationCode:
    """
    Create and persist a new 6-digit login code.

    Previous unused codes stay valid until they expire; any of them can be
    used once.

    Args:
        db: Database session
        store_id: Store the customer is logging into
        email: Normalized email address
        now: Current time
        ttl: Code lifetime (10 minutes by default)

    Returns:
        VerificationCode: The newly created record
    """
    verification = VerificationCode(
        store_id=store_id,
        email=email,
        code=generate_verification_code(),
        type=VerificationCodeType.CODE.value,
        expires_at=now + ttl,
        created_at=now,
    )
    db.add(verification)
    db.commit()
    db.refresh(verification)
    return verification


def _mark_used(db: Session, verification_id: str, now: datetime) -> bool:
    """
    Atomically mark a row as used.

    Returns:
        bool: True if this call consumed the row, False if it was already
        used or has expired in the meantime
    """
    updated = db.query(VerificationCode).filter(
        VerificationCode.id == verification_id,
        VerificationCode.used_at.is_(None),
        VerificationCode.expires_at > now
    ).update({"used_at": now}, synchronize_session=False)
    db.commit()
    return updated == 1


def consume_verification_code(
    db: Session,
    store_id: str,
    email: str,
    code: str,
    now: datetime,
) -> Optional[VerificationCode]:
    """
    Redeem a 6-digit code.

    The caller cannot tell a wrong code from an expired or already used one:
    all three return None.

    Args:
        db: Database session
        store_id: Store id
        email: Normalized email address
        code: Submitted 6-digit code (format already validated)
        now: Current time

    Returns:
        Optional[VerificationCode]: The consumed record, or None
    """
    candidate = db.query(VerificationCode).filter(
        VerificationCode.store_id == store_id,
        VerificationCode.email == email,
        VerificationCode.code == code,
        VerificationCode.type == VerificationCodeType.CODE.value,
        VerificationCode.used_at.is_(None),
        VerificationCode.expires_at > now
    ).order_by(VerificationCode.created_at.desc()).first()

    if candidate is None:
        return None

    if not _mark_used(db, candidate.id, now):
        return None

    db.refresh(candidate)
    return candidate


def create_instant_access_token(
    db: Session,
    store_id: str,
    email: str,
    now: datetime,
    ttl: timedelta,
    reservation_id: Optional[str] = None,
) -> VerificationCode:
    """
    Create an instant access link token (sent after a payment).

    The row reuses the verification code table with type "instant_access";
    its code column holds a placeholder since the token is what gets checked.
    """
    verification = VerificationCode(
        store_id=store_id,
        email=email,
        code="000000",
        type=VerificationCodeType.INSTANT_ACCESS.value,
        token=secrets.token_urlsafe(INSTANT_ACCESS_TOKEN_BYTES),
        reservation_id=reservation_id,
        expires_at=now + ttl,
        created_at=now,
    )
    db.add(verification)
    db.commit()
    db.refresh(verification)
    return verification


def consume_instant_access_token(
    db: Session,
    store_id: str,
    token: str,
    now: datetime,
) -> Optional[VerificationCode]:
    """Redeem an instant access token for a store. Single use, like codes."""
    candidate = db.query(VerificationCode).filter(
        VerificationCode.store_id == store_id,
        VerificationCode.type == VerificationCodeType.INSTANT_ACCESS.value,
        VerificationCode.token == token,
        VerificationCode.used_at.is_(None),
        VerificationCode.expires_at > now
    ).first()

    if candidate is None:
        return None

    if not _mark_used(db, candidate.id, now):
        return None

    db.refresh(candidate)
    return candidate


def cleanup_expired_codes(db: Session, now: datetime, retention: timedelta) -> int:
    """
    Delete verification codes older than the retention period.

    Run periodically by a Celery beat task. Codes are kept as an audit trail
    until then, used or not.

    Args:
        db: Database session
        now: Current time
        retention: How long to keep rows after creation

    Returns:
        int: Number of codes deleted
    """
    cutoff_time = now - retention

    deleted = db.query(VerificationCode).filter(
        VerificationCode.created_at < cutoff_time
    ).delete(synchronize_session=False)

    db.commit()
    return deleted
