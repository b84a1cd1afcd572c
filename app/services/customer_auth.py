"""
Storefront customer login by emailed one-time code.

Flow:
    send_verification_code  -> rate limited, issues and emails a 6-digit code
    verify_code             -> rate limited, consumes the code, opens a session
    get_customer_session    -> resolves the session cookie for a store
    logout                  -> deletes the session

The login operations return a result object instead of raising; unexpected
exceptions are logged here and downgraded to a generic error kind.
"""

import logging
from datetime import timedelta
from typing import Optional
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from app.core.clock import Clock, utc_now
from app.core.config import settings
from app.core.errors import (
    EmailDeliveryError,
    InstantAccessError,
    InstantAccessResult,
    IssuedSession,
    LogoutError,
    LogoutResult,
    SendCodeError,
    SendCodeResult,
    VerifyCodeError,
    VerifyCodeResult,
)
from app.core.logging_config import mask_email
from app.core.rate_limiter import RateLimiters, rate_limit_key
from app.core.security import is_valid_code_format, is_valid_id, normalize_email
from app.core.verification import (
    consume_instant_access_token,
    consume_verification_code,
    create_instant_access_token,
    create_verification_code,
)
from app.crud import customer as customer_crud
from app.crud import customer_session as session_crud
from app.crud import store as store_crud
from app.models.customer import Customer
from app.services.email_service import EmailService

logger = logging.getLogger(__name__)


def send_verification_code(
    db: Session,
    limiters: RateLimiters,
    mailer: EmailService,
    store_id: str,
    email: str,
    locale: Optional[str] = None,
    clock: Clock = utc_now,
) -> SendCodeResult:
    """
    Issue a login code for a store customer and email it.

    A failed email send does not fail the request: the code is already
    stored, and the failure is logged (and in development the code itself is
    logged so the flow can be tested without SES).

    Args:
        db: Database session
        limiters: Send/verify rate limiters
        mailer: Email service
        store_id: Store (tenant) id
        email: Customer email as typed
        locale: Email language, "fr" (default) or "en"
        clock: Time source

    Returns:
        SendCodeResult
    """
    if not is_valid_id(store_id):
        return SendCodeResult(error=SendCodeError.INVALID_TENANT)

    email = normalize_email(email)
    limit = limiters.send_code.check(rate_limit_key(store_id, email))
    if not limit.allowed:
        logger.warning(f"Send code rate limited for {mask_email(email)} on store {store_id}")
        return SendCodeResult(
            error=SendCodeError.RATE_LIMITED,
            retry_after_seconds=limit.retry_after_seconds,
        )

    try:
        store = store_crud.get_by_id(db, store_id)
        if not store:
            return SendCodeResult(error=SendCodeError.TENANT_NOT_FOUND)

        customer = customer_crud.get_by_email(db, store_id, email)
        if not customer:
            return SendCodeResult(error=SendCodeError.NO_ACCOUNT_FOR_EMAIL)

        verification = create_verification_code(
            db,
            store_id=store_id,
            email=email,
            now=clock(),
            ttl=timedelta(minutes=settings.VERIFICATION_CODE_TTL_MINUTES),
        )

        try:
            mailer.send_verification_code_email(
                db, to=email, store=store, code=verification.code, locale=locale
            )
        except EmailDeliveryError as e:
            logger.error(f"Failed to send verification email to {mask_email(email)}: {e}")
            if settings.ENVIRONMENT == "development":
                logger.info(f"[DEV] Verification code for {email}: {verification.code}")

        logger.info(f"Verification code issued for {mask_email(email)} on store {store_id}")
        return SendCodeResult()

    except Exception:
        logger.exception("Error sending verification code")
        db.rollback()
        return SendCodeResult(error=SendCodeError.SEND_ERROR)


def verify_code(
    db: Session,
    limiters: RateLimiters,
    store_id: str,
    email: str,
    code: str,
    clock: Clock = utc_now,
) -> VerifyCodeResult:
    """
    Check a submitted login code and open a customer session.

    Wrong, expired and already used codes all yield INVALID_OR_EXPIRED_CODE.
    A successful verification clears the verify rate limit for the key.

    Returns:
        VerifyCodeResult: customer_id and the issued session on success
    """
    if not is_valid_id(store_id):
        return VerifyCodeResult(error=VerifyCodeError.INVALID_TENANT)

    email = normalize_email(email)
    key = rate_limit_key(store_id, email)
    limit = limiters.verify_code.check(key)
    if not limit.allowed:
        logger.warning(f"Verify code rate limited for {mask_email(email)} on store {store_id}")
        return VerifyCodeResult(
            error=VerifyCodeError.RATE_LIMITED,
            retry_after_seconds=limit.retry_after_seconds,
        )

    if not is_valid_code_format(code):
        return VerifyCodeResult(error=VerifyCodeError.INVALID_CODE)

    try:
        now = clock()
        verification = consume_verification_code(db, store_id, email, code, now)
        if verification is None:
            return VerifyCodeResult(error=VerifyCodeError.INVALID_OR_EXPIRED_CODE)

        limiters.verify_code.reset(key)

        customer = customer_crud.get_by_email(db, store_id, email)
        if not customer:
            return VerifyCodeResult(error=VerifyCodeError.CUSTOMER_NOT_FOUND)

        session = _open_session(db, customer, clock)
        logger.info(f"Customer {customer.id} logged in on store {store_id}")
        return VerifyCodeResult(customer_id=customer.id, session=session)

    except Exception:
        logger.exception("Error verifying code")
        db.rollback()
        return VerifyCodeResult(error=VerifyCodeError.VERIFICATION_ERROR)


def get_customer_session(
    db: Session,
    store_slug: str,
    session_token: Optional[str],
    clock: Clock = utc_now,
) -> Optional[Customer]:
    """
    Resolve the customer behind a session cookie for a given store.

    Returns None (never raises) when there is no cookie, the store is unknown,
    the session is missing or expired, or the session belongs to a customer
    of another store.
    """
    if not session_token:
        return None

    try:
        store = store_crud.get_by_slug(db, store_slug)
        if not store:
            return None

        session = session_crud.get_valid_by_token(db, session_token, clock())
        if not session or session.customer.store_id != store.id:
            return None

        return session.customer

    except Exception:
        logger.exception("Error resolving customer session")
        return None


def logout(db: Session, session_token: Optional[str]) -> LogoutResult:
    """Delete the session for ``session_token``, if any."""
    if not session_token:
        return LogoutResult()

    try:
        session_crud.delete_by_token(db, session_token)
        return LogoutResult()
    except Exception:
        logger.exception("Error logging out")
        db.rollback()
        return LogoutResult(error=LogoutError.LOGOUT_ERROR)


def send_instant_access_link(
    db: Session,
    mailer: EmailService,
    store_id: str,
    email: str,
    reservation_id: Optional[str] = None,
    success_type: Optional[str] = None,
    locale: Optional[str] = None,
    clock: Clock = utc_now,
) -> Optional[str]:
    """
    Issue an instant access token and email the login link.

    Called by the payment flow once a reservation is paid, so the customer
    can open their account without requesting a code. Delivery failures are
    logged; the link is returned either way.

    Returns:
        Optional[str]: The access URL, or None if store or customer is unknown
    """
    store = store_crud.get_by_id(db, store_id)
    if not store:
        return None

    email = normalize_email(email)
    customer = customer_crud.get_by_email(db, store_id, email)
    if not customer:
        return None

    verification = create_instant_access_token(
        db,
        store_id=store_id,
        email=email,
        now=clock(),
        ttl=timedelta(days=settings.INSTANT_ACCESS_TTL_DAYS),
        reservation_id=reservation_id,
    )

    params = {"token": verification.token}
    if success_type:
        params["type"] = success_type
    if reservation_id:
        params["reservation"] = reservation_id
    access_url = f"{settings.STOREFRONT_BASE_URL}/{store.slug}/account/success?{urlencode(params)}"

    try:
        mailer.send_instant_access_email(
            db, to=email, store=store, access_url=access_url, locale=locale, customer_id=customer.id
        )
    except EmailDeliveryError as e:
        logger.error(f"Failed to send instant access email to {mask_email(email)}: {e}")

    return access_url


def redeem_instant_access(
    db: Session,
    store_slug: str,
    token: Optional[str],
    clock: Clock = utc_now,
) -> InstantAccessResult:
    """
    Log a customer in from an instant access link.

    The token is single-use and scoped to the store in the URL.
    """
    if not token:
        return InstantAccessResult(error=InstantAccessError.MISSING_TOKEN)

    try:
        store = store_crud.get_by_slug(db, store_slug)
        if not store:
            return InstantAccessResult(error=InstantAccessError.STORE_NOT_FOUND)

        verification = consume_instant_access_token(db, store.id, token, clock())
        if verification is None:
            return InstantAccessResult(error=InstantAccessError.INVALID_TOKEN)

        customer = customer_crud.get_by_email(db, store.id, verification.email)
        if not customer:
            return InstantAccessResult(error=InstantAccessError.CUSTOMER_NOT_FOUND)

        session = _open_session(db, customer, clock)
        logger.info(f"Customer {customer.id} logged in via instant access on store {store.id}")
        return InstantAccessResult(customer_id=customer.id, session=session)

    except Exception:
        logger.exception("Error redeeming instant access token")
        db.rollback()
        return InstantAccessResult(error=InstantAccessError.ACCESS_ERROR)


def _open_session(db: Session, customer: Customer, clock: Clock) -> IssuedSession:
    now = clock()
    duration = timedelta(days=settings.SESSION_DURATION_DAYS)
    session = session_crud.create(db, customer.id, now, duration)
    # Expiry as computed, not reloaded: the column may come back without tzinfo
    return IssuedSession(token=session.token, expires_at=now + duration)
