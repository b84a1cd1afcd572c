"""
FastAPI dependencies for the storefront customer login.

Rate limiters, the email service and the clock are provided through
dependencies so tests (or a multi-instance deployment) can swap them.
"""

from typing import Optional

from fastapi import Cookie, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.clock import Clock, utc_now
from app.core.config import settings
from app.core.database import get_db
from app.core.rate_limiter import RateLimiters, build_rate_limiters
from app.models.customer import Customer
from app.services import customer_auth
from app.services.email_service import EmailService, email_service

# Process-wide limiter state (see app.core.rate_limiter for the multi-instance caveat)
_rate_limiters = build_rate_limiters(settings)


def get_rate_limiters() -> RateLimiters:
    return _rate_limiters


def get_email_service() -> EmailService:
    return email_service


def get_clock() -> Clock:
    return utc_now


def get_session_token(
    customer_session: Optional[str] = Cookie(default=None, alias=settings.SESSION_COOKIE_NAME),
) -> Optional[str]:
    """Read the customer session cookie, if present."""
    return customer_session


def get_optional_customer(
    slug: str,
    session_token: Optional[str] = Depends(get_session_token),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> Optional[Customer]:
    """
    Resolve the logged-in customer for the store in the path, or None.
    """
    return customer_auth.get_customer_session(db, slug, session_token, clock)


def get_current_customer(
    customer: Optional[Customer] = Depends(get_optional_customer),
) -> Customer:
    """
    Require a logged-in customer for the store in the path.

    Raises:
        HTTPException 401: No valid session for this store
    """
    if customer is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="unauthorized"
        )
    return customer
