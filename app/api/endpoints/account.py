"""
Storefront customer account endpoints.

Passwordless login for store customers:
- POST /account/send-code: Email a 6-digit login code
- POST /account/verify-code: Exchange the code for a session cookie
- GET /stores/{slug}/account/session: Resolve the current session (or null)
- GET /stores/{slug}/account/me: Current customer profile (401 if logged out)
- POST /account/logout: Delete the session and clear the cookie
- GET /stores/{slug}/account/success: Instant access link landing (redirect)
"""

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session

from app.core.clock import Clock
from app.core.config import settings
from app.core.database import get_db
from app.core.deps import (
    get_clock,
    get_current_customer,
    get_email_service,
    get_optional_customer,
    get_rate_limiters,
    get_session_token,
)
from app.core.errors import LogoutError, SendCodeError, VerifyCodeError
from app.core.rate_limiter import RateLimiters
from app.core.security import clear_session_cookie, set_session_cookie
from app.models.customer import Customer
from app.schemas.account import (
    CustomerResponse,
    CustomerSessionResponse,
    ErrorResponse,
    SendCodeRequest,
    SuccessResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from app.services import customer_auth
from app.services.email_service import EmailService

router = APIRouter(tags=["Customer Account"])
logger = logging.getLogger(__name__)

_SEND_CODE_STATUS = {
    SendCodeError.INVALID_TENANT: status.HTTP_400_BAD_REQUEST,
    SendCodeError.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    SendCodeError.TENANT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    SendCodeError.NO_ACCOUNT_FOR_EMAIL: status.HTTP_404_NOT_FOUND,
    SendCodeError.SEND_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_VERIFY_CODE_STATUS = {
    VerifyCodeError.INVALID_TENANT: status.HTTP_400_BAD_REQUEST,
    VerifyCodeError.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    VerifyCodeError.INVALID_CODE: status.HTTP_400_BAD_REQUEST,
    VerifyCodeError.INVALID_OR_EXPIRED_CODE: status.HTTP_401_UNAUTHORIZED,
    VerifyCodeError.CUSTOMER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    VerifyCodeError.VERIFICATION_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _error_response(status_code: int, error: str, retry_after_seconds: Optional[int] = None) -> JSONResponse:
    """Build the JSON error body, with a Retry-After header for rate limits."""
    headers = {"Retry-After": str(retry_after_seconds)} if retry_after_seconds else None
    body = ErrorResponse(error=error, retry_after_seconds=retry_after_seconds)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


@router.post(
    "/account/send-code",
    response_model=SuccessResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
def send_code(
    request: SendCodeRequest,
    db: Session = Depends(get_db),
    limiters: RateLimiters = Depends(get_rate_limiters),
    mailer: EmailService = Depends(get_email_service),
    clock: Clock = Depends(get_clock),
):
    """
    Email a 6-digit login code to a store customer.

    Rate limit: 3 requests per 15 minutes per store and email, then blocked
    for 30 minutes.
    """
    result = customer_auth.send_verification_code(
        db, limiters, mailer,
        store_id=request.store_id,
        email=request.email,
        locale=request.locale,
        clock=clock,
    )

    if not result.success:
        return _error_response(_SEND_CODE_STATUS[result.error], result.error.value, result.retry_after_seconds)

    return SuccessResponse()


@router.post(
    "/account/verify-code",
    response_model=VerifyCodeResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
    },
)
def verify_code(
    request: VerifyCodeRequest,
    response: Response,
    db: Session = Depends(get_db),
    limiters: RateLimiters = Depends(get_rate_limiters),
    clock: Clock = Depends(get_clock),
):
    """
    Verify a login code and set the customer session cookie.

    Rate limit: 5 attempts per 15 minutes per store and email, then blocked
    for 30 minutes. A successful verification clears the counter.
    """
    result = customer_auth.verify_code(
        db, limiters,
        store_id=request.store_id,
        email=request.email,
        code=request.code,
        clock=clock,
    )

    if not result.success:
        return _error_response(_VERIFY_CODE_STATUS[result.error], result.error.value, result.retry_after_seconds)

    set_session_cookie(response, result.session.token, result.session.expires_at)
    return VerifyCodeResponse(customer_id=result.customer_id)


@router.get("/stores/{slug}/account/session", response_model=Optional[CustomerSessionResponse])
def get_session(customer: Optional[Customer] = Depends(get_optional_customer)):
    """
    Resolve the customer session for a store.

    Returns null when logged out, expired, or logged into another store.
    """
    if customer is None:
        return None

    return CustomerSessionResponse(
        customer_id=customer.id,
        customer=CustomerResponse.model_validate(customer),
    )


@router.get("/stores/{slug}/account/me", response_model=CustomerResponse)
def get_me(customer: Customer = Depends(get_current_customer)):
    """Get the logged-in customer's profile."""
    return customer


@router.post("/account/logout", response_model=SuccessResponse, responses={500: {"model": ErrorResponse}})
def logout(
    response: Response,
    session_token: Optional[str] = Depends(get_session_token),
    db: Session = Depends(get_db),
):
    """Delete the current session and clear the cookie."""
    result = customer_auth.logout(db, session_token)

    if not result.success:
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, LogoutError.LOGOUT_ERROR.value)

    if session_token:
        clear_session_cookie(response)

    return SuccessResponse()


@router.get("/stores/{slug}/account/success", response_class=RedirectResponse)
def instant_access(
    slug: str,
    token: Optional[str] = None,
    type: Optional[str] = None,
    reservation: Optional[str] = None,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Landing page for instant access links (sent after a payment).

    Logs the customer in and redirects to their account, keeping the
    success type and reservation so the storefront can show a confirmation.
    Failures redirect to the login page with an error code.
    """
    storefront = f"{settings.STOREFRONT_BASE_URL}/{slug}/account"
    result = customer_auth.redeem_instant_access(db, slug, token, clock)

    if not result.success:
        return RedirectResponse(
            url=f"{storefront}/login?{urlencode({'error': result.error.value})}",
            status_code=status.HTTP_302_FOUND,
        )

    params = {key: value for key, value in (("success", type), ("reservation", reservation)) if value}
    url = f"{storefront}?{urlencode(params)}" if params else storefront

    redirect = RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)
    set_session_cookie(
        redirect,
        result.session.token,
        result.session.expires_at,
        samesite=settings.INSTANT_ACCESS_COOKIE_SAMESITE,
    )
    return redirect
