"""
Security utilities for identifiers, one-time codes and session cookies.

Identifiers are 21-character URL-safe random strings. Session and instant
access tokens are opaque random strings; the session token travels only in
an HTTP-only cookie.
"""

import re
import secrets
from datetime import datetime
from typing import Optional
from fastapi import Response
from app.core.config import settings

ID_LENGTH = 21
SESSION_TOKEN_LENGTH = 32
CODE_LENGTH = 6

_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{%d}" % ID_LENGTH)
_CODE_PATTERN = re.compile(r"[0-9]{%d}" % CODE_LENGTH)


def generate_id() -> str:
    """Generate a 21-character URL-safe identifier (~126 bits of entropy)."""
    return secrets.token_urlsafe(16)[:ID_LENGTH]


def is_valid_id(value: str) -> bool:
    """Check that a tenant/store identifier has the expected opaque shape."""
    return isinstance(value, str) and bool(_ID_PATTERN.fullmatch(value))


def generate_verification_code() -> str:
    """
    Generate a 6-digit verification code.

    Uniformly distributed over [100000, 999999] using the secrets module.
    """
    return str(100000 + secrets.randbelow(900000))


def is_valid_code_format(code: str) -> bool:
    """Check that a submitted code is exactly 6 ASCII digits."""
    return isinstance(code, str) and bool(_CODE_PATTERN.fullmatch(code))


def generate_session_token() -> str:
    """Generate an opaque session token (32 URL-safe characters)."""
    return secrets.token_urlsafe(24)[:SESSION_TOKEN_LENGTH]


def normalize_email(email: str) -> str:
    return email.strip().lower()


def set_session_cookie(
    response: Response,
    token: str,
    expires_at: datetime,
    samesite: Optional[str] = None,
) -> None:
    """
    Attach the customer session cookie to a response.

    HTTP-only, Secure in production, expiring together with the session row.
    SameSite comes from settings unless ``samesite`` overrides it (the
    instant access redirect uses "lax").
    """
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite=samesite or settings.SESSION_COOKIE_SAMESITE,
        expires=expires_at,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite=settings.SESSION_COOKIE_SAMESITE,
    )
