"""
Error kinds and result types for the customer login flow.

Each operation returns a result object carrying either success data or
exactly one error kind from a closed enumeration. Only the API layer turns
these into HTTP responses.
"""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


class SendCodeError(str, enum.Enum):
    INVALID_TENANT = "invalid_tenant"
    RATE_LIMITED = "rate_limited"
    TENANT_NOT_FOUND = "tenant_not_found"
    NO_ACCOUNT_FOR_EMAIL = "no_account_for_email"
    SEND_ERROR = "send_error"


class VerifyCodeError(str, enum.Enum):
    INVALID_TENANT = "invalid_tenant"
    RATE_LIMITED = "rate_limited"
    INVALID_CODE = "invalid_code"
    INVALID_OR_EXPIRED_CODE = "invalid_or_expired_code"
    CUSTOMER_NOT_FOUND = "customer_not_found"
    VERIFICATION_ERROR = "verification_error"


class LogoutError(str, enum.Enum):
    LOGOUT_ERROR = "logout_error"


class InstantAccessError(str, enum.Enum):
    MISSING_TOKEN = "missingToken"
    STORE_NOT_FOUND = "storeNotFound"
    INVALID_TOKEN = "invalidToken"
    CUSTOMER_NOT_FOUND = "customerNotFound"
    ACCESS_ERROR = "accessError"


class EmailDeliveryError(Exception):
    """Raised by the email service when the provider rejects or fails a send."""


@dataclass(frozen=True)
class IssuedSession:
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class SendCodeResult:
    error: Optional[SendCodeError] = None
    retry_after_seconds: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class VerifyCodeResult:
    error: Optional[VerifyCodeError] = None
    retry_after_seconds: Optional[int] = None
    customer_id: Optional[str] = None
    session: Optional[IssuedSession] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class LogoutResult:
    error: Optional[LogoutError] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class InstantAccessResult:
    error: Optional[InstantAccessError] = None
    customer_id: Optional[str] = None
    session: Optional[IssuedSession] = None

    @property
    def success(self) -> bool:
        return self.error is None
