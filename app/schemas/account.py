"""
Pydantic schemas for storefront account endpoints.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class SendCodeRequest(BaseModel):
    """Request a login code for a store customer"""
    store_id: str = Field(..., max_length=64, description="Store (tenant) id")
    email: EmailStr
    locale: Optional[Literal["fr", "en"]] = None


class VerifyCodeRequest(BaseModel):
    """Submit a login code.

    The code format is checked by the service (not here) so that malformed
    codes still count against the verify rate limit.
    """
    store_id: str = Field(..., max_length=64, description="Store (tenant) id")
    email: EmailStr
    code: str = Field(..., max_length=32, description="6-digit verification code")


class SuccessResponse(BaseModel):
    success: bool = True


class VerifyCodeResponse(BaseModel):
    success: bool = True
    customer_id: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    retry_after_seconds: Optional[int] = None


class CustomerResponse(BaseModel):
    """Customer profile as seen by the customer"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    store_id: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    created_at: Optional[datetime] = None


class CustomerSessionResponse(BaseModel):
    customer_id: str
    customer: CustomerResponse
