"""
Database models package.
"""

from app.models.store import Store
from app.models.customer import Customer
from app.models.verification_code import VerificationCode, VerificationCodeType
from app.models.customer_session import CustomerSession
from app.models.email_log import EmailLog

__all__ = ["Store", "Customer", "VerificationCode", "VerificationCodeType", "CustomerSession", "EmailLog"]
