"""
CRUD operations for Customer model.

Emails are compared case-insensitively; lookups are always scoped to a store.
"""

from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models.customer import Customer


def get_by_email(db: Session, store_id: str, email: str) -> Optional[Customer]:
    """
    Find the customer with this email in the given store.

    Args:
        db: Database session
        store_id: Owning store id
        email: Normalized (lower-case) email address

    Returns:
        Customer if found, None otherwise
    """
    return db.query(Customer).filter(
        Customer.store_id == store_id,
        func.lower(Customer.email) == email
    ).first()
