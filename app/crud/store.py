"""
CRUD operations for Store model.
"""

from typing import Optional
from sqlalchemy.orm import Session
from app.models.store import Store


def get_by_id(db: Session, store_id: str) -> Optional[Store]:
    return db.query(Store).filter(Store.id == store_id).first()


def get_by_slug(db: Session, slug: str) -> Optional[Store]:
    return db.query(Store).filter(Store.slug == slug).first()
