"""
CRUD operations (Create, Read, Update, Delete) for database models.

This layer provides a clean separation between API routes and database operations,
following the Repository pattern.
"""

from app.crud import store, customer, customer_session, email_log

__all__ = ["store", "customer", "customer_session", "email_log"]
