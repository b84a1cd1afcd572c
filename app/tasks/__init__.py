"""
Celery tasks package.

Tasks are organized by domain:
- email_tasks: Instant access emails and login credential retention cleanup
"""

from app.tasks import email_tasks

__all__ = ["email_tasks"]
