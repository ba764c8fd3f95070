"""
Background Jobs Package

Periodic maintenance: expired-token purge and meeting reminders.
The Celery app lives in ``jobs.celery_app`` and is only imported by workers.
"""

from jobs import maintenance

__all__ = ["maintenance"]
