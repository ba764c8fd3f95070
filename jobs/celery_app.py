"""
Celery Application Configuration

Celery app for periodic maintenance:
- Expired invite / OTP purge (every 10 minutes)
- Meeting reminders (every minute)
"""

from celery import Celery
import logging

from config_service.config import settings
from db_service.session import get_db_context
from jobs import maintenance

logger = logging.getLogger(__name__)

# Celery broker and backend URLs
celery_urls = settings.get_celery_urls()

# Create Celery app
celery_app = Celery(
    'huddle_jobs',
    broker=celery_urls["broker_url"],
    backend=celery_urls["result_backend"],
)

# Celery configuration
celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    task_track_started=True,
    task_time_limit=120,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)

# Beat schedule (periodic tasks)
celery_app.conf.beat_schedule = {
    'purge-expired-tokens': {
        'task': 'jobs.purge_expired_tokens',
        'schedule': 600.0,
        'options': {
            'expires': 300,
        }
    },
    'send-meeting-reminders': {
        'task': 'jobs.send_meeting_reminders',
        'schedule': 60.0,
        'options': {
            'expires': 50,  # Un rappel en retard d'une minute n'a plus de sens
        }
    },
}


@celery_app.task(name='jobs.purge_expired_tokens')
def purge_expired_tokens():
    with get_db_context() as db:
        return maintenance.purge_expired_tokens(db)


@celery_app.task(name='jobs.send_meeting_reminders')
def send_meeting_reminders():
    with get_db_context() as db:
        sent = maintenance.send_meeting_reminders(db)
    if sent:
        logger.info(f"{sent} meeting reminders sent")
    return sent


logger.info("Celery app configured successfully")

__all__ = ['celery_app']
