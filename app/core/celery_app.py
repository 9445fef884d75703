"""Celery application configuration"""

from celery import Celery
from celery.schedules import crontab
from kombu import Exchange, Queue
from app.core.config import settings

# Create Celery app
celery_app = Celery(
    "erp_notifications",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "app.tasks.notification_tasks",
    ]
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.CELERY_TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=10 * 60,  # 10 minutes
    task_soft_time_limit=9 * 60,  # 9 minutes
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    # Task routing
    task_routes={
        "app.tasks.notification_tasks.*": {"queue": "notifications"},
    },
    task_default_queue="notifications",

    # Result backend configuration
    result_expires=3600,  # 1 hour
)

# Define queues
celery_app.conf.task_queues = (
    Queue("notifications", Exchange("notifications"), routing_key="notifications"),
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    "process-scheduled-notifications": {
        "task": "app.tasks.notification_tasks.process_scheduled_notifications",
        "schedule": crontab(minute=0, hour="9-17", day_of_week="mon-fri"),  # Business hours
    },
    "cleanup-old-notifications": {
        "task": "app.tasks.notification_tasks.cleanup_old_notifications",
        "schedule": crontab(minute=0, hour=2),  # Daily at 02:00
    },
}
