"""Notification background tasks"""

from celery.utils.log import get_task_logger
from typing import Any, Dict, Optional
import asyncio

from app.core.celery_app import celery_app
from app.core.database import close_db, get_db_context
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.notification_service import NotificationService

logger = get_task_logger(__name__)

def run_async(coro):
    """Run a coroutine on a fresh event loop owned by this task"""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        # Pooled connections are bound to the loop that opened them
        loop.run_until_complete(close_db())
        loop.close()
        asyncio.set_event_loop(None)

async def _send(
    user_id: str,
    notification_type: str,
    template_data: Optional[Dict[str, Any]],
    priority: str,
    options: Dict[str, Any]
) -> Dict[str, Any]:
    async with get_db_context() as db:
        dispatcher = NotificationDispatcher(db)
        outcome = await dispatcher.send(user_id, notification_type, template_data, priority, **options)
        return outcome.to_dict()

async def _process_scheduled() -> int:
    async with get_db_context() as db:
        return await NotificationService(db).process_scheduled_notifications()

async def _cleanup(retention_days: Optional[int]) -> int:
    async with get_db_context() as db:
        return await NotificationService(db).cleanup_old_notifications(retention_days)

@celery_app.task(name="app.tasks.notification_tasks.send_notification")
def send_notification_task(
    user_id: str,
    notification_type: str,
    template_data: Optional[Dict[str, Any]] = None,
    priority: str = "NORMAL",
    action_url: Optional[str] = None,
    action_label: Optional[str] = None,
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None
):
    """Dispatch a notification outside the request that triggered it"""
    options = {
        "action_url": action_url,
        "action_label": action_label,
        "reference_type": reference_type,
        "reference_id": reference_id,
    }
    try:
        result = run_async(_send(user_id, notification_type, template_data, priority, options))
    except Exception as e:
        logger.error(f"Error sending {notification_type} notification to user {user_id}: {str(e)}")
        raise

    logger.info(f"Notification {notification_type} dispatched to user {user_id}")
    return result

@celery_app.task(name="app.tasks.notification_tasks.process_scheduled_notifications")
def process_scheduled_notifications():
    """Mark due scheduled notifications as sent"""
    try:
        processed = run_async(_process_scheduled())
    except Exception as e:
        logger.error(f"Error processing scheduled notifications: {str(e)}")
        raise

    return {"processed_count": processed}

@celery_app.task(name="app.tasks.notification_tasks.cleanup_old_notifications")
def cleanup_old_notifications(retention_days: Optional[int] = None):
    """Retire old read notifications"""
    try:
        cleaned = run_async(_cleanup(retention_days))
    except Exception as e:
        logger.error(f"Error cleaning up notifications: {str(e)}")
        raise

    logger.info(f"Cleaned up {cleaned} old notifications")
    return {"cleaned_count": cleaned}
