# studio_booking/tasks/reminder_tasks.py
"""
Celery task that hands due class reminders to the notification gateway.
"""

from __future__ import annotations

from typing import Optional

from celery.utils.log import get_task_logger

from ..database import session_scope
from ..services.reminder_scheduler import ReminderScheduler
from .celery_app import celery_app

logger = get_task_logger(__name__)


@celery_app.task(name="reminders.dispatch_due", max_retries=0, queue="notifications")
def dispatch_due_reminders(limit: Optional[int] = None) -> int:
    """
    Send every reminder whose fire time has passed.

    Returns the number of reminders fired.
    """
    with session_scope() as session:
        fired = ReminderScheduler(session).dispatch_due(limit=limit)
    if fired:
        logger.info("Fired %s class reminders", fired)
    return fired
