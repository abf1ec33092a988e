# studio_booking/tasks/beat_schedule.py
"""
Celery Beat schedule for the studio booking engine.
"""

from datetime import timedelta
from typing import Any, Dict

from ..core.config import settings

# Main beat schedule configuration
CELERYBEAT_SCHEDULE: Dict[str, Dict[str, Any]] = {
    "dispatch-due-reminders": {
        "task": "reminders.dispatch_due",
        "schedule": timedelta(seconds=settings.reminder_dispatch_interval_seconds),
        "options": {"queue": "notifications", "priority": 5},
    },
}

# Environment-specific overrides
SCHEDULE_CONFIG: Dict[str, Dict[str, Dict[str, Any]]] = {
    "development": {
        "dispatch-due-reminders": {
            "task": "reminders.dispatch_due",
            "schedule": timedelta(seconds=max(settings.reminder_dispatch_interval_seconds, 60)),
            "options": {"queue": "notifications"},
        },
    },
}


def get_beat_schedule(environment: str = "production") -> Dict[str, Dict[str, Any]]:
    """
    Get the beat schedule for the specified environment.

    Args:
        environment: The environment name (production, development, testing)

    Returns:
        Mapping of task name to Celery beat configuration dict
    """
    base: Dict[str, Dict[str, Any]] = dict(CELERYBEAT_SCHEDULE)
    overrides = SCHEDULE_CONFIG.get(environment)
    if overrides:
        base.update(overrides)
    return base
