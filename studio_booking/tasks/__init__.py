"""Background tasks for the studio booking engine."""

from .celery_app import celery_app

__all__ = ["celery_app"]
