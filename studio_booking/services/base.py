# studio_booking/services/base.py
"""
Shared plumbing for the booking engine's services.

Every service gets the session it works in, a class-named logger, a
``transaction()`` block that owns commit and rollback, and the
``measure_operation`` decorator feeding both per-instance counters and the
Prometheus service histogram.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
import logging
import time
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SLOW_OPERATION_SECONDS = 1.0


@dataclass
class OperationStats:
    count: int = 0
    success_count: int = 0
    failure_count: int = 0
    total_time: float = 0.0

    def add(self, elapsed: float, succeeded: bool) -> None:
        self.count += 1
        self.total_time += elapsed
        if succeeded:
            self.success_count += 1
        else:
            self.failure_count += 1

    def summary(self) -> Dict[str, Any]:
        calls = self.count or 1
        return {
            "count": self.count,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "total_time": self.total_time,
            "avg_time": self.total_time / calls if self.count else 0,
            "success_rate": self.success_count / calls if self.count else 0,
        }


class BaseService:
    """Base class for services that read and write through one session."""

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)
        self._stats: Dict[str, OperationStats] = {}

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Commit on a clean exit, roll back otherwise.

        Driver failures surface as ServiceException; domain exceptions raised
        inside the block propagate unchanged after the rollback.
        """
        try:
            yield self.db
        except SQLAlchemyError as exc:
            self.db.rollback()
            self.logger.error("Transaction failed: %s", exc)
            raise ServiceException(f"Database operation failed: {exc}") from exc
        except Exception as exc:
            self.db.rollback()
            self.logger.debug("Transaction rolled back on %s", type(exc).__name__)
            raise
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            self.logger.error("Commit failed: %s", exc)
            raise ServiceException(f"Database operation failed: {exc}") from exc

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Time a service method and record its outcome.

            @BaseService.measure_operation("book")
            def book(self, subscriber_id, class_id):
                ...
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self: "BaseService", *args: Any, **kwargs: Any) -> Any:
                started = time.time()
                error_type: Optional[str] = None
                try:
                    return func(self, *args, **kwargs)
                except Exception as exc:
                    error_type = type(exc).__name__
                    raise
                finally:
                    self._finish_operation(operation_name, time.time() - started, error_type)

            return cast(F, wrapper)

        return decorator

    def _finish_operation(
        self, operation: str, elapsed: float, error_type: Optional[str]
    ) -> None:
        self._stats.setdefault(operation, OperationStats()).add(elapsed, error_type is None)
        if elapsed > SLOW_OPERATION_SECONDS:
            self.logger.warning(
                "Slow operation detected: %s took %.2fs",
                operation,
                elapsed,
                extra={"operation": operation, "elapsed_seconds": round(elapsed, 3)},
            )
        prometheus_metrics.record_service_operation(
            service=self.__class__.__name__,
            operation=operation,
            duration=elapsed,
            status="error" if error_type else "success",
            error_type=error_type,
        )

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Per-operation call counts, timings and success rate for this instance."""
        return {operation: stats.summary() for operation, stats in self._stats.items()}
