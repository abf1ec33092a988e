# studio_booking/repositories/base_repository.py
"""
Generic data access for the booking engine's models.

Subclasses add the class-, member- and queue-specific queries. Nothing here
commits: the service layer opens and closes every transaction, and a
repository only adds, flushes and reads inside it.
"""

from contextlib import contextmanager
import logging
from typing import Any, Generic, Iterator, List, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException

ModelT = TypeVar("ModelT")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[ModelT]):
    def __init__(self, db: Session, model: Type[ModelT]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        """Re-raise driver errors as RepositoryException, logged once here."""
        try:
            yield
        except IntegrityError as exc:
            self.logger.error(
                "Constraint violated while trying to %s %s",
                action,
                self.model.__name__,
                exc_info=True,
            )
            raise RepositoryException(f"Integrity constraint violated: {exc}") from exc
        except SQLAlchemyError as exc:
            self.logger.error("Could not %s %s: %s", action, self.model.__name__, exc)
            raise RepositoryException(f"Failed to {action} {self.model.__name__}: {exc}") from exc

    def get_by_id(self, id: str, for_update: bool = False) -> Optional[ModelT]:
        """
        Load one row by primary key.

        ``for_update`` takes a row lock where the dialect has one and refreshes
        an already loaded instance, so a read made before the class lock was
        taken does not leak stale counters into the critical section.
        """
        query = self._build_query().filter(self.model.id == id)
        if for_update:
            query = query.with_for_update().populate_existing()
        return self._execute_first(query)

    def create(self, **kwargs: Any) -> ModelT:
        """Add a row and flush it so its id and defaults are populated."""
        entity = self.model(**kwargs)
        with self._guard("create"):
            self.db.add(entity)
            self.db.flush()
        return entity

    def flush(self) -> None:
        with self._guard("flush"):
            self.db.flush()

    def count(self, **criteria: Any) -> int:
        with self._guard("count"):
            return self._build_query().filter_by(**criteria).count()

    def _build_query(self) -> Query:
        return self.db.query(self.model)

    def _execute_query(self, query: Query) -> List[ModelT]:
        with self._guard("query"):
            return query.all()

    def _execute_first(self, query: Query) -> Optional[ModelT]:
        with self._guard("load"):
            return query.first()

    def _execute_scalar(self, query: Query) -> Any:
        with self._guard("aggregate"):
            return query.scalar()
