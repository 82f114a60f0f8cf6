"""
BaseService -- abstract base for all ledger write services.

Responsibility:
    Provides the common constructor and session-handling contract.  Every
    concrete service receives a SQLAlchemy ``Session`` and persists through
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Ledger > Services.  ``PocketLedgerService`` is the only class that
    commits or rolls back.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction.  Header write, item write and balance recalculation
      therefore commit or roll back as one unit.
    - Store failures surface as StorageError, chained to the
      SQLAlchemyError that caused them.
"""

from abc import ABC
from contextlib import contextmanager
from typing import Generic, Iterator, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pocket_ledger.db.base import Base
from pocket_ledger.exceptions import StorageError

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all ledger services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
    """

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def _storage_guard(self, operation: str) -> Iterator[None]:
        """Translate store failures into StorageError."""
        try:
            yield
        except SQLAlchemyError as exc:
            raise StorageError(operation, str(exc.__class__.__name__)) from exc
