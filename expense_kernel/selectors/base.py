"""
Module: expense_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/
    and domain/.  MUST NOT import from services/ or outer layers.
    Selectors NEVER create, modify, or delete data.

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(), delete(),
      commit() or flush().
    - DTO return convention: selectors return frozen dataclasses or plain
      values, NOT ORM instances.
    - Session ownership: the caller owns the session and its transaction.

Failure modes:
    - StoreUnavailableError when the database read fails
      (OperationalError / DBAPI errors are translated in ``_read``).
"""

from abc import ABC
from typing import Callable, Generic, TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from expense_kernel.db.base import Base
from expense_kernel.exceptions import StoreUnavailableError

ModelType = TypeVar("ModelType", bound=Base)
T = TypeVar("T")


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return DTOs or computed results.  They MUST NOT mutate any data.
    """

    store_name: str = "store"

    def __init__(self, session: Session):
        self.session = session

    def _read(self, operation: str, query: Callable[[], T]) -> T:
        """Run ``query`` and translate driver failures into StoreUnavailableError."""
        try:
            return query()
        except DBAPIError as exc:
            raise StoreUnavailableError(
                self.store_name, operation, str(exc.orig or exc),
            ) from exc
