"""
Module: expense_kernel.db.base
Responsibility: Declarative base shared by the organisation, policy, claim
    and approval tables.
Architecture position: Kernel > DB.  Every model imports from here; this
    module imports nothing else from the kernel.

Invariants enforced:
    - Every row is keyed by a uuid4 stored as a 36-character string, so the
      same schema runs on PostgreSQL and SQLite.
    - Claim amounts map to Numeric(18, 2).  Money is never a float.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID column stored as ``String(36)``.

    Accepts ``UUID`` objects or their string form on the way in and always
    hands back ``UUID`` objects.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(value if isinstance(value, UUID) else UUID(str(value)))

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Base for all expense tables; provides the ``id`` primary key."""

    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        Decimal: Numeric(18, 2),
        datetime: DateTime(timezone=True),
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)
