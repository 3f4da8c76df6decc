"""
Module: expense_kernel.models.organization
Responsibility: ORM persistence for companies and users, including the
    direct-manager self-reference that forms each company's reporting line.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - email is unique across users.
    - manager_id references users.id (nullable: roots of the reporting forest).
    - A user cannot be their own manager (check constraint).  Longer cycles
      are not prevented here; the routing engine fails closed on them.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from expense_kernel.db.base import Base, UUIDString


class CompanyModel(Base):
    """A tenant company."""

    __tablename__ = "companies"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    default_currency_code: Mapped[str] = mapped_column(
        String(3), nullable=False, default="USD",
    )

    def __repr__(self) -> str:
        return f"<CompanyModel {self.id} {self.name!r}>"


class UserModel(Base):
    """An employee, manager or admin of a company."""

    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint(
            "role IN ('Employee', 'Manager', 'Admin')",
            name="ck_users_valid_role",
        ),
        CheckConstraint(
            "manager_id IS NULL OR manager_id <> id",
            name="ck_users_not_own_manager",
        ),
    )

    company_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("companies.id"), nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="Employee")
    manager_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=True, index=True,
    )

    def __repr__(self) -> str:
        return f"<UserModel {self.id} {self.email} manager={self.manager_id}>"
