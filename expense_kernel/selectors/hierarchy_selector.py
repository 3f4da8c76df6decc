"""
Module: expense_kernel.selectors.hierarchy_selector
Responsibility: SQL-backed Org Hierarchy Store.  One query per
    ``get_manager_of`` call; the routing engine does the walking.
Architecture position: Kernel > Selectors.  Implements the
    ``OrgHierarchyStore`` protocol from domain/routing.py.
"""

from uuid import UUID

from sqlalchemy import select

from expense_kernel.models.organization import UserModel
from expense_kernel.selectors.base import BaseSelector


class HierarchySelector(BaseSelector[UserModel]):
    """Read-only reporting-line queries."""

    store_name = "hierarchy_store"

    def get_manager_of(self, user_id: UUID) -> UUID | None:
        """Direct manager of ``user_id``; None for roots and unknown users."""
        return self._read(
            "get_manager_of",
            lambda: self.session.execute(
                select(UserModel.manager_id).where(UserModel.id == user_id)
            ).scalar_one_or_none(),
        )
