"""
Tests for the SQL-backed stores (``expense_kernel.selectors``).

PolicySelector and HierarchySelector implement the routing engine's
store protocols; ClaimSelector serves the claim service.
"""

from datetime import timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from expense_engines.routing import resolve_next_approver
from expense_kernel.domain.claim import ApprovalRecordStatus, ClaimStatus
from expense_kernel.domain.routing import (
    ApproverDeterminationType as T,
    DirectManagerRule,
    ManagerNUpRule,
    NotFoundReason,
    SpecificUserRule,
    UnrecognizedRule,
)
from expense_kernel.exceptions import StoreUnavailableError
from expense_kernel.models.approval import ExpenseApprovalModel
from expense_kernel.models.claim import ExpenseClaimModel
from expense_kernel.selectors import ClaimSelector, HierarchySelector, PolicySelector


class TestPolicySelector:

    def test_get_step_maps_rule(self, session, make_policy, org):
        policy_id = make_policy(
            (T.SPECIFIC_USER, org["controller"], None),
            (T.MANAGER_N_UP, None, 2),
            (T.DIRECT_MANAGER, None, None),
        )
        selector = PolicySelector(session)

        assert selector.get_step(policy_id, 1).rule == SpecificUserRule(org["controller"])
        assert selector.get_step(policy_id, 2).rule == ManagerNUpRule(2)
        assert selector.get_step(policy_id, 3).rule == DirectManagerRule()

    def test_missing_step(self, session, make_policy):
        policy_id = make_policy((T.DIRECT_MANAGER, None, None))

        assert PolicySelector(session).get_step(policy_id, 2) is None
        assert PolicySelector(session).get_step(uuid4(), 1) is None

    def test_unknown_stored_type(self, session, make_policy):
        policy_id = make_policy(("RoleBased", None, None))

        step = PolicySelector(session).get_step(policy_id, 1)

        assert step.rule == UnrecognizedRule("RoleBased")

    def test_first_step_order(self, session, make_policy):
        policy_id = make_policy(
            (T.DIRECT_MANAGER, None, None),
            (T.MANAGER_N_UP, None, 2),
            orders=[20, 10],
        )
        selector = PolicySelector(session)

        assert selector.get_first_step_order(policy_id) == 10
        assert selector.get_first_step_order(uuid4()) is None
        assert [s.sequence_order for s in selector.list_steps(policy_id)] == [10, 20]


class TestHierarchySelector:

    def test_manager_of(self, session, org):
        selector = HierarchySelector(session)

        assert selector.get_manager_of(org["employee"]) == org["manager"]
        assert selector.get_manager_of(org["ceo"]) is None
        assert selector.get_manager_of(uuid4()) is None

    def test_engine_over_sql_stores(self, session, make_policy, org):
        policy_id = make_policy((T.MANAGER_N_UP, None, 3))

        result = resolve_next_approver(
            PolicySelector(session), HierarchySelector(session),
            policy_id, 1, org["employee"],
        )

        assert result.approver_id == org["ceo"]

    def test_chain_too_short_over_sql(self, session, make_policy, org):
        policy_id = make_policy((T.MANAGER_N_UP, None, 4))

        result = resolve_next_approver(
            PolicySelector(session), HierarchySelector(session),
            policy_id, 1, org["employee"],
        )

        assert result.reason == NotFoundReason.CHAIN_TOO_SHORT

    def test_driver_errors_become_store_unavailable(self):
        broken = MagicMock()
        broken.execute.side_effect = OperationalError("SELECT 1", {}, Exception("server closed"))

        with pytest.raises(StoreUnavailableError) as exc_info:
            HierarchySelector(broken).get_manager_of(uuid4())

        assert exc_info.value.store == "hierarchy_store"
        assert exc_info.value.operation == "get_manager_of"
        assert "server closed" in exc_info.value.reason


class TestClaimSelector:

    def _claim(self, session, company, employee, clock_time, status="Draft"):
        model = ExpenseClaimModel(
            id=uuid4(),
            user_id=employee,
            company_id=company.id,
            status=status,
            created_at=clock_time,
            updated_at=clock_time,
        )
        session.add(model)
        session.flush()
        return model.id

    def test_list_newest_first(self, session, company, org, deterministic_clock):
        t0 = deterministic_clock.now()
        first = self._claim(session, company, org["employee"], t0)
        second = self._claim(session, company, org["employee"], t0 + timedelta(minutes=5))
        self._claim(session, company, org["manager"], t0 + timedelta(minutes=9))

        claims = ClaimSelector(session).list_for_employee(org["employee"])

        assert [c.claim_id for c in claims] == [second, first]
        assert all(c.status == ClaimStatus.DRAFT for c in claims)

    def test_get_scoped_to_owner(self, session, company, org, deterministic_clock):
        claim_id = self._claim(session, company, org["employee"], deterministic_clock.now())
        selector = ClaimSelector(session)

        assert selector.get_for_employee(claim_id, org["employee"]).claim_id == claim_id
        assert selector.get_for_employee(claim_id, org["manager"]) is None

    def test_approvals_filtered_and_ordered(
        self, session, company, org, make_policy, deterministic_clock,
    ):
        now = deterministic_clock.now()
        policy_id = make_policy(
            (T.DIRECT_MANAGER, None, None), (T.SPECIFIC_USER, org["controller"], None),
        )
        claim = ExpenseClaimModel(
            id=uuid4(), user_id=org["employee"], company_id=company.id,
            status="Processing", policy_id=policy_id, current_approval_step=2,
            submitted_at=now, created_at=now, updated_at=now,
        )
        session.add(claim)
        session.flush()
        session.add_all([
            ExpenseApprovalModel(
                id=uuid4(), claim_id=claim.id, approver_user_id=org["controller"],
                step_order=2, approval_status="Pending", action_date=now,
            ),
            ExpenseApprovalModel(
                id=uuid4(), claim_id=claim.id, approver_user_id=org["manager"],
                step_order=1, approval_status="Approved", action_date=now,
            ),
        ])
        session.flush()
        selector = ClaimSelector(session)

        all_records = selector.approvals_for_claim(claim.id)
        pending = selector.approvals_for_claim(claim.id, ApprovalRecordStatus.PENDING)

        assert [r.step_order for r in all_records] == [1, 2]
        assert [r.approver_user_id for r in pending] == [org["controller"]]
        assert [r.claim_id for r in selector.pending_for_approver(org["controller"])] == [claim.id]
        assert selector.pending_for_approver(org["manager"]) == []
