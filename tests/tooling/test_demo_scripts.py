"""
Tests for the demo scripts (scripts/seed_data.py, scripts/resolve_approver.py).
"""

import json
import logging
from uuid import uuid4

import pytest

import expense_kernel.db.engine as db_engine_module
from expense_engines.routing import resolve_next_approver
from expense_kernel.domain.routing import (
    ApproverNotFound,
    DirectManagerRule,
    ManagerNUpRule,
    NotFoundReason,
    PolicyStep,
    SpecificUserRule,
    UnrecognizedRule,
)
from expense_kernel.selectors import HierarchySelector, PolicySelector
from scripts.resolve_approver import main as resolve_main
from scripts.resolve_approver import describe_step, result_to_dict
from scripts.seed_data import seed_demo_org


@pytest.fixture
def isolated_engine(monkeypatch):
    """Let a script install its own engine without replacing the suite's."""
    monkeypatch.setattr(db_engine_module, "_engine", db_engine_module._engine)
    monkeypatch.setattr(db_engine_module, "_SessionFactory", db_engine_module._SessionFactory)
    yield
    logging.disable(logging.NOTSET)


class TestSeedDemoOrg:

    def test_reporting_line(self, session):
        org = seed_demo_org(session)
        hierarchy = HierarchySelector(session)

        assert hierarchy.get_manager_of(org.employee_id) == org.manager_id
        assert hierarchy.get_manager_of(org.manager_id) == org.director_id
        assert hierarchy.get_manager_of(org.director_id) == org.ceo_id
        assert hierarchy.get_manager_of(org.ceo_id) is None

    @pytest.mark.parametrize("label,step,expected", [
        ("direct-manager", 1, "manager"),
        ("controller", 1, "controller"),
        ("skip-level", 1, "director"),
        ("two-step", 1, "manager"),
        ("two-step", 2, "controller"),
    ])
    def test_policies_route_employee(self, session, label, step, expected):
        org = seed_demo_org(session)

        result = resolve_next_approver(
            PolicySelector(session), HierarchySelector(session),
            org.policies()[label], step, org.employee_id,
        )

        assert result.approver_id == org.users()[expected]


class TestResolveApproverCli:

    def test_demo_json(self, isolated_engine, capsys):
        exit_code = resolve_main([
            "--demo", "--policy", "skip-level", "--employee", "employee", "--json",
        ])

        payload = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert payload["found"] is True
        assert payload["step_order"] == 1

    def test_demo_json_lists_policy_steps(self, isolated_engine, capsys):
        exit_code = resolve_main([
            "--demo", "--policy", "two-step", "--step", "2", "--employee", "employee", "--json",
        ])

        payload = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert [s["sequence_order"] for s in payload["steps"]] == [1, 2]
        assert payload["steps"][0]["rule"] == "DirectManager"
        assert payload["steps"][1]["rule"].startswith("SpecificUser ")

    def test_demo_text_marks_requested_step(self, isolated_engine, capsys):
        exit_code = resolve_main([
            "--demo", "--policy", "skip-level", "--employee", "employee",
        ])

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "* step 1    ManagerNUp 2" in out
        assert "director" in out

    def test_demo_not_found(self, isolated_engine, capsys):
        exit_code = resolve_main([
            "--demo", "--policy", "direct-manager", "--employee", "ceo",
        ])

        assert exit_code == 2
        assert "no_manager" in capsys.readouterr().out

    def test_unknown_label(self, isolated_engine, capsys):
        exit_code = resolve_main(["--demo", "--policy", "nope", "--employee", "employee"])

        assert exit_code == 1
        assert "Unknown policy" in capsys.readouterr().err

    def test_requires_database(self, capsys):
        with pytest.raises(SystemExit):
            resolve_main(["--policy", "x", "--employee", "y"])

    @pytest.mark.parametrize("rule,expected", [
        (DirectManagerRule(), "DirectManager"),
        (ManagerNUpRule(levels=3), "ManagerNUp 3"),
        (SpecificUserRule(approver_user_id=None), "SpecificUser (no user)"),
        (UnrecognizedRule(raw_type="RoleBased"), "unrecognized 'RoleBased'"),
    ])
    def test_describe_step(self, rule, expected):
        assert describe_step(PolicyStep(uuid4(), 1, rule)) == expected

    def test_result_to_dict_not_found(self):
        assert result_to_dict(ApproverNotFound(NotFoundReason.CYCLE_DETECTED, "loop")) == {
            "found": False, "reason": "cycle_detected", "detail": "loop",
        }
