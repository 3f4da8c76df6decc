#!/usr/bin/env python3
"""
Resolve the approver for one policy step.

Either connects to an existing database, or (with ``--demo``) seeds an
in-memory demo organisation and accepts its labels in place of UUIDs.

Usage:
    python3 scripts/resolve_approver.py --demo --policy skip-level --employee employee
    python3 scripts/resolve_approver.py --db-url sqlite:///expense_demo.db \\
        --policy 5f0c...  --employee 9a1b... --step 2 --json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from uuid import UUID

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from expense_kernel.domain.routing import (  # noqa: E402
    ApproverFound,
    DirectManagerRule,
    ManagerNUpRule,
    PolicyStep,
    RoutingResult,
    SpecificUserRule,
)

DEMO_DB_URL = "sqlite:///:memory:"


def _to_uuid(value: str, labels: dict[str, UUID], kind: str) -> UUID:
    if value in labels:
        return labels[value]
    try:
        return UUID(value)
    except ValueError:
        known = ", ".join(sorted(labels)) or "none"
        raise ValueError(f"Unknown {kind} {value!r} (labels: {known})") from None


def describe_step(step: PolicyStep) -> str:
    """One-line description of a step's rule."""
    rule = step.rule
    if isinstance(rule, SpecificUserRule):
        return f"SpecificUser {rule.approver_user_id or '(no user)'}"
    if isinstance(rule, DirectManagerRule):
        return "DirectManager"
    if isinstance(rule, ManagerNUpRule):
        return f"ManagerNUp {rule.levels}"
    return f"unrecognized {rule.raw_type!r}"


def result_to_dict(result: RoutingResult) -> dict:
    """JSON-ready view of a routing result."""
    if isinstance(result, ApproverFound):
        return {
            "found": True,
            "approver_id": str(result.approver_id),
            "policy_id": str(result.step.policy_id),
            "step_order": result.step.sequence_order,
        }
    return {
        "found": False,
        "reason": result.reason.value,
        "detail": result.detail,
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Resolve the approver for a policy step and employee.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  python3 scripts/resolve_approver.py --demo --policy two-step --employee employee\n"
            "  python3 scripts/resolve_approver.py --demo --policy two-step --step 2 "
            "--employee manager --json\n"
        ),
    )
    parser.add_argument("--policy", required=True, help="Policy UUID (or demo label)")
    parser.add_argument("--employee", required=True, help="Employee UUID (or demo label)")
    parser.add_argument("--step", type=int, default=1, help="Step order (default: 1)")
    parser.add_argument("--demo", action="store_true", help="Seed an in-memory demo org")
    parser.add_argument("--db-url", type=str, default=None, help="Database URL")
    parser.add_argument(
        "--config", type=str, default=None,
        help="Settings YAML (default: expense_config/settings.yaml)",
    )
    parser.add_argument("--json", action="store_true", help="Print JSON")
    args = parser.parse_args(argv)

    if not args.demo and not args.db_url:
        parser.error("either --demo or --db-url is required")

    logging.disable(logging.CRITICAL)

    from expense_config import get_active_config
    from expense_config.bridges import build_routing_limits, init_engine
    from expense_kernel.db.engine import create_tables, session_scope
    from expense_kernel.selectors.policy_selector import PolicySelector
    from expense_kernel.services.claim_service import ClaimService

    try:
        config = get_active_config(args.config)
        init_engine(config, DEMO_DB_URL if args.demo else args.db_url)
    except Exception as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    with session_scope() as session:
        users: dict[str, UUID] = {}
        policies: dict[str, UUID] = {}
        if args.demo:
            from scripts.seed_data import seed_demo_org

            create_tables()
            org = seed_demo_org(session)
            users, policies = org.users(), org.policies()

        try:
            policy_id = _to_uuid(args.policy, policies, "policy")
            employee_id = _to_uuid(args.employee, users, "employee")
        except ValueError as exc:
            print(f"  ERROR: {exc}", file=sys.stderr)
            return 1

        steps = PolicySelector(session).list_steps(policy_id)
        service = ClaimService(session, limits=build_routing_limits(config))
        result = service.resolve_approver(policy_id, args.step, employee_id)

    payload = result_to_dict(result)
    if args.json:
        payload["steps"] = [
            {"sequence_order": s.sequence_order, "rule": describe_step(s)} for s in steps
        ]
        print(json.dumps(payload, indent=2))
        return 0 if payload["found"] else 2

    for s in steps:
        marker = "*" if s.sequence_order == args.step else " "
        print(f"{marker} step {s.sequence_order:<4} {describe_step(s)}")
    if payload["found"]:
        labels = {v: k for k, v in users.items()}
        approver = payload["approver_id"]
        print(f"  approver   {approver} {labels.get(UUID(approver), '')}".rstrip())
        print(f"  step       {payload['step_order']}")
    else:
        print(f"  not found  {payload['reason']}: {payload['detail']}")
    return 0 if payload["found"] else 2


if __name__ == "__main__":
    sys.exit(main())
