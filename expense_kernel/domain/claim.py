"""
Claim lifecycle domain types (``expense_kernel.domain.claim``).

Responsibility
--------------
Claim status state machine, approval record statuses, the submission
payload and its validation, and the DTOs returned by the claim service.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects and pure validation.  ZERO I/O.

Invariants enforced
-------------------
* ``CLAIM_TRANSITIONS`` defines the only valid status changes.  Draft is
  the only status from which ``submit`` is valid.
* ``validate_submission`` runs before any persistence; it either returns a
  fully normalised ``ClaimSubmission`` or raises ``ClaimValidationError``
  listing every failing field.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import UUID

from expense_kernel.exceptions import ClaimValidationError


class ClaimStatus(str, Enum):
    """Claim lifecycle states."""

    DRAFT = "Draft"
    PROCESSING = "Processing"
    APPROVED = "Approved"
    REJECTED = "Rejected"


CLAIM_TRANSITIONS: dict[ClaimStatus, frozenset[ClaimStatus]] = {
    ClaimStatus.DRAFT: frozenset({ClaimStatus.PROCESSING}),
    ClaimStatus.PROCESSING: frozenset({
        ClaimStatus.APPROVED,
        ClaimStatus.REJECTED,
    }),
    ClaimStatus.APPROVED: frozenset(),
    ClaimStatus.REJECTED: frozenset(),
}


def can_transition(from_status: ClaimStatus, to_status: ClaimStatus) -> bool:
    """True if ``CLAIM_TRANSITIONS`` allows ``from_status -> to_status``."""
    return to_status in CLAIM_TRANSITIONS.get(from_status, frozenset())


class ApprovalRecordStatus(str, Enum):
    """Status of a single approver's decision on a claim step."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


# Fields an employee may set on a draft.
CLAIM_DETAIL_FIELDS: tuple[str, ...] = (
    "description",
    "expense_date",
    "category",
    "original_amount",
    "original_currency_code",
    "receipt_url",
    "policy_id",
)


@dataclass(frozen=True)
class ClaimDetails:
    """Employee-supplied claim data. Any field may be missing on a draft."""

    description: str | None = None
    expense_date: date | str | None = None
    category: str | None = None
    original_amount: Decimal | str | int | float | None = None
    original_currency_code: str | None = None
    receipt_url: str | None = None
    policy_id: UUID | str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClaimDetails:
        """Build from a mapping, rejecting keys that are not claim fields."""
        unknown = sorted(set(data) - set(CLAIM_DETAIL_FIELDS))
        if unknown:
            raise ClaimValidationError([
                {"field": key, "message": f"Unknown claim field '{key}'"}
                for key in unknown
            ])
        return cls(**data)


@dataclass(frozen=True)
class ClaimSubmission:
    """Validated, normalised submission data."""

    description: str
    expense_date: date
    category: str
    original_amount: Decimal
    original_currency_code: str
    policy_id: UUID
    receipt_url: str | None = None


# Storage limits of the expense_claims columns.
AMOUNT_QUANTUM = Decimal("0.01")
MAX_AMOUNT = Decimal("1e16")
TEXT_FIELD_LIMITS: dict[str, int] = {
    "description": 1000,
    "category": 100,
    "receipt_url": 2000,
}


def _normalize_fields(
    details: ClaimDetails,
    required: bool,
) -> tuple[dict[str, Any], list[dict[str, str]]]:
    """Normalise every supplied field; with ``required`` also flag missing ones.

    Returns (normalised values for fields that passed, field errors).
    """
    values: dict[str, Any] = {}
    errors: list[dict[str, str]] = []

    def _fail(field_name: str, message: str) -> None:
        errors.append({"field": field_name, "message": message})

    def _missing(value: Any) -> bool:
        return value is None or (isinstance(value, str) and not value.strip())

    def _text(field_name: str, label: str) -> None:
        value = getattr(details, field_name)
        if _missing(value):
            if required and field_name != "receipt_url":
                _fail(field_name, f"{label} is required")
        elif not isinstance(value, str):
            _fail(field_name, f"{label} must be text")
        elif len(value.strip()) > TEXT_FIELD_LIMITS[field_name]:
            _fail(
                field_name,
                f"{label} must be at most {TEXT_FIELD_LIMITS[field_name]} characters",
            )
        else:
            values[field_name] = value.strip()

    _text("description", "Description")

    if _missing(details.expense_date):
        if required:
            _fail("expense_date", "Expense date is required")
    elif isinstance(details.expense_date, datetime):
        values["expense_date"] = details.expense_date.date()
    elif isinstance(details.expense_date, date):
        values["expense_date"] = details.expense_date
    elif not isinstance(details.expense_date, str):
        _fail("expense_date", f"Invalid expense date: {details.expense_date!r}")
    else:
        try:
            values["expense_date"] = date.fromisoformat(details.expense_date.strip())
        except ValueError:
            _fail("expense_date", f"Invalid expense date: {details.expense_date!r}")

    _text("category", "Category")

    if _missing(details.original_amount):
        if required:
            _fail("original_amount", "Amount is required")
    else:
        amount = _parse_amount(details.original_amount)
        if amount is None:
            _fail("original_amount", "Amount must be a positive number")
        elif amount >= MAX_AMOUNT:
            _fail("original_amount", f"Amount must be less than {MAX_AMOUNT:,f}")
        elif amount != amount.quantize(AMOUNT_QUANTUM):
            _fail("original_amount", "Amount must have at most 2 decimal places")
        else:
            values["original_amount"] = amount.quantize(AMOUNT_QUANTUM)

    if _missing(details.original_currency_code):
        if required:
            _fail("original_currency_code", "Currency is required")
    elif not isinstance(details.original_currency_code, str):
        _fail("original_currency_code", "Currency code must be text")
    else:
        currency = details.original_currency_code.strip()
        if len(currency) != 3 or not currency.isalpha() or not currency.isascii():
            _fail(
                "original_currency_code",
                "Currency code must be 3 letters (e.g., USD)",
            )
        else:
            values["original_currency_code"] = currency.upper()

    if _missing(details.policy_id):
        if required:
            _fail("policy_id", "Approval policy is required")
    elif isinstance(details.policy_id, UUID):
        values["policy_id"] = details.policy_id
    elif not isinstance(details.policy_id, str):
        _fail("policy_id", f"Invalid policy reference: {details.policy_id!r}")
    else:
        try:
            values["policy_id"] = UUID(details.policy_id.strip())
        except ValueError:
            _fail("policy_id", f"Invalid policy reference: {details.policy_id!r}")

    _text("receipt_url", "Receipt URL")

    return values, errors


def _parse_amount(raw: Any) -> Decimal | None:
    """Positive finite Decimal from ``raw``, or None. Booleans are not amounts."""
    if isinstance(raw, bool) or not isinstance(raw, (Decimal, str, int, float)):
        return None
    try:
        amount = Decimal(str(raw).strip())
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def validate_submission(details: ClaimDetails) -> ClaimSubmission:
    """Validate submission fields and normalise them.

    Checks presence of description, expense date, category, amount, currency
    and policy; amount must be a positive number; currency must be a
    three-letter code (returned upper-cased).

    Raises:
        ClaimValidationError: listing every failing field.
    """
    values, errors = _normalize_fields(details, required=True)
    if errors:
        raise ClaimValidationError(errors)
    return ClaimSubmission(**values)


def normalize_draft(details: ClaimDetails) -> dict[str, Any]:
    """Normalise the fields present on a draft.

    Missing fields are fine on a draft; present fields must be well-formed.

    Raises:
        ClaimValidationError: if a supplied field is malformed.
    """
    values, errors = _normalize_fields(details, required=False)
    if errors:
        raise ClaimValidationError(errors)
    return values


# =========================================================================
# DTOs
# =========================================================================


@dataclass(frozen=True)
class ClaimRecord:
    """Immutable snapshot of a persisted claim."""

    claim_id: UUID
    employee_id: UUID
    company_id: UUID
    status: ClaimStatus
    description: str | None = None
    expense_date: date | None = None
    category: str | None = None
    original_amount: Decimal | None = None
    original_currency_code: str | None = None
    receipt_url: str | None = None
    policy_id: UUID | None = None
    current_approval_step: int | None = None
    submitted_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class ApprovalRecord:
    """Immutable snapshot of an approval record."""

    approval_id: UUID
    claim_id: UUID
    approver_user_id: UUID
    step_order: int
    approval_status: ApprovalRecordStatus
    action_date: datetime | None = None
    comment: str | None = None


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of a successful submission."""

    claim_id: UUID
    status: ClaimStatus
    approver_id: UUID
    approval_id: UUID
    step_order: int
