"""
Multi-step application wizard.

A draft is created once, then saved after every step with whatever the
applicant has filled in so far. Saves merge field by field into the stored
row and move the step pointer forward, never back. ``validate_step`` holds
the per-step required/format rules; it is pure so callers can run it before
anything is persisted. ``submit`` checks the loan details and undertaking
steps and hands the draft to the state machine.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from models import LoanApplication
from schemas.application import LOAN_TERMS, ApplicationFields
from services.authorization import CurrentUser, authorize
from services.errors import DuplicateReferenceNumber, InvalidApplicationState, InvalidStateTransition, ValidationFailed
from services.identifiers import NumberGenerator
from services.repository import (
    insert_with_unique_number,
    load_application,
    update_if_status,
    write_transition,
)
from services.state_machine import INITIAL_STATUS, TransitionAction, can_transition, valid_actions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WizardStep:
    index: int
    key: str
    label: str
    fields: tuple[str, ...] = ()


_PRESENT_ADDRESS = (
    "present_street",
    "present_barangay",
    "present_city",
    "present_province",
    "present_region",
    "present_zip_code",
    "present_years_stay",
)
_PERMANENT_ADDRESS = (
    "permanent_same_as_present",
    "permanent_street",
    "permanent_barangay",
    "permanent_city",
    "permanent_province",
    "permanent_region",
    "permanent_zip_code",
)

WIZARD_STEPS: tuple[WizardStep, ...] = (
    WizardStep(1, "application_type", "Application Type", ("application_type", "referral_source")),
    WizardStep(
        2,
        "loan_details",
        "Loan Details",
        ("loan_product_type", "loan_amount", "loan_term_months", "loan_purpose"),
    ),
    WizardStep(
        3,
        "personal_info",
        "Personal Info",
        (
            "first_name",
            "middle_name",
            "last_name",
            "suffix",
            "date_of_birth",
            "gender",
            "civil_status",
            "nationality",
            "mother_maiden_name",
            "mobile_number",
            "telephone_number",
            "email_address",
        )
        + _PRESENT_ADDRESS,
    ),
    WizardStep(
        4,
        "identification",
        "ID & Education",
        ("primary_id_type", "primary_id_number", "primary_id_expiry", "tin", "sss_gsis", "highest_education"),
    ),
    WizardStep(5, "collateral", "Collateral", ("collateral_type", "collateral_description", "collateral_value")),
    WizardStep(
        6,
        "residence",
        "Residence",
        ("residence_ownership", "monthly_rent", "residence_years") + _PERMANENT_ADDRESS,
    ),
    WizardStep(
        7,
        "family",
        "Family Info",
        ("spouse_first_name", "spouse_last_name", "spouse_monthly_income", "number_of_dependents"),
    ),
    WizardStep(
        8,
        "income_source",
        "Income Source",
        (
            "primary_income_source",
            "employer_name",
            "job_position",
            "monthly_net_salary",
            "business_name",
            "business_net_income",
            "monthly_expenses",
            "existing_loan_payments",
        ),
    ),
    WizardStep(
        9,
        "co_borrower",
        "Co-Borrower",
        (
            "has_co_borrower",
            "co_borrower_first_name",
            "co_borrower_last_name",
            "co_borrower_relationship",
            "co_borrower_monthly_income",
        ),
    ),
    WizardStep(10, "references", "References", ("character_references", "trade_references")),
    WizardStep(11, "undertaking", "Undertaking", ("undertaking_signed", "privacy_notice_signed")),
    WizardStep(12, "review", "Review"),
)

TOTAL_STEPS = len(WIZARD_STEPS)
UNDERTAKING_STEP = 11
LOAN_DETAILS_STEP = 2
# Steps whose rules must hold before a draft can leave DRAFT
SUBMIT_REQUIRED_STEPS = (LOAN_DETAILS_STEP, UNDERTAKING_STEP)
STEP_FIELDS: dict[int, tuple[str, ...]] = {s.index: s.fields for s in WIZARD_STEPS}
WIZARD_FIELDS: tuple[str, ...] = tuple(f for s in WIZARD_STEPS for f in s.fields)

# Applied on creation, and whenever a save sends an explicit null for one of these
DRAFT_DEFAULTS: dict[str, Any] = {
    "application_type": "NEW",
    "loan_product_type": "PERSONAL",
    "loan_amount": Decimal("0"),
    "loan_term_months": 12,
    "first_name": "",
    "last_name": "",
    "nationality": "Filipino",
    "present_years_stay": 0,
    "collateral_value": Decimal("0"),
    "monthly_rent": Decimal("0"),
    "residence_years": 0,
    "permanent_same_as_present": True,
    "spouse_monthly_income": Decimal("0"),
    "number_of_dependents": 0,
    "monthly_net_salary": Decimal("0"),
    "business_net_income": Decimal("0"),
    "monthly_expenses": Decimal("0"),
    "existing_loan_payments": Decimal("0"),
    "has_co_borrower": False,
    "co_borrower_monthly_income": Decimal("0"),
    "character_references": [],
    "trade_references": [],
    "undertaking_signed": False,
    "privacy_notice_signed": False,
}

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_REFERENCE_FIELDS = ("character_references", "trade_references")


def get_step(step_index: int) -> WizardStep:
    if not isinstance(step_index, int) or not 1 <= step_index <= TOTAL_STEPS:
        raise ValidationFailed({"step": f"Step must be between 1 and {TOTAL_STEPS}"})
    return WIZARD_STEPS[step_index - 1]


def parse_fields(raw: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """
    Validate raw wizard input (camelCase or snake_case keys) and return only the
    supplied fields, snake_case, with nulls replaced by their documented defaults.
    """
    try:
        parsed = ApplicationFields.model_validate(dict(raw or {}))
    except PydanticValidationError as exc:
        raise ValidationFailed.from_pydantic(exc) from exc
    fields = parsed.model_dump(exclude_unset=True)
    for name, value in fields.items():
        if value is None and name in DRAFT_DEFAULTS:
            fields[name] = _default(name)
        elif name in _REFERENCE_FIELDS:
            # every entry keeps all keys, unset ones as null
            fields[name] = [entry.model_dump() for entry in getattr(parsed, name)]
    return fields


def _default(name: str) -> Any:
    value = DRAFT_DEFAULTS[name]
    return list(value) if isinstance(value, list) else value


def application_snapshot(application: Any) -> dict[str, Any]:
    """Current wizard field values of a stored application."""
    return {name: getattr(application, name, None) for name in WIZARD_FIELDS}


#
# --- Per-step rules ---
#


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _require(fields: Mapping[str, Any], errors: dict[str, str], *names: str) -> None:
    for name in names:
        if _blank(fields.get(name)):
            errors[name] = "Required"


def _as_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def _as_term(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


def _loan_details(fields: Mapping[str, Any], errors: dict[str, str]) -> None:
    amount = _as_decimal(fields.get("loan_amount"))
    if amount is None or amount <= 0:
        errors["loan_amount"] = "Loan amount must be greater than 0"
    term = fields.get("loan_term_months")
    if _blank(term):
        errors["loan_term_months"] = "Required"
    elif _as_term(term) not in LOAN_TERMS:
        errors["loan_term_months"] = f"Must be one of {', '.join(str(t) for t in LOAN_TERMS)} months"


def _personal_info(fields: Mapping[str, Any], errors: dict[str, str]) -> None:
    _require(fields, errors, "first_name", "last_name", "mobile_number")
    email = fields.get("email_address")
    if not _blank(email) and not _EMAIL_RE.match(str(email).strip()):
        errors["email_address"] = "Invalid email address"


def _collateral(fields: Mapping[str, Any], errors: dict[str, str]) -> None:
    if _plain(fields.get("collateral_type")) not in (None, "", "NONE"):
        _require(fields, errors, "collateral_description")


def _residence(fields: Mapping[str, Any], errors: dict[str, str]) -> None:
    if _plain(fields.get("residence_ownership")) == "RENTED":
        rent = _as_decimal(fields.get("monthly_rent"))
        if rent is None or rent <= 0:
            errors["monthly_rent"] = "Required when renting"


def _family(fields: Mapping[str, Any], errors: dict[str, str]) -> None:
    if _plain(fields.get("civil_status")) == "MARRIED":
        _require(fields, errors, "spouse_first_name", "spouse_last_name")


def _income_source(fields: Mapping[str, Any], errors: dict[str, str]) -> None:
    source = _plain(fields.get("primary_income_source"))
    if source == "EMPLOYMENT":
        _require(fields, errors, "employer_name")
    elif source == "BUSINESS":
        _require(fields, errors, "business_name")


def _co_borrower(fields: Mapping[str, Any], errors: dict[str, str]) -> None:
    if fields.get("has_co_borrower") is True:
        _require(fields, errors, "co_borrower_first_name", "co_borrower_last_name")


def _undertaking(fields: Mapping[str, Any], errors: dict[str, str]) -> None:
    if fields.get("undertaking_signed") is not True:
        errors["undertaking_signed"] = "You must accept the borrower's undertaking"
    if fields.get("privacy_notice_signed") is not True:
        errors["privacy_notice_signed"] = "You must consent to the data privacy notice"


_STEP_RULES = {
    "loan_details": _loan_details,
    "personal_info": _personal_info,
    "collateral": _collateral,
    "residence": _residence,
    "family": _family,
    "income_source": _income_source,
    "co_borrower": _co_borrower,
    "undertaking": _undertaking,
}


def validate_step(step_index: int, fields: Mapping[str, Any]) -> dict[str, str]:
    """
    Return field -> message for every rule of ``step_index`` that ``fields``
    (snake_case) breaks; empty when the step is complete. Conditional fields
    are only required when their governing field calls for them.
    """
    step = get_step(step_index)
    errors: dict[str, str] = {}
    rule = _STEP_RULES.get(step.key)
    if rule is not None:
        rule(fields, errors)
    return errors


#
# --- Persistence ---
#


def _signature_values(current_signed_at: Optional[datetime], merged: Mapping[str, Any], now: datetime) -> dict:
    signed = merged.get("undertaking_signed") is True and merged.get("privacy_notice_signed") is True
    if signed and current_signed_at is None:
        return {"signed_at": now}
    if not signed and current_signed_at is not None:
        return {"signed_at": None}
    return {}


async def create_draft(
    session: AsyncSession,
    actor: CurrentUser,
    initial_fields: Optional[Mapping[str, Any]] = None,
    *,
    numbers: NumberGenerator,
    now: Optional[datetime] = None,
) -> LoanApplication:
    authorize(actor, "create_draft")
    fields = parse_fields(initial_fields)
    now = now or datetime.now(timezone.utc)

    values = {name: _default(name) for name in DRAFT_DEFAULTS}
    values.update(fields)
    values.update(_signature_values(None, values, now))
    values.update(
        id=numbers.new_id("app"),
        status=INITIAL_STATUS.value,
        current_step=1,
        created_by_id=actor.id,
        created_at=now,
        updated_at=now,
    )
    application = await insert_with_unique_number(
        session,
        LoanApplication,
        values,
        "reference_number",
        lambda: numbers.reference_number(now),
        DuplicateReferenceNumber,
    )
    logger.info("Draft application %s created by %s", application.reference_number, actor.id)
    return application


async def save_step(
    session: AsyncSession,
    application_id: str,
    step_index: int,
    fields: Optional[Mapping[str, Any]],
    actor: CurrentUser,
    *,
    now: Optional[datetime] = None,
) -> LoanApplication:
    """
    Merge ``fields`` into a draft. Fields not sent keep their stored value.
    ``current_step`` moves to ``step_index + 1`` unless it is already further.
    """
    authorize(actor, "save_step")
    step = get_step(step_index)
    application = await load_application(session, application_id)
    if application.status != INITIAL_STATUS.value:
        raise InvalidApplicationState(application.status)
    changes = parse_fields(fields)

    now = now or datetime.now(timezone.utc)
    merged = {**application_snapshot(application), **changes}
    values = dict(changes)
    values["current_step"] = max(application.current_step or 1, min(step.index + 1, TOTAL_STEPS))
    values.update(_signature_values(application.signed_at, merged, now))
    values["updated_at"] = now

    if not await update_if_status(session, application, INITIAL_STATUS.value, values):
        raise InvalidApplicationState(application.status)
    logger.info(
        "Application %s: saved step %d (%s), %d field(s)",
        application.reference_number,
        step.index,
        step.key,
        len(changes),
    )
    return application


async def submit(
    session: AsyncSession,
    application_id: str,
    actor: CurrentUser,
    *,
    now: Optional[datetime] = None,
) -> LoanApplication:
    """Check the loan details and undertaking steps, then move the draft to SUBMITTED."""
    authorize(actor, TransitionAction.SUBMIT.value)
    application = await load_application(session, application_id)
    if not can_transition(application.status, TransitionAction.SUBMIT):
        raise InvalidStateTransition(application.status, TransitionAction.SUBMIT.value, valid_actions(application.status))
    snapshot = application_snapshot(application)
    errors: dict[str, str] = {}
    for step_index in SUBMIT_REQUIRED_STEPS:
        errors.update(validate_step(step_index, snapshot))
    if errors:
        raise ValidationFailed(errors, "Application is not ready to submit")
    return await write_transition(
        session,
        application,
        TransitionAction.SUBMIT,
        actor_id=actor.id,
        now=now,
    )
