"""
Loan application lifecycle.

DRAFT -> SUBMITTED -> PENDING_VETTING -> APPROVED -> FOR_DISBURSEMENT -> ACTIVE -> FULLY_PAID
with DISAPPROVED reachable from SUBMITTED / PENDING_VETTING (approve may skip vetting) and
CANCELLED reachable from every status except ACTIVE, FULLY_PAID and CANCELLED.

Everything here is pure: ``plan_transition`` inspects an application (any object
exposing the column attributes) and returns the column values to write, or
raises. Role checks and persistence live in services.applications.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from schemas.application import ApproveRequest, ReasonRequest
from services.errors import InvalidStateTransition, ValidationFailed


class ApplicationStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    PENDING_VETTING = "PENDING_VETTING"
    APPROVED = "APPROVED"
    DISAPPROVED = "DISAPPROVED"
    FOR_DISBURSEMENT = "FOR_DISBURSEMENT"
    ACTIVE = "ACTIVE"
    FULLY_PAID = "FULLY_PAID"
    CANCELLED = "CANCELLED"


class TransitionAction(str, Enum):
    SUBMIT = "submit"
    START_VETTING = "start_vetting"
    APPROVE = "approve"
    DISAPPROVE = "disapprove"
    FOR_DISBURSEMENT = "for_disbursement"
    ACTIVATE = "activate"
    MARK_PAID = "mark_paid"
    CANCEL = "cancel"


S = ApplicationStatus

INITIAL_STATUS = S.DRAFT
RECEIPT_ELIGIBLE_STATUSES = (S.APPROVED, S.FOR_DISBURSEMENT, S.ACTIVE)


@dataclass(frozen=True)
class Transition:
    action: TransitionAction
    sources: frozenset
    target: ApplicationStatus
    stamp: Optional[str] = None
    records_processor: bool = False


TRANSITIONS: dict[TransitionAction, Transition] = {
    t.action: t
    for t in (
        Transition(TransitionAction.SUBMIT, frozenset({S.DRAFT}), S.SUBMITTED, "submitted_at"),
        Transition(
            TransitionAction.START_VETTING,
            frozenset({S.SUBMITTED}),
            S.PENDING_VETTING,
            "vetting_started_at",
            records_processor=True,
        ),
        Transition(
            TransitionAction.APPROVE,
            frozenset({S.SUBMITTED, S.PENDING_VETTING}),
            S.APPROVED,
            "approved_at",
            records_processor=True,
        ),
        Transition(
            TransitionAction.DISAPPROVE,
            frozenset({S.SUBMITTED, S.PENDING_VETTING}),
            S.DISAPPROVED,
            records_processor=True,
        ),
        Transition(TransitionAction.FOR_DISBURSEMENT, frozenset({S.APPROVED}), S.FOR_DISBURSEMENT, "disbursement_at"),
        Transition(TransitionAction.ACTIVATE, frozenset({S.FOR_DISBURSEMENT}), S.ACTIVE, "funds_released_at"),
        Transition(TransitionAction.MARK_PAID, frozenset({S.ACTIVE}), S.FULLY_PAID, "completed_at"),
        Transition(
            TransitionAction.CANCEL,
            frozenset(set(S) - {S.ACTIVE, S.FULLY_PAID, S.CANCELLED}),
            S.CANCELLED,
            "cancelled_at",
        ),
    )
}


def parse_action(action: str | TransitionAction) -> TransitionAction:
    try:
        return TransitionAction(action)
    except ValueError:
        raise ValidationFailed({"action": f"Unknown action '{action}'"}) from None


def valid_actions(status: str | ApplicationStatus) -> list[str]:
    """Actions allowed from ``status``, in lifecycle order."""
    status = ApplicationStatus(status)
    return [t.action.value for t in TRANSITIONS.values() if status in t.sources]


def can_transition(status: str | ApplicationStatus, action: str | TransitionAction) -> bool:
    return TransitionAction(action).value in valid_actions(status)


def _required_reason(payload: Mapping[str, Any]) -> str:
    try:
        reason = ReasonRequest.model_validate(payload).reason
    except PydanticValidationError as exc:
        raise ValidationFailed.from_pydantic(exc) from exc
    if not reason or not reason.strip():
        raise ValidationFailed({"reason": "A reason is required"})
    return reason


def _approval_values(application: Any, payload: Mapping[str, Any]) -> dict[str, Any]:
    try:
        req = ApproveRequest.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationFailed.from_pydantic(exc) from exc
    requested = Decimal(application.loan_amount or 0)
    if requested <= 0:
        raise ValidationFailed({"loan_amount": "Requested loan amount must be greater than 0"})
    amount = req.approved_amount if req.approved_amount is not None else requested
    if amount > requested:
        raise ValidationFailed({"approved_amount": f"Cannot exceed the requested amount of {requested}"})
    values: dict[str, Any] = {"approved_amount": amount}
    if req.interest_rate is not None:
        values["interest_rate"] = req.interest_rate
    if req.notes:
        values["approval_notes"] = req.notes
    return values


def plan_transition(
    application: Any,
    action: str | TransitionAction,
    payload: Optional[Mapping[str, Any]] = None,
    *,
    actor_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """
    Return the column values that move ``application`` through ``action``.
    Raises InvalidStateTransition when the action is not legal from the current
    status, and ValidationFailed when the payload is unusable. Never mutates
    ``application``.
    """
    action = parse_action(action)
    transition = TRANSITIONS[action]
    current = ApplicationStatus(application.status)
    if current not in transition.sources:
        raise InvalidStateTransition(current.value, action.value, valid_actions(current))
    if transition.stamp and getattr(application, transition.stamp, None) is not None:
        # stages are never re-stamped
        raise InvalidStateTransition(current.value, action.value, valid_actions(current))

    payload = payload or {}
    now = now or datetime.now(timezone.utc)
    values: dict[str, Any] = {"status": transition.target.value, "updated_at": now}
    if transition.stamp:
        values[transition.stamp] = now
    if transition.records_processor:
        values["processed_by_id"] = actor_id

    if action is TransitionAction.APPROVE:
        values.update(_approval_values(application, payload))
    elif action in (TransitionAction.DISAPPROVE, TransitionAction.CANCEL):
        values["rejection_reason"] = _required_reason(payload)
    return values
