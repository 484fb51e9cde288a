"""
Typed errors raised by the loan services.
Each carries a stable ``code``, an HTTP status hint for the API layer, and a
``details`` mapping merged into the JSON error body.
"""
from __future__ import annotations

from typing import Any, Iterable, Mapping

from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_snake


class LoanServiceError(Exception):
    code = "loan_service_error"
    status_code = 400
    retryable = False

    def __init__(self, message: str, details: Mapping[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details or {})

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.details}


class ValidationFailed(LoanServiceError):
    code = "validation_failed"
    status_code = 422

    def __init__(self, errors: Mapping[str, str], message: str = "Validation failed"):
        self.errors: dict[str, str] = dict(errors)
        super().__init__(message, {"errors": self.errors})

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> "ValidationFailed":
        """Flatten a pydantic error list into a snake_case field -> message mapping."""
        errors: dict[str, str] = {}
        for err in exc.errors():
            loc = [to_snake(p) if isinstance(p, str) else str(p) for p in err.get("loc", ())]
            errors.setdefault(".".join(loc) or "__root__", err.get("msg", "Invalid value"))
        return cls(errors)


class NotFound(LoanServiceError):
    code = "not_found"
    status_code = 404

    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource} not found", {"resource": resource, "id": resource_id})


class Forbidden(LoanServiceError):
    code = "forbidden"
    status_code = 403

    def __init__(self, operation: str, role: str, required_role: str):
        super().__init__(
            f"Role {role} may not perform '{operation}' (requires {required_role})",
            {"operation": operation, "role": role, "requiredRole": required_role},
        )


class InvalidStateTransition(LoanServiceError):
    code = "invalid_state_transition"
    status_code = 409

    def __init__(self, current_status: str, action: str, valid_actions: Iterable[str]):
        self.current_status = current_status
        self.action = action
        self.valid_actions = list(valid_actions)
        super().__init__(
            f"Cannot {action} an application in status {current_status}",
            {
                "currentStatus": current_status,
                "action": action,
                "validActions": self.valid_actions,
            },
        )


class TransitionConflict(InvalidStateTransition):
    """Another request changed the status between our read and our write."""

    code = "transition_conflict"


class InvalidApplicationState(LoanServiceError):
    code = "invalid_application_state"
    status_code = 409

    def __init__(self, current_status: str, message: str = "Only draft applications can be edited"):
        self.current_status = current_status
        super().__init__(message, {"currentStatus": current_status})


class IneligibleApplicationState(LoanServiceError):
    code = "ineligible_application_state"
    status_code = 409

    def __init__(self, current_status: str, eligible: Iterable[str]):
        self.current_status = current_status
        super().__init__(
            f"Cannot issue a receipt for an application in status {current_status}",
            {"currentStatus": current_status, "eligibleStatuses": list(eligible)},
        )


class AlreadyVoided(LoanServiceError):
    code = "already_voided"
    status_code = 409

    def __init__(self, receipt_number: str):
        super().__init__(f"Receipt {receipt_number} is already voided", {"receiptNumber": receipt_number})


class DuplicateNumber(LoanServiceError):
    code = "duplicate_number"
    status_code = 409
    retryable = True

    def __init__(self, number: str, attempts: int | None = None):
        details: dict[str, Any] = {"number": number}
        if attempts is not None:
            details["attempts"] = attempts
        super().__init__(f"Generated number {number} is already in use", details)


class DuplicateReceiptNumber(DuplicateNumber):
    code = "duplicate_receipt_number"


class DuplicateReferenceNumber(DuplicateNumber):
    code = "duplicate_reference_number"
