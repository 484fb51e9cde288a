"""
Role checks for loan operations.
The caller identity is ambient (supplied by the gateway); this module only
decides whether that role is sufficient for an operation.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from services.errors import Forbidden


class UserRole(str, Enum):
    VIEWER = "VIEWER"
    PROCESSOR = "PROCESSOR"
    ADMIN = "ADMIN"


_RANK = {UserRole.VIEWER: 0, UserRole.PROCESSOR: 1, UserRole.ADMIN: 2}


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: UserRole


OPERATION_ROLES: dict[str, UserRole] = {
    "view": UserRole.VIEWER,
    "create_draft": UserRole.PROCESSOR,
    "save_step": UserRole.PROCESSOR,
    "submit": UserRole.PROCESSOR,
    "start_vetting": UserRole.PROCESSOR,
    "approve": UserRole.ADMIN,
    "disapprove": UserRole.ADMIN,
    "for_disbursement": UserRole.PROCESSOR,
    "activate": UserRole.PROCESSOR,
    "mark_paid": UserRole.PROCESSOR,
    "cancel": UserRole.PROCESSOR,
    "issue_receipt": UserRole.PROCESSOR,
    "void_receipt": UserRole.PROCESSOR,
}


def required_role(operation: str) -> UserRole:
    # Unknown operations need the highest role rather than none
    return OPERATION_ROLES.get(operation, UserRole.ADMIN)


def has_role(user: CurrentUser, role: UserRole) -> bool:
    return _RANK[UserRole(user.role)] >= _RANK[role]


def authorize(user: CurrentUser, operation: str) -> None:
    """Raise Forbidden unless ``user`` may perform ``operation``."""
    needed = required_role(operation)
    if not has_role(user, needed):
        raise Forbidden(operation, UserRole(user.role).value, needed.value)
