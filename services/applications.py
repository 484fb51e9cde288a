from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models import LoanApplication, ORCRReceipt
from services import wizard
from services.authorization import CurrentUser, authorize
from services.errors import ValidationFailed
from services.repository import load_application, write_transition
from services.state_machine import ApplicationStatus, TransitionAction, parse_action


def page_bounds(page: int, limit: Optional[int]) -> tuple[int, int]:
    """Validate paging input; returns (page, limit)."""
    limit = settings.default_page_size if limit is None else limit
    errors = {}
    if page < 1:
        errors["page"] = "Must be at least 1"
    if not 1 <= limit <= settings.max_page_size:
        errors["limit"] = f"Must be between 1 and {settings.max_page_size}"
    if errors:
        raise ValidationFailed(errors)
    return page, limit


def paginated(items: list, total: int, page: int, limit: int) -> dict[str, Any]:
    return {
        "items": items,
        "total": total,
        "page": page,
        "total_pages": math.ceil(total / limit) if total else 0,
    }


def parse_status(status: Optional[str]) -> Optional[ApplicationStatus]:
    if status is None or status == "":
        return None
    try:
        return ApplicationStatus(status.upper())
    except ValueError:
        raise ValidationFailed({"status": f"Unknown status '{status}'"}) from None


async def get_application(session: AsyncSession, application_id: str, actor: CurrentUser) -> LoanApplication:
    authorize(actor, "view")
    return await load_application(session, application_id)


async def list_application_receipts(session: AsyncSession, application_id: str) -> list[ORCRReceipt]:
    result = await session.execute(
        select(ORCRReceipt)
        .where(ORCRReceipt.application_id == application_id)
        .order_by(ORCRReceipt.issued_at.desc(), ORCRReceipt.id.desc())
    )
    return list(result.scalars().all())


async def list_applications(
    session: AsyncSession,
    actor: CurrentUser,
    *,
    status: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
) -> dict[str, Any]:
    authorize(actor, "view")
    page, limit = page_bounds(page, limit)
    wanted = parse_status(status)

    stmt = select(LoanApplication)
    count_stmt = select(func.count()).select_from(LoanApplication)
    if wanted is not None:
        stmt = stmt.where(LoanApplication.status == wanted.value)
        count_stmt = count_stmt.where(LoanApplication.status == wanted.value)

    total = (await session.execute(count_stmt)).scalar_one()
    result = await session.execute(
        stmt.order_by(LoanApplication.created_at.desc(), LoanApplication.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return paginated(list(result.scalars().all()), total, page, limit)


async def transition_application(
    session: AsyncSession,
    application_id: str,
    action: str,
    payload: Optional[Mapping[str, Any]],
    actor: CurrentUser,
    *,
    now: Optional[datetime] = None,
) -> LoanApplication:
    """
    Run one lifecycle action. The caller's role is checked before the row is
    read; ``submit`` goes through the wizard so the undertaking is enforced.
    """
    action = parse_action(action)
    authorize(actor, action.value)
    if action is TransitionAction.SUBMIT:
        return await wizard.submit(session, application_id, actor, now=now)
    application = await load_application(session, application_id)
    return await write_transition(session, application, action, payload, actor_id=actor.id, now=now)
