"""Counts and recent activity for the dashboard."""
from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models import LoanApplication
from services.authorization import CurrentUser, authorize
from services.state_machine import ApplicationStatus

RECENT_LIMIT = 5


async def dashboard_summary(session: AsyncSession, actor: CurrentUser) -> dict[str, Any]:
    authorize(actor, "view")
    result = await session.execute(
        select(LoanApplication.status, func.count()).group_by(LoanApplication.status)
    )
    by_status = {s.value: 0 for s in ApplicationStatus}
    for status, count in result.all():
        by_status[status] = count

    recent = await session.execute(
        select(LoanApplication)
        .order_by(LoanApplication.created_at.desc(), LoanApplication.id.desc())
        .limit(RECENT_LIMIT)
    )
    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "recent": list(recent.scalars().all()),
    }
