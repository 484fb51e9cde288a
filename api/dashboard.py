from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.applications import _app_summary
from api.deps import get_current_user
from database import get_db
from services.authorization import CurrentUser
from services.dashboard import dashboard_summary

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/summary")
async def get_summary(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    summary = await dashboard_summary(db, user)
    return {
        "total": summary["total"],
        "byStatus": summary["by_status"],
        "recent": [_app_summary(a) for a in summary["recent"]],
    }
