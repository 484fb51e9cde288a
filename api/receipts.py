from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_number_generator
from database import get_db
from models import ORCRReceipt
from schemas.receipt import ReceiptVoid
from services import receipts
from services.authorization import CurrentUser
from services.identifiers import NumberGenerator
from utils.case import row_to_camel

router = APIRouter(prefix="/api/receipts", tags=["receipts"])


def receipt_to_response(r: ORCRReceipt) -> dict[str, Any]:
    return row_to_camel(r)


@router.get("")
async def list_receipts(
    application_id: Optional[str] = Query(None, alias="applicationId"),
    page: int = 1,
    limit: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    result = await receipts.list_receipts(
        db,
        user,
        application_id=application_id,
        page=page,
        limit=limit,
    )
    return {
        "items": [receipt_to_response(r) for r in result["items"]],
        "total": result["total"],
        "page": result["page"],
        "totalPages": result["total_pages"],
    }


@router.get("/{receipt_id}")
async def get_receipt(
    receipt_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return receipt_to_response(await receipts.get_receipt(db, receipt_id, user))


@router.post("", status_code=201)
async def issue_receipt(
    body: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    numbers: NumberGenerator = Depends(get_number_generator),
):
    receipt = await receipts.issue_receipt(db, body, user, numbers=numbers)
    return receipt_to_response(receipt)


@router.post("/{receipt_id}/void")
async def void_receipt(
    receipt_id: str,
    body: Optional[ReceiptVoid] = None,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    receipt = await receipts.void_receipt(db, receipt_id, body.reason if body else None, user)
    return receipt_to_response(receipt)
