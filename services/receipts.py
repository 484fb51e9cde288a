"""
Official / Collection Receipts issued against approved loans.
A receipt is written once and never edited; the only later change is a
one-way void.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models import ORCRReceipt
from schemas.receipt import ReceiptCreate
from services.applications import page_bounds, paginated
from services.authorization import CurrentUser, authorize
from services.errors import (
    AlreadyVoided,
    DuplicateReceiptNumber,
    IneligibleApplicationState,
    ValidationFailed,
)
from services.identifiers import NumberGenerator
from services.repository import insert_with_unique_number, load_application, load_receipt
from services.state_machine import RECEIPT_ELIGIBLE_STATUSES

logger = logging.getLogger(__name__)

ELIGIBLE_STATUS_VALUES = tuple(s.value for s in RECEIPT_ELIGIBLE_STATUSES)


def parse_receipt(raw: Mapping[str, Any]) -> ReceiptCreate:
    try:
        return ReceiptCreate.model_validate(dict(raw))
    except PydanticValidationError as exc:
        raise ValidationFailed.from_pydantic(exc) from exc


async def issue_receipt(
    session: AsyncSession,
    fields: Mapping[str, Any],
    actor: CurrentUser,
    *,
    numbers: NumberGenerator,
    now: Optional[datetime] = None,
) -> ORCRReceipt:
    authorize(actor, "issue_receipt")
    data = parse_receipt(fields)
    # Row lock (where supported) so the application cannot leave the eligible set mid-issue
    application = await load_application(session, data.application_id, for_update=True)
    if application.status not in ELIGIBLE_STATUS_VALUES:
        raise IneligibleApplicationState(application.status, ELIGIBLE_STATUS_VALUES)

    now = now or datetime.now(timezone.utc)
    values = {
        "id": numbers.new_id("rcpt"),
        "application_id": application.id,
        "receipt_type": data.receipt_type,
        "amount": data.amount,
        "payment_method": data.payment_method,
        "payment_reference": data.payment_reference,
        "payment_date": data.payment_date,
        "payor_name": data.payor_name,
        "payor_address": data.payor_address,
        "particulars": data.particulars,
        "issued_by_id": actor.id,
        "issued_at": now,
        "is_voided": False,
    }
    receipt = await insert_with_unique_number(
        session,
        ORCRReceipt,
        values,
        "receipt_number",
        lambda: numbers.receipt_number(data.receipt_type, now),
        DuplicateReceiptNumber,
    )
    logger.info(
        "Receipt %s issued for application %s: %s %s",
        receipt.receipt_number,
        application.reference_number,
        data.amount,
        data.payment_method,
    )
    return receipt


async def void_receipt(
    session: AsyncSession,
    receipt_id: str,
    reason: Optional[str],
    actor: CurrentUser,
    *,
    now: Optional[datetime] = None,
) -> ORCRReceipt:
    authorize(actor, "void_receipt")
    receipt = await load_receipt(session, receipt_id)
    if receipt.is_voided:
        raise AlreadyVoided(receipt.receipt_number)
    if reason is None or not reason.strip():
        raise ValidationFailed({"reason": "A reason is required to void a receipt"})

    now = now or datetime.now(timezone.utc)
    result = await session.execute(
        update(ORCRReceipt)
        .where(ORCRReceipt.id == receipt.id, ORCRReceipt.is_voided.is_(False))
        .values(is_voided=True, voided_by_id=actor.id, voided_at=now, void_reason=reason)
        .execution_options(synchronize_session=False)
    )
    await session.refresh(receipt)
    if result.rowcount != 1:
        raise AlreadyVoided(receipt.receipt_number)
    logger.info("Receipt %s voided by %s", receipt.receipt_number, actor.id)
    return receipt


async def get_receipt(session: AsyncSession, receipt_id: str, actor: CurrentUser) -> ORCRReceipt:
    authorize(actor, "view")
    return await load_receipt(session, receipt_id)


async def list_receipts(
    session: AsyncSession,
    actor: CurrentUser,
    *,
    application_id: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
) -> dict[str, Any]:
    authorize(actor, "view")
    page, limit = page_bounds(page, limit)

    stmt = select(ORCRReceipt)
    count_stmt = select(func.count()).select_from(ORCRReceipt)
    if application_id:
        stmt = stmt.where(ORCRReceipt.application_id == application_id)
        count_stmt = count_stmt.where(ORCRReceipt.application_id == application_id)

    total = (await session.execute(count_stmt)).scalar_one()
    result = await session.execute(
        stmt.order_by(ORCRReceipt.issued_at.desc(), ORCRReceipt.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return paginated(list(result.scalars().all()), total, page, limit)
